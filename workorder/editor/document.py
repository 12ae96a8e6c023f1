"""
In-memory work order tree used by an edit session.

The document owns areas and line items, enforces value and ordering rules on
every mutation, and produces the batch payload for a full save. It does not
talk to the gateway; the edit session decides when a mutation is applied and
when it is compensated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from workorder.editor.errors import ValidationError
from workorder.editor.totals import Totals, compute_totals, sum_totals
from workorder.editor.validation import (
    LineItemField,
    normalize_area_name,
    parse_field_value,
)
from workorder.schemas.work_order import (
    AreaSave,
    LineItemSave,
    SaveWorkOrderRequest,
    WorkOrderEditOut,
)


@dataclass(frozen=True)
class LineItemValues:
    prep_hours: Decimal
    working_hours: Decimal
    unit: str
    coat_count: int


@dataclass
class LineItem:
    id: int
    area_id: int
    prep_hours: Decimal
    working_hours: Decimal
    unit: str
    coat_count: int
    sort_order: int
    original: LineItemValues
    name: str = ""
    item_type: str = ""
    product_name: str = ""
    sheen: str = ""
    color: str = ""
    is_deleted: bool = False
    deleted_at: datetime | None = None
    is_modified: bool = False

    @property
    def total_hours(self) -> Decimal:
        return self.prep_hours + self.working_hours

    @property
    def product_details(self) -> str:
        parts = []
        if self.product_name:
            parts.append(self.product_name)
        if self.sheen:
            parts.append(f"({self.sheen})")
        return " ".join(parts)

    def value_of(self, field: LineItemField) -> Decimal | int | str:
        return getattr(self, field.value)

    def current_values(self) -> LineItemValues:
        return LineItemValues(
            prep_hours=self.prep_hours,
            working_hours=self.working_hours,
            unit=self.unit,
            coat_count=self.coat_count,
        )

    def _assign(self, field: LineItemField, value: Decimal | int | str) -> None:
        setattr(self, field.value, value)
        self.is_modified = self.current_values() != self.original


@dataclass
class Area:
    id: int
    original_name: str
    sort_order: int
    custom_name: str | None = None
    line_items: list[LineItem] = field(default_factory=list)
    is_collapsed: bool = False

    @property
    def display_name(self) -> str:
        return self.custom_name if self.custom_name else self.original_name

    @property
    def active_line_items(self) -> list[LineItem]:
        return [item for item in self.line_items if not item.is_deleted]

    @property
    def active_line_item_count(self) -> int:
        return len(self.active_line_items)

    def totals(self) -> Totals:
        return compute_totals(self.line_items)


@dataclass
class WorkOrderHeader:
    proposal_number: str | None = None
    proposal_state: str | None = None
    customer_name: str | None = None
    job_name: str | None = None
    job_address: str | None = None
    last_modified: datetime | None = None
    last_modified_by: str | None = None
    original_proposal_id: int | None = None


@dataclass
class WorkOrder:
    id: int
    header: WorkOrderHeader
    areas: list[Area] = field(default_factory=list)

    @property
    def total_line_items(self) -> int:
        return sum(area.active_line_item_count for area in self.areas)


def _ordered(rows: Iterable, key_id) -> list:
    return sorted(rows, key=lambda row: (row.sort_order, key_id(row)))


class WorkOrderDocument:
    def __init__(self, work_order: WorkOrder):
        self.work_order = work_order
        self.dirty = False
        self._areas: dict[int, Area] = {}
        self._line_items: dict[int, LineItem] = {}
        self._reindex()

    @classmethod
    def from_edit_view(cls, view: WorkOrderEditOut) -> "WorkOrderDocument":
        header = WorkOrderHeader(
            proposal_number=view.proposal_number,
            proposal_state=view.proposal_state,
            customer_name=view.customer_name,
            job_name=view.job_name,
            job_address=view.job_address,
            last_modified=view.last_modified,
            last_modified_by=view.last_modified_by,
            original_proposal_id=view.original_proposal_id,
        )
        areas: list[Area] = []
        for area_out in _ordered(view.areas, lambda a: a.area_id):
            items: list[LineItem] = []
            for item_out in _ordered(area_out.line_items, lambda i: i.line_item_id):
                unit = item_out.unit or ""
                # Rows authored before snapshots existed treat their loaded values as original.
                original = LineItemValues(
                    prep_hours=(
                        item_out.prep_hours
                        if item_out.original_prep_hours is None
                        else item_out.original_prep_hours
                    ),
                    working_hours=(
                        item_out.working_hours
                        if item_out.original_working_hours is None
                        else item_out.original_working_hours
                    ),
                    unit=unit if item_out.original_unit is None else item_out.original_unit,
                    coat_count=(
                        item_out.coat_count
                        if item_out.original_coat_count is None
                        else item_out.original_coat_count
                    ),
                )
                items.append(
                    LineItem(
                        id=item_out.line_item_id,
                        area_id=area_out.area_id,
                        name=item_out.item_name or "",
                        item_type=item_out.item_type or "",
                        product_name=item_out.product_name or "",
                        sheen=item_out.sheen or "",
                        color=item_out.color or "",
                        prep_hours=item_out.prep_hours,
                        working_hours=item_out.working_hours,
                        unit=unit,
                        coat_count=item_out.coat_count,
                        sort_order=item_out.sort_order,
                        original=original,
                        is_deleted=item_out.is_deleted,
                        deleted_at=item_out.deleted_at,
                        is_modified=item_out.is_modified,
                    )
                )
            areas.append(
                Area(
                    id=area_out.area_id,
                    original_name=area_out.area_name or "",
                    custom_name=area_out.custom_area_name or None,
                    sort_order=area_out.sort_order,
                    line_items=items,
                )
            )
        return cls(WorkOrder(id=view.work_order_id, header=header, areas=areas))

    def _reindex(self) -> None:
        self._areas = {area.id: area for area in self.work_order.areas}
        self._line_items = {
            item.id: item for area in self.work_order.areas for item in area.line_items
        }

    # --- lookups ---

    @property
    def areas(self) -> list[Area]:
        return self.work_order.areas

    def area(self, area_id: int) -> Area:
        area = self._areas.get(area_id)
        if area is None:
            raise ValidationError(f"Area {area_id} is not part of this work order.")
        return area

    def line_item(self, line_item_id: int) -> LineItem:
        item = self._line_items.get(line_item_id)
        if item is None:
            raise ValidationError(f"Line item {line_item_id} is not part of this work order.")
        return item

    def area_totals(self, area_id: int) -> Totals:
        return self.area(area_id).totals()

    def grand_totals(self) -> Totals:
        return sum_totals(area.totals() for area in self.work_order.areas)

    # --- mutations ---

    def set_area_name(self, area_id: int, name: str) -> str:
        area = self.area(area_id)
        normalized = normalize_area_name(name)
        area.custom_name = normalized
        self.dirty = True
        return normalized

    def set_line_item_field(
        self,
        line_item_id: int,
        field: LineItemField | str,
        raw_value: object,
    ) -> int:
        field = LineItemField.parse(field)
        item = self.line_item(line_item_id)
        if item.is_deleted:
            raise ValidationError("Line item has been deleted.", field=field.value)
        value = parse_field_value(field, raw_value)
        item._assign(field, value)
        self.dirty = True
        return item.area_id

    def restore_line_item_field(
        self,
        line_item_id: int,
        field: LineItemField | str,
        value: Decimal | int | str,
    ) -> int:
        """Put back a value this document held earlier; no range check."""
        field = LineItemField.parse(field)
        item = self.line_item(line_item_id)
        item._assign(field, value)
        return item.area_id

    def restore_area_name(self, area_id: int, custom_name: str | None) -> None:
        self.area(area_id).custom_name = custom_name

    def mark_deleted(self, line_item_id: int, deleted_at: datetime | None = None) -> int:
        item = self.line_item(line_item_id)
        if item.is_deleted:
            return item.area_id
        item.is_deleted = True
        item.deleted_at = deleted_at or datetime.utcnow()
        self.dirty = True
        return item.area_id

    def reorder_areas(self, ordered_area_ids: Iterable[int]) -> None:
        ordered = list(ordered_area_ids)
        _require_same_members(
            ordered,
            [area.id for area in self.work_order.areas],
            "Area order must list every area of the work order exactly once.",
        )
        for rank, area_id in enumerate(ordered, start=1):
            self._areas[area_id].sort_order = rank
        self.work_order.areas.sort(key=lambda area: area.sort_order)
        self.dirty = True

    def reorder_line_items(self, area_id: int, ordered_line_item_ids: Iterable[int]) -> None:
        area = self.area(area_id)
        ordered = list(ordered_line_item_ids)
        _require_same_members(
            ordered,
            [item.id for item in area.active_line_items],
            "Line item order must list every active item of the area exactly once.",
        )
        for rank, line_item_id in enumerate(ordered, start=1):
            self._line_items[line_item_id].sort_order = rank
        position = {line_item_id: index for index, line_item_id in enumerate(ordered)}
        active = iter(sorted(area.active_line_items, key=lambda item: position[item.id]))
        # Deleted rows keep their slot in the list; active rows fill the rest in new order.
        area.line_items = [item if item.is_deleted else next(active) for item in area.line_items]
        self.dirty = True

    def toggle_collapse(self, area_id: int) -> bool:
        area = self.area(area_id)
        area.is_collapsed = not area.is_collapsed
        return area.is_collapsed

    # --- save ---

    def snapshot_for_save(self) -> SaveWorkOrderRequest:
        return SaveWorkOrderRequest(
            work_order_id=self.work_order.id,
            areas=[
                AreaSave(
                    area_id=area.id,
                    custom_area_name=area.custom_name,
                    sort_order=area.sort_order,
                    line_items=[
                        LineItemSave(
                            line_item_id=item.id,
                            prep_hours=item.prep_hours,
                            working_hours=item.working_hours,
                            unit=item.unit,
                            coat_count=item.coat_count,
                            sort_order=item.sort_order,
                            is_deleted=item.is_deleted,
                        )
                        for item in area.line_items
                    ],
                )
                for area in self.work_order.areas
            ],
        )


def _require_same_members(ordered: list[int], current: list[int], message: str) -> None:
    if len(ordered) != len(set(ordered)) or set(ordered) != set(current):
        raise ValidationError(message)
