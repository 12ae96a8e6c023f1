"""
Named store procedures for the work order editor.

Each function is one unit of work against an open session: it validates
against the persisted state, applies the change, stamps the acting user and
flushes. Committing or rolling back belongs to the caller. A business refusal
raises `WorkOrderRejected`, which callers turn into a success=false answer.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workorder.editor.errors import ValidationError
from workorder.editor.validation import (
    LineItemField,
    normalize_area_name,
    parse_coat_count,
    parse_field_value,
    parse_hours,
    parse_unit,
)
from workorder.models.work_order import WorkOrder, WorkOrderArea, WorkOrderLineItem
from workorder.schemas.work_order import SaveWorkOrderRequest

ZERO = Decimal("0")


class WorkOrderRejected(Exception):
    """Raised when the store refuses a change (stale ids, bad ordering, bad values)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class HoursTotals:
    prep_hours: Decimal = ZERO
    working_hours: Decimal = ZERO

    @property
    def total_hours(self) -> Decimal:
        return self.prep_hours + self.working_hours


@dataclass
class WorkOrderTotals:
    grand: HoursTotals
    area: HoursTotals | None = None


def _decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value))


def _refresh_modified(item: WorkOrderLineItem) -> None:
    original = (
        _decimal(item.original_prep_hours if item.original_prep_hours is not None else item.prep_hours),
        _decimal(
            item.original_working_hours
            if item.original_working_hours is not None
            else item.working_hours
        ),
        item.original_unit if item.original_unit is not None else (item.unit or ""),
        item.original_coat_count if item.original_coat_count is not None else item.coat_count,
    )
    current = (
        _decimal(item.prep_hours),
        _decimal(item.working_hours),
        item.unit or "",
        item.coat_count,
    )
    item.is_modified = current != original


# --- reads ---

def get_work_order(db: Session, work_order_id: int) -> WorkOrder | None:
    return db.get(WorkOrder, work_order_id)


def require_work_order(db: Session, work_order_id: int) -> WorkOrder:
    work_order = get_work_order(db, work_order_id)
    if work_order is None:
        raise WorkOrderRejected("Work order not found.")
    return work_order


def list_areas(db: Session, work_order_id: int) -> list[WorkOrderArea]:
    stmt = (
        select(WorkOrderArea)
        .where(WorkOrderArea.work_order_id == work_order_id)
        .order_by(WorkOrderArea.sort_order.asc(), WorkOrderArea.id.asc())
    )
    return list(db.scalars(stmt).all())


def list_line_items(
    db: Session,
    work_order_id: int,
    *,
    area_id: int | None = None,
    include_deleted: bool = True,
) -> list[WorkOrderLineItem]:
    stmt = (
        select(WorkOrderLineItem)
        .join(WorkOrderArea, WorkOrderArea.id == WorkOrderLineItem.area_id)
        .where(WorkOrderArea.work_order_id == work_order_id)
        .order_by(WorkOrderLineItem.sort_order.asc(), WorkOrderLineItem.id.asc())
    )
    if area_id is not None:
        stmt = stmt.where(WorkOrderLineItem.area_id == area_id)
    if not include_deleted:
        stmt = stmt.where(WorkOrderLineItem.is_deleted.is_(False))
    return list(db.scalars(stmt).all())


def get_for_edit(
    db: Session, work_order_id: int
) -> tuple[WorkOrder, list[WorkOrderArea], dict[int, list[WorkOrderLineItem]]] | None:
    work_order = get_work_order(db, work_order_id)
    if work_order is None:
        return None
    areas = list_areas(db, work_order_id)
    items_by_area: dict[int, list[WorkOrderLineItem]] = {area.id: [] for area in areas}
    for item in list_line_items(db, work_order_id):
        items_by_area.setdefault(item.area_id, []).append(item)
    return work_order, areas, items_by_area


def _require_area(db: Session, work_order_id: int, area_id: int) -> WorkOrderArea:
    area = db.get(WorkOrderArea, area_id)
    if area is None or area.work_order_id != work_order_id:
        raise WorkOrderRejected("Area not found on this work order.")
    return area


def _require_line_item(db: Session, work_order_id: int, line_item_id: int) -> WorkOrderLineItem:
    item = db.get(WorkOrderLineItem, line_item_id)
    if item is None or item.area is None or item.area.work_order_id != work_order_id:
        raise WorkOrderRejected("Line item not found on this work order.")
    return item


def _sum_hours(db: Session, work_order_id: int, area_id: int | None = None) -> HoursTotals:
    stmt = (
        select(
            func.coalesce(func.sum(WorkOrderLineItem.prep_hours), 0),
            func.coalesce(func.sum(WorkOrderLineItem.working_hours), 0),
        )
        .select_from(WorkOrderLineItem)
        .join(WorkOrderArea, WorkOrderArea.id == WorkOrderLineItem.area_id)
        .where(WorkOrderArea.work_order_id == work_order_id)
        .where(WorkOrderLineItem.is_deleted.is_(False))
    )
    if area_id is not None:
        stmt = stmt.where(WorkOrderLineItem.area_id == area_id)
    prep, working = db.execute(stmt).one()
    return HoursTotals(prep_hours=_decimal(prep), working_hours=_decimal(working))


def get_totals(db: Session, work_order_id: int, area_id: int | None = None) -> WorkOrderTotals:
    area_totals = None
    if area_id is not None:
        _require_area(db, work_order_id, area_id)
        area_totals = _sum_hours(db, work_order_id, area_id)
    return WorkOrderTotals(grand=_sum_hours(db, work_order_id), area=area_totals)


# --- writes ---

def save_all(db: Session, request: SaveWorkOrderRequest, actor: str) -> WorkOrder:
    work_order = require_work_order(db, request.work_order_id)
    areas = {area.id: area for area in list_areas(db, work_order.id)}
    items = {item.id: item for item in list_line_items(db, work_order.id)}

    area_ranks = Counter(area_in.sort_order for area_in in request.areas)
    if any(count > 1 for count in area_ranks.values()):
        raise WorkOrderRejected("Duplicate area sort order.")
    if any(area_in.sort_order < 1 for area_in in request.areas):
        raise WorkOrderRejected("Area sort order must be a positive number.")

    seen_items: set[int] = set()
    for area_in in request.areas:
        area = areas.get(area_in.area_id)
        if area is None:
            raise WorkOrderRejected(f"Area {area_in.area_id} is not part of this work order.")
        active_ranks: Counter[int] = Counter()
        for item_in in area_in.line_items:
            item = items.get(item_in.line_item_id)
            if item is None or item.area_id != area.id:
                raise WorkOrderRejected(
                    f"Line item {item_in.line_item_id} is not part of area {area.id}."
                )
            if item_in.line_item_id in seen_items:
                raise WorkOrderRejected(f"Line item {item_in.line_item_id} appears twice.")
            seen_items.add(item_in.line_item_id)
            if item_in.sort_order < 0:
                raise WorkOrderRejected("Line item sort order cannot be negative.")
            if not (item.is_deleted or item_in.is_deleted):
                active_ranks[item_in.sort_order] += 1
            try:
                parse_hours(item_in.prep_hours, field=LineItemField.PREP_HOURS.value)
                parse_hours(item_in.working_hours, field=LineItemField.WORKING_HOURS.value)
                parse_coat_count(item_in.coat_count)
                parse_unit(item_in.unit)
            except ValidationError as exc:
                raise WorkOrderRejected(exc.message) from None
        if any(count > 1 for count in active_ranks.values()):
            raise WorkOrderRejected(f"Duplicate line item sort order in area {area.id}.")
        if area_in.custom_area_name is not None and area_in.custom_area_name.strip():
            try:
                normalize_area_name(area_in.custom_area_name)
            except ValidationError as exc:
                raise WorkOrderRejected(exc.message) from None

    now = datetime.utcnow()
    for area_in in request.areas:
        area = areas[area_in.area_id]
        area.sort_order = area_in.sort_order
        if area_in.custom_area_name is not None and area_in.custom_area_name.strip():
            area.custom_area_name = normalize_area_name(area_in.custom_area_name)
        area.stamp(actor, now)
        for item_in in area_in.line_items:
            item = items[item_in.line_item_id]
            item.sort_order = item_in.sort_order
            if item.is_deleted:
                # Soft deletes are only ever undone by an administrator.
                continue
            item.prep_hours = item_in.prep_hours
            item.working_hours = item_in.working_hours
            item.unit = item_in.unit
            item.coat_count = item_in.coat_count
            if item_in.is_deleted:
                item.is_deleted = True
                item.deleted_at = now
                item.deleted_by = actor
            _refresh_modified(item)
            item.stamp(actor, now)

    work_order.stamp(actor, now)
    db.flush()
    return work_order


def reorder_areas(db: Session, work_order_id: int, area_ids: list[int], actor: str) -> None:
    work_order = require_work_order(db, work_order_id)
    areas = {area.id: area for area in list_areas(db, work_order_id)}
    if len(area_ids) != len(set(area_ids)) or set(area_ids) != set(areas):
        raise WorkOrderRejected("Area list does not match the areas of this work order.")
    for rank, area_id in enumerate(area_ids, start=1):
        areas[area_id].sort_order = rank
        areas[area_id].stamp(actor)
    work_order.stamp(actor)
    db.flush()


def reorder_line_items(
    db: Session,
    work_order_id: int,
    area_id: int,
    line_item_ids: list[int],
    actor: str,
) -> None:
    work_order = require_work_order(db, work_order_id)
    _require_area(db, work_order_id, area_id)
    active = {
        item.id: item
        for item in list_line_items(db, work_order_id, area_id=area_id, include_deleted=False)
    }
    if len(line_item_ids) != len(set(line_item_ids)) or set(line_item_ids) != set(active):
        raise WorkOrderRejected("Line item list does not match the active items of this area.")
    for rank, line_item_id in enumerate(line_item_ids, start=1):
        active[line_item_id].sort_order = rank
        active[line_item_id].stamp(actor)
    work_order.stamp(actor)
    db.flush()


def update_line_item(
    db: Session,
    work_order_id: int,
    line_item_id: int,
    field: LineItemField,
    raw_value: str | None,
    actor: str,
) -> WorkOrderLineItem:
    work_order = require_work_order(db, work_order_id)
    item = _require_line_item(db, work_order_id, line_item_id)
    if item.is_deleted:
        raise WorkOrderRejected("Line item has been deleted.")
    try:
        value = parse_field_value(field, raw_value if raw_value is not None else "")
    except ValidationError as exc:
        raise WorkOrderRejected(exc.message) from None
    setattr(item, field.value, value)
    _refresh_modified(item)
    item.stamp(actor)
    work_order.stamp(actor)
    db.flush()
    return item


def delete_line_item(
    db: Session, work_order_id: int, line_item_id: int, actor: str
) -> WorkOrderLineItem:
    work_order = require_work_order(db, work_order_id)
    item = _require_line_item(db, work_order_id, line_item_id)
    if item.is_deleted:
        # Already gone: keep the first deletion stamp.
        return item
    item.is_deleted = True
    item.deleted_at = datetime.utcnow()
    item.deleted_by = actor
    item.stamp(actor)
    work_order.stamp(actor)
    db.flush()
    return item


def update_area_name(
    db: Session, work_order_id: int, area_id: int, name: str | None, actor: str
) -> WorkOrderArea:
    work_order = require_work_order(db, work_order_id)
    area = _require_area(db, work_order_id, area_id)
    try:
        area.custom_area_name = normalize_area_name(name)
    except ValidationError as exc:
        raise WorkOrderRejected(exc.message) from None
    area.stamp(actor)
    work_order.stamp(actor)
    db.flush()
    return area
