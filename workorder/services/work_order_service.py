from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workorder.crud import work_order as work_order_crud
from workorder.crud.work_order import WorkOrderRejected, WorkOrderTotals
from workorder.editor.errors import ValidationError
from workorder.editor.validation import LineItemField
from workorder.models.work_order import WorkOrderLineItem
from workorder.schemas.work_order import (
    AreaOut,
    DeleteLineItemRequest,
    LineItemFieldSnapshot,
    LineItemOut,
    ReorderAreasRequest,
    ReorderLineItemsRequest,
    SaveWorkOrderRequest,
    TotalsOut,
    UpdateAreaNameRequest,
    UpdateLineItemRequest,
    WorkOrderApiResponse,
    WorkOrderEditOut,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_totals_out(totals: WorkOrderTotals) -> TotalsOut:
    out = TotalsOut(
        grand_prep_hours=totals.grand.prep_hours,
        grand_working_hours=totals.grand.working_hours,
        grand_total_hours=totals.grand.total_hours,
    )
    if totals.area is not None:
        out.area_prep_hours = totals.area.prep_hours
        out.area_working_hours = totals.area.working_hours
        out.area_total_hours = totals.area.total_hours
    return out


def _to_line_item_out(item: WorkOrderLineItem) -> LineItemOut:
    return LineItemOut(
        line_item_id=int(item.id),
        area_id=int(item.area_id),
        item_name=item.item_name,
        item_type=item.item_type,
        product_name=item.product_name,
        sheen=item.sheen,
        color=item.color,
        prep_hours=item.prep_hours,
        working_hours=item.working_hours,
        total_hours=item.prep_hours + item.working_hours,
        unit=item.unit,
        coat_count=int(item.coat_count),
        sort_order=int(item.sort_order),
        is_deleted=bool(item.is_deleted),
        deleted_at=item.deleted_at,
        is_modified=bool(item.is_modified),
        original_prep_hours=item.original_prep_hours,
        original_working_hours=item.original_working_hours,
        original_unit=item.original_unit,
        original_coat_count=item.original_coat_count,
    )


def _to_field_snapshot(item: WorkOrderLineItem) -> LineItemFieldSnapshot:
    return LineItemFieldSnapshot(
        prep_hours=item.prep_hours,
        working_hours=item.working_hours,
        total_hours=item.prep_hours + item.working_hours,
        unit=item.unit,
        coat_count=int(item.coat_count),
    )


class WorkOrderService:
    """
    Gateway-side handling of editor requests.

    Values are re-validated here whatever the editor already checked. Each
    write commits on success and rolls back on any refusal or database error;
    the caller always gets a WorkOrderApiResponse, never an exception.
    """

    def __init__(self, db: Session, actor: str):
        self.db = db
        self.actor = actor

    def _run(
        self,
        operation: str,
        work: Callable[[], T],
        *,
        failure_message: str,
    ) -> tuple[T | None, WorkOrderApiResponse | None]:
        try:
            result = work()
            self.db.commit()
            return result, None
        except WorkOrderRejected as exc:
            self.db.rollback()
            logger.info("work_order_rejected operation=%s message=%s", operation, exc.message)
            return None, WorkOrderApiResponse(success=False, message=exc.message)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("work_order_store_error operation=%s", operation)
            return None, WorkOrderApiResponse(
                success=False, message=failure_message, errors=[str(exc)]
            )

    def _totals(self, work_order_id: int, area_id: int | None = None) -> TotalsOut:
        return _to_totals_out(work_order_crud.get_totals(self.db, work_order_id, area_id))

    # --- reads ---

    def get_for_edit(self, work_order_id: int) -> WorkOrderEditOut | None:
        loaded = work_order_crud.get_for_edit(self.db, work_order_id)
        if loaded is None:
            return None
        work_order, areas, items_by_area = loaded
        return WorkOrderEditOut(
            work_order_id=int(work_order.id),
            proposal_number=work_order.proposal_number,
            proposal_state=work_order.proposal_state,
            customer_name=work_order.customer_name,
            job_name=work_order.job_name,
            job_address=work_order.job_address,
            last_modified=work_order.updated_at,
            last_modified_by=work_order.last_changed_by,
            original_proposal_id=work_order.original_proposal_id,
            areas=[
                AreaOut(
                    area_id=int(area.id),
                    area_name=area.area_name,
                    custom_area_name=area.custom_area_name,
                    sort_order=int(area.sort_order),
                    line_items=[_to_line_item_out(item) for item in items_by_area.get(area.id, [])],
                )
                for area in areas
            ],
        )

    def get_totals(self, work_order_id: int, area_id: int | None = None) -> WorkOrderApiResponse:
        try:
            totals = self._totals(work_order_id, area_id)
        except WorkOrderRejected as exc:
            return WorkOrderApiResponse(success=False, message=exc.message)
        except SQLAlchemyError as exc:
            logger.exception("work_order_store_error operation=get_totals")
            return WorkOrderApiResponse(
                success=False,
                message="An error occurred while retrieving totals.",
                errors=[str(exc)],
            )
        return WorkOrderApiResponse(success=True, totals=totals)

    # --- writes ---

    def save_all(self, request: SaveWorkOrderRequest) -> WorkOrderApiResponse:
        _, failure = self._run(
            "save_all",
            lambda: work_order_crud.save_all(self.db, request, self.actor),
            failure_message="An error occurred while saving changes.",
        )
        if failure is not None:
            return failure
        return WorkOrderApiResponse(
            success=True,
            message="Work order saved.",
            totals=self._totals(request.work_order_id),
        )

    def reorder_areas(self, request: ReorderAreasRequest) -> WorkOrderApiResponse:
        _, failure = self._run(
            "reorder_areas",
            lambda: work_order_crud.reorder_areas(
                self.db, request.work_order_id, request.area_ids, self.actor
            ),
            failure_message="An error occurred while reordering areas.",
        )
        return failure or WorkOrderApiResponse(success=True, message="Areas reordered.")

    def reorder_line_items(self, request: ReorderLineItemsRequest) -> WorkOrderApiResponse:
        _, failure = self._run(
            "reorder_line_items",
            lambda: work_order_crud.reorder_line_items(
                self.db,
                request.work_order_id,
                request.area_id,
                request.line_item_ids,
                self.actor,
            ),
            failure_message="An error occurred while reordering line items.",
        )
        return failure or WorkOrderApiResponse(
            success=True, message="Line items reordered.", area_id=request.area_id
        )

    def update_line_item(self, request: UpdateLineItemRequest) -> WorkOrderApiResponse:
        try:
            field = LineItemField.parse(request.field)
        except ValidationError as exc:
            return WorkOrderApiResponse(success=False, message=exc.message)

        item, failure = self._run(
            "update_line_item",
            lambda: work_order_crud.update_line_item(
                self.db,
                request.work_order_id,
                request.line_item_id,
                field,
                request.value,
                self.actor,
            ),
            failure_message="An error occurred while updating the line item.",
        )
        if failure is not None:
            return failure
        return WorkOrderApiResponse(
            success=True,
            message="Line item updated.",
            area_id=int(item.area_id),
            line_item=_to_field_snapshot(item),
            totals=self._totals(request.work_order_id, int(item.area_id)),
        )

    def delete_line_item(self, request: DeleteLineItemRequest) -> WorkOrderApiResponse:
        item, failure = self._run(
            "delete_line_item",
            lambda: work_order_crud.delete_line_item(
                self.db, request.work_order_id, request.line_item_id, self.actor
            ),
            failure_message="An error occurred while deleting the line item.",
        )
        if failure is not None:
            return failure
        return WorkOrderApiResponse(
            success=True,
            message="Line item deleted.",
            area_id=int(item.area_id),
            totals=self._totals(request.work_order_id, int(item.area_id)),
        )

    def update_area_name(self, request: UpdateAreaNameRequest) -> WorkOrderApiResponse:
        _, failure = self._run(
            "update_area_name",
            lambda: work_order_crud.update_area_name(
                self.db,
                request.work_order_id,
                request.area_id,
                request.custom_area_name,
                self.actor,
            ),
            failure_message="An error occurred while updating the area name.",
        )
        return failure or WorkOrderApiResponse(
            success=True, message="Area name updated.", area_id=request.area_id
        )
