from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from workorder.api.deps.request_identity import get_request_actor
from workorder.db.session import get_db
from workorder.schemas.work_order import (
    DeleteLineItemRequest,
    ReorderAreasRequest,
    ReorderLineItemsRequest,
    SaveWorkOrderRequest,
    UpdateAreaNameRequest,
    UpdateLineItemRequest,
    WorkOrderApiResponse,
    WorkOrderEditOut,
)
from workorder.services.work_order_service import WorkOrderService

router = APIRouter()


def _service(
    db: Session = Depends(get_db),
    actor: str = Depends(get_request_actor),
) -> WorkOrderService:
    return WorkOrderService(db, actor)


@router.get("/{work_order_id}/edit", response_model=WorkOrderEditOut)
def get_work_order_for_edit(
    work_order_id: int,
    service: WorkOrderService = Depends(_service),
):
    view = service.get_for_edit(work_order_id)
    if view is None:
        raise HTTPException(status_code=404, detail="Work order not found.")
    return view


@router.get("/{work_order_id}/totals", response_model=WorkOrderApiResponse)
def get_work_order_totals(
    work_order_id: int,
    area_id: int | None = None,
    service: WorkOrderService = Depends(_service),
):
    return service.get_totals(work_order_id, area_id)


@router.post("/save-changes", response_model=WorkOrderApiResponse)
def save_work_order_changes(
    payload: SaveWorkOrderRequest,
    service: WorkOrderService = Depends(_service),
):
    return service.save_all(payload)


@router.post("/reorder-areas", response_model=WorkOrderApiResponse)
def reorder_work_order_areas(
    payload: ReorderAreasRequest,
    service: WorkOrderService = Depends(_service),
):
    return service.reorder_areas(payload)


@router.post("/reorder-line-items", response_model=WorkOrderApiResponse)
def reorder_work_order_line_items(
    payload: ReorderLineItemsRequest,
    service: WorkOrderService = Depends(_service),
):
    return service.reorder_line_items(payload)


@router.post("/update-line-item", response_model=WorkOrderApiResponse)
def update_work_order_line_item(
    payload: UpdateLineItemRequest,
    service: WorkOrderService = Depends(_service),
):
    return service.update_line_item(payload)


@router.post("/delete-line-item", response_model=WorkOrderApiResponse)
def delete_work_order_line_item(
    payload: DeleteLineItemRequest,
    service: WorkOrderService = Depends(_service),
):
    return service.delete_line_item(payload)


@router.post("/update-area-name", response_model=WorkOrderApiResponse)
def update_work_order_area_name(
    payload: UpdateAreaNameRequest,
    service: WorkOrderService = Depends(_service),
):
    return service.update_area_name(payload)
