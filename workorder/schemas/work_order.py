from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .base import BaseSchema


# --- LoadForEdit ---

class LineItemOut(BaseSchema):
    line_item_id: int
    area_id: int
    item_name: str | None = None
    item_type: str | None = None
    product_name: str | None = None
    sheen: str | None = None
    color: str | None = None
    prep_hours: Decimal = Decimal("0")
    working_hours: Decimal = Decimal("0")
    total_hours: Decimal = Decimal("0")
    unit: str | None = None
    coat_count: int = 0
    sort_order: int = 0
    is_deleted: bool = False
    deleted_at: datetime | None = None
    is_modified: bool = False
    original_prep_hours: Decimal | None = None
    original_working_hours: Decimal | None = None
    original_unit: str | None = None
    original_coat_count: int | None = None


class AreaOut(BaseSchema):
    area_id: int
    area_name: str | None = None
    custom_area_name: str | None = None
    sort_order: int = 0
    line_items: list[LineItemOut] = []


class WorkOrderEditOut(BaseSchema):
    work_order_id: int
    proposal_number: str | None = None
    proposal_state: str | None = None
    customer_name: str | None = None
    job_name: str | None = None
    job_address: str | None = None
    last_modified: datetime | None = None
    last_modified_by: str | None = None
    original_proposal_id: int | None = None
    areas: list[AreaOut] = []


# --- Write requests ---

class LineItemSave(BaseModel):
    line_item_id: int
    prep_hours: Decimal
    working_hours: Decimal
    unit: str = ""
    coat_count: int
    sort_order: int
    is_deleted: bool = False


class AreaSave(BaseModel):
    area_id: int
    custom_area_name: str | None = None
    sort_order: int
    line_items: list[LineItemSave] = []


class SaveWorkOrderRequest(BaseModel):
    work_order_id: int = Field(ge=1)
    areas: list[AreaSave] = []


class ReorderAreasRequest(BaseModel):
    work_order_id: int = Field(ge=1)
    area_ids: list[int] = Field(min_length=1)  # IDs in new order


class ReorderLineItemsRequest(BaseModel):
    work_order_id: int = Field(ge=1)
    area_id: int = Field(ge=1)
    line_item_ids: list[int] = Field(min_length=1)  # IDs in new order


class UpdateLineItemRequest(BaseModel):
    work_order_id: int = Field(ge=1)
    line_item_id: int = Field(ge=1)
    field: str = Field(min_length=1)
    value: str | None = None


class DeleteLineItemRequest(BaseModel):
    work_order_id: int = Field(ge=1)
    line_item_id: int = Field(ge=1)


class UpdateAreaNameRequest(BaseModel):
    work_order_id: int = Field(ge=1)
    area_id: int = Field(ge=1)
    custom_area_name: str | None = None


# --- Responses ---

class TotalsOut(BaseModel):
    area_prep_hours: Decimal = Decimal("0")
    area_working_hours: Decimal = Decimal("0")
    area_total_hours: Decimal = Decimal("0")
    grand_prep_hours: Decimal = Decimal("0")
    grand_working_hours: Decimal = Decimal("0")
    grand_total_hours: Decimal = Decimal("0")


class LineItemFieldSnapshot(BaseModel):
    prep_hours: Decimal
    working_hours: Decimal
    total_hours: Decimal
    unit: str | None = None
    coat_count: int


class WorkOrderApiResponse(BaseModel):
    success: bool = False
    message: str | None = None
    area_id: int | None = None
    line_item: LineItemFieldSnapshot | None = None
    totals: TotalsOut | None = None
    errors: list[str] = []
