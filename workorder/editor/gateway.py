from __future__ import annotations

from typing import Protocol

from workorder.schemas.work_order import (
    SaveWorkOrderRequest,
    TotalsOut,
    WorkOrderApiResponse,
    WorkOrderEditOut,
)


class PersistenceGateway(Protocol):
    """
    Operations the edit session needs from the work order store.

    Write methods return the confirmed response or raise:
    - GatewayRejection when the store answers success=false
    - TransportFailure when no usable answer arrives
    """

    async def load_for_edit(self, work_order_id: int) -> WorkOrderEditOut: ...

    async def save_all(self, payload: SaveWorkOrderRequest) -> WorkOrderApiResponse: ...

    async def reorder_areas(
        self, work_order_id: int, area_ids: list[int]
    ) -> WorkOrderApiResponse: ...

    async def reorder_line_items(
        self, work_order_id: int, area_id: int, line_item_ids: list[int]
    ) -> WorkOrderApiResponse: ...

    async def update_line_item_field(
        self, work_order_id: int, line_item_id: int, field: str, value: str
    ) -> WorkOrderApiResponse: ...

    async def delete_line_item(
        self, work_order_id: int, line_item_id: int
    ) -> WorkOrderApiResponse: ...

    async def update_area_name(
        self, work_order_id: int, area_id: int, name: str
    ) -> WorkOrderApiResponse: ...

    async def get_totals(
        self, work_order_id: int, area_id: int | None = None
    ) -> TotalsOut: ...
