from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Callable

from pydantic import ValidationError as SchemaValidationError
import requests

from workorder.core.config import settings
from workorder.core.flow_logging import flow_info
from workorder.editor.errors import GatewayRejection, TransportFailure
from workorder.schemas.work_order import (
    DeleteLineItemRequest,
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

API_PREFIX = "/api/v1/work-orders"
ACTOR_HEADER = "X-User-Email"


def _detail_message(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Request was rejected ({response.status_code})."
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
        if isinstance(detail, list) and detail:
            first = detail[0]
            if isinstance(first, dict) and first.get("msg"):
                return str(first["msg"])
    return f"Request was rejected ({response.status_code})."


def _is_abandoned(abandoned: threading.Event | None) -> bool:
    return abandoned is not None and abandoned.is_set()


def retry_budget_seconds(
    timeout_seconds: float, max_retries: int, backoff_seconds: float
) -> float:
    """Longest a single gateway call can run, every retry and backoff included."""
    retries = max(0, max_retries)
    return timeout_seconds * (1 + retries) + backoff_seconds * retries * (retries + 1) / 2


def default_deadline_seconds() -> float:
    return retry_budget_seconds(
        settings.GATEWAY_TIMEOUT_SECONDS,
        settings.GATEWAY_MAX_RETRIES,
        settings.GATEWAY_RETRY_BACKOFF_SECONDS,
    )


class HttpPersistenceGateway:
    """
    JSON-over-HTTP client for the work order API.

    Blocking `requests` calls run in a worker thread so the edit session's
    event loop stays responsive. Transport failures (connection errors,
    timeouts, 5xx) are retried a bounded number of times; a business
    rejection is raised on the first answer. Every write the API exposes is
    idempotent, so a retry after an ambiguous timeout cannot double-apply.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http: Any | None = None,
        actor: str | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or settings.WORK_ORDER_API_URL).rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.actor = (actor or "").strip() or None
        self.timeout_seconds = (
            settings.GATEWAY_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self.max_retries = max(
            0, settings.GATEWAY_MAX_RETRIES if max_retries is None else max_retries
        )
        self.backoff_seconds = (
            settings.GATEWAY_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self._sleep = sleep

    @property
    def deadline_seconds(self) -> float:
        return retry_budget_seconds(
            self.timeout_seconds, self.max_retries, self.backoff_seconds
        )

    # --- operations ---

    async def load_for_edit(self, work_order_id: int) -> WorkOrderEditOut:
        body = await self._request(
            "GET", f"{API_PREFIX}/{int(work_order_id)}/edit", operation="load_for_edit"
        )
        try:
            return WorkOrderEditOut.model_validate(body)
        except SchemaValidationError as exc:
            raise TransportFailure(operation="load_for_edit") from exc

    async def save_all(self, payload: SaveWorkOrderRequest) -> WorkOrderApiResponse:
        return await self._write(
            f"{API_PREFIX}/save-changes", payload, operation="save_all"
        )

    async def reorder_areas(
        self, work_order_id: int, area_ids: list[int]
    ) -> WorkOrderApiResponse:
        payload = ReorderAreasRequest(work_order_id=work_order_id, area_ids=list(area_ids))
        return await self._write(
            f"{API_PREFIX}/reorder-areas", payload, operation="reorder_areas"
        )

    async def reorder_line_items(
        self, work_order_id: int, area_id: int, line_item_ids: list[int]
    ) -> WorkOrderApiResponse:
        payload = ReorderLineItemsRequest(
            work_order_id=work_order_id,
            area_id=area_id,
            line_item_ids=list(line_item_ids),
        )
        return await self._write(
            f"{API_PREFIX}/reorder-line-items", payload, operation="reorder_line_items"
        )

    async def update_line_item_field(
        self, work_order_id: int, line_item_id: int, field: str, value: str
    ) -> WorkOrderApiResponse:
        payload = UpdateLineItemRequest(
            work_order_id=work_order_id,
            line_item_id=line_item_id,
            field=field,
            value=value,
        )
        return await self._write(
            f"{API_PREFIX}/update-line-item", payload, operation="update_line_item_field"
        )

    async def delete_line_item(
        self, work_order_id: int, line_item_id: int
    ) -> WorkOrderApiResponse:
        payload = DeleteLineItemRequest(work_order_id=work_order_id, line_item_id=line_item_id)
        return await self._write(
            f"{API_PREFIX}/delete-line-item", payload, operation="delete_line_item"
        )

    async def update_area_name(
        self, work_order_id: int, area_id: int, name: str
    ) -> WorkOrderApiResponse:
        payload = UpdateAreaNameRequest(
            work_order_id=work_order_id, area_id=area_id, custom_area_name=name
        )
        return await self._write(
            f"{API_PREFIX}/update-area-name", payload, operation="update_area_name"
        )

    async def get_totals(self, work_order_id: int, area_id: int | None = None) -> TotalsOut:
        params = {"area_id": int(area_id)} if area_id is not None else None
        body = await self._request(
            "GET",
            f"{API_PREFIX}/{int(work_order_id)}/totals",
            operation="get_totals",
            params=params,
        )
        response = self._expect_success(body, operation="get_totals")
        return response.totals or TotalsOut()

    # --- plumbing ---

    async def _write(self, path: str, payload: Any, *, operation: str) -> WorkOrderApiResponse:
        body = await self._request(
            "POST", path, operation=operation, json=payload.model_dump(mode="json")
        )
        return self._expect_success(body, operation=operation)

    @staticmethod
    def _expect_success(body: dict[str, Any], *, operation: str) -> WorkOrderApiResponse:
        try:
            response = WorkOrderApiResponse.model_validate(body)
        except SchemaValidationError as exc:
            raise TransportFailure(operation=operation) from exc
        if not response.success:
            raise GatewayRejection(
                (response.message or "").strip() or "Request was rejected.",
                operation=operation,
            )
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        abandoned = threading.Event()
        try:
            return await asyncio.to_thread(
                self._request_blocking,
                method,
                path,
                operation=operation,
                json=json,
                params=params,
                abandoned=abandoned,
            )
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; stop it from retrying.
            abandoned.set()
            raise

    def _request_blocking(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None,
        params: dict[str, Any] | None,
        abandoned: threading.Event | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {ACTOR_HEADER: self.actor} if self.actor else None
        attempts = 1 + self.max_retries

        for attempt in range(1, attempts + 1):
            if _is_abandoned(abandoned):
                logger.warning(
                    "gateway_request_abandoned operation=%s attempt=%s", operation, attempt
                )
                raise TransportFailure(operation=operation)
            flow_info(
                logger,
                "gateway_request operation=%s method=%s attempt=%s",
                operation,
                method,
                attempt,
                category="gateway",
            )
            try:
                response = self.http.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
            except requests.RequestException as exc:
                logger.warning(
                    "gateway_transport_error operation=%s attempt=%s error=%s",
                    operation,
                    attempt,
                    exc,
                )
                if attempt < attempts and not _is_abandoned(abandoned):
                    self._sleep(self.backoff_seconds * attempt)
                    continue
                raise TransportFailure(operation=operation) from exc

            if response.status_code >= 500:
                logger.warning(
                    "gateway_server_error operation=%s attempt=%s status=%s",
                    operation,
                    attempt,
                    response.status_code,
                )
                if attempt < attempts and not _is_abandoned(abandoned):
                    self._sleep(self.backoff_seconds * attempt)
                    continue
                raise TransportFailure(operation=operation)

            if response.status_code >= 400:
                raise GatewayRejection(_detail_message(response), operation=operation)

            try:
                body = response.json()
            except ValueError as exc:
                raise TransportFailure(operation=operation) from exc
            if not isinstance(body, dict):
                raise TransportFailure(operation=operation)
            return body

        raise TransportFailure(operation=operation)
