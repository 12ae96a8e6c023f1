r"""
Edit session controller for one work order.

State machine:

    VIEWING --enter_edit--> EDITING --save_all--> SAVING --ok--> VIEWING
                               |                     \--failure--> EDITING
                               \--cancel / reorder failure (reload)--> VIEWING

Compensation per mutation kind when the gateway refuses or cannot be reached:

    field edit   -> revert the field, unless a newer local edit of the same
                    field exists (last write wins)
    area rename  -> revert the name, same last-write-wins rule
    delete       -> nothing was applied locally; item stays
    reorder      -> discard local state and reload from the gateway
    save         -> back to EDITING with local state untouched

Every failure path emits an error notification.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Awaitable, Callable, TypeVar

from workorder.core.config import settings
from workorder.core.flow_logging import flow_info
from workorder.editor import commands
from workorder.editor.document import WorkOrderDocument
from workorder.editor.errors import (
    GatewayError,
    SessionStateError,
    TransportFailure,
    ValidationError,
)
from workorder.editor.gateway import PersistenceGateway
from workorder.editor.http_gateway import default_deadline_seconds
from workorder.editor.totals import Totals, TotalsSnapshot
from workorder.editor.validation import LineItemField, normalize_area_name, parse_field_value
from workorder.schemas.work_order import TotalsOut, WorkOrderApiResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"


@dataclass
class EditSessionConfig:
    work_order_id: int
    # None: wait as long as the gateway's own retry budget allows.
    request_timeout_seconds: float | None = None
    serialize_field_updates: bool = field(
        default_factory=lambda: settings.EDIT_SERIALIZE_FIELD_UPDATES
    )


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


@dataclass(frozen=True)
class PendingDelete:
    line_item_id: int
    area_id: int
    item_name: str


def _wire_value(value: object) -> str:
    return "" if value is None else str(value)


def _as_ids(values, field_name: str) -> list[int]:
    try:
        return [int(value) for value in values]
    except (TypeError, ValueError):
        raise ValidationError("Invalid item order.", field=field_name) from None


def _area_totals(out: TotalsOut) -> Totals:
    return Totals(
        prep_hours=out.area_prep_hours,
        working_hours=out.area_working_hours,
        total_hours=out.area_total_hours,
    )


def _grand_totals(out: TotalsOut) -> Totals:
    return Totals(
        prep_hours=out.grand_prep_hours,
        working_hours=out.grand_working_hours,
        total_hours=out.grand_total_hours,
    )


class EditSession:
    def __init__(
        self,
        config: EditSessionConfig,
        gateway: PersistenceGateway,
        notifier: Callable[[Notification], None] | None = None,
    ):
        self.config = config
        self.gateway = gateway
        self.request_timeout_seconds = (
            config.request_timeout_seconds
            if config.request_timeout_seconds is not None
            else getattr(gateway, "deadline_seconds", None) or default_deadline_seconds()
        )
        self._notifier = notifier
        self.state = SessionState.VIEWING
        self.document: WorkOrderDocument | None = None
        self.has_unsaved_changes = False
        self.reload_required = False
        self.pending_delete: PendingDelete | None = None
        self.notifications: list[Notification] = []
        self.area_totals: dict[int, Totals] = {}
        self.grand_totals = Totals()
        # Bumped on every load; responses from an older document are dropped.
        self._generation = 0
        # Bumped on every successful save; single-field responses sent
        # before it neither revert nor overwrite the saved tree.
        self._save_epoch = 0
        self._field_versions: dict[tuple[int, LineItemField], int] = {}
        self._area_name_versions: dict[int, int] = {}
        self._item_locks: dict[int, asyncio.Lock] = {}
        self._in_flight: set[asyncio.Task] = set()
        self._handlers: dict[type, Callable[..., Awaitable[object]]] = {
            commands.EnterEdit: lambda c: self._sync(self.enter_edit),
            commands.EditField: lambda c: self.edit_field(c.line_item_id, c.field, c.value),
            commands.RenameArea: lambda c: self.rename_area(c.area_id, c.name),
            commands.RequestDelete: lambda c: self._sync(self.request_delete, c.line_item_id),
            commands.ConfirmDelete: lambda c: self.confirm_delete(),
            commands.CancelDelete: lambda c: self._sync(self.cancel_delete),
            commands.ReorderAreas: lambda c: self.reorder_areas(c.area_ids),
            commands.ReorderLineItems: lambda c: self.reorder_line_items(
                c.area_id, c.line_item_ids
            ),
            commands.Save: lambda c: self.save_all(),
            commands.Cancel: lambda c: self.cancel(confirmed=c.confirmed),
            commands.ToggleCollapse: lambda c: self._sync(self.toggle_collapse, c.area_id),
        }

    @property
    def work_order_id(self) -> int:
        return self.config.work_order_id

    @property
    def requires_leave_confirmation(self) -> bool:
        return self.has_unsaved_changes and self.state is not SessionState.VIEWING

    def totals_for(self, area_id: int) -> TotalsSnapshot:
        return TotalsSnapshot(
            grand=self.grand_totals,
            area_id=area_id,
            area=self.area_totals.get(area_id, Totals()),
        )

    # --- dispatch ---

    async def dispatch(self, command: commands.Command) -> object:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")
        return await handler(command)

    @staticmethod
    async def _sync(func: Callable[..., T], *args) -> T:
        return func(*args)

    async def drain(self) -> None:
        """Wait for every dispatched field/name update to settle."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    # --- lifecycle ---

    async def load(self) -> WorkOrderDocument:
        try:
            view = await self._call(
                "load_for_edit", self.gateway.load_for_edit(self.work_order_id)
            )
        except GatewayError as exc:
            self._notify_error(f"Failed to load work order: {exc.message}")
            raise
        self._generation += 1
        self.document = WorkOrderDocument.from_edit_view(view)
        self.state = SessionState.VIEWING
        self.has_unsaved_changes = False
        self.reload_required = False
        self.pending_delete = None
        self._field_versions.clear()
        self._area_name_versions.clear()
        self._refresh_totals()
        flow_info(
            logger,
            "edit_session_loaded work_order_id=%s areas=%s",
            self.work_order_id,
            len(self.document.areas),
            category="edit_session",
        )
        return self.document

    def enter_edit(self) -> None:
        if self.document is None or self.reload_required:
            raise SessionStateError(
                "Reload the work order before editing.", state=self.state.value
            )
        if self.state is not SessionState.VIEWING:
            raise SessionStateError(
                f"Cannot enter edit mode while {self.state.value}.", state=self.state.value
            )
        self.state = SessionState.EDITING
        flow_info(
            logger,
            "edit_session_enter_edit work_order_id=%s",
            self.work_order_id,
            category="edit_session",
        )

    async def cancel(self, confirmed: bool = False) -> bool:
        """
        Abandon every local change and reload. Returns False without doing
        anything when unsaved changes exist and the caller has not confirmed.
        """
        self._require_editing("cancel")
        if self.has_unsaved_changes and not confirmed:
            return False
        await self._reload("cancel")
        return True

    # --- field edits ---

    async def edit_field(
        self,
        line_item_id: int,
        field: LineItemField | str,
        value: object,
    ) -> asyncio.Task | None:
        """
        Apply a field edit locally and dispatch its update request.

        Returns the in-flight request task, or None when nothing was sent
        (rejected value or unchanged value).
        """
        self._require_editing("edit fields")
        document = self._document()
        try:
            field = LineItemField.parse(field)
            item = document.line_item(line_item_id)
            previous = item.value_of(field)
            parsed = parse_field_value(field, value)
            if parsed == previous:
                return None
            area_id = document.set_line_item_field(line_item_id, field, value)
        except ValidationError as exc:
            self._notify_error(exc.message)
            return None

        self._mark_changed()
        self._refresh_totals()
        key = (line_item_id, field)
        version = self._field_versions.get(key, 0) + 1
        self._field_versions[key] = version
        return self._spawn(
            self._send_field_update(
                line_item_id=line_item_id,
                area_id=area_id,
                field=field,
                wire_value=_wire_value(parsed),
                previous=previous,
                version=version,
                generation=self._generation,
                epoch=self._save_epoch,
            )
        )

    async def _send_field_update(
        self,
        *,
        line_item_id: int,
        area_id: int,
        field: LineItemField,
        wire_value: str,
        previous: object,
        version: int,
        generation: int,
        epoch: int,
    ) -> bool:
        request = self.gateway.update_line_item_field(
            self.work_order_id, line_item_id, field.value, wire_value
        )
        try:
            if self.config.serialize_field_updates:
                async with self._item_lock(line_item_id):
                    response = await self._call("update_line_item_field", request)
            else:
                response = await self._call("update_line_item_field", request)
        except GatewayError as exc:
            self._notify_error(f"Failed to update: {exc.message}")
            # While saving, the snapshot in flight already carries this value.
            if self.state is not SessionState.SAVING and self._is_latest_field_edit(
                line_item_id, field, version, generation, epoch
            ):
                self._document().restore_line_item_field(line_item_id, field, previous)
                self._refresh_totals()
            return False

        if generation != self._generation or epoch != self._save_epoch:
            return True
        if response.line_item is not None and self._is_latest_field_edit(
            line_item_id, field, version, generation, epoch
        ):
            confirmed = getattr(response.line_item, field.value)
            if confirmed is not None:
                self._document().restore_line_item_field(line_item_id, field, confirmed)
        self._merge_server_totals(response.area_id or area_id, response.totals)
        return True

    def _is_latest_field_edit(
        self,
        line_item_id: int,
        field: LineItemField,
        version: int,
        generation: int,
        epoch: int,
    ) -> bool:
        return (
            generation == self._generation
            and epoch == self._save_epoch
            and self._field_versions.get((line_item_id, field)) == version
        )

    def _item_lock(self, line_item_id: int) -> asyncio.Lock:
        lock = self._item_locks.get(line_item_id)
        if lock is None:
            lock = asyncio.Lock()
            self._item_locks[line_item_id] = lock
        return lock

    # --- area rename ---

    async def rename_area(self, area_id: int, name: str) -> asyncio.Task | None:
        self._require_editing("rename areas")
        document = self._document()
        try:
            area = document.area(area_id)
            previous = area.custom_name
            normalized = normalize_area_name(name)
            if normalized == area.display_name:
                return None
            document.set_area_name(area_id, normalized)
        except ValidationError as exc:
            self._notify_error(exc.message)
            return None

        self._mark_changed()
        version = self._area_name_versions.get(area_id, 0) + 1
        self._area_name_versions[area_id] = version
        return self._spawn(
            self._send_area_name(
                area_id, normalized, previous, version, self._generation, self._save_epoch
            )
        )

    async def _send_area_name(
        self,
        area_id: int,
        name: str,
        previous: str | None,
        version: int,
        generation: int,
        epoch: int,
    ) -> bool:
        try:
            await self._call(
                "update_area_name",
                self.gateway.update_area_name(self.work_order_id, area_id, name),
            )
        except GatewayError as exc:
            self._notify_error(f"Failed to update area name: {exc.message}")
            if (
                self.state is not SessionState.SAVING
                and generation == self._generation
                and epoch == self._save_epoch
                and self._area_name_versions.get(area_id) == version
            ):
                self._document().restore_area_name(area_id, previous)
            return False
        self._notify("success", "Area name updated")
        return True

    # --- delete ---

    def request_delete(self, line_item_id: int) -> PendingDelete | None:
        """First step of a delete: remember the item and return what to confirm."""
        self._require_editing("delete line items")
        try:
            item = self._document().line_item(line_item_id)
        except ValidationError as exc:
            self._notify_error(exc.message)
            return None
        if item.is_deleted:
            return None
        self.pending_delete = PendingDelete(
            line_item_id=item.id, area_id=item.area_id, item_name=item.name
        )
        return self.pending_delete

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_delete(self) -> bool:
        pending = self.pending_delete
        if pending is None:
            return False
        self._require_editing("delete line items")
        self.pending_delete = None
        generation = self._generation
        try:
            response = await self._call(
                "delete_line_item",
                self.gateway.delete_line_item(self.work_order_id, pending.line_item_id),
            )
        except GatewayError as exc:
            self._notify_error(f"Failed to delete: {exc.message}")
            return False
        if generation != self._generation:
            return True

        self._document().mark_deleted(pending.line_item_id)
        self._mark_changed()
        self._refresh_totals()
        self._merge_server_totals(response.area_id or pending.area_id, response.totals)
        self._notify("success", "Item deleted")
        return True

    # --- reorder ---

    async def reorder_areas(self, displayed_area_ids) -> bool:
        self._require_editing("reorder areas")
        try:
            ordered = _as_ids(displayed_area_ids, "area_ids")
            self._document().reorder_areas(ordered)
        except ValidationError as exc:
            self._notify_error(exc.message)
            return False
        self._mark_changed()
        self._refresh_totals()
        return await self._commit_reorder(
            "reorder_areas",
            self.gateway.reorder_areas(self.work_order_id, ordered),
            success_message="Areas reordered successfully",
            failure_prefix="Failed to reorder areas",
        )

    async def reorder_line_items(self, area_id: int, displayed_line_item_ids) -> bool:
        self._require_editing("reorder line items")
        try:
            ordered = _as_ids(displayed_line_item_ids, "line_item_ids")
            self._document().reorder_line_items(area_id, ordered)
        except ValidationError as exc:
            self._notify_error(exc.message)
            return False
        self._mark_changed()
        self._refresh_totals()
        return await self._commit_reorder(
            "reorder_line_items",
            self.gateway.reorder_line_items(self.work_order_id, area_id, ordered),
            success_message="Line items reordered",
            failure_prefix="Failed to reorder",
        )

    async def _commit_reorder(
        self,
        operation: str,
        request: Awaitable[WorkOrderApiResponse],
        *,
        success_message: str,
        failure_prefix: str,
    ) -> bool:
        try:
            await self._call(operation, request)
        except GatewayError as exc:
            self._notify_error(f"{failure_prefix}: {exc.message}")
            await self._reload(operation)
            return False
        self._notify("success", success_message)
        return True

    # --- save ---

    async def save_all(self) -> bool:
        self._require_editing("save")
        payload = self._document().snapshot_for_save()
        self.state = SessionState.SAVING
        flow_info(
            logger,
            "edit_session_save_started work_order_id=%s areas=%s",
            self.work_order_id,
            len(payload.areas),
            category="edit_session",
        )
        try:
            response = await self._call("save_all", self.gateway.save_all(payload))
        except GatewayError as exc:
            self.state = SessionState.EDITING
            self._notify_error(f"Failed to save: {exc.message}")
            return False

        self._save_epoch += 1
        self.has_unsaved_changes = False
        self._document().dirty = False
        self.state = SessionState.VIEWING
        if response.totals is not None:
            self.grand_totals = _grand_totals(response.totals)
        self._notify("success", "All changes saved successfully")
        return True

    # --- totals ---

    async def refresh_totals(self, area_id: int | None = None) -> bool:
        """Replace locally computed totals with the store's figures."""
        if area_id is not None:
            self._document().area(area_id)
        try:
            totals = await self._call(
                "get_totals", self.gateway.get_totals(self.work_order_id, area_id)
            )
        except GatewayError as exc:
            self._notify_error(f"Failed to load totals: {exc.message}")
            return False
        self._merge_server_totals(area_id, totals)
        return True

    # --- presentation-only ---

    def toggle_collapse(self, area_id: int) -> bool:
        return self._document().toggle_collapse(area_id)

    # --- internals ---

    def _document(self) -> WorkOrderDocument:
        if self.document is None:
            raise SessionStateError("Work order has not been loaded.", state=self.state.value)
        return self.document

    def _require_editing(self, action: str) -> None:
        if self.state is not SessionState.EDITING:
            raise SessionStateError(
                f"Cannot {action} while {self.state.value}.", state=self.state.value
            )

    def _mark_changed(self) -> None:
        self.has_unsaved_changes = True

    def _refresh_totals(self) -> None:
        document = self._document()
        self.area_totals = {area.id: area.totals() for area in document.areas}
        self.grand_totals = document.grand_totals()

    def _merge_server_totals(self, area_id: int | None, totals: TotalsOut | None) -> None:
        if totals is None:
            return
        if area_id is not None:
            self.area_totals[area_id] = _area_totals(totals)
        self.grand_totals = _grand_totals(totals)

    async def _reload(self, reason: str) -> None:
        logger.warning(
            "edit_session_reload work_order_id=%s reason=%s", self.work_order_id, reason
        )
        try:
            await self.load()
        except GatewayError:
            # load() already notified; the local tree can no longer be trusted.
            self.state = SessionState.VIEWING
            self.has_unsaved_changes = False
            self.pending_delete = None
            self.reload_required = True

    async def _call(self, operation: str, request: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(request, timeout=self.request_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "edit_session_gateway_timeout work_order_id=%s operation=%s timeout=%s",
                self.work_order_id,
                operation,
                self.request_timeout_seconds,
            )
            raise TransportFailure(operation=operation) from None

    def _spawn(self, coro: Awaitable[bool]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    def _notify(self, level: str, message: str) -> None:
        notification = Notification(level=level, message=message)
        self.notifications.append(notification)
        if self._notifier is not None:
            self._notifier(notification)

    def _notify_error(self, message: str) -> None:
        logger.warning(
            "edit_session_error work_order_id=%s message=%s", self.work_order_id, message
        )
        self._notify("error", message)
