from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EnterEdit:
    pass


@dataclass(frozen=True)
class EditField:
    line_item_id: int
    field: str
    value: object


@dataclass(frozen=True)
class RenameArea:
    area_id: int
    name: str


@dataclass(frozen=True)
class RequestDelete:
    line_item_id: int


@dataclass(frozen=True)
class ConfirmDelete:
    pass


@dataclass(frozen=True)
class CancelDelete:
    pass


@dataclass(frozen=True)
class ReorderAreas:
    # Area ids in the order the presentation currently shows them.
    area_ids: tuple[int, ...]


@dataclass(frozen=True)
class ReorderLineItems:
    area_id: int
    line_item_ids: tuple[int, ...]


@dataclass(frozen=True)
class Save:
    pass


@dataclass(frozen=True)
class Cancel:
    confirmed: bool = False


@dataclass(frozen=True)
class ToggleCollapse:
    area_id: int


Command = (
    EnterEdit
    | EditField
    | RenameArea
    | RequestDelete
    | ConfirmDelete
    | CancelDelete
    | ReorderAreas
    | ReorderLineItems
    | Save
    | Cancel
    | ToggleCollapse
)
