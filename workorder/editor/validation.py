"""
Value rules for the editable parts of a work order.

Both the editor (fail fast, before any request) and the work order API
(re-check of whatever arrives over the wire) parse through these helpers, so
a value accepted on one side is accepted on the other.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
import re

from workorder.editor.errors import ValidationError

HOURS_MIN = Decimal("0")
HOURS_MAX = Decimal("24")
COATS_MIN = 0
COATS_MAX = 100
AREA_NAME_MAX_LENGTH = 200
UNIT_MAX_LENGTH = 50

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class LineItemField(str, Enum):
    PREP_HOURS = "prep_hours"
    WORKING_HOURS = "working_hours"
    UNIT = "unit"
    COAT_COUNT = "coat_count"

    @classmethod
    def parse(cls, value: "LineItemField | str") -> "LineItemField":
        if isinstance(value, cls):
            return value
        key = (value or "").strip()
        field = _FIELD_ALIASES.get(key) or _FIELD_ALIASES.get(key.lower())
        if field is None:
            raise ValidationError("Invalid field name.", field=key or None)
        return field

    @property
    def is_hours(self) -> bool:
        return self in (LineItemField.PREP_HOURS, LineItemField.WORKING_HOURS)


# Accept the camelCase and legacy grid column names some callers still send.
_FIELD_ALIASES: dict[str, LineItemField] = {
    "prep_hours": LineItemField.PREP_HOURS,
    "prephours": LineItemField.PREP_HOURS,
    "prephrs": LineItemField.PREP_HOURS,
    "working_hours": LineItemField.WORKING_HOURS,
    "workinghours": LineItemField.WORKING_HOURS,
    "workinghrs": LineItemField.WORKING_HOURS,
    "unit": LineItemField.UNIT,
    "coat_count": LineItemField.COAT_COUNT,
    "coatcount": LineItemField.COAT_COUNT,
    "coats": LineItemField.COAT_COUNT,
}


def parse_hours(raw: object, field: str = LineItemField.PREP_HOURS.value) -> Decimal:
    text = "" if raw is None or isinstance(raw, bool) else str(raw).strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValidationError("Hours must be between 0 and 24.", field=field) from None
    if not value.is_finite() or value < HOURS_MIN or value > HOURS_MAX:
        raise ValidationError("Hours must be between 0 and 24.", field=field)
    return value


def parse_coat_count(raw: object) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    else:
        text = "" if raw is None else str(raw).strip()
        if not _INTEGER_RE.match(text):
            raise ValidationError(
                "Coats must be between 0 and 100.", field=LineItemField.COAT_COUNT.value
            )
        value = int(text)
    if value < COATS_MIN or value > COATS_MAX:
        raise ValidationError(
            "Coats must be between 0 and 100.", field=LineItemField.COAT_COUNT.value
        )
    return value


def parse_unit(raw: object) -> str:
    if raw is None:
        raise ValidationError("Unit is required.", field=LineItemField.UNIT.value)
    unit = str(raw)
    if len(unit) > UNIT_MAX_LENGTH:
        raise ValidationError(
            f"Unit cannot exceed {UNIT_MAX_LENGTH} characters.",
            field=LineItemField.UNIT.value,
        )
    return unit


def parse_field_value(field: LineItemField | str, raw: object) -> Decimal | int | str:
    field = LineItemField.parse(field)
    if field.is_hours:
        return parse_hours(raw, field=field.value)
    if field is LineItemField.COAT_COUNT:
        return parse_coat_count(raw)
    return parse_unit(raw)


def normalize_area_name(raw: object) -> str:
    name = "" if raw is None else str(raw).strip()
    if not name:
        raise ValidationError("Area name cannot be empty.", field="custom_area_name")
    if len(name) > AREA_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Area name cannot exceed {AREA_NAME_MAX_LENGTH} characters.",
            field="custom_area_name",
        )
    return name
