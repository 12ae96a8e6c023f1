from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

ZERO = Decimal("0")
_TWO_PLACES = Decimal("0.01")


class HoursRow(Protocol):
    prep_hours: Decimal
    working_hours: Decimal
    is_deleted: bool


@dataclass(frozen=True)
class Totals:
    prep_hours: Decimal = ZERO
    working_hours: Decimal = ZERO
    total_hours: Decimal = ZERO


@dataclass(frozen=True)
class TotalsSnapshot:
    """Totals shown for one area alongside the work order grand totals."""

    grand: Totals
    area_id: int | None = None
    area: Totals | None = None


def compute_totals(line_items: Iterable[HoursRow]) -> Totals:
    """
    Sum prep and working hours over the non-deleted rows.

    `total_hours` is the sum of the two sums, never a sum of per-row totals,
    so there is exactly one addition per component. No rounding happens here.
    """
    prep = ZERO
    working = ZERO
    for item in line_items:
        if item.is_deleted:
            continue
        prep += Decimal(item.prep_hours)
        working += Decimal(item.working_hours)
    return Totals(prep_hours=prep, working_hours=working, total_hours=prep + working)


def sum_totals(parts: Iterable[Totals]) -> Totals:
    prep = ZERO
    working = ZERO
    for part in parts:
        prep += part.prep_hours
        working += part.working_hours
    return Totals(prep_hours=prep, working_hours=working, total_hours=prep + working)


def format_hours(value: Decimal | int | float | None) -> str:
    """Two-place display rendering, e.g. Decimal('2.5') -> '2.50'."""
    if value is None:
        value = ZERO
    return str(Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))
