from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from workorder.editor.totals import Totals, compute_totals, format_hours, sum_totals


@dataclass
class _Row:
    prep_hours: Decimal
    working_hours: Decimal
    is_deleted: bool = False


def test_compute_totals_sums_active_rows():
    totals = compute_totals(
        [
            _Row(Decimal("2"), Decimal("6")),
            _Row(Decimal("1.5"), Decimal("4.5")),
        ]
    )
    assert totals == Totals(Decimal("3.5"), Decimal("10.5"), Decimal("14.0"))


def test_compute_totals_skips_deleted_rows():
    totals = compute_totals(
        [
            _Row(Decimal("2"), Decimal("6")),
            _Row(Decimal("5"), Decimal("5"), is_deleted=True),
        ]
    )
    assert totals.prep_hours == Decimal("2")
    assert totals.working_hours == Decimal("6")
    assert totals.total_hours == Decimal("8")


def test_compute_totals_empty_is_zero():
    assert compute_totals([]) == Totals()
    assert compute_totals([_Row(Decimal("1"), Decimal("1"), is_deleted=True)]) == Totals()


def test_compute_totals_keeps_exact_decimal_sum():
    rows = [_Row(Decimal("0.1"), Decimal("0.2")) for _ in range(3)]
    totals = compute_totals(rows)
    assert totals.prep_hours == Decimal("0.3")
    assert totals.working_hours == Decimal("0.6")
    assert totals.total_hours == totals.prep_hours + totals.working_hours


def test_sum_totals_combines_area_totals():
    grand = sum_totals(
        [
            Totals(Decimal("3"), Decimal("9"), Decimal("12")),
            Totals(Decimal("1.5"), Decimal("4.5"), Decimal("6")),
        ]
    )
    assert grand == Totals(Decimal("4.5"), Decimal("13.5"), Decimal("18"))


def test_format_hours_two_places():
    assert format_hours(Decimal("2.5")) == "2.50"
    assert format_hours(Decimal("2.345")) == "2.35"
    assert format_hours(0) == "0.00"
    assert format_hours(None) == "0.00"
    assert format_hours(Decimal("24")) == "24.00"
