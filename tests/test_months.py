from __future__ import annotations

import pytest

from budget_engine.months import add_months, delinearize, iter_months, linearize


def test_round_trip_every_valid_month():
    for year in range(1, 10000):
        for month in range(1, 13):
            assert delinearize(linearize(year, month)) == (year, month)


def test_linearize_is_ordered_across_year_boundary():
    assert linearize(2024, 12) + 1 == linearize(2025, 1)
    assert linearize(2024, 11) + 3 == linearize(2025, 2)


def test_delinearize_maps_zero_remainder_to_december():
    assert delinearize(2025 * 12) == (2024, 12)


@pytest.mark.parametrize("month", [0, 13, -1])
def test_linearize_rejects_out_of_range_month(month: int):
    with pytest.raises(ValueError):
        linearize(2024, month)


def test_add_months_rolls_years_both_ways():
    assert add_months(2024, 11, 3) == (2025, 2)
    assert add_months(2024, 1, -1) == (2023, 12)


def test_iter_months_half_open_range():
    start = linearize(2024, 11)
    assert list(iter_months(start, start + 3)) == [(2024, 11), (2024, 12), (2025, 1)]
    assert list(iter_months(start, start)) == []
