from __future__ import annotations

from decimal import Decimal

from budget_engine.models import BudgetDeclaration, BudgetMode, ExpenseKey, IncomeKey
from budget_engine.months import linearize
from budget_engine.propagation import (
    ensure_recurring_budgets_for_year,
    propagate,
    propagate_installment,
    propagate_recurring,
)
from budget_engine.store import SqlBudgetStore

KEY = ExpenseKey(group_id=1, subgroup_id=2)


def _save(store: SqlBudgetStore, d: BudgetDeclaration) -> BudgetDeclaration:
    return d.replace(id=store.add(d))


def _months(store: SqlBudgetStore, key=KEY) -> list[tuple[int, int]]:
    return [(d.year, d.month) for d in store.get_series(key)]


# ---- Recurring ----------------------------------------------------------------


def test_recurring_fills_through_origin_year_plus_two(store: SqlBudgetStore):
    origin = _save(store, BudgetDeclaration(2024, 1, KEY, 1500, mode=BudgetMode.RECURRING))

    created = propagate_recurring(store, origin)

    rows = store.get_series(KEY)
    assert created == 35  # 2024-02 .. 2026-12
    assert (rows[0].year, rows[0].month) == (2024, 1)
    assert (rows[-1].year, rows[-1].month) == (2026, 12)
    assert len({d.linear for d in rows}) == 36
    assert all(d.amount == Decimal("1500.00") for d in rows)
    assert all(d.mode is BudgetMode.RECURRING for d in rows)
    assert store.get_by_key(2023, 12, KEY) is None
    assert store.get_by_key(2027, 1, KEY) is None


def test_recurring_is_idempotent(store: SqlBudgetStore):
    origin = _save(store, BudgetDeclaration(2024, 5, KEY, 10, mode=BudgetMode.RECURRING))
    assert propagate_recurring(store, origin) > 0
    assert propagate_recurring(store, origin) == 0


def test_recurring_skips_existing_months_without_overwrite(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 3, KEY, 42))
    origin = _save(store, BudgetDeclaration(2024, 1, KEY, 100, mode=BudgetMode.RECURRING))

    created = propagate_recurring(store, origin)

    march = store.get_by_key(2024, 3, KEY)
    assert created == 34
    assert march is not None
    assert march.amount == Decimal("42.00") and march.mode is BudgetMode.UNIQUE


def test_recurring_carries_fixed_cost_and_key(store: SqlBudgetStore):
    income = IncomeKey(source_id=4)
    origin = _save(
        store,
        BudgetDeclaration(2025, 12, income, 3000, mode=BudgetMode.RECURRING, is_fixed_cost=True),
    )
    propagate_recurring(store, origin)
    jan = store.get_by_key(2026, 1, income)
    assert jan is not None and jan.is_fixed_cost
    assert store.get_series(KEY) == []


def test_propagate_ignores_unique(store: SqlBudgetStore):
    origin = _save(store, BudgetDeclaration(2024, 1, KEY, 10))
    assert propagate(store, origin) == 0
    assert _months(store) == [(2024, 1)]


# ---- Installment --------------------------------------------------------------


def test_installment_rolls_over_year_and_stops(store: SqlBudgetStore):
    origin = _save(
        store,
        BudgetDeclaration(
            2024, 11, KEY, 500, mode=BudgetMode.INSTALLMENT, installments_total=4,
            installment_index=1,
        ),
    )

    created = propagate_installment(store, origin)

    rows = store.get_series(KEY)
    assert created == 3
    assert [(d.year, d.month, d.installment_index) for d in rows] == [
        (2024, 11, 1),
        (2024, 12, 2),
        (2025, 1, 3),
        (2025, 2, 4),
    ]
    assert all(d.installments_total == 4 for d in rows)
    assert store.get_by_key(2025, 3, KEY) is None


def test_installment_covers_exactly_n_consecutive_months(store: SqlBudgetStore):
    origin = _save(
        store,
        BudgetDeclaration(2023, 6, KEY, 10, mode=BudgetMode.INSTALLMENT, installments_total=12),
    )
    propagate(store, origin)
    linears = [d.linear for d in store.get_series(KEY)]
    start = linearize(2023, 6)
    assert linears == list(range(start, start + 12))


def test_installment_resumed_series_continues_numbering(store: SqlBudgetStore):
    origin = _save(
        store,
        BudgetDeclaration(
            2024, 6, KEY, 10, mode=BudgetMode.INSTALLMENT, installments_total=5,
            installment_index=3,
        ),
    )
    assert propagate_installment(store, origin) == 2
    assert [(d.month, d.installment_index) for d in store.get_series(KEY)] == [
        (6, 3),
        (7, 4),
        (8, 5),
    ]


def test_installment_is_idempotent(store: SqlBudgetStore):
    origin = _save(
        store,
        BudgetDeclaration(2024, 1, KEY, 10, mode=BudgetMode.INSTALLMENT, installments_total=3),
    )
    assert propagate_installment(store, origin) == 2
    assert propagate_installment(store, origin) == 0


def test_installment_without_plan_is_noop(store: SqlBudgetStore):
    origin = _save(store, BudgetDeclaration(2024, 1, KEY, 10, mode=BudgetMode.INSTALLMENT))
    assert propagate_installment(store, origin) == 0
    assert _months(store) == [(2024, 1)]


# ---- Year extension -----------------------------------------------------------


def test_extension_reaches_target_year_plus_buffer(store: SqlBudgetStore):
    origin = _save(store, BudgetDeclaration(2024, 1, KEY, 10, mode=BudgetMode.RECURRING))
    propagate_recurring(store, origin)
    store.update(store.get_by_key(2026, 12, KEY).id, amount=20)

    created = ensure_recurring_budgets_for_year(store, 2028)

    assert created == 48  # 2027-01 .. 2030-12
    last = store.get_by_key(2030, 12, KEY)
    assert last is not None and last.amount == Decimal("20.00")
    assert ensure_recurring_budgets_for_year(store, 2028) == 0


def test_extension_skips_covered_years(store: SqlBudgetStore):
    origin = _save(store, BudgetDeclaration(2024, 1, KEY, 10, mode=BudgetMode.RECURRING))
    propagate_recurring(store, origin)
    assert ensure_recurring_budgets_for_year(store, 2026) == 0
