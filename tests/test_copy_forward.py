from __future__ import annotations

from decimal import Decimal

from budget_engine.copy_forward import copy_forward_if_missing
from budget_engine.errors import StoreIOFailure
from budget_engine.models import BudgetDeclaration, BudgetMode, ExpenseKey, IncomeKey
from budget_engine.store import SqlBudgetStore
from tests.helpers.db import insert_raw_budget

RENT = ExpenseKey(group_id=1, subgroup_id=2)
SALARY = IncomeKey(source_id=1)


def test_latest_prior_declaration_wins(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, RENT, 100, mode=BudgetMode.RECURRING))
    store.add(BudgetDeclaration(2024, 3, RENT, 120, mode=BudgetMode.RECURRING))

    result = copy_forward_if_missing(store, 2024, 6)

    assert result.success and result.copied_count == 1
    june = store.get_by_key(2024, 6, RENT)
    assert june is not None
    assert june.amount == Decimal("120.00") and june.mode is BudgetMode.RECURRING


def test_existing_row_is_never_overwritten(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, RENT, 100, mode=BudgetMode.RECURRING))
    store.add(BudgetDeclaration(2024, 2, RENT, 5))

    result = copy_forward_if_missing(store, 2024, 2)

    assert result.success and result.copied_count == 0
    assert store.get_by_key(2024, 2, RENT).amount == Decimal("5.00")


def test_fills_each_series_independently(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, RENT, 100, mode=BudgetMode.RECURRING))
    store.add(BudgetDeclaration(2023, 7, SALARY, 4000, mode=BudgetMode.RECURRING))
    store.add(BudgetDeclaration(2024, 1, ExpenseKey(group_id=9), 30))

    result = copy_forward_if_missing(store, 2024, 2)

    assert result.copied_count == 2
    assert {d.key for d in store.get_month(2024, 2)} == {RENT, SALARY}


def test_later_declarations_do_not_count(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 5, RENT, 100, mode=BudgetMode.RECURRING))
    result = copy_forward_if_missing(store, 2024, 4)
    assert result.success and result.copied_count == 0
    assert store.get_month(2024, 4) == []


def test_installment_within_period_gets_next_index(store: SqlBudgetStore):
    store.add(
        BudgetDeclaration(
            2024, 11, RENT, 250, mode=BudgetMode.INSTALLMENT, installments_total=4,
            installment_index=1,
        )
    )

    assert copy_forward_if_missing(store, 2025, 1).copied_count == 1

    jan = store.get_by_key(2025, 1, RENT)
    assert jan is not None
    assert (jan.installment_index, jan.installments_total) == (3, 4)


def test_installment_after_period_is_not_resurrected(store: SqlBudgetStore):
    store.add(
        BudgetDeclaration(
            2024, 11, RENT, 250, mode=BudgetMode.INSTALLMENT, installments_total=4,
            installment_index=1,
        )
    )
    assert copy_forward_if_missing(store, 2025, 3).copied_count == 0
    assert store.get_by_key(2025, 3, RENT) is None


def test_last_installment_winner_ends_series(store: SqlBudgetStore):
    store.add(
        BudgetDeclaration(
            2025, 2, RENT, 250, mode=BudgetMode.INSTALLMENT, installments_total=4,
            installment_index=4,
        )
    )
    assert copy_forward_if_missing(store, 2025, 3).copied_count == 0


def test_legacy_recurrent_flag_is_copied_as_recurring(store: SqlBudgetStore, db_url: str):
    insert_raw_budget(db_url, year=2024, month=1, group_id=1, subgroup_id=2, amount=75,
                      is_recurrent=True)

    assert copy_forward_if_missing(store, 2024, 2).copied_count == 1

    feb = store.get_by_key(2024, 2, RENT)
    assert feb is not None and feb.mode is BudgetMode.RECURRING


def test_fixed_cost_flag_is_carried(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, RENT, 100, mode=BudgetMode.RECURRING, is_fixed_cost=True))
    copy_forward_if_missing(store, 2024, 2)
    assert store.get_by_key(2024, 2, RENT).is_fixed_cost


def test_second_pass_copies_nothing(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, RENT, 100, mode=BudgetMode.RECURRING))
    assert copy_forward_if_missing(store, 2024, 8).copied_count == 1
    assert copy_forward_if_missing(store, 2024, 8).copied_count == 0


class _BrokenStore:
    def get_all(self):
        raise StoreIOFailure("disk on fire")


def test_store_failure_is_reported_not_raised():
    result = copy_forward_if_missing(_BrokenStore(), 2024, 1)  # type: ignore[arg-type]

    assert not result.success
    assert result.copied_count == 0
    assert isinstance(result.error, StoreIOFailure)


def test_invalid_month_is_reported(store: SqlBudgetStore):
    result = copy_forward_if_missing(store, 2024, 13)
    assert not result.success and isinstance(result.error, ValueError)
