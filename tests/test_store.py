from __future__ import annotations

from decimal import Decimal

import pytest

from budget_engine.errors import DuplicateKeyError, StoreIOFailure
from budget_engine.models import BudgetDeclaration, BudgetMode, ExpenseKey, IncomeKey
from budget_engine.store import SqlBudgetStore
from tests.helpers.db import fetch_raw_budgets, insert_raw_budget

KEY = ExpenseKey(group_id=1, subgroup_id=2)


def test_add_and_get_by_key_round_trip(store: SqlBudgetStore):
    new_id = store.add(BudgetDeclaration(2024, 1, KEY, "99.9", mode=BudgetMode.RECURRING))
    got = store.get_by_key(2024, 1, KEY)
    assert got is not None
    assert got.id == new_id
    assert got.amount == Decimal("99.90")
    assert got.mode is BudgetMode.RECURRING
    assert store.get_by_key(2024, 2, KEY) is None


def test_duplicate_key_raises_and_keeps_original(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, KEY, 100))
    with pytest.raises(DuplicateKeyError):
        store.add(BudgetDeclaration(2024, 1, KEY, 999, mode=BudgetMode.RECURRING))
    got = store.get_by_key(2024, 1, KEY)
    assert got is not None and got.amount == Decimal("100.00")


def test_missing_subgroup_is_one_key(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, ExpenseKey(group_id=1), 100))
    with pytest.raises(DuplicateKeyError):
        store.add(BudgetDeclaration(2024, 1, ExpenseKey(group_id=1, subgroup_id=0), 5))


def test_same_month_different_dimensions_coexist(store: SqlBudgetStore):
    store.add(BudgetDeclaration(2024, 1, KEY, 100))
    store.add(BudgetDeclaration(2024, 1, ExpenseKey(1, 3), 100))
    store.add(BudgetDeclaration(2024, 1, IncomeKey(1), 100))
    assert len(store.get_month(2024, 1)) == 3


def test_legacy_is_recurrent_normalized_on_read(store: SqlBudgetStore, db_url: str):
    insert_raw_budget(
        db_url, year=2024, month=1, group_id=1, subgroup_id=2, amount=Decimal("50"),
        is_recurrent=True,
    )
    insert_raw_budget(db_url, year=2024, month=2, group_id=1, subgroup_id=2, amount=Decimal("5"))
    rows = store.get_series(KEY)
    assert [d.mode for d in rows] == [BudgetMode.RECURRING, BudgetMode.UNIQUE]


def test_stray_installment_counters_dropped_for_other_modes(store: SqlBudgetStore, db_url: str):
    insert_raw_budget(
        db_url, year=2024, month=1, group_id=1, amount=Decimal("5"), mode="unique",
        installments_total=3, installment_index=1,
    )
    d = store.get_by_key(2024, 1, ExpenseKey(group_id=1))
    assert d is not None
    assert d.installments_total is None and d.installment_index is None


def test_update_and_bulk_delete(store: SqlBudgetStore, db_url: str):
    a = store.add(BudgetDeclaration(2024, 1, KEY, 10, mode=BudgetMode.RECURRING))
    b = store.add(BudgetDeclaration(2024, 2, KEY, 10, mode=BudgetMode.RECURRING))
    store.update(a, mode=BudgetMode.UNIQUE, is_recurrent=False, amount="12.5")
    got = store.get_by_key(2024, 1, KEY)
    assert got is not None
    assert got.mode is BudgetMode.UNIQUE and got.amount == Decimal("12.50")
    assert store.bulk_delete([b]) == 1
    assert store.bulk_delete([]) == 0
    assert [r.id for r in fetch_raw_budgets(db_url)] == [a]


def test_update_rejects_unknown_fields(store: SqlBudgetStore):
    a = store.add(BudgetDeclaration(2024, 1, KEY, 10))
    with pytest.raises(ValueError):
        store.update(a, year=2030)


def test_check_constraint_violation_is_store_failure(store: SqlBudgetStore, db_url: str):
    # Bypass model validation to hit the database CHECK constraint.
    bad = BudgetDeclaration(
        2024, 1, KEY, 10, mode=BudgetMode.INSTALLMENT, installments_total=2, installment_index=2
    )
    object.__setattr__(bad, "installment_index", 5)
    with pytest.raises(StoreIOFailure):
        store.add(bad)
    assert fetch_raw_budgets(db_url) == []


def test_unreachable_database_is_store_failure(tmp_path):
    from db.client import reset_engine

    reset_engine()
    broken = SqlBudgetStore(database_url=f"sqlite+pysqlite:///{tmp_path}/missing/dir/x.db")
    with pytest.raises(StoreIOFailure):
        broken.get_all()


def test_reference_data_and_clear(store: SqlBudgetStore):
    assert not store.has_reference_data()
    parent = store.add_category("Housing")
    store.add_category("Rent", parent_id=parent)
    store.add_source("Salary")
    store.add(BudgetDeclaration(2024, 1, KEY, 10))
    assert store.has_reference_data()
    assert store.list_categories()[1] == {"id": parent + 1, "name": "Rent", "parent_id": parent}
    store.clear_all()
    assert not store.has_reference_data()
    assert store.get_all() == []
