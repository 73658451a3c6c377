"""Public API and orchestration for the ``budget_engine`` package.

The three engine primitives live in their own modules and are re-exported
here as the stable import surface for UI layers:

- :func:`propagate` (``budget_engine.propagation``)
- :func:`copy_forward_if_missing` (``budget_engine.copy_forward``)
- :func:`split_and_retract` (``budget_engine.split``)

:func:`save_budget` and :func:`delete_budget` compose them into the user-level
create/edit/delete flows.
"""

from __future__ import annotations

from decimal import Decimal

from .copy_forward import copy_forward_if_missing
from .errors import BudgetEngineError, InvalidSeriesState
from .logging_setup import get_logger
from .models import (
    BudgetDeclaration,
    BudgetMode,
    SeriesKey,
    SplitResult,
)
from .propagation import ensure_recurring_budgets_for_year, propagate
from .split import split_and_retract
from .store import BudgetStore

logger = get_logger("budget_engine.api")


def _build_declaration(
    *,
    year: int,
    month: int,
    key: SeriesKey,
    amount: Decimal | int | float | str,
    mode: BudgetMode,
    installments_total: int | None,
    is_fixed_cost: bool,
) -> BudgetDeclaration:
    mode = BudgetMode(mode)
    if mode is BudgetMode.INSTALLMENT:
        if installments_total is None or installments_total < 2:
            raise ValueError("installment budgets need installments_total >= 2")
        return BudgetDeclaration(
            year=year,
            month=month,
            key=key,
            amount=amount,
            mode=mode,
            installments_total=installments_total,
            installment_index=1,
            is_fixed_cost=is_fixed_cost,
        )
    return BudgetDeclaration(
        year=year,
        month=month,
        key=key,
        amount=amount,
        mode=mode,
        is_fixed_cost=is_fixed_cost,
    )


def _propagate_quietly(store: BudgetStore, declaration: BudgetDeclaration) -> int:
    # Data entry must stay usable when propagation fails; a later copy-forward
    # pass fills whatever was not written.
    try:
        return propagate(store, declaration)
    except BudgetEngineError as e:
        logger.warning("Propagation of %s failed: %s", declaration.label(), e, exc_info=True)
        return 0


def save_budget(
    store: BudgetStore,
    *,
    year: int,
    month: int,
    key: SeriesKey,
    amount: Decimal | int | float | str,
    mode: BudgetMode = BudgetMode.UNIQUE,
    installments_total: int | None = None,
    is_fixed_cost: bool = False,
) -> BudgetDeclaration:
    """Create or edit the declaration at ``year``-``month`` for ``key``.

    - No row yet: insert it and propagate when ``mode`` is a series mode.
    - Existing Unique row: update it in place, then propagate as above.
    - Existing Recurring/Installment row: split the old series at this month
      using its stored amount (history is frozen, the future retracted), then
      insert the new declaration and propagate it.

    Installment declarations always start at installment 1 of
    ``installments_total``. Split and store errors propagate; propagation
    errors are logged and swallowed.
    """

    declaration = _build_declaration(
        year=year,
        month=month,
        key=key,
        amount=amount,
        mode=mode,
        installments_total=installments_total,
        is_fixed_cost=is_fixed_cost,
    )

    existing = store.get_by_key(year, month, key)
    if existing is not None and existing.is_series:
        split_and_retract(store, key, year, month, existing.amount, mode=existing.mode)
        existing = None

    if existing is None:
        saved = declaration.replace(id=store.add(declaration))
    elif existing.id is None:
        raise InvalidSeriesState(f"stored budget {existing.label()} has no id; cannot edit it")
    else:
        store.update(
            existing.id,
            amount=declaration.amount,
            mode=declaration.mode,
            installments_total=declaration.installments_total,
            installment_index=declaration.installment_index,
            is_recurrent=None,
            is_fixed_cost=declaration.is_fixed_cost,
        )
        saved = declaration.replace(id=existing.id)

    if saved.is_series:
        _propagate_quietly(store, saved)
    return saved


def delete_budget(
    store: BudgetStore, *, year: int, month: int, key: SeriesKey
) -> SplitResult | None:
    """Delete the declaration at ``year``-``month`` for ``key``.

    Unique rows are removed alone. Series rows trigger
    :func:`split_and_retract` with the stored amount, which freezes earlier
    months and removes this and every later month of the series. Returns
    ``None`` when there is nothing to delete.
    """

    existing = store.get_by_key(year, month, key)
    if existing is None or existing.id is None:
        return None
    if not existing.is_series:
        deleted = store.bulk_delete([existing.id])
        return SplitResult(future_deleted=deleted)
    return split_and_retract(store, key, year, month, existing.amount, mode=existing.mode)


__all__ = [
    "copy_forward_if_missing",
    "delete_budget",
    "ensure_recurring_budgets_for_year",
    "propagate",
    "save_budget",
    "split_and_retract",
]
