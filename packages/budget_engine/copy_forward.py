"""Copy-forward: fill a month's missing series rows on demand.

Runs when a month is about to be displayed or after a declaration is
committed. For every Recurring/Installment series, the most recent declaration
strictly before the target month (the *winner*) decides what the target month
should hold. Rows already present at the target month always win over the
computed value, so manual overrides are never touched.
"""

from __future__ import annotations

from .errors import BudgetEngineError, InvalidSeriesState
from .logging_setup import get_logger
from .models import (
    BudgetDeclaration,
    BudgetMode,
    CopyForwardResult,
    SeriesKey,
)
from .months import linearize
from .propagation import add_if_missing
from .store import BudgetStore

logger = get_logger("budget_engine.copy_forward")


def _select_winners(
    declarations: list[BudgetDeclaration], target: int
) -> dict[SeriesKey, BudgetDeclaration]:
    winners: dict[SeriesKey, BudgetDeclaration] = {}
    for d in declarations:
        if not d.is_series or d.linear >= target:
            continue
        current = winners.get(d.key)
        if current is None or d.linear > current.linear:
            winners[d.key] = d
    return winners


def _derive(winner: BudgetDeclaration, year: int, month: int) -> BudgetDeclaration | None:
    target = linearize(year, month)
    if winner.mode is BudgetMode.RECURRING:
        return BudgetDeclaration(
            year=year,
            month=month,
            key=winner.key,
            amount=winner.amount,
            mode=BudgetMode.RECURRING,
            is_fixed_cost=winner.is_fixed_cost,
        )

    try:
        total, index = winner.installment_plan()
    except InvalidSeriesState as e:
        logger.debug("Ignoring %s", e)
        return None
    # Count from the first installment implied by the winner, so a winner that
    # is itself installment k of N still ends the series after N months.
    start = winner.linear - (index - 1)
    elapsed = target - start
    if elapsed >= total:
        return None
    return BudgetDeclaration(
        year=year,
        month=month,
        key=winner.key,
        amount=winner.amount,
        mode=BudgetMode.INSTALLMENT,
        installments_total=total,
        installment_index=elapsed + 1,
        is_fixed_cost=winner.is_fixed_cost,
    )


def _copy_forward(store: BudgetStore, year: int, month: int) -> int:
    target = linearize(year, month)
    winners = _select_winners(store.get_all(), target)
    if not winners:
        return 0

    occupied = {d.key for d in store.get_month(year, month)}
    copied = 0
    for key, winner in winners.items():
        if key in occupied:
            continue
        derived = _derive(winner, year, month)
        if derived is not None and add_if_missing(store, derived):
            copied += 1
    return copied


def copy_forward_if_missing(store: BudgetStore, year: int, month: int) -> CopyForwardResult:
    """Fill ``year``-``month`` from the latest prior declaration of each series.

    Never raises for store or data problems: failures are logged and reported
    as ``CopyForwardResult(success=False, error=...)`` so navigation can carry
    on with whatever rows already exist.
    """

    try:
        copied = _copy_forward(store, year, month)
    except (BudgetEngineError, ValueError) as e:
        logger.warning("Copy-forward for %04d-%02d failed: %s", year, month, e, exc_info=True)
        return CopyForwardResult(success=False, copied_count=0, error=e)

    if copied:
        logger.info("Copied %d budgets to %04d-%02d", copied, year, month)
    return CopyForwardResult(success=True, copied_count=copied)


__all__ = ["copy_forward_if_missing"]
