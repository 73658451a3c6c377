"""Forward-fill Recurring and Installment declarations into future months.

Both propagators check the store for an existing row before every write and
additionally treat a :class:`DuplicateKeyError` as "already covered". A second
run against an unchanged store therefore creates nothing. Store failures
propagate to the caller; nothing is retried here.
"""

from __future__ import annotations

from .errors import DuplicateKeyError, InvalidSeriesState
from .logging_setup import get_logger
from .models import BudgetDeclaration, BudgetMode
from .months import delinearize, linearize
from .series import group_by_series
from .store import BudgetStore

logger = get_logger("budget_engine.propagation")

# Recurring declarations are materialized through December of origin year + 2.
RECURRING_HORIZON_YEARS = 2
# Extra years materialized when the user navigates past the horizon.
EXTENSION_BUFFER_YEARS = 2


def add_if_missing(store: BudgetStore, declaration: BudgetDeclaration) -> bool:
    """Insert ``declaration`` unless its month is already covered; return True if written."""

    try:
        store.add(declaration)
    except DuplicateKeyError:
        logger.debug("Skipping %s: month already covered", declaration.label())
        return False
    return True


def _occupied_months(store: BudgetStore, origin: BudgetDeclaration) -> set[int]:
    return {d.linear for d in store.get_series(origin.key)}


def propagate_recurring(
    store: BudgetStore,
    origin: BudgetDeclaration,
    *,
    horizon_year: int | None = None,
) -> int:
    """Copy a Recurring ``origin`` into every later month up to the horizon.

    Parameters
    ----------
    store:
        Target store.
    origin:
        The Recurring declaration to project forward. Other modes are ignored.
    horizon_year:
        Last year to fill (through December). Defaults to
        ``origin.year + RECURRING_HORIZON_YEARS``.

    Returns
    -------
    int
        Number of declarations created. Months that already hold a row for the
        same key are skipped and never overwritten.
    """

    if origin.mode is not BudgetMode.RECURRING:
        return 0

    end_year = horizon_year if horizon_year is not None else origin.year + RECURRING_HORIZON_YEARS
    last = linearize(end_year, 12)
    occupied = _occupied_months(store, origin)

    created = 0
    for n in range(origin.linear + 1, last + 1):
        if n in occupied:
            continue
        year, month = delinearize(n)
        derived = BudgetDeclaration(
            year=year,
            month=month,
            key=origin.key,
            amount=origin.amount,
            mode=BudgetMode.RECURRING,
            is_fixed_cost=origin.is_fixed_cost,
        )
        if add_if_missing(store, derived):
            created += 1

    if created:
        logger.info(
            "Propagated recurring budget %s to %d future months (through %d-12)",
            origin.label(),
            created,
            end_year,
        )
    return created


def propagate_installment(store: BudgetStore, origin: BudgetDeclaration) -> int:
    """Create the remaining installments after ``origin``.

    Installment ``i`` of ``N`` yields months ``origin+1 .. origin+(N-i)`` numbered
    ``i+1 .. N``. An origin without a usable installment plan creates nothing.
    """

    if origin.mode is not BudgetMode.INSTALLMENT:
        return 0
    try:
        total, index = origin.installment_plan()
    except InvalidSeriesState as e:
        logger.warning("%s; nothing to propagate", e)
        return 0

    occupied = _occupied_months(store, origin)

    created = 0
    for offset in range(1, total - index + 1):
        n = origin.linear + offset
        if n in occupied:
            continue
        year, month = delinearize(n)
        derived = BudgetDeclaration(
            year=year,
            month=month,
            key=origin.key,
            amount=origin.amount,
            mode=BudgetMode.INSTALLMENT,
            installments_total=total,
            installment_index=index + offset,
            is_fixed_cost=origin.is_fixed_cost,
        )
        if add_if_missing(store, derived):
            created += 1

    if created:
        logger.info(
            "Propagated installment budget %s to %d months (%d installments)",
            origin.label(),
            created,
            total,
        )
    return created


def propagate(store: BudgetStore, declaration: BudgetDeclaration) -> int:
    """Dispatch to the propagator matching ``declaration.mode``; Unique yields 0."""

    if declaration.mode is BudgetMode.RECURRING:
        return propagate_recurring(store, declaration)
    if declaration.mode is BudgetMode.INSTALLMENT:
        return propagate_installment(store, declaration)
    return 0


def ensure_recurring_budgets_for_year(store: BudgetStore, target_year: int) -> int:
    """Extend Recurring series that stop before ``target_year``.

    For each Recurring series whose latest materialized year precedes
    ``target_year``, propagate from the series' most recent declaration through
    ``target_year + EXTENSION_BUFFER_YEARS``. Returns the number of rows created.
    """

    recurring = [d for d in store.get_all() if d.mode is BudgetMode.RECURRING]
    total = 0
    for series in group_by_series(recurring).values():
        latest = series[-1]
        if target_year <= latest.year:
            continue
        total += propagate_recurring(
            store, latest, horizon_year=target_year + EXTENSION_BUFFER_YEARS
        )
    if total:
        logger.info("Extended recurring budgets to year %d (%d created)", target_year, total)
    return total


__all__ = [
    "EXTENSION_BUFFER_YEARS",
    "RECURRING_HORIZON_YEARS",
    "add_if_missing",
    "ensure_recurring_budgets_for_year",
    "propagate",
    "propagate_installment",
    "propagate_recurring",
]
