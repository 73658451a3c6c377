"""Split a Recurring/Installment series at a reference month.

Editing or deleting a series declaration at month ``R`` must not rewrite
elapsed months, nor leave holes in them. The split therefore:

1. freezes history: every month in ``[origin, R)`` ends up holding exactly one
   Unique row (missing months are materialized with the pre-mutation amount,
   existing rows are converted to Unique);
2. retracts the future: every series row at or after ``R``, ``R`` included,
   is deleted.

Only the run that contains ``R`` is touched. One key can hold several runs
over time (an installment plan that ran out, then a new plan), and earlier
runs keep their rows and their mode.

An edit is the split followed by a fresh declaration at ``R`` that is
propagated again (see :func:`budget_engine.api.save_budget`). Failures here
propagate to the caller so the user learns a delete did not complete.
"""

from __future__ import annotations

from decimal import Decimal

from .logging_setup import get_logger
from .models import (
    SERIES_MODES,
    BudgetDeclaration,
    BudgetMode,
    SeriesKey,
    SplitResult,
    to_money,
)
from .months import delinearize, linearize
from .propagation import add_if_missing
from .store import BudgetStore

logger = get_logger("budget_engine.split")


def _resolve_mode(rows: list[BudgetDeclaration], reference: int) -> BudgetMode | None:
    """Mode of the row at ``reference``, else of the latest series row before it."""

    at_or_before = [d for d in rows if d.is_series and d.linear <= reference]
    if not at_or_before:
        return None
    return max(at_or_before, key=lambda d: d.linear).mode


def _anchor(
    rows: list[BudgetDeclaration], reference: int, mode: BudgetMode
) -> BudgetDeclaration | None:
    """Row of ``mode`` at ``reference``, else the latest one before it."""

    candidates = [d for d in rows if d.mode is mode and d.linear <= reference]
    return candidates[-1] if candidates else None


def _starts_plan(d: BudgetDeclaration) -> bool:
    return d.mode is BudgetMode.INSTALLMENT and d.installment_index == 1


def _run_start(rows: list[BudgetDeclaration], anchor: BudgetDeclaration) -> int:
    """First month of the unbroken run of ``anchor.mode`` rows ending at ``anchor``.

    A row of another mode ends the run, and so does an installment numbered 1.
    """

    start = anchor.linear
    if _starts_plan(anchor):
        return start
    for d in reversed([d for d in rows if d.linear < anchor.linear]):
        if d.mode is not anchor.mode:
            break
        start = d.linear
        if _starts_plan(d):
            break
    return start


def _installment_span(
    rows: list[BudgetDeclaration], anchor: BudgetDeclaration
) -> tuple[int, int | None]:
    """Return ``(origin_start, series_end)`` of the installment plan holding ``anchor``."""

    if anchor.has_installment_plan:
        total, index = anchor.installment_plan()
        start = anchor.linear - (index - 1)
        return start, start + total

    # The anchor lost its counters: take the count from the record nearest
    # the start of its run that still carries one.
    start = _run_start(rows, anchor)
    for d in rows:
        if d.linear < start:
            continue
        if d.mode is not BudgetMode.INSTALLMENT or (d.linear > start and _starts_plan(d)):
            break
        if d.installments_total is not None:
            return start, start + d.installments_total
    return start, None


def _open_installment_tail(
    rows: list[BudgetDeclaration], reference: int
) -> list[BudgetDeclaration]:
    # Without a count the plan runs until another mode or a new plan begins.
    tail: list[BudgetDeclaration] = []
    for d in rows:
        if d.linear < reference:
            continue
        if d.mode is not BudgetMode.INSTALLMENT or (d.linear > reference and _starts_plan(d)):
            break
        tail.append(d)
    return tail


def split_and_retract(
    store: BudgetStore,
    key: SeriesKey,
    reference_year: int,
    reference_month: int,
    pre_mutation_amount: Decimal | int | float | str,
    *,
    mode: BudgetMode | None = None,
) -> SplitResult:
    """Freeze the months before the reference and delete the rest of the series.

    Parameters
    ----------
    store:
        Target store.
    key:
        Series identity of the declaration being edited or deleted.
    reference_year / reference_month:
        The month ``R`` at which the mutation happens. ``R`` itself is deleted.
    pre_mutation_amount:
        Amount to use for past months the series implied but never
        materialized.
    mode:
        Series mode. When omitted it is taken from the row at ``R`` or, failing
        that, the latest series row before ``R``.

    The run is anchored on the row of that mode at ``R`` (or the latest one
    before it). A Recurring run reaches back to the first row of an unbroken
    stretch of Recurring rows. An Installment run starts at
    ``anchor - (installment_index - 1)`` and ends after ``installments_total``
    months; an anchor without counters falls back to the start of its
    stretch and the count of the nearest-to-start record carrying one.
    Unique rows, such as history frozen by an earlier split, are left alone.

    Returns
    -------
    SplitResult
        ``past_created``/``past_converted``/``future_deleted`` counts.
    """

    reference = linearize(reference_year, reference_month)
    amount = to_money(pre_mutation_amount)
    rows = store.get_series(key)

    series_mode = mode or _resolve_mode(rows, reference)
    anchor = _anchor(rows, reference, series_mode) if series_mode in SERIES_MODES else None
    if series_mode is None or anchor is None:
        logger.debug(
            "No series for %s at %04d-%02d; nothing to split", key, reference_year, reference_month
        )
        return SplitResult()

    if series_mode is BudgetMode.INSTALLMENT:
        origin_start, series_end = _installment_span(rows, anchor)
        if series_end is None:
            logger.warning(
                "Installment series %s has no installment count; retracting to the next plan",
                key,
            )
            future = _open_installment_tail(rows, reference)
        else:
            future = [
                d
                for d in rows
                if d.mode is BudgetMode.INSTALLMENT and reference <= d.linear < series_end
            ]
    else:
        origin_start, series_end = _run_start(rows, anchor), None
        future = [d for d in rows if d.mode is series_mode and d.linear >= reference]

    at_reference = next(
        (d for d in rows if d.linear == reference and d.mode is series_mode), None
    )
    if at_reference is not None and at_reference not in future:
        future.append(at_reference)

    past_stop = reference if series_end is None else min(reference, series_end)
    past = [d for d in rows if d.mode is series_mode and origin_start <= d.linear < past_stop]

    # Months the run implied but never stored become Unique rows.
    past_months = {d.linear for d in past}
    past_created = 0
    for n in range(origin_start, past_stop):
        if n in past_months:
            continue
        year, month = delinearize(n)
        frozen = BudgetDeclaration(
            year=year,
            month=month,
            key=key,
            amount=amount,
            mode=BudgetMode.UNIQUE,
            is_fixed_cost=anchor.is_fixed_cost,
        )
        if add_if_missing(store, frozen):
            past_created += 1

    converted = 0
    for d in past:
        if d.id is None:
            continue
        store.update(
            d.id,
            mode=BudgetMode.UNIQUE,
            installments_total=None,
            installment_index=None,
            is_recurrent=False,
        )
        converted += 1

    deleted = store.bulk_delete(d.id for d in future if d.id is not None)

    result = SplitResult(
        past_created=past_created,
        past_converted=converted,
        future_deleted=deleted,
    )
    logger.debug(
        "Split %s at %04d-%02d: created=%d converted=%d deleted=%d",
        key,
        reference_year,
        reference_month,
        result.past_created,
        result.past_converted,
        result.future_deleted,
    )
    return result

__all__ = ["split_and_retract"]
