"""Domain types for ``budget_engine``.

A :class:`BudgetDeclaration` is one planned amount for one calendar month and
one dimension (an income source, or an expense group/subgroup). Declarations
that share a dimension and a Recurring/Installment mode form a *series*; the
dimension itself is captured by a :data:`SeriesKey`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from .errors import InvalidSeriesState
from .months import linearize


class BudgetType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class BudgetMode(StrEnum):
    UNIQUE = "unique"
    RECURRING = "recurring"
    INSTALLMENT = "installment"


SERIES_MODES = frozenset({BudgetMode.RECURRING, BudgetMode.INSTALLMENT})


def normalize_mode(mode: str | BudgetMode | None, is_recurrent: bool | None = None) -> BudgetMode:
    """Collapse the legacy ``is_recurrent`` flag and a missing mode into :class:`BudgetMode`.

    ``mode`` wins whenever it is set; a bare ``is_recurrent=True`` means Recurring;
    anything else is Unique.
    """

    if mode:
        return BudgetMode(mode)
    if is_recurrent:
        return BudgetMode.RECURRING
    return BudgetMode.UNIQUE


def to_money(raw: Any) -> Decimal:
    """Coerce ``raw`` to a 2dp :class:`~decimal.Decimal` (half-up)."""

    if isinstance(raw, bool):
        raise ValueError("amount must be numeric")
    try:
        d = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"amount is not a decimal value: {raw!r}") from e
    if not d.is_finite():
        raise ValueError(f"amount must be finite; got {raw!r}")
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _norm_id(value: int | None) -> int | None:
    # 0 and None both mean "no dimension"; keep a single canonical spelling.
    if value is None or value == 0:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"dimension ids must be positive integers; got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Series keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IncomeKey:
    """Dimension of an income declaration."""

    source_id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_id", _norm_id(self.source_id))

    @property
    def type(self) -> BudgetType:
        return BudgetType.INCOME

    def __str__(self) -> str:
        return f"income(source={self.source_id or '-'})"


@dataclass(frozen=True, slots=True)
class ExpenseKey:
    """Dimension of an expense declaration."""

    group_id: int | None = None
    subgroup_id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "group_id", _norm_id(self.group_id))
        object.__setattr__(self, "subgroup_id", _norm_id(self.subgroup_id))

    @property
    def type(self) -> BudgetType:
        return BudgetType.EXPENSE

    def __str__(self) -> str:
        return f"expense(group={self.group_id or '-'}, subgroup={self.subgroup_id or '-'})"


SeriesKey = IncomeKey | ExpenseKey
"""Structural identity of a series: equal keys mean the same dimension."""


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BudgetDeclaration:
    """One stored budget row for a specific month and dimension.

    ``installments_total``/``installment_index`` may only be set for
    Installment declarations. They are allowed to be missing there so that
    malformed legacy rows can still be loaded; the engine checks
    :attr:`has_installment_plan` before acting on them.
    """

    year: int
    month: int
    key: SeriesKey
    amount: Decimal
    mode: BudgetMode = BudgetMode.UNIQUE
    installments_total: int | None = None
    installment_index: int | None = None
    is_fixed_cost: bool = False
    id: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int) or self.year < 1:
            raise ValueError(f"year must be a positive integer; got {self.year!r}")
        linearize(self.year, self.month)  # validates month
        object.__setattr__(self, "amount", to_money(self.amount))
        object.__setattr__(self, "mode", BudgetMode(self.mode))
        if self.mode is not BudgetMode.INSTALLMENT and (
            self.installments_total is not None or self.installment_index is not None
        ):
            raise ValueError("installment fields are only valid for installment budgets")

    @property
    def type(self) -> BudgetType:
        return self.key.type

    @property
    def linear(self) -> int:
        return linearize(self.year, self.month)

    @property
    def is_series(self) -> bool:
        return self.mode in SERIES_MODES

    @property
    def has_installment_plan(self) -> bool:
        """True when this is an Installment row whose counters satisfy the invariants."""

        if self.mode is not BudgetMode.INSTALLMENT:
            return False
        total = self.installments_total
        index = self.installment_index if self.installment_index is not None else 1
        return total is not None and total >= 2 and 1 <= index <= total

    def installment_plan(self) -> tuple[int, int]:
        """Return ``(installments_total, installment_index)`` for a usable plan.

        Raises :class:`InvalidSeriesState` when the counters are missing or
        out of bounds.
        """

        if not self.has_installment_plan or self.installments_total is None:
            raise InvalidSeriesState(f"{self.label()} has no valid installment plan")
        return self.installments_total, self.installment_index or 1

    def replace(self, **changes: Any) -> BudgetDeclaration:
        return dataclasses.replace(self, **changes)

    def label(self) -> str:
        base = f"{self.year:04d}-{self.month:02d} {self.key}"
        if self.mode is BudgetMode.INSTALLMENT and self.installments_total:
            return f"{base} [{self.installment_index or 1}/{self.installments_total}]"
        return base


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CopyForwardResult:
    """Outcome of a copy-forward pass; ``error`` is set only when ``success`` is False."""

    success: bool
    copied_count: int = 0
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class SplitResult:
    """Counts of rows touched while freezing history and retracting the future."""

    past_created: int = 0
    past_converted: int = 0
    future_deleted: int = 0


__all__ = [
    "SERIES_MODES",
    "BudgetDeclaration",
    "BudgetMode",
    "BudgetType",
    "CopyForwardResult",
    "ExpenseKey",
    "IncomeKey",
    "SeriesKey",
    "SplitResult",
    "normalize_mode",
    "to_money",
]
