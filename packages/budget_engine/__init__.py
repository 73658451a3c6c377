"""Public interface for the ``budget_engine`` package.

This module exposes the engine's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    copy_forward_if_missing,
    delete_budget,
    ensure_recurring_budgets_for_year,
    propagate,
    save_budget,
    split_and_retract,
)
from .errors import (
    BudgetEngineError,
    DuplicateKeyError,
    ImportValidationError,
    InvalidSeriesState,
    StoreIOFailure,
)
from .models import (
    BudgetDeclaration,
    BudgetMode,
    BudgetType,
    CopyForwardResult,
    ExpenseKey,
    IncomeKey,
    SeriesKey,
    SplitResult,
)
from .months import delinearize, linearize
from .series import series_key
from .store import BudgetStore, SqlBudgetStore

__all__ = [
    # API
    "propagate",
    "copy_forward_if_missing",
    "split_and_retract",
    "save_budget",
    "delete_budget",
    "ensure_recurring_budgets_for_year",
    # Time index / identity
    "linearize",
    "delinearize",
    "series_key",
    # Models / types
    "BudgetDeclaration",
    "BudgetMode",
    "BudgetType",
    "IncomeKey",
    "ExpenseKey",
    "SeriesKey",
    "CopyForwardResult",
    "SplitResult",
    # Store
    "BudgetStore",
    "SqlBudgetStore",
    # Errors
    "BudgetEngineError",
    "StoreIOFailure",
    "DuplicateKeyError",
    "InvalidSeriesState",
    "ImportValidationError",
]
