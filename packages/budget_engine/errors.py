"""Exception hierarchy for ``budget_engine``.

Store failures are wrapped into :class:`StoreIOFailure` so callers can tell
engine-level problems apart from programming errors without importing
SQLAlchemy. :class:`DuplicateKeyError` is raised by the store on a compound-key
collision; the propagators treat it as "month already covered".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SeriesKey


class BudgetEngineError(Exception):
    """Base class for all errors raised by ``budget_engine``."""


class StoreIOFailure(BudgetEngineError):
    """A read or write against the persistent store failed.

    Already-applied writes are not rolled back by the engine; a later
    copy-forward pass fills any holes left behind.
    """


class DuplicateKeyError(BudgetEngineError):
    """A write collided with an existing (year, month, type, dimension) row."""

    def __init__(self, year: int, month: int, key: SeriesKey) -> None:
        super().__init__(f"budget already exists for {year:04d}-{month:02d} {key}")
        self.year = year
        self.month = month
        self.key = key


class InvalidSeriesState(BudgetEngineError):
    """A series carries data that cannot be interpreted (e.g. no installment count)."""


class ImportValidationError(BudgetEngineError):
    """An import payload does not satisfy the declaration invariants."""


__all__ = [
    "BudgetEngineError",
    "DuplicateKeyError",
    "ImportValidationError",
    "InvalidSeriesState",
    "StoreIOFailure",
]
