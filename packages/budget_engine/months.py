"""Linear month index.

Calendar months are mapped onto a totally ordered integer line so that two
months can be compared or subtracted without juggling year boundaries::

    linearize(2024, 11) + 3 == linearize(2025, 2)
"""

from __future__ import annotations

from collections.abc import Iterator


def _check_month(month: int) -> None:
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValueError(f"month must be an integer in 1..12; got {month!r}")


def linearize(year: int, month: int) -> int:
    """Return the linear index of ``(year, month)``."""

    _check_month(month)
    return year * 12 + month


def delinearize(n: int) -> tuple[int, int]:
    """Inverse of :func:`linearize`.

    A zero remainder belongs to December of the preceding year, since
    ``linearize(y, 12) == (y + 1) * 12``.
    """

    year, month = divmod(n, 12)
    if month == 0:
        return year - 1, 12
    return year, month


def add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    """Shift a calendar month by ``offset`` months (negative allowed)."""

    return delinearize(linearize(year, month) + offset)


def iter_months(start: int, stop: int) -> Iterator[tuple[int, int]]:
    """Yield ``(year, month)`` for each linear month in ``[start, stop)``."""

    for n in range(start, stop):
        yield delinearize(n)


__all__ = ["add_months", "delinearize", "iter_months", "linearize"]
