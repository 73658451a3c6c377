"""Series identity: resolve raw dimension fields to a canonical :data:`SeriesKey`."""

from __future__ import annotations

from collections.abc import Iterable

from .models import BudgetDeclaration, BudgetType, ExpenseKey, IncomeKey, SeriesKey


def series_key(
    type: BudgetType | str,
    *,
    source_id: int | None = None,
    group_id: int | None = None,
    subgroup_id: int | None = None,
) -> SeriesKey:
    """Build the key for a declaration's type/source/category fields.

    Fields that do not belong to the type are ignored (an income row never
    carries a group), and absent ids collapse to ``None`` inside the key
    constructors, so ``0``/``None`` cannot split one series into two.
    """

    kind = BudgetType(type)
    if kind is BudgetType.INCOME:
        return IncomeKey(source_id=source_id)
    return ExpenseKey(group_id=group_id, subgroup_id=subgroup_id)


def key_fields(key: SeriesKey) -> dict[str, int | None]:
    """Flatten a key into ``source_id``/``group_id``/``subgroup_id`` columns."""

    if isinstance(key, IncomeKey):
        return {"source_id": key.source_id, "group_id": None, "subgroup_id": None}
    return {"source_id": None, "group_id": key.group_id, "subgroup_id": key.subgroup_id}


def group_by_series(
    declarations: Iterable[BudgetDeclaration],
) -> dict[SeriesKey, list[BudgetDeclaration]]:
    """Group series-mode declarations by key, each group sorted by month."""

    groups: dict[SeriesKey, list[BudgetDeclaration]] = {}
    for d in declarations:
        if not d.is_series:
            continue
        groups.setdefault(d.key, []).append(d)
    for items in groups.values():
        items.sort(key=lambda d: d.linear)
    return groups


__all__ = ["group_by_series", "key_fields", "series_key"]
