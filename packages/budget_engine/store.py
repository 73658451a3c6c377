# ruff: noqa: I001
"""Persistent store for budget declarations and their reference data.

The engine only talks to the :class:`BudgetStore` protocol. The concrete
:class:`SqlBudgetStore` writes to the shared database owned by ``libs/db``
using the ORM models in ``db.models.budget`` and sessions from ``db.client``.

Scope:
- Read boundary: rows are converted to :class:`BudgetDeclaration` here, and
  the legacy ``is_recurrent`` flag is folded into :class:`BudgetMode` so no
  other module ever sees it.
- Write boundary: a compound-key collision surfaces as
  :class:`DuplicateKeyError`; every other SQLAlchemy failure is wrapped in
  :class:`StoreIOFailure`.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.budget import NO_DIMENSION, BtBudget, BtCategory, BtSource

from .errors import DuplicateKeyError, StoreIOFailure
from .logging_setup import get_logger
from .models import BudgetDeclaration, BudgetMode, SeriesKey, normalize_mode, to_money
from .series import key_fields, series_key

logger = get_logger("budget_engine.store")

_PATCHABLE = frozenset(
    {
        "amount",
        "mode",
        "installments_total",
        "installment_index",
        "is_recurrent",
        "is_fixed_cost",
    }
)


class BudgetStore(Protocol):
    """Keyed record store; at most one row per (year, month, type, dimension)."""

    def get_all(self) -> list[BudgetDeclaration]: ...

    def get_series(self, key: SeriesKey) -> list[BudgetDeclaration]: ...

    def get_month(self, year: int, month: int) -> list[BudgetDeclaration]: ...

    def get_by_key(self, year: int, month: int, key: SeriesKey) -> BudgetDeclaration | None: ...

    def add(self, declaration: BudgetDeclaration) -> int: ...

    def update(self, budget_id: int, **patch: Any) -> None: ...

    def bulk_delete(self, ids: Iterable[int]) -> int: ...


# ---- Row mapping --------------------------------------------------------------


def _row_to_declaration(row: BtBudget) -> BudgetDeclaration:
    mode = normalize_mode(row.mode, row.is_recurrent)
    is_installment = mode is BudgetMode.INSTALLMENT
    return BudgetDeclaration(
        year=row.year,
        month=row.month,
        key=series_key(
            row.type,
            source_id=row.source_id,
            group_id=row.group_id,
            subgroup_id=row.subgroup_id,
        ),
        amount=row.amount,
        mode=mode,
        # Counters left behind on non-installment rows are meaningless; drop them.
        installments_total=row.installments_total if is_installment else None,
        installment_index=row.installment_index if is_installment else None,
        is_fixed_cost=bool(row.is_fixed_cost),
        id=row.id,
    )


def _declaration_to_row(declaration: BudgetDeclaration) -> BtBudget:
    fields = key_fields(declaration.key)
    return BtBudget(
        year=declaration.year,
        month=declaration.month,
        type=declaration.type.value,
        source_id=fields["source_id"] or NO_DIMENSION,
        group_id=fields["group_id"] or NO_DIMENSION,
        subgroup_id=fields["subgroup_id"] or NO_DIMENSION,
        amount=declaration.amount,
        mode=declaration.mode.value,
        installments_total=declaration.installments_total,
        installment_index=declaration.installment_index,
        is_recurrent=None,
        is_fixed_cost=declaration.is_fixed_cost,
    )


def _key_clauses(key: SeriesKey) -> tuple[Any, ...]:
    fields = key_fields(key)
    return (
        BtBudget.type == key.type.value,
        BtBudget.source_id == (fields["source_id"] or NO_DIMENSION),
        BtBudget.group_id == (fields["group_id"] or NO_DIMENSION),
        BtBudget.subgroup_id == (fields["subgroup_id"] or NO_DIMENSION),
    )


def _patch_values(patch: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(patch) - _PATCHABLE
    if unknown:
        raise ValueError(f"unsupported budget fields in update: {sorted(unknown)}")
    values = dict(patch)
    if "mode" in values and values["mode"] is not None:
        values["mode"] = BudgetMode(values["mode"]).value
    if "amount" in values:
        values["amount"] = to_money(values["amount"])
    return values


# ---- SQLAlchemy implementation ------------------------------------------------


class SqlBudgetStore:
    """:class:`BudgetStore` backed by the shared SQLAlchemy database.

    Each call runs in its own transactional scope, so a multi-step engine
    operation interrupted half-way keeps the writes that already committed.
    """

    def __init__(self, *, database_url: str | None = None) -> None:
        self._database_url = database_url

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with session_scope(database_url=self._database_url) as session:
                yield session
        except SQLAlchemyError as e:
            raise StoreIOFailure(f"budget store operation failed: {e}") from e

    # -- reads

    def get_all(self) -> list[BudgetDeclaration]:
        with self._session() as session:
            rows = session.scalars(select(BtBudget).order_by(BtBudget.year, BtBudget.month))
            return [_row_to_declaration(r) for r in rows]

    def get_series(self, key: SeriesKey) -> list[BudgetDeclaration]:
        """Every row sharing ``key`` regardless of mode, ordered by month."""

        with self._session() as session:
            rows = session.scalars(
                select(BtBudget)
                .where(*_key_clauses(key))
                .order_by(BtBudget.year, BtBudget.month)
            )
            return [_row_to_declaration(r) for r in rows]

    def get_month(self, year: int, month: int) -> list[BudgetDeclaration]:
        with self._session() as session:
            rows = session.scalars(
                select(BtBudget)
                .where(BtBudget.year == year, BtBudget.month == month)
                .order_by(
                    BtBudget.type, BtBudget.source_id, BtBudget.group_id, BtBudget.subgroup_id
                )
            )
            return [_row_to_declaration(r) for r in rows]

    def get_by_key(self, year: int, month: int, key: SeriesKey) -> BudgetDeclaration | None:
        with self._session() as session:
            row = session.scalars(
                select(BtBudget).where(
                    BtBudget.year == year, BtBudget.month == month, *_key_clauses(key)
                )
            ).one_or_none()
            return _row_to_declaration(row) if row is not None else None

    # -- writes

    def add(self, declaration: BudgetDeclaration) -> int:
        """Insert ``declaration`` and return its new id.

        Raises :class:`DuplicateKeyError` when the month already holds a row
        for the same key; the existing row is left untouched.
        """

        row = _declaration_to_row(declaration)
        try:
            with session_scope(database_url=self._database_url) as session:
                session.add(row)
                session.flush()
                new_id = row.id
        except IntegrityError as e:
            # CHECK violations are IntegrityErrors too; only a present row
            # means the compound key was hit.
            if self.get_by_key(declaration.year, declaration.month, declaration.key) is not None:
                raise DuplicateKeyError(declaration.year, declaration.month, declaration.key) from e
            raise StoreIOFailure(f"could not insert {declaration.label()}: {e}") from e
        except SQLAlchemyError as e:
            raise StoreIOFailure(f"could not insert {declaration.label()}: {e}") from e
        return new_id

    def update(self, budget_id: int, **patch: Any) -> None:
        values = _patch_values(patch)
        if not values:
            return
        with self._session() as session:
            session.execute(update(BtBudget).where(BtBudget.id == budget_id).values(**values))

    def bulk_delete(self, ids: Iterable[int]) -> int:
        id_list = [i for i in ids if i is not None]
        if not id_list:
            return 0
        with self._session() as session:
            result = session.execute(delete(BtBudget).where(BtBudget.id.in_(id_list)))
            return int(result.rowcount or 0)

    # -- reference data (categories and income sources)

    def list_categories(self) -> list[dict[str, Any]]:
        with self._session() as session:
            rows = session.scalars(select(BtCategory).order_by(BtCategory.id))
            return [{"id": r.id, "name": r.name, "parent_id": r.parent_id} for r in rows]

    def list_sources(self) -> list[dict[str, Any]]:
        with self._session() as session:
            rows = session.scalars(select(BtSource).order_by(BtSource.id))
            return [{"id": r.id, "name": r.name} for r in rows]

    def add_category(self, name: str, *, parent_id: int | None = None) -> int:
        with self._session() as session:
            row = BtCategory(name=name, parent_id=parent_id)
            session.add(row)
            session.flush()
            return row.id

    def add_source(self, name: str) -> int:
        with self._session() as session:
            row = BtSource(name=name)
            session.add(row)
            session.flush()
            return row.id

    def has_reference_data(self) -> bool:
        with self._session() as session:
            has_category = session.scalars(select(BtCategory.id).limit(1)).first() is not None
            has_source = session.scalars(select(BtSource.id).limit(1)).first() is not None
            return has_category or has_source

    # -- bulk maintenance

    def clear_all(self) -> None:
        """Delete every budget, category and source in one transaction."""

        with self._session() as session:
            _clear_tables(session)

    def replace_all(
        self,
        *,
        categories: Sequence[Mapping[str, Any]],
        sources: Sequence[Mapping[str, Any]],
        budgets: Sequence[BudgetDeclaration],
    ) -> None:
        """Clear-then-import atomically; either everything lands or nothing changes.

        Category/source ids are preserved because budget dimensions refer to them.
        """

        with self._session() as session:
            _clear_tables(session)
            # Parents before children to satisfy the self-referential FK.
            ordered = sorted(categories, key=lambda c: c.get("parent_id") is not None)
            for c in ordered:
                if c.get("parent_id") is None:
                    session.add(BtCategory(id=c["id"], name=c["name"], parent_id=None))
            session.flush()
            for c in ordered:
                if c.get("parent_id") is not None:
                    session.add(BtCategory(id=c["id"], name=c["name"], parent_id=c["parent_id"]))
            for s in sources:
                session.add(BtSource(id=s["id"], name=s["name"]))
            session.add_all([_declaration_to_row(b) for b in budgets])
            session.flush()
        logger.info(
            "Imported %d categories, %d sources and %d budgets",
            len(categories),
            len(sources),
            len(budgets),
        )


def _clear_tables(session: Session) -> None:
    session.execute(delete(BtBudget))
    # Children first to satisfy the self-referential FK.
    session.execute(delete(BtCategory).where(BtCategory.parent_id.isnot(None)))
    session.execute(delete(BtCategory))
    session.execute(delete(BtSource))
    session.flush()


__all__ = ["BudgetStore", "SqlBudgetStore"]
