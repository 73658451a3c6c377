"""Export, import and reset of the whole budget dataset.

The exchange format is a versioned JSON document::

    {"version": 1, "exported_at": "...", "categories": [...],
     "sources": [...], "budgets": [...]}

Rows are validated with pydantic before anything touches the store. Budget rows
may still carry the legacy ``is_recurrent`` flag; it is normalized here, and
every row must then satisfy the declaration invariants. Import is
clear-then-insert in a single transaction.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ImportValidationError
from .initialization import InitializationService
from .logging_setup import get_logger
from .models import BudgetDeclaration, BudgetMode, BudgetType, normalize_mode
from .series import key_fields, series_key
from .store import SqlBudgetStore

logger = get_logger("budget_engine.transfer")

EXPORT_VERSION = 1


class CategoryRow(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: int = Field(gt=0)
    name: str = Field(min_length=1)
    parent_id: int | None = None


class SourceRow(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: int = Field(gt=0)
    name: str = Field(min_length=1)


class BudgetRow(BaseModel):
    """One exported budget declaration.

    ``id`` and unknown extra keys are accepted and ignored so older exports
    keep loading; ids are reassigned by the store on import.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)
    type: BudgetType
    source_id: int | None = None
    group_id: int | None = None
    subgroup_id: int | None = None
    amount: Decimal
    mode: BudgetMode | None = None
    installments_total: int | None = None
    installment_index: int | None = None
    is_recurrent: bool | None = None
    is_fixed_cost: bool = False

    @model_validator(mode="after")
    def _normalize_and_check(self) -> BudgetRow:
        self.mode = normalize_mode(self.mode, self.is_recurrent)
        self.is_recurrent = None
        if self.mode is BudgetMode.INSTALLMENT:
            total = self.installments_total
            if total is None or total < 2:
                raise ValueError("installment budgets need installments_total >= 2")
            if self.installment_index is None:
                self.installment_index = 1
            if not 1 <= self.installment_index <= total:
                raise ValueError("installment_index must be within 1..installments_total")
        elif self.installments_total is not None or self.installment_index is not None:
            raise ValueError(f"installment fields are not allowed on {self.mode} budgets")
        return self

    def to_declaration(self) -> BudgetDeclaration:
        return BudgetDeclaration(
            year=self.year,
            month=self.month,
            key=series_key(
                self.type,
                source_id=self.source_id,
                group_id=self.group_id,
                subgroup_id=self.subgroup_id,
            ),
            amount=self.amount,
            mode=self.mode or BudgetMode.UNIQUE,
            installments_total=self.installments_total,
            installment_index=self.installment_index,
            is_fixed_cost=self.is_fixed_cost,
        )

    @classmethod
    def from_declaration(cls, d: BudgetDeclaration) -> BudgetRow:
        return cls(
            id=d.id,
            year=d.year,
            month=d.month,
            type=d.type,
            amount=d.amount,
            mode=d.mode,
            installments_total=d.installments_total,
            installment_index=d.installment_index,
            is_fixed_cost=d.is_fixed_cost,
            **key_fields(d.key),
        )


class ExportPayload(BaseModel):
    """Top-level schema of an export document."""

    model_config = ConfigDict(extra="forbid")

    version: int = Field(ge=1)
    exported_at: datetime | None = None
    categories: list[CategoryRow]
    sources: list[SourceRow]
    budgets: list[BudgetRow]

    @model_validator(mode="after")
    def _check_references(self) -> ExportPayload:
        if self.version > EXPORT_VERSION:
            raise ValueError(f"unsupported export version {self.version}")
        category_ids = {c.id for c in self.categories}
        for c in self.categories:
            if c.parent_id is not None and c.parent_id not in category_ids:
                raise ValueError(f"category {c.id} references unknown parent {c.parent_id}")
        seen: set[tuple[int, int, Any]] = set()
        for b in self.budgets:
            d = b.to_declaration()
            slot = (d.year, d.month, d.key)
            if slot in seen:
                raise ValueError(f"duplicate budget for {d.label()}")
            seen.add(slot)
        return self


def export_data(store: SqlBudgetStore) -> dict[str, Any]:
    """Return the full dataset as a JSON-compatible mapping."""

    payload = ExportPayload(
        version=EXPORT_VERSION,
        exported_at=datetime.now(UTC),
        categories=[CategoryRow(**c) for c in store.list_categories()],
        sources=[SourceRow(**s) for s in store.list_sources()],
        budgets=[BudgetRow.from_declaration(d) for d in store.get_all()],
    )
    return payload.model_dump(mode="json", exclude={"budgets": {"__all__": {"is_recurrent"}}})


def parse_payload(raw: str | bytes | Mapping[str, Any]) -> ExportPayload:
    """Validate ``raw`` (JSON text or an already-decoded mapping)."""

    try:
        if isinstance(raw, (str, bytes)):
            return ExportPayload.model_validate_json(raw)
        return ExportPayload.model_validate(dict(raw))
    except ValidationError as e:
        raise ImportValidationError(f"invalid budget export: {e}") from e


def import_data(store: SqlBudgetStore, raw: str | bytes | Mapping[str, Any]) -> ExportPayload:
    """Replace the store's contents with ``raw`` after validating it.

    Raises :class:`ImportValidationError` without touching the store when the
    payload is malformed.
    """

    payload = parse_payload(raw)
    store.replace_all(
        categories=[c.model_dump() for c in payload.categories],
        sources=[s.model_dump() for s in payload.sources],
        budgets=[b.to_declaration() for b in payload.budgets],
    )
    return payload


def dumps(data: Mapping[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def reset_database(store: SqlBudgetStore) -> None:
    """Wipe all data and re-seed the default categories and sources."""

    logger.info("Clearing all budgets, categories and sources")
    store.clear_all()
    InitializationService(store, is_initialized=lambda: False).run()


__all__ = [
    "EXPORT_VERSION",
    "BudgetRow",
    "CategoryRow",
    "ExportPayload",
    "SourceRow",
    "dumps",
    "export_data",
    "import_data",
    "parse_payload",
    "reset_database",
]
