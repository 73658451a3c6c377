from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Dimension columns store 0 instead of NULL for "absent". SQL treats NULLs as
# distinct inside a unique constraint, which would let two rows for the same
# (year, month, type, dimension) coexist. Real ids are always positive.
NO_DIMENSION = 0


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: bt_categories
# ---------------------------


class BtCategory(Base):
    __tablename__ = "bt_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Groups have parent_id NULL; subgroups point at their group. Depth is
    # limited to two levels by the seeding code, not by the schema.
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("bt_categories.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Reference: bt_sources
# ---------------------------


class BtSource(Base):
    __tablename__ = "bt_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Core: bt_budgets
# ---------------------------


class BtBudget(Base):
    __tablename__ = "bt_budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False, default=NO_DIMENSION)
    group_id: Mapped[int] = mapped_column(Integer, nullable=False, default=NO_DIMENSION)
    subgroup_id: Mapped[int] = mapped_column(Integer, nullable=False, default=NO_DIMENSION)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    # NULL only for rows written before the mode column existed; the store
    # normalizes these together with ``is_recurrent`` at read time.
    mode: Mapped[str | None] = mapped_column(String, nullable=True)
    installments_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    installment_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_recurrent: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_fixed_cost: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "year",
            "month",
            "type",
            "source_id",
            "group_id",
            "subgroup_id",
            name="uq_bt_budgets_month_dimension",
        ),
        Index("ix_bt_budgets_year_month", "year", "month"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_bt_budgets_month"),
        CheckConstraint("type in ('income','expense')", name="ck_bt_budgets_type"),
        CheckConstraint(
            "mode IS NULL OR mode in ('unique','recurring','installment')",
            name="ck_bt_budgets_mode",
        ),
        CheckConstraint(
            (
                "installments_total IS NULL OR installment_index IS NULL OR "
                "(installment_index >= 1 AND installment_index <= installments_total)"
            ),
            name="ck_bt_budgets_installment_bounds",
        ),
    )


__all__ = [
    "NO_DIMENSION",
    "Base",
    "BtBudget",
    "BtCategory",
    "BtSource",
]
