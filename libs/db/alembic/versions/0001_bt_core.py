# ruff: noqa: I001
"""Budget core tables: categories, sources and monthly budget declarations.

Revision ID: 0001_bt_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_bt_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "bt_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("bt_categories.id"), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "bt_sources",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "bt_budgets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        # 0 is the canonical "absent" dimension so the unique key below holds.
        sa.Column("source_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("group_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("subgroup_id", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("mode", sa.String(), nullable=True),
        sa.Column("installments_total", sa.Integer(), nullable=True),
        sa.Column("installment_index", sa.Integer(), nullable=True),
        sa.Column("is_recurrent", sa.Boolean(), nullable=True),
        sa.Column(
            "is_fixed_cost", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "year",
            "month",
            "type",
            "source_id",
            "group_id",
            "subgroup_id",
            name="uq_bt_budgets_month_dimension",
        ),
        sa.CheckConstraint("month >= 1 AND month <= 12", name="ck_bt_budgets_month"),
        sa.CheckConstraint("type in ('income','expense')", name="ck_bt_budgets_type"),
        sa.CheckConstraint(
            "mode IS NULL OR mode in ('unique','recurring','installment')",
            name="ck_bt_budgets_mode",
        ),
        sa.CheckConstraint(
            "installments_total IS NULL OR installment_index IS NULL OR "
            "(installment_index >= 1 AND installment_index <= installments_total)",
            name="ck_bt_budgets_installment_bounds",
        ),
    )

    # Month lookups back the gap-fill pass and the month view.
    op.create_index("ix_bt_budgets_year_month", "bt_budgets", ["year", "month"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_bt_budgets_year_month", table_name="bt_budgets")
    op.drop_table("bt_budgets")
    op.drop_table("bt_sources")
    op.drop_table("bt_categories")
