# ruff: noqa: I001
"""Ledger core tables: documents, accounts, transactions, units, envelopes, summaries.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "el_documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "el_accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "document_id",
            sa.Uuid(),
            sa.ForeignKey("el_documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_el_accounts_document_id", "el_accounts", ["document_id"])

    op.create_table(
        "el_categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "document_id",
            sa.Uuid(),
            sa.ForeignKey("el_documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_el_categories_document_id", "el_categories", ["document_id"])

    op.create_table(
        "el_budgets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "category_id",
            sa.Uuid(),
            sa.ForeignKey("el_categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("ix_el_budgets_category_id", "el_budgets", ["category_id"])

    op.create_table(
        "el_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "account_id",
            sa.Uuid(),
            sa.ForeignKey("el_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_el_transactions_account_time", "el_transactions", ["account_id", "time"])

    op.create_table(
        "el_units",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.Uuid(),
            sa.ForeignKey("el_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(), nullable=True),
        sa.Column(
            "budget_id",
            sa.Uuid(),
            sa.ForeignKey("el_budgets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "transfer_account_id",
            sa.Uuid(),
            sa.ForeignKey("el_accounts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.CheckConstraint(
            "type IS NULL OR type in ('INCOME','INCOME_NEXT','BUDGET','TRANSFER')",
            name="ck_el_units_type",
        ),
    )
    op.create_index("ix_el_units_transaction_id", "el_units", ["transaction_id"])
    op.create_index("ix_el_units_transfer_account_id", "el_units", ["transfer_account_id"])

    op.create_table(
        "el_portions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "budget_id",
            sa.Uuid(),
            sa.ForeignKey("el_budgets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.String(7), nullable=False),
        sa.Column("budgeted", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("budget_id", "month", name="uq_el_portions_budget_month"),
    )

    op.create_table(
        "el_summaries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "document_id",
            sa.Uuid(),
            sa.ForeignKey("el_documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.String(7), nullable=False),
        *[
            sa.Column(name, sa.BigInteger(), nullable=False, server_default=sa.text("0"))
            for name in (
                "available",
                "available_last_month",
                "income",
                "budgeted",
                "unbudgeted",
                "outflow",
                "balance",
            )
        ],
        *_timestamps(),
        sa.UniqueConstraint("document_id", "month", name="uq_el_summaries_document_month"),
    )


def downgrade() -> None:
    op.drop_table("el_summaries")
    op.drop_table("el_portions")
    op.drop_index("ix_el_units_transfer_account_id", table_name="el_units")
    op.drop_index("ix_el_units_transaction_id", table_name="el_units")
    op.drop_table("el_units")
    op.drop_index("ix_el_transactions_account_time", table_name="el_transactions")
    op.drop_table("el_transactions")
    op.drop_index("ix_el_budgets_category_id", table_name="el_budgets")
    op.drop_table("el_budgets")
    op.drop_index("ix_el_categories_document_id", table_name="el_categories")
    op.drop_table("el_categories")
    op.drop_index("ix_el_accounts_document_id", table_name="el_accounts")
    op.drop_table("el_accounts")
    op.drop_table("el_documents")
