from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UnitType(StrEnum):
    """Classification of a unit; ``NULL`` in the database means unbudgeted."""

    INCOME = "INCOME"
    # Income that becomes available in the month after the transaction.
    INCOME_NEXT = "INCOME_NEXT"
    BUDGET = "BUDGET"
    TRANSFER = "TRANSFER"


class UtcDateTime(TypeDecorator[datetime]):
    """Timezone-aware timestamp normalized to UTC on the way in and out.

    Backends without a native zone-aware type (SQLite) store the wall-clock
    value and drop the offset, so values are converted to UTC before binding.
    Naive values are taken as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def _created_at() -> Mapped[datetime]:
    return mapped_column(UtcDateTime, nullable=False, server_default=func.now())


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        UtcDateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


# ---------------------------
# Documents and accounts
# ---------------------------


class ElDocument(Base):
    __tablename__ = "el_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class ElAccount(Base):
    __tablename__ = "el_accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# ---------------------------
# Transactions and units
# ---------------------------


class ElTransaction(Base):
    __tablename__ = "el_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_accounts.id", ondelete="CASCADE"), nullable=False
    )
    # Signed amount in minor currency units (cents).
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    time: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (Index("ix_el_transactions_account_time", "account_id", "time"),)


class ElUnit(Base):
    __tablename__ = "el_units"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Units of one transaction are independent classifications and need not
    # add up to the transaction amount.
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[str | None] = mapped_column(String, nullable=True)
    budget_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("el_budgets.id", ondelete="SET NULL"), nullable=True
    )
    # Counterpart account of a TRANSFER unit. A transfer is a single unit
    # posted on the source account that names the destination here.
    transfer_account_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("el_accounts.id", ondelete="CASCADE"), nullable=True, index=True
    )
    __table_args__ = (
        CheckConstraint(
            "type IS NULL OR type in ('INCOME','INCOME_NEXT','BUDGET','TRANSFER')",
            name="ck_el_units_type",
        ),
    )


# ---------------------------
# Envelopes: categories, budgets and monthly portions
# ---------------------------


class ElCategory(Base):
    __tablename__ = "el_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )


class ElBudget(Base):
    __tablename__ = "el_budgets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_categories.id", ondelete="CASCADE"), nullable=False, index=True
    )


class ElPortion(Base):
    __tablename__ = "el_portions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    budget_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_budgets.id", ondelete="CASCADE"), nullable=False
    )
    # Calendar month as "YYYY-MM"; sorts lexically in month order.
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    budgeted: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("budget_id", "month", name="uq_el_portions_budget_month"),)


# ---------------------------
# Derived: per-document monthly summaries
# ---------------------------


class ElSummary(Base):
    __tablename__ = "el_summaries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("el_documents.id", ondelete="CASCADE"), nullable=False
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    available: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    available_last_month: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    income: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    budgeted: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    unbudgeted: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    outflow: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        UniqueConstraint("document_id", "month", name="uq_el_summaries_document_month"),
    )


__all__ = [
    "Base",
    "UnitType",
    "UtcDateTime",
    "ElDocument",
    "ElAccount",
    "ElTransaction",
    "ElUnit",
    "ElCategory",
    "ElBudget",
    "ElPortion",
    "ElSummary",
]
