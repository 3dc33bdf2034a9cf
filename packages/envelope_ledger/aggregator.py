"""Month Aggregator: raw ledger sums behind a document's monthly summary.

For a document and a target month ``M`` two windows are aggregated:

- *till last month*: all history strictly before ``M``;
- *this month*: the span of ``M``.

Per window we sum income (``INCOME`` units in the window plus ``INCOME_NEXT``
units one month earlier), budgeted portions, unbudgeted units (``type IS
NULL``), bare transactions (no units at all) and, for this month only, outflow
units (``NULL`` or ``BUDGET``). Account balances are taken at the end of ``M``.

Every statement is a parameterized ``SELECT COALESCE(SUM(...), 0)`` so "no
matching rows" yields ``0`` while a failing query raises.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from db.models.ledger import (
    ElAccount,
    ElBudget,
    ElCategory,
    ElPortion,
    ElTransaction,
    ElUnit,
    UnitType,
)
from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .months import Month, Window

_logger = get_logger("envelope_ledger.aggregator")


@dataclass(frozen=True, slots=True)
class WindowTotals:
    """Raw sums for one window, all in minor currency units."""

    income: int = 0
    budgeted: int = 0
    unbudgeted_units: int = 0
    unbudgeted_transactions: int = 0
    outflow_units: int = 0


@dataclass(frozen=True, slots=True)
class MonthAggregates:
    month: Month
    till_last_month: WindowTotals
    this_month: WindowTotals
    account_balances: Mapping[uuid.UUID, int] = field(default_factory=dict)

    @property
    def balance(self) -> int:
        """Document-wide balance at the end of ``month``."""

        return sum(self.account_balances.values())


# ---------------------------
# Statement builders
# ---------------------------


def _time_range(window: Window) -> list[Any]:
    conds: list[Any] = [ElTransaction.time < window.ends_before]
    if window.starts_at is not None:
        conds.append(ElTransaction.time >= window.starts_at)
    return conds


def _month_range(window: Window) -> list[Any]:
    conds: list[Any] = [ElPortion.month <= str(window.last)]
    if window.first is not None:
        conds.append(ElPortion.month >= str(window.first))
    return conds


def _has_units() -> Any:
    return select(ElUnit.id).where(ElUnit.transaction_id == ElTransaction.id).exists()


def _document_units_sum(document_id: uuid.UUID) -> Select:
    return (
        select(func.coalesce(func.sum(ElUnit.amount), 0))
        .select_from(ElUnit)
        .join(ElTransaction, ElTransaction.id == ElUnit.transaction_id)
        .join(ElAccount, ElAccount.id == ElTransaction.account_id)
        .where(ElAccount.document_id == document_id)
    )


def _scalar(session: Session, stmt: Select) -> int:
    return int(session.execute(stmt).scalar_one())


# ---------------------------
# Per-window sums
# ---------------------------


def sum_income(session: Session, document_id: uuid.UUID, window: Window) -> int:
    """``INCOME`` units in ``window`` plus ``INCOME_NEXT`` units of the month before."""

    stmt = _document_units_sum(document_id).where(
        or_(
            and_(ElUnit.type == UnitType.INCOME.value, *_time_range(window)),
            and_(ElUnit.type == UnitType.INCOME_NEXT.value, *_time_range(window.shift(-1))),
        )
    )
    return _scalar(session, stmt)


def sum_budgeted(session: Session, document_id: uuid.UUID, window: Window) -> int:
    stmt = (
        select(func.coalesce(func.sum(ElPortion.budgeted), 0))
        .select_from(ElPortion)
        .join(ElBudget, ElBudget.id == ElPortion.budget_id)
        .join(ElCategory, ElCategory.id == ElBudget.category_id)
        .where(ElCategory.document_id == document_id, *_month_range(window))
    )
    return _scalar(session, stmt)


def sum_unbudgeted_units(session: Session, document_id: uuid.UUID, window: Window) -> int:
    stmt = _document_units_sum(document_id).where(ElUnit.type.is_(None), *_time_range(window))
    return _scalar(session, stmt)


def sum_unbudgeted_transactions(session: Session, document_id: uuid.UUID, window: Window) -> int:
    """Full amounts of transactions without any units."""

    stmt = (
        select(func.coalesce(func.sum(ElTransaction.amount), 0))
        .select_from(ElTransaction)
        .join(ElAccount, ElAccount.id == ElTransaction.account_id)
        .where(ElAccount.document_id == document_id, ~_has_units(), *_time_range(window))
    )
    return _scalar(session, stmt)


def sum_outflow_units(session: Session, document_id: uuid.UUID, window: Window) -> int:
    stmt = _document_units_sum(document_id).where(
        or_(ElUnit.type.is_(None), ElUnit.type == UnitType.BUDGET.value),
        *_time_range(window),
    )
    return _scalar(session, stmt)


def window_totals(
    session: Session,
    document_id: uuid.UUID,
    window: Window,
    *,
    include_outflow: bool = False,
) -> WindowTotals:
    return WindowTotals(
        income=sum_income(session, document_id, window),
        budgeted=sum_budgeted(session, document_id, window),
        unbudgeted_units=sum_unbudgeted_units(session, document_id, window),
        unbudgeted_transactions=sum_unbudgeted_transactions(session, document_id, window),
        outflow_units=sum_outflow_units(session, document_id, window) if include_outflow else 0,
    )


# ---------------------------
# Balances
# ---------------------------


def account_balances(
    session: Session, document_id: uuid.UUID, cutoff: datetime
) -> dict[uuid.UUID, int]:
    """Net cash position of every account of the document before ``cutoff``.

    Per account: bare transactions + units posted on the account (including
    the source leg of transfers) - transfer units naming the account as
    ``transfer_account_id``. A transfer unit is therefore counted once with
    each sign, so transfers net to zero across the document.
    """

    account_ids = select(ElAccount.id).where(ElAccount.document_id == document_id)
    balances: dict[uuid.UUID, int] = {
        row[0]: 0 for row in session.execute(account_ids.order_by(ElAccount.id))
    }
    if not balances:
        return balances

    bare = (
        select(ElTransaction.account_id, func.coalesce(func.sum(ElTransaction.amount), 0))
        .where(
            ElTransaction.account_id.in_(account_ids),
            ElTransaction.time < cutoff,
            ~_has_units(),
        )
        .group_by(ElTransaction.account_id)
    )
    posted = (
        select(ElTransaction.account_id, func.coalesce(func.sum(ElUnit.amount), 0))
        .select_from(ElUnit)
        .join(ElTransaction, ElTransaction.id == ElUnit.transaction_id)
        .where(ElTransaction.account_id.in_(account_ids), ElTransaction.time < cutoff)
        .group_by(ElTransaction.account_id)
    )
    received = (
        select(ElUnit.transfer_account_id, func.coalesce(func.sum(ElUnit.amount), 0))
        .select_from(ElUnit)
        .join(ElTransaction, ElTransaction.id == ElUnit.transaction_id)
        .where(
            ElUnit.type == UnitType.TRANSFER.value,
            ElUnit.transfer_account_id.in_(account_ids),
            ElTransaction.time < cutoff,
        )
        .group_by(ElUnit.transfer_account_id)
    )

    for account_id, amount in session.execute(bare):
        balances[account_id] += int(amount)
    for account_id, amount in session.execute(posted):
        balances[account_id] += int(amount)
    for account_id, amount in session.execute(received):
        balances[account_id] -= int(amount)
    return balances


# ---------------------------
# Entry point
# ---------------------------


def aggregate_month(session: Session, document_id: uuid.UUID, month: Month) -> MonthAggregates:
    """Collect every raw figure needed to summarize ``month`` for a document."""

    aggregates = MonthAggregates(
        month=month,
        till_last_month=window_totals(session, document_id, Window.before(month)),
        this_month=window_totals(session, document_id, Window.of(month), include_outflow=True),
        account_balances=account_balances(session, document_id, month.end),
    )
    _logger.debug(
        "Aggregated document=%s month=%s till=%s this=%s balance=%d",
        document_id,
        month,
        aggregates.till_last_month,
        aggregates.this_month,
        aggregates.balance,
    )
    return aggregates


__all__ = [
    "WindowTotals",
    "MonthAggregates",
    "sum_income",
    "sum_budgeted",
    "sum_unbudgeted_units",
    "sum_unbudgeted_transactions",
    "sum_outflow_units",
    "window_totals",
    "account_balances",
    "aggregate_month",
]
