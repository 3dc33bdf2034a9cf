"""Caller-facing helpers around :class:`SummaryScheduler`.

The summary shape returned here is the externally visible contract::

    {"id", "month": "YYYY-MM", "available", "availableLastMonth", "income",
     "budgeted", "unbudgeted", "outflow", "balance", "documentId"}

Monetary values are integers in minor currency units; identifiers are strings.
"""

from __future__ import annotations

import uuid
from typing import TypedDict

from db.models.ledger import ElSummary

from .errors import LedgerError
from .months import Month
from .scheduler import SummaryScheduler


class SummaryDict(TypedDict):
    id: str
    month: str
    available: int
    availableLastMonth: int
    income: int
    budgeted: int
    unbudgeted: int
    outflow: int
    balance: int
    documentId: str


def format_summary(summary: ElSummary) -> SummaryDict:
    return {
        "id": str(summary.id),
        "month": str(Month.parse(summary.month)),
        "available": summary.available,
        "availableLastMonth": summary.available_last_month,
        "income": summary.income,
        "budgeted": summary.budgeted,
        "unbudgeted": summary.unbudgeted,
        "outflow": summary.outflow,
        "balance": summary.balance,
        "documentId": str(summary.document_id),
    }


def list_summaries(
    scheduler: SummaryScheduler, *, document: uuid.UUID | str | None, month: object
) -> list[SummaryDict]:
    """Return the (single) summary for ``document`` and ``month`` as a list.

    Mirrors a list endpoint filtered by document and month: both filters are
    required and the summary is created on first request.
    """

    if not document:
        raise LedgerError(
            "Can not list summaries without document", attributes={"document": "Is required!"}
        )
    summary = scheduler.get_or_create_summary(document, month)
    return [format_summary(summary)]


__all__ = ["SummaryDict", "format_summary", "list_summaries"]
