"""Summary Calculator: pure integer arithmetic over :class:`MonthAggregates`.

``available`` is cumulative: everything ever received as income, minus
everything ever budgeted, plus money that moved without being assigned to an
envelope (unbudgeted units and bare transactions, which are usually negative).
``availableLastMonth`` is the same figure as of the end of the previous month.
The remaining fields describe the target month alone, except ``balance``
which is the document-wide cash position at month end.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from db.models.ledger import ElSummary

from .aggregator import MonthAggregates


@dataclass(frozen=True, slots=True)
class SummaryFigures:
    available: int
    available_last_month: int
    income: int
    budgeted: int
    unbudgeted: int
    outflow: int
    balance: int


def calculate(aggregates: MonthAggregates) -> SummaryFigures:
    till = aggregates.till_last_month
    this = aggregates.this_month

    income_till_this_month = till.income + this.income
    budgeted_till_this_month = till.budgeted + this.budgeted
    unbudgeted_till_last_month = till.unbudgeted_units + till.unbudgeted_transactions
    unbudgeted_this_month = this.unbudgeted_units + this.unbudgeted_transactions

    return SummaryFigures(
        available=(
            income_till_this_month
            - budgeted_till_this_month
            + unbudgeted_till_last_month
            + unbudgeted_this_month
        ),
        available_last_month=till.income - till.budgeted + unbudgeted_till_last_month,
        income=this.income,
        budgeted=this.budgeted,
        unbudgeted=unbudgeted_this_month,
        outflow=this.outflow_units + this.unbudgeted_transactions,
        balance=aggregates.balance,
    )


def apply(summary: ElSummary, figures: SummaryFigures) -> ElSummary:
    """Overwrite every computed field of ``summary`` with ``figures``."""

    for name, value in asdict(figures).items():
        setattr(summary, name, value)
    return summary


def figures_of(summary: ElSummary) -> SummaryFigures:
    return SummaryFigures(
        available=summary.available,
        available_last_month=summary.available_last_month,
        income=summary.income,
        budgeted=summary.budgeted,
        unbudgeted=summary.unbudgeted,
        outflow=summary.outflow,
        balance=summary.balance,
    )


__all__ = ["SummaryFigures", "calculate", "apply", "figures_of"]
