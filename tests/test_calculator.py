from __future__ import annotations

import uuid

from envelope_ledger.aggregator import MonthAggregates, WindowTotals
from envelope_ledger.calculator import SummaryFigures, apply, calculate, figures_of
from envelope_ledger.months import Month

from db.models.ledger import ElSummary


def _aggregates(till: WindowTotals, this: WindowTotals, balances=None) -> MonthAggregates:
    return MonthAggregates(
        month=Month(2024, 3),
        till_last_month=till,
        this_month=this,
        account_balances=balances or {},
    )


def test_all_zero_history():
    figures = calculate(_aggregates(WindowTotals(), WindowTotals()))
    assert figures == SummaryFigures(0, 0, 0, 0, 0, 0, 0)


def test_combines_both_windows():
    till = WindowTotals(
        income=5000, budgeted=3000, unbudgeted_units=-200, unbudgeted_transactions=-100
    )
    this = WindowTotals(
        income=1000,
        budgeted=1500,
        unbudgeted_units=-50,
        unbudgeted_transactions=-25,
        outflow_units=-700,
    )
    a, b = uuid.uuid4(), uuid.uuid4()

    figures = calculate(_aggregates(till, this, {a: 1200, b: -300}))

    # (5000 + 1000) - (3000 + 1500) + (-200 - 100 - 50 - 25)
    assert figures.available == 1125
    # 5000 - 3000 - 200 - 100
    assert figures.available_last_month == 1700
    assert figures.income == 1000
    assert figures.budgeted == 1500
    assert figures.unbudgeted == -75
    # outflow units plus bare transactions of this month only
    assert figures.outflow == -725
    assert figures.balance == 900


def test_till_last_month_outflow_is_ignored():
    till = WindowTotals(outflow_units=-999)
    figures = calculate(_aggregates(till, WindowTotals()))
    assert figures.outflow == 0


def test_apply_overwrites_every_field():
    summary = ElSummary(
        document_id=uuid.uuid4(),
        month="2024-03",
        available=1,
        available_last_month=2,
        income=3,
        budgeted=4,
        unbudgeted=5,
        outflow=6,
        balance=7,
    )
    figures = SummaryFigures(10, 20, 30, 40, 50, 60, 70)

    apply(summary, figures)

    assert figures_of(summary) == figures
    assert summary.available_last_month == 20
