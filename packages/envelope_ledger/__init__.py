"""Public interface for the ``envelope_ledger`` package.

Monthly envelope-budgeting summaries derived from the ledger in ``db``:
aggregation (:mod:`.aggregator`), arithmetic (:mod:`.calculator`) and
creation/recalculation (:mod:`.scheduler`). No runtime logic lives here, only
symbol re-exports.
"""

from .aggregator import MonthAggregates, WindowTotals, aggregate_month
from .api import SummaryDict, format_summary, list_summaries
from .calculator import SummaryFigures, calculate
from .errors import DocumentNotFoundError, InvalidMonthError, LedgerError
from .months import Month, Window
from .scheduler import SummaryScheduler

__all__ = [
    # Engine
    "SummaryScheduler",
    "aggregate_month",
    "calculate",
    "format_summary",
    "list_summaries",
    # Values / types
    "Month",
    "Window",
    "WindowTotals",
    "MonthAggregates",
    "SummaryFigures",
    "SummaryDict",
    # Errors
    "LedgerError",
    "InvalidMonthError",
    "DocumentNotFoundError",
]
