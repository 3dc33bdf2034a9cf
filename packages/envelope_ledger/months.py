"""Calendar-month values and aggregation windows.

Months are calendar-granular and rendered as ``"YYYY-MM"``; that string form
sorts lexically in month order, which is how portions and summaries store
them. Instants are compared in UTC: a month spans ``[start, end)`` where
``end`` is the first instant of the following month, so every instant of the
last day (``23:59:59.999…``) belongs to the month.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from .errors import InvalidMonthError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

# Aggregation reaches two months back and one month forward of a target, so
# accepted months keep one spare year on both ends of the datetime range.
MIN_YEAR = 2
MAX_YEAR = 9998


@dataclass(frozen=True, slots=True, order=True)
class Month:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not (1 <= self.month <= 12) or not (1 <= self.year <= 9999):
            raise InvalidMonthError(f"{self.year:04d}-{self.month:02d}")

    @classmethod
    def parse(cls, value: object) -> Month:
        """Coerce ``value`` into a :class:`Month`.

        Accepts a ``Month``, a ``date``/``datetime`` (aware datetimes are
        converted to UTC first), a ``"YYYY-MM"`` string, or any ISO-8601
        date/datetime string. Anything else, or a year outside
        ``MIN_YEAR..MAX_YEAR``, raises :class:`InvalidMonthError`.
        """

        if isinstance(value, Month):
            return cls._bounded(value, value)
        if isinstance(value, datetime):
            return cls._bounded(cls.of(value), value)
        if isinstance(value, date):
            return cls._bounded(cls(value.year, value.month), value)
        if not isinstance(value, str) or not value.strip():
            raise InvalidMonthError(value)

        s = value.strip()
        m = _MONTH_RE.match(s)
        if m:
            year, month = int(m.group(1)), int(m.group(2))
            if not 1 <= month <= 12:
                raise InvalidMonthError(value)
            return cls._bounded(cls(year, month), value)
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            raise InvalidMonthError(value) from None
        return cls._bounded(cls.of(parsed), value)

    @classmethod
    def _bounded(cls, month: Month, value: object) -> Month:
        if not MIN_YEAR <= month.year <= MAX_YEAR:
            raise InvalidMonthError(value)
        return month

    @classmethod
    def of(cls, instant: datetime) -> Month:
        """Return the month containing ``instant`` (naive values are taken as UTC)."""

        if instant.tzinfo is not None:
            instant = instant.astimezone(UTC)
        return cls(instant.year, instant.month)

    def shift(self, months: int) -> Month:
        index = self.year * 12 + (self.month - 1) + months
        return Month(index // 12, index % 12 + 1)

    def previous(self) -> Month:
        return self.shift(-1)

    def next(self) -> Month:
        return self.shift(1)

    @property
    def start(self) -> datetime:
        return datetime(self.year, self.month, 1, tzinfo=UTC)

    @property
    def end(self) -> datetime:
        """First instant of the following month (exclusive bound)."""

        return self.next().start

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True, slots=True)
class Window:
    """An inclusive range of months; ``first=None`` reaches back to the beginning."""

    first: Month | None
    last: Month

    @classmethod
    def before(cls, month: Month) -> Window:
        """All history strictly before ``month`` (the till-last-month window)."""

        return cls(None, month.previous())

    @classmethod
    def of(cls, month: Month) -> Window:
        """Exactly ``month`` (the this-month window)."""

        return cls(month, month)

    def shift(self, months: int) -> Window:
        first = self.first.shift(months) if self.first is not None else None
        return Window(first, self.last.shift(months))

    @property
    def starts_at(self) -> datetime | None:
        return self.first.start if self.first is not None else None

    @property
    def ends_before(self) -> datetime:
        return self.last.end

    def __str__(self) -> str:
        return f"{self.first or '…'}..{self.last}"


def earliest_month(values: Iterable[object]) -> Month:
    """Return the earliest month among ``values`` (instants, dates or month strings)."""

    months = [Month.parse(v) for v in values]
    if not months:
        raise InvalidMonthError(None)
    return min(months)


__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "Month",
    "Window",
    "earliest_month",
]
