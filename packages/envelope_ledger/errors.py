"""Exceptions raised by the summary engine.

Validation and lookup failures carry an ``attributes`` mapping naming the
offending input (e.g. ``{"month": "Is required!"}``) so callers can surface
field-level messages. Store failures are never wrapped; SQLAlchemy errors
propagate to the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping


class LedgerError(Exception):
    """Base class for errors raised by ``envelope_ledger``."""

    def __init__(self, message: str, *, attributes: Mapping[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.attributes: dict[str, str] = dict(attributes or {})


class InvalidMonthError(LedgerError, ValueError):
    """A month identifier was missing or could not be parsed."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid month: {value!r}", attributes={"month": "Is required!"})
        self.value = value


class DocumentNotFoundError(LedgerError, LookupError):
    """The requested document does not exist."""

    def __init__(self, document_id: object) -> None:
        super().__init__(
            f"Not able to get summary: linked document not found ({document_id})",
            attributes={"document": "Not found"},
        )
        self.document_id = document_id


__all__ = [
    "LedgerError",
    "InvalidMonthError",
    "DocumentNotFoundError",
]
