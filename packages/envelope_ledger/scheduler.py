"""Recalculation Scheduler: creates summaries lazily and cascades recalculation.

A :class:`SummaryScheduler` is constructed per process with an explicit
:class:`db.client.Database` and a fan-out width. It owns no threads between
calls; each :meth:`SummaryScheduler.recalculate_summaries_from` call runs its
months on a bounded pool (:func:`envelope_ledger.pmap.p_map`), one session and
one transaction per month. A month's computation reads the ledger and writes
only its own summary row, so months never wait on each other.

Ledger mutations racing a recalculation are not serialized here. Callers that
need the summary to reflect a mutation must commit the mutation first and then
call :meth:`SummaryScheduler.recalculate_after_change` (or hold their own
per-document lock around both).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from db.client import Database
from db.models.ledger import ElDocument, ElSummary
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .aggregator import aggregate_month
from .calculator import apply, calculate
from .errors import DocumentNotFoundError
from .logging_setup import get_logger
from .months import Month, earliest_month
from .pmap import p_map
from .settings import resolve_max_workers

_logger = get_logger("envelope_ledger.scheduler")


def coerce_document_id(document_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(document_id, uuid.UUID):
        return document_id
    try:
        return uuid.UUID(str(document_id))
    except ValueError:
        raise DocumentNotFoundError(document_id) from None


def _find_summary(session: Session, document_id: uuid.UUID, month: Month) -> ElSummary | None:
    return (
        session.execute(
            select(ElSummary).where(
                ElSummary.document_id == document_id,
                ElSummary.month == str(month),
            )
        )
        .scalars()
        .first()
    )


def _require_document(session: Session, document_id: uuid.UUID) -> None:
    if session.get(ElDocument, document_id) is None:
        raise DocumentNotFoundError(document_id)


# Server-generated columns are loaded before the session closes so returned
# (detached) rows stay fully readable.
_SERVER_GENERATED = ("created_at", "updated_at")


class SummaryScheduler:
    """Entry points for summary creation and forward recalculation."""

    def __init__(self, database: Database, *, max_workers: int | None = None) -> None:
        self.database = database
        self.max_workers = resolve_max_workers(max_workers)

    def get_or_create_summary(self, document_id: uuid.UUID | str, month: object) -> ElSummary:
        """Return the summary for ``(document, month)``, computing it on first request."""

        target = Month.parse(month)
        doc_id = coerce_document_id(document_id)

        with self.database.session_scope() as session:
            existing = _find_summary(session, doc_id, target)
            if existing is not None:
                return existing

            _require_document(session, doc_id)
            summary = ElSummary(document_id=doc_id, month=str(target))
            apply(summary, calculate(aggregate_month(session, doc_id, target)))
            session.add(summary)
            try:
                session.flush()
            except IntegrityError:
                # Another caller created the same month first; theirs is equivalent.
                session.rollback()
                existing = _find_summary(session, doc_id, target)
                if existing is None:
                    raise
                return existing

            session.refresh(summary, attribute_names=_SERVER_GENERATED)
            _logger.info("Created summary document=%s month=%s", doc_id, target)
            return summary

    def recalculate_summaries_from(
        self, document_id: uuid.UUID | str, month: object
    ) -> list[ElSummary]:
        """Recompute every existing summary of the document from ``month`` onward.

        Months run concurrently. Every month is attempted; when any fail, an
        ``ExceptionGroup`` with all failures is raised after the rest finished.
        Returns the refreshed rows ordered by month.
        """

        start = Month.parse(month)
        doc_id = coerce_document_id(document_id)

        with self.database.session_scope() as session:
            _require_document(session, doc_id)
            rows = session.execute(
                select(ElSummary.id, ElSummary.month)
                .where(ElSummary.document_id == doc_id, ElSummary.month >= str(start))
                .order_by(ElSummary.month)
            ).all()

        targets = [(row.id, Month.parse(row.month)) for row in rows]
        if not targets:
            _logger.debug("No summaries to recalculate document=%s from=%s", doc_id, start)
            return []

        _logger.info(
            "Recalculating %d summaries document=%s from=%s workers=%d",
            len(targets),
            doc_id,
            start,
            self.max_workers,
        )
        try:
            refreshed = p_map(
                targets,
                lambda target: self._recalculate_one(doc_id, *target),
                concurrency=self.max_workers,
                stop_on_error=False,
                describe=lambda target: f"summary month={target[1]}",
            )
        except ExceptionGroup as eg:
            _logger.error(
                "Recalculation failed for %d of %d summaries document=%s from=%s",
                len(eg.exceptions),
                len(targets),
                doc_id,
                start,
            )
            raise
        return [s for s in refreshed if s is not None]

    def recalculate_after_change(
        self, document_id: uuid.UUID | str, *changed: object
    ) -> list[ElSummary]:
        """Cascade from the earliest month touched by a ledger mutation.

        ``changed`` holds the instants (or months) a mutation affected, e.g. the
        old and new ``time`` of an edited transaction or a portion's month.
        """

        return self.recalculate_summaries_from(document_id, earliest_month(changed))

    def recalculate_all_documents(self, month: object) -> int:
        """Recalculate every document holding summaries from ``month`` onward.

        Documents are processed one after another; failures are collected and
        raised together once all documents were attempted. Returns the number of
        summaries refreshed.
        """

        start = Month.parse(month)
        with self.database.session_scope() as session:
            document_ids = (
                session.execute(
                    select(ElSummary.document_id)
                    .where(ElSummary.month >= str(start))
                    .distinct()
                    .order_by(ElSummary.document_id)
                )
                .scalars()
                .all()
            )

        refreshed = 0
        errors: list[Exception] = []
        for doc_id in document_ids:
            try:
                refreshed += len(self.recalculate_summaries_from(doc_id, start))
            except Exception as e:  # noqa: BLE001
                e.add_note(f"while recalculating document={doc_id}")
                errors.append(e)
        if errors:
            raise ExceptionGroup(
                f"recalculation failed for {len(errors)} of {len(document_ids)} documents",
                errors,
            )
        return refreshed

    def _recalculate_one(
        self, document_id: uuid.UUID, summary_id: uuid.UUID, month: Month
    ) -> ElSummary | None:
        with self.database.session_scope() as session:
            figures = calculate(aggregate_month(session, document_id, month))
            summary = session.get(ElSummary, summary_id)
            if summary is None:
                _logger.warning(
                    "Summary vanished before recalculation document=%s month=%s",
                    document_id,
                    month,
                )
                return None
            apply(summary, figures)
            session.flush()
            session.refresh(summary, attribute_names=_SERVER_GENERATED)
        _logger.debug("Recalculated summary document=%s month=%s", document_id, month)
        return summary


def ensure_summaries(
    scheduler: SummaryScheduler, document_id: uuid.UUID | str, months: Iterable[object]
) -> list[ElSummary]:
    """Ensure summaries exist for ``months`` and return them in the given order."""

    return [scheduler.get_or_create_summary(document_id, m) for m in months]


__all__ = [
    "SummaryScheduler",
    "coerce_document_id",
    "ensure_summaries",
]
