# ruff: noqa: I001
"""CLI for the ``envelope_ledger`` package.

Typer-based console interface over :class:`SummaryScheduler`. Environment
variables (``DATABASE_URL``, ``ENVELOPE_LEDGER_MAX_WORKERS``,
``ENVELOPE_LEDGER_LOG_LEVEL``) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs. Business logic lives in
``envelope_ledger.scheduler`` and related modules; commands only parse,
delegate and print.

Commands
--------
- ``summary --document ID --month YYYY-MM [--month ...]``: print summaries
  (created on first request) as JSON.
- ``recalculate --document ID --from-month YYYY-MM``: refresh a document's
  summaries from a month onward.
- ``recalculate-all --from-month YYYY-MM``: periodic-driver entry point
  covering every document.
- ``init-db``: create the ledger tables from ORM metadata (development only;
  use Alembic migrations elsewhere).
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging, get_logger

_logger = get_logger("envelope_ledger.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _scheduler(database_url: str | None, max_workers: int | None):
    """Build a scheduler bound to a fresh ``Database`` for this invocation."""

    from db.client import Database

    from .scheduler import SummaryScheduler

    return SummaryScheduler(Database(database_url), max_workers=max_workers)


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _describe_failure(exc: BaseException) -> str:
    if isinstance(exc, BaseExceptionGroup):
        parts = [_describe_failure(e) for e in exc.exceptions]
        return f"{exc.message}: " + "; ".join(parts)
    notes = getattr(exc, "__notes__", None) or []
    suffix = f" ({', '.join(notes)})" if notes else ""
    return f"{exc}{suffix}"


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Envelope-budgeting monthly summaries over the ledger database. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
DOCUMENT_OPTION: OptionInfo = typer.Option(..., "--document", help="Document id (UUID).")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
MAX_WORKERS_OPTION: OptionInfo = typer.Option(
    None,
    "--max-workers",
    help="Concurrent month recalculations (falls back to ENVELOPE_LEDGER_MAX_WORKERS).",
)


@app.command("summary")
def summary_cmd(
    document: Annotated[str, DOCUMENT_OPTION],
    month: Annotated[
        list[str], typer.Option(..., "--month", help="Month as YYYY-MM; repeatable.")
    ],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Print the summary of each requested month, creating missing ones."""

    from .api import format_summary
    from .errors import LedgerError
    from .scheduler import ensure_summaries

    try:
        scheduler = _scheduler(database_url, None)
        summaries = ensure_summaries(scheduler, document, month)
    except LedgerError as e:
        raise _fail(e.message) from e
    except Exception as e:
        _logger.exception("summary failed")
        raise _fail(f"summary failed: {e}") from e

    payload = [format_summary(s) for s in summaries]
    typer.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))


@app.command("recalculate")
def recalculate_cmd(
    document: Annotated[str, DOCUMENT_OPTION],
    from_month: Annotated[
        str, typer.Option(..., "--from-month", help="First month to refresh (YYYY-MM).")
    ],
    database_url: str | None = DATABASE_URL_OPTION,
    max_workers: int | None = MAX_WORKERS_OPTION,
) -> None:
    """Recalculate a document's summaries from a month onward."""

    from .errors import LedgerError

    try:
        refreshed = _scheduler(database_url, max_workers).recalculate_summaries_from(
            document, from_month
        )
    except LedgerError as e:
        raise _fail(e.message) from e
    except Exception as e:
        raise _fail(f"recalculation failed: {_describe_failure(e)}") from e

    for s in refreshed:
        typer.echo(f"{s.month}\tavailable={s.available}\tbalance={s.balance}")
    typer.echo(f"Recalculated {len(refreshed)} summaries.")


@app.command("recalculate-all")
def recalculate_all_cmd(
    from_month: Annotated[
        str, typer.Option(..., "--from-month", help="First month to refresh (YYYY-MM).")
    ],
    database_url: str | None = DATABASE_URL_OPTION,
    max_workers: int | None = MAX_WORKERS_OPTION,
) -> None:
    """Recalculate every document's summaries from a month onward."""

    from .errors import LedgerError

    try:
        count = _scheduler(database_url, max_workers).recalculate_all_documents(from_month)
    except LedgerError as e:
        raise _fail(e.message) from e
    except Exception as e:
        raise _fail(f"recalculation failed: {_describe_failure(e)}") from e

    typer.echo(f"Recalculated {count} summaries.")


@app.command("init-db")
def init_db_cmd(
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Create all ledger tables that do not exist yet."""

    from db import Base
    from db.client import Database

    try:
        database = Database(database_url)
        Base.metadata.create_all(bind=database.engine)
    except Exception as e:
        raise _fail(f"init-db failed: {e}") from e
    typer.echo(f"Initialized {database!r}")


@app.callback()
def _root(
    log_level: str | None = typer.Option(None, "--log-level", help="Override the log level."),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
