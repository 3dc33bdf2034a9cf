"""Environment-driven settings.

Values are read from the process environment on each call; the CLI loads a
local ``.env`` (``python-dotenv``) before anything here is consulted.
"""

from __future__ import annotations

import os

MAX_WORKERS_ENV = "ENVELOPE_LEDGER_MAX_WORKERS"
LOG_LEVEL_ENV = "ENVELOPE_LEDGER_LOG_LEVEL"

DEFAULT_MAX_WORKERS = 4
MAX_WORKERS_CAP = 32


def env_str(name: str) -> str | None:
    val = os.getenv(name)
    if val is None:
        return None
    val = val.strip()
    return val or None


def resolve_max_workers(requested: int | None = None) -> int:
    """Resolve the recalculation fan-out width.

    An explicit ``requested`` value wins; otherwise ``ENVELOPE_LEDGER_MAX_WORKERS``
    is honored when it parses as a positive integer. The result is clamped to
    ``1..32``.
    """

    workers = requested
    if workers is None:
        raw = env_str(MAX_WORKERS_ENV)
        try:
            workers = int(raw) if raw else None
        except ValueError:
            workers = None
    if workers is None or workers < 1:
        workers = DEFAULT_MAX_WORKERS
    return max(1, min(workers, MAX_WORKERS_CAP))


__all__ = [
    "MAX_WORKERS_ENV",
    "LOG_LEVEL_ENV",
    "DEFAULT_MAX_WORKERS",
    "env_str",
    "resolve_max_workers",
]
