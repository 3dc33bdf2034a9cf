"""Bounded-concurrency map over a ``ThreadPoolExecutor`` (after ``p-map``).

- ``concurrency`` caps how many mapper calls run at once; the input is pulled
  lazily so at most ``concurrency`` items are in flight.
- Results come back in input order.
- ``stop_on_error=True`` fails fast on the first error and cancels work not yet
  started. With ``stop_on_error=False`` every item runs to completion and all
  failures are raised together as an ``ExceptionGroup``.
- ``describe`` (optional) labels an item; failures get a note naming the item
  so grouped errors stay attributable.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
    describe: Callable[[InT], str] | None = None,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight."""

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    it = enumerate(iterable)
    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    submitted = 0
    in_flight: dict[Future, tuple[int, InT]] = {}

    def _submit(pool: ThreadPoolExecutor) -> bool:
        nonlocal submitted
        try:
            idx, item = next(it)
        except StopIteration:
            return False
        in_flight[pool.submit(mapper, item)] = (idx, item)
        submitted += 1
        return True

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for _ in range(concurrency):
            if not _submit(pool):
                break

        while in_flight:
            done, _pending = wait(set(in_flight), return_when=FIRST_COMPLETED)
            for fut in done:
                idx, item = in_flight.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    if describe is not None:
                        e.add_note(f"while processing {describe(item)}")
                    if stop_on_error:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    errors.append(e)

            # Top up the window by one task per completion.
            for _ in range(len(done)):
                if not _submit(pool):
                    break

    if errors:
        raise ExceptionGroup(f"p_map: {len(errors)} of {submitted} mapper calls failed", errors)

    return [results[i] for i in range(submitted)]


__all__ = ["p_map"]
