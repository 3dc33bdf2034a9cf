from __future__ import annotations

import threading
import uuid

import pytest

import envelope_ledger.scheduler as scheduler_mod
from envelope_ledger.calculator import figures_of
from envelope_ledger.errors import DocumentNotFoundError, InvalidMonthError
from envelope_ledger.scheduler import SummaryScheduler, ensure_summaries

from tests.helpers.db import UnitSpec, at


# ---- get-or-create -----------------------------------------------------------


def test_get_or_create_computes_and_persists(scheduler, seed, document_id, account_id):
    seed.transaction(account_id, 1000, at(2024, 3, 2), [UnitSpec(1000, "INCOME")])

    summary = scheduler.get_or_create_summary(document_id, "2024-03")

    assert summary.month == "2024-03"
    assert summary.available == 1000
    stored = seed.summary(document_id, "2024-03")
    assert stored is not None and stored.id == summary.id
    assert figures_of(stored) == figures_of(summary)


def test_get_or_create_returns_existing_row_without_recomputing(
    scheduler, seed, document_id, account_id
):
    first = scheduler.get_or_create_summary(document_id, "2024-03")
    # New history is not picked up until a recalculation runs.
    seed.transaction(account_id, -40, at(2024, 3, 2))

    again = scheduler.get_or_create_summary(document_id, "2024-03")

    assert again.id == first.id
    assert again.available == 0
    assert seed.summary_count() == 1


def test_losing_a_creation_race_returns_the_winners_row(
    scheduler, seed, document_id, monkeypatch
):
    winner = scheduler.get_or_create_summary(document_id, "2024-03")

    real = scheduler_mod._find_summary
    misses = {"left": 1}

    def _stale_lookup(session, doc_id, month):
        # The first lookup runs before the other creator committed.
        if misses["left"]:
            misses["left"] -= 1
            return None
        return real(session, doc_id, month)

    monkeypatch.setattr(scheduler_mod, "_find_summary", _stale_lookup)

    loser = scheduler.get_or_create_summary(document_id, "2024-03")

    assert misses["left"] == 0
    assert loser.id == winner.id
    assert seed.summary_count() == 1


def test_returned_rows_carry_their_timestamps(scheduler, document_id):
    created = scheduler.get_or_create_summary(document_id, "2024-03")
    [refreshed] = scheduler.recalculate_summaries_from(document_id, "2024-03")

    # Both rows are detached; reading server-generated columns must not hit the session.
    for row in (created, refreshed):
        assert row.created_at is not None
        assert row.updated_at is not None
        assert row.created_at.tzinfo is not None


def test_get_or_create_accepts_string_document_ids(scheduler, document_id):
    summary = scheduler.get_or_create_summary(str(document_id), "2024-03")
    assert summary.document_id == document_id


def test_missing_document_is_not_fabricated(scheduler, seed):
    with pytest.raises(DocumentNotFoundError):
        scheduler.get_or_create_summary(uuid.uuid4(), "2024-03")
    with pytest.raises(DocumentNotFoundError):
        scheduler.get_or_create_summary("not-a-uuid", "2024-03")
    assert seed.summary_count() == 0


@pytest.mark.parametrize("month", [None, "", "2024-13", "soon"])
def test_invalid_month_is_rejected_before_anything_persists(scheduler, seed, document_id, month):
    with pytest.raises(InvalidMonthError):
        scheduler.get_or_create_summary(document_id, month)
    with pytest.raises(InvalidMonthError):
        scheduler.recalculate_summaries_from(document_id, month)
    assert seed.summary_count() == 0


def test_read_failure_writes_no_partial_summary(scheduler, seed, document_id, monkeypatch):
    def _boom(*_args, **_kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(scheduler_mod, "aggregate_month", _boom)

    with pytest.raises(RuntimeError, match="store unavailable"):
        scheduler.get_or_create_summary(document_id, "2024-03")
    assert seed.summary_count() == 0


# ---- Summary properties ------------------------------------------------------


def test_income_is_available_from_its_month(scheduler, seed, document_id, account_id):
    seed.transaction(account_id, 1000, at(2024, 3, 2), [UnitSpec(1000, "INCOME")])

    march = scheduler.get_or_create_summary(document_id, "2024-03")
    february = scheduler.get_or_create_summary(document_id, "2024-02")

    assert march.available == 1000
    assert march.income == 1000
    assert march.available_last_month == 0
    assert february.available == 0


def test_deferred_income_becomes_available_next_month(scheduler, seed, document_id, account_id):
    seed.transaction(account_id, 500, at(2024, 3, 20), [UnitSpec(500, "INCOME_NEXT")])

    march = scheduler.get_or_create_summary(document_id, "2024-03")
    april = scheduler.get_or_create_summary(document_id, "2024-04")
    may = scheduler.get_or_create_summary(document_id, "2024-05")

    assert (march.available, march.income) == (0, 0)
    assert (april.available, april.income) == (500, 500)
    assert april.available_last_month == 0
    assert may.available_last_month == 500
    # Cash arrived in March regardless of when it is budgetable.
    assert march.balance == 500


def test_bare_transaction_is_unbudgeted_outflow(scheduler, seed, document_id, account_id):
    seed.transaction(account_id, -300, at(2024, 3, 9))

    march = scheduler.get_or_create_summary(document_id, "2024-03")
    april = scheduler.get_or_create_summary(document_id, "2024-04")

    assert march.available == -300
    assert march.unbudgeted == -300
    assert march.outflow == -300
    # Carried forward, but no longer "this month" activity.
    assert april.available == -300
    assert april.available_last_month == -300
    assert (april.unbudgeted, april.outflow) == (0, 0)


def test_transfer_is_neutral_for_the_document(scheduler, seed, document_id, account_id):
    savings = seed.account(document_id, "Savings")
    seed.transaction(account_id, 1000, at(2024, 2, 1), [UnitSpec(1000, "INCOME")])
    seed.transaction(
        account_id, -200, at(2024, 3, 2), [UnitSpec(-200, "TRANSFER", transfer_account_id=savings)]
    )

    march = scheduler.get_or_create_summary(document_id, "2024-03")

    assert (march.income, march.budgeted, march.outflow, march.unbudgeted) == (0, 0, 0, 0)
    assert march.available == 1000
    assert march.balance == 1000


def test_budgeted_carries_forward(scheduler, seed, document_id):
    budget = seed.budget(document_id)
    seed.portion(budget, "2024-02", 400)

    march = scheduler.get_or_create_summary(document_id, "2024-03")

    assert march.budgeted == 0
    assert march.available == -400
    assert march.available_last_month == -400


def test_budget_spending_does_not_touch_available(scheduler, seed, document_id, account_id):
    budget = seed.budget(document_id)
    seed.transaction(account_id, 2000, at(2024, 3, 1), [UnitSpec(2000, "INCOME")])
    seed.portion(budget, "2024-03", 600)
    seed.transaction(account_id, -450, at(2024, 3, 8), [UnitSpec(-450, "BUDGET", budget_id=budget)])

    march = scheduler.get_or_create_summary(document_id, "2024-03")

    assert march.available == 1400
    assert march.budgeted == 600
    assert march.outflow == -450
    assert march.balance == 1550


# ---- recalculate-from --------------------------------------------------------


def test_recalculation_is_idempotent(scheduler, seed, document_id, account_id):
    seed.transaction(account_id, 1000, at(2024, 3, 2), [UnitSpec(1000, "INCOME")])
    seed.transaction(account_id, -120, at(2024, 3, 4))
    scheduler.get_or_create_summary(document_id, "2024-03")

    first = [figures_of(s) for s in scheduler.recalculate_summaries_from(document_id, "2024-03")]
    second = [figures_of(s) for s in scheduler.recalculate_summaries_from(document_id, "2024-03")]

    assert first == second
    assert figures_of(seed.summary(document_id, "2024-03")) == first[0]


def test_cascade_updates_from_month_onward_only(scheduler, seed, document_id, account_id):
    months = ["2024-02", "2024-03", "2024-04", "2024-05"]
    ensure_summaries(scheduler, document_id, months)

    seed.transaction(account_id, -50, at(2024, 3, 14))
    refreshed = scheduler.recalculate_summaries_from(document_id, "2024-03")

    assert [s.month for s in refreshed] == ["2024-03", "2024-04", "2024-05"]
    for month in months[1:]:
        assert seed.summary(document_id, month).available == -50
    assert seed.summary(document_id, "2024-02").available == 0


def test_recalculation_without_summaries_is_a_no_op(scheduler, document_id):
    assert scheduler.recalculate_summaries_from(document_id, "2024-03") == []


def test_recalculation_of_missing_document(scheduler):
    with pytest.raises(DocumentNotFoundError):
        scheduler.recalculate_summaries_from(uuid.uuid4(), "2024-03")


def test_recalculate_after_change_starts_at_earliest_month(
    scheduler, seed, document_id, account_id
):
    ensure_summaries(scheduler, document_id, ["2024-01", "2024-02", "2024-03"])
    seed.transaction(account_id, -10, at(2024, 2, 3))

    # A transaction moved from March back to February touches both months.
    refreshed = scheduler.recalculate_after_change(document_id, at(2024, 3, 20), at(2024, 2, 3))

    assert [s.month for s in refreshed] == ["2024-02", "2024-03"]
    assert seed.summary(document_id, "2024-01").available == 0
    assert seed.summary(document_id, "2024-02").available == -10


def test_failures_are_collected_and_other_months_still_update(
    scheduler, seed, document_id, account_id, monkeypatch
):
    ensure_summaries(scheduler, document_id, ["2024-03", "2024-04", "2024-05"])
    seed.transaction(account_id, -75, at(2024, 3, 10))

    real = scheduler_mod.aggregate_month

    def _flaky(session, doc_id, month):
        if str(month) == "2024-04":
            raise RuntimeError("query failed")
        return real(session, doc_id, month)

    monkeypatch.setattr(scheduler_mod, "aggregate_month", _flaky)

    with pytest.raises(ExceptionGroup) as exc_info:
        scheduler.recalculate_summaries_from(document_id, "2024-03")

    [err] = exc_info.value.exceptions
    assert isinstance(err, RuntimeError)
    assert any("2024-04" in note for note in err.__notes__)
    assert seed.summary(document_id, "2024-03").available == -75
    assert seed.summary(document_id, "2024-05").available == -75
    assert seed.summary(document_id, "2024-04").available == 0


def test_months_run_concurrently_within_the_worker_cap(
    database, seed, document_id, monkeypatch
):
    months = [f"2024-{m:02d}" for m in range(1, 9)]
    capped = SummaryScheduler(database, max_workers=3)
    ensure_summaries(capped, document_id, months)

    lock = threading.Lock()
    state = {"inflight": 0, "max": 0}
    barrier = threading.Barrier(3, timeout=5)
    real = scheduler_mod.aggregate_month

    def _tracked(session, doc_id, month):
        with lock:
            state["inflight"] += 1
            state["max"] = max(state["max"], state["inflight"])
        try:
            if str(month) <= "2024-03":
                barrier.wait()
            return real(session, doc_id, month)
        finally:
            with lock:
                state["inflight"] -= 1

    monkeypatch.setattr(scheduler_mod, "aggregate_month", _tracked)

    refreshed = capped.recalculate_summaries_from(document_id, "2024-01")

    assert [s.month for s in refreshed] == months
    assert state["max"] == 3


def test_recalculate_all_documents(scheduler, seed, document_id, account_id):
    other = seed.document("Other")
    other_account = seed.account(other)
    ensure_summaries(scheduler, document_id, ["2024-03"])
    ensure_summaries(scheduler, other, ["2024-02", "2024-03"])
    seed.transaction(account_id, -5, at(2024, 3, 1))
    seed.transaction(other_account, -7, at(2024, 2, 1))

    count = scheduler.recalculate_all_documents("2024-03")

    assert count == 2
    assert seed.summary(document_id, "2024-03").available == -5
    assert seed.summary(other, "2024-03").available == -7
    # Before the requested month nothing is touched.
    assert seed.summary(other, "2024-02").available == 0


def test_worker_count_comes_from_environment(database, monkeypatch):
    monkeypatch.setenv("ENVELOPE_LEDGER_MAX_WORKERS", "7")
    assert SummaryScheduler(database).max_workers == 7

    monkeypatch.setenv("ENVELOPE_LEDGER_MAX_WORKERS", "lots")
    assert SummaryScheduler(database).max_workers == 4

    monkeypatch.setenv("ENVELOPE_LEDGER_MAX_WORKERS", "500")
    assert SummaryScheduler(database).max_workers == 32
    assert SummaryScheduler(database, max_workers=2).max_workers == 2
