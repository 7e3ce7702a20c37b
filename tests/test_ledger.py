"""Tests for ledger.py - history, active session, periods and aggregation."""

import types
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from domain import LedgerSummary, Period, WorkSession
from errors import AlreadyWorkingError, NotWorkingError, PersistenceError
from ledger import SessionLedger, aggregate, period_start
from repository import (
    StorageKeys,
    load_active_session,
    load_sessions,
    save_active_session,
    save_sessions,
)
from services import WageCalculator

from conftest import MONDAY_9AM


def completed(wage, start: datetime, minutes: int, classification="paid") -> WorkSession:
    s = WorkSession.start(wage, start)
    return WageCalculator().complete_session(s, start + timedelta(minutes=minutes), classification)


class TestPeriodStart:

    def test_bounds(self):
        wednesday = datetime(2026, 10, 21, 15, 30)
        assert period_start(Period.TODAY, wednesday) == datetime(2026, 10, 21)
        assert period_start(Period.WEEK, wednesday) == datetime(2026, 10, 19)
        assert period_start(Period.MONTH, wednesday) == datetime(2026, 10, 1)
        assert period_start(Period.ALL, wednesday) is None

    def test_week_starts_today_on_monday(self):
        assert period_start("week", MONDAY_9AM) == datetime(2026, 10, 19)


class TestSessionLedger:

    def test_begin_and_complete(self, ledger, store, wage):
        s = WorkSession.start(wage, MONDAY_9AM)
        ledger.begin(s)
        assert ledger.active_session == s
        assert store.contains(StorageKeys.CURRENT_SESSION)

        done = WageCalculator().complete_session(s, MONDAY_9AM + timedelta(hours=8))
        ledger.complete(done)
        assert ledger.active_session is None
        assert ledger.history == (done,)
        assert not store.contains(StorageKeys.CURRENT_SESSION)
        assert load_sessions(store) == [done]

    def test_single_active_session(self, ledger, wage):
        first = WorkSession.start(wage, MONDAY_9AM)
        ledger.begin(first)
        with pytest.raises(AlreadyWorkingError):
            ledger.begin(WorkSession.start(wage, MONDAY_9AM))
        assert ledger.active_session == first

    def test_add_completed_rejects_active_session(self, ledger, wage):
        with pytest.raises(NotWorkingError):
            ledger.add_completed(WorkSession.start(wage, MONDAY_9AM))

    def test_add_completed_keeps_completion_order(self, ledger, wage):
        late = completed(wage, MONDAY_9AM + timedelta(hours=2), 30)
        early = completed(wage, MONDAY_9AM, 30)
        ledger.add_completed(late)
        ledger.add_completed(early)
        assert ledger.history == (late, early)

    def test_add_completed_same_id_is_not_duplicated(self, ledger, wage):
        s = completed(wage, MONDAY_9AM, 30)
        ledger.add_completed(s)
        ledger.add_completed(s)
        assert len(ledger.history) == 1

    def test_load_resumes_in_flight_session(self, store, clock, wage):
        s = WorkSession.start(wage, MONDAY_9AM)
        save_active_session(store, s)
        clock.advance(minutes=15)

        ledger = SessionLedger(store, clock=clock)
        assert ledger.load() == s
        assert ledger.active_session.start_time == MONDAY_9AM
        assert ledger.active_session.elapsed_seconds(clock()) == 900

    def test_load_discards_stale_active_record(self, store, clock, wage):
        s = WorkSession.start(wage, MONDAY_9AM)
        done = WageCalculator().complete_session(s, MONDAY_9AM + timedelta(hours=1))
        save_sessions(store, [done])
        save_active_session(store, s)

        ledger = SessionLedger(store, clock=clock)
        assert ledger.load() is None
        assert ledger.history == (done,)
        assert not store.contains(StorageKeys.CURRENT_SESSION)

    def test_todays_sessions_is_lazy_and_restartable(self, ledger, clock, wage):
        ledger.add_completed(completed(wage, MONDAY_9AM - timedelta(days=1), 60))
        today = completed(wage, MONDAY_9AM, 60)
        ledger.add_completed(today)
        clock.set(MONDAY_9AM + timedelta(hours=3))

        gen = ledger.todays_sessions()
        assert isinstance(gen, types.GeneratorType)
        assert list(gen) == [today]
        assert list(ledger.todays_sessions()) == [today]

    def test_filter_by_period(self, ledger, clock, wage):
        monday = completed(wage, MONDAY_9AM, 60)
        sunday = completed(wage, MONDAY_9AM - timedelta(days=1), 60)
        september = completed(wage, datetime(2026, 9, 30, 9, 0), 60)
        for s in (september, sunday, monday):
            ledger.add_completed(s)
        clock.set(datetime(2026, 10, 21, 10, 0))

        assert ledger.filter_by_period(Period.TODAY) == []
        assert ledger.filter_by_period(Period.WEEK) == [monday]
        assert ledger.filter_by_period(Period.MONTH) == [sunday, monday]
        assert ledger.filter_by_period(Period.ALL) == [september, sunday, monday]

    def test_aggregate(self, wage):
        sessions = [
            completed(wage, MONDAY_9AM, 480),
            completed(wage, MONDAY_9AM + timedelta(days=1), 600, "paid"),
            completed(wage, MONDAY_9AM + timedelta(days=2), 600, "service"),
        ]
        summary = aggregate(sessions)
        assert summary.total_income == 15000.0 + 19687.5 + 15000.0
        assert summary.total_work_minutes == 480 + 600 + 600
        assert summary.total_service_loss == 4687.5
        assert summary.session_count == 3
        assert SessionLedger.aggregate(iter(sessions)) == summary

    def test_aggregate_empty(self):
        assert aggregate([]) == LedgerSummary()

    def test_summarize(self, ledger, clock, wage):
        ledger.add_completed(completed(wage, MONDAY_9AM, 600, "service"))
        clock.set(MONDAY_9AM + timedelta(hours=12))
        summary = ledger.summarize(Period.TODAY)
        assert summary.total_income == 15000.0
        assert summary.total_service_loss == 4687.5

    def test_remove_all(self, ledger, store, wage):
        ledger.add_completed(completed(wage, MONDAY_9AM, 60))
        ledger.begin(WorkSession.start(wage, MONDAY_9AM + timedelta(hours=2)))
        assert ledger.remove_all() is True
        assert ledger.history == ()
        assert ledger.active_session is None
        assert not store.contains(StorageKeys.WORK_SESSIONS)
        assert not store.contains(StorageKeys.CURRENT_SESSION)

    def test_remove_all_failure_keeps_everything(self, ledger, store, wage, monkeypatch):
        done = completed(wage, MONDAY_9AM, 60)
        ledger.add_completed(done)
        active = WorkSession.start(wage, MONDAY_9AM + timedelta(hours=2))
        ledger.begin(active)

        def boom(*keys):
            raise PersistenceError("disk full", key=", ".join(keys))
        monkeypatch.setattr(store, "remove_many", boom)
        with pytest.raises(PersistenceError):
            ledger.remove_all()
        assert ledger.history == (done,)
        assert ledger.active_session == active
        assert load_sessions(store) == [done]
        assert load_active_session(store) == active

    def test_failed_history_save_leaves_history_unchanged(self, ledger, store, wage, monkeypatch):
        first = completed(wage, MONDAY_9AM, 60)
        ledger.add_completed(first)

        def boom(*args, **kwargs):
            raise PersistenceError("disk full", key=StorageKeys.WORK_SESSIONS)
        monkeypatch.setattr(store, "set_list", boom)
        with pytest.raises(PersistenceError):
            ledger.add_completed(completed(wage, MONDAY_9AM + timedelta(hours=3), 30))
        assert ledger.history == (first,)

    def test_update_active(self, ledger, store, wage):
        s = WorkSession.start(wage, MONDAY_9AM)
        ledger.begin(s)
        flagged = replace(s, lunch_notified=True)
        ledger.update_active(flagged)
        assert ledger.active_session == flagged
        assert load_active_session(store).lunch_notified is True

    def test_update_active_requires_same_session(self, ledger, wage):
        with pytest.raises(NotWorkingError):
            ledger.update_active(WorkSession.start(wage, MONDAY_9AM))
        ledger.begin(WorkSession.start(wage, MONDAY_9AM))
        with pytest.raises(NotWorkingError):
            ledger.update_active(WorkSession.start(wage, MONDAY_9AM))
