# ledger.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Iterator, List

from domain import LedgerSummary, Period, WorkSession
from errors import AlreadyWorkingError, NotWorkingError
from repository import (
    KeyValueStore,
    StorageKeys,
    clear_active_session,
    load_active_session,
    load_sessions,
    save_active_session,
    save_sessions,
)

logger = logging.getLogger(__name__)


def period_start(period: Period, now: datetime) -> datetime | None:
    """Lower bound of a history period in local time (None for all-time)."""
    period = Period(period)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period is Period.TODAY:
        return midnight
    if period is Period.WEEK:
        return midnight - timedelta(days=midnight.weekday())
    if period is Period.MONTH:
        return midnight.replace(day=1)
    return None


def aggregate(sessions: Iterable[WorkSession]) -> LedgerSummary:
    total_income = 0.0
    total_minutes = 0
    total_loss = 0.0
    count = 0
    for s in sessions:
        total_income += s.total_income
        total_minutes += s.total_minutes
        total_loss += s.total_loss
        count += 1
    return LedgerSummary(
        total_income=total_income,
        total_work_minutes=total_minutes,
        total_service_loss=total_loss,
        session_count=count,
    )


class SessionLedger:
    """
    History of completed sessions (completion order) plus the single
    active session. The only writers are begin / complete / remove_all.
    """

    aggregate = staticmethod(aggregate)

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock
        self._history: List[WorkSession] = []
        self._active: WorkSession | None = None

    @property
    def history(self) -> tuple[WorkSession, ...]:
        return tuple(self._history)

    @property
    def active_session(self) -> WorkSession | None:
        return self._active

    def load(self) -> WorkSession | None:
        """Reads history and the in-flight session; returns the latter."""
        self._history = load_sessions(self.store)
        active = load_active_session(self.store)
        if active is not None and any(s.id == active.id for s in self._history):
            # crashed after saving history but before clearing the record
            logger.warning("Discarding stale active session %s (already completed)", active.id)
            clear_active_session(self.store)
            active = None
        self._active = active
        logger.info("Ledger loaded: %d sessions, active=%s",
                    len(self._history), active.id if active else None)
        return active

    def begin(self, session: WorkSession) -> None:
        if self._active is not None:
            raise AlreadyWorkingError(self._active.id)
        save_active_session(self.store, session)
        self._active = session

    def add_completed(self, session: WorkSession) -> None:
        if session.is_active:
            raise NotWorkingError()
        history = list(self._history)
        for i, s in enumerate(history):
            if s.id == session.id:
                history[i] = session
                break
        else:
            history.append(session)
        save_sessions(self.store, history)
        self._history = history

    def update_active(self, session: WorkSession) -> None:
        """Persists a changed copy of the active session (same id)."""
        if self._active is None or self._active.id != session.id:
            raise NotWorkingError()
        save_active_session(self.store, session)
        self._active = session

    def complete(self, session: WorkSession) -> None:
        """History is persisted before the active record is cleared."""
        self.add_completed(session)
        clear_active_session(self.store)
        self._active = None

    def todays_sessions(self) -> Iterator[WorkSession]:
        today = self.clock().date()
        return (s for s in self._history if s.start_time.date() == today)

    def filter_by_period(self, period: Period) -> List[WorkSession]:
        now = self.clock()
        start = period_start(period, now)
        if start is None:
            return list(self._history)
        return [s for s in self._history if start <= s.start_time <= now]

    def summarize(self, period: Period) -> LedgerSummary:
        return aggregate(self.filter_by_period(period))

    def remove_all(self) -> bool:
        """Both keys go in one transaction; on failure nothing changes."""
        self.store.remove_many(StorageKeys.WORK_SESSIONS, StorageKeys.CURRENT_SESSION)
        self._history = []
        self._active = None
        logger.info("Work history cleared")
        return True
