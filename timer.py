# timer.py
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

import config
from domain import LiveSnapshot, OvertimeClassification, WageConfig, WorkSession
from errors import AlreadyWorkingError, NotWorkingError, PersistenceError
from ledger import SessionLedger
from notifications import NotificationDispatcher
from services import WageCalculator

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


# =========================
# Tickers: the single periodic event source
# =========================
class Ticker(ABC):
    @abstractmethod
    def start(self, callback: Callable[[], object]) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @property
    @abstractmethod
    def running(self) -> bool:
        ...


class ManualTicker(Ticker):
    """Ticks only when fire() is called (tests, UIs that own their loop)."""

    def __init__(self):
        self._callback: Optional[Callable[[], object]] = None

    def start(self, callback: Callable[[], object]) -> None:
        self._callback = callback

    def stop(self) -> None:
        self._callback = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self._callback is None:
                return
            self._callback()


class ThreadTicker(Ticker):
    """Calls the callback every `interval` seconds on a daemon thread."""

    def __init__(self, interval: float = config.TICK_SECONDS):
        self.interval = interval
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(self, callback: Callable[[], object]) -> None:
        if self.running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(callback, self._stop_event),
            name="session-ticker", daemon=True,
        )
        self._thread.start()

    def _run(self, callback: Callable[[], object], stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed")

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=max(self.interval * 2, 1.0))
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


# =========================
# Session lifecycle
# =========================
class SessionTimer:
    """
    Orchestrates:
    - the Idle -> Active -> Completed lifecycle of work sessions
    - ledger persistence of the active session and history
    - per-tick live snapshots and notification thresholds
    """

    def __init__(
        self,
        ledger: SessionLedger,
        wage_source: Callable[[], WageConfig],
        notifier: NotificationDispatcher,
        ticker: Ticker | None = None,
        calculator: WageCalculator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ledger = ledger
        self.wage_source = wage_source
        self.notifier = notifier
        self.ticker = ticker or ThreadTicker()
        self.calculator = calculator or WageCalculator()
        self.clock = clock

        self._lock = threading.RLock()
        self._reminded_hours = 0
        self._lunch_sent = False
        self._on_tick: Optional[Callable[[LiveSnapshot], None]] = None

    # ----- Callbacks -----
    def set_on_tick(self, fn: Optional[Callable[[LiveSnapshot], None]]) -> None:
        self._on_tick = fn

    # ----- State -----
    @property
    def active_session(self) -> WorkSession | None:
        return self.ledger.active_session

    @property
    def state(self) -> TimerState:
        return TimerState.ACTIVE if self.ledger.active_session else TimerState.IDLE

    @property
    def is_working(self) -> bool:
        return self.ledger.active_session is not None

    def is_overtime(self) -> bool:
        session = self.ledger.active_session
        return session is not None and session.is_overtime(self.clock())

    def snapshot(self) -> LiveSnapshot | None:
        session = self.ledger.active_session
        if session is None:
            return None
        return self._snapshot(session, self.clock())

    def _snapshot(self, session: WorkSession, now: datetime) -> LiveSnapshot:
        return LiveSnapshot(
            session_id=session.id,
            elapsed_seconds=session.elapsed_seconds(now),
            current_earnings=self.calculator.current_earnings(session, now),
            is_overtime=session.is_overtime(now),
        )

    # ----- Public API -----
    def start_work(self) -> WorkSession:
        with self._lock:
            current = self.ledger.active_session
            if current is not None:
                raise AlreadyWorkingError(current.id)

            session = WorkSession.start(self.wage_source(), self.clock())
            self.ledger.begin(session)
            self._reminded_hours = 0
            self._lunch_sent = False
            self.ticker.start(self.tick)

        logger.info("Work started: session %s at %s", session.id, session.start_time.isoformat())
        self.notifier.work_started()
        return session

    def end_work(self, classification: OvertimeClassification | str = OvertimeClassification.PAID) -> WorkSession:
        classification = OvertimeClassification(classification)
        with self._lock:
            current = self.ledger.active_session
            if current is None:
                raise NotWorkingError()

            completed = self.calculator.complete_session(current, self.clock(), classification)
            self.ledger.complete(completed)

        # outside the lock: stopping joins the tick thread
        self.ticker.stop()
        logger.info(
            "Work ended: session %s, %d min, income %.2f, loss %.2f",
            completed.id, completed.total_minutes, completed.total_income, completed.total_loss,
        )
        self.notifier.work_ended(completed.total_income, completed.total_loss)
        if completed.is_service_overtime and completed.service_overtime_loss > 0:
            self.notifier.service_overtime_warning(completed.service_overtime_loss)
        return completed

    def mark_service_overtime(self) -> WorkSession:
        """Ends the session booking the excess minutes as unpaid overtime."""
        return self.end_work(OvertimeClassification.SERVICE)

    def resume(self) -> bool:
        """Restarts ticking for a session restored by ledger.load()."""
        with self._lock:
            session = self.ledger.active_session
            if session is None:
                return False
            now = self.clock()
            # no backlog of reminders for hours that passed while stopped
            self._reminded_hours = session.elapsed_seconds(now) // config.BREAK_REMINDER_SECONDS
            self._lunch_sent = session.lunch_notified
            self.ticker.start(self.tick)
        logger.info("Resumed session %s started at %s (%d s elapsed)",
                    session.id, session.start_time.isoformat(), session.elapsed_seconds(now))
        return True

    def tick(self) -> LiveSnapshot | None:
        """Called once per second by the ticker while a session is active."""
        with self._lock:
            session = self.ledger.active_session
            if session is None:
                return None
            now = self.clock()
            snap = self._snapshot(session, now)
            hours = snap.elapsed_seconds // config.BREAK_REMINDER_SECONDS
            remind = hours > self._reminded_hours
            if remind:
                self._reminded_hours = hours
            lunch = (
                not self._lunch_sent
                and config.LUNCH_START_HOUR <= now.hour < config.LUNCH_END_HOUR
                and snap.elapsed_seconds >= config.LUNCH_MIN_ELAPSED_SECONDS
            )
            if lunch:
                self._lunch_sent = True
                # stored with the session so a restart does not repeat it
                try:
                    self.ledger.update_active(replace(session, lunch_notified=True))
                except PersistenceError:
                    logger.warning("Could not record lunch milestone for %s", session.id, exc_info=True)

        logger.debug("Tick %s: %d s, %.2f", snap.session_id, snap.elapsed_seconds, snap.current_earnings)
        if remind:
            self.notifier.break_reminder(snap.current_earnings)
        if lunch:
            self.notifier.lunch_milestone(snap.current_earnings)
        if self._on_tick:
            self._on_tick(snap)
        return snap

    def shutdown(self) -> None:
        self.ticker.stop()
