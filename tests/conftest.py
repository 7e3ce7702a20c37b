"""Shared fixtures: temporary store, fake clock, recording gateway, manual ticker."""

from datetime import datetime, timedelta

import pytest

from domain import WageConfig
from errors import NotificationDispatchError
from ledger import SessionLedger
from notifications import NotificationDispatcher, NotificationGateway
from repository import KeyValueStore
from timer import ManualTicker, SessionTimer

# Monday
MONDAY_9AM = datetime(2026, 10, 19, 9, 0)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return now


class RecordingGateway(NotificationGateway):
    def __init__(self):
        self.sent = []

    def send(self, notification):
        self.sent.append(notification)

    @property
    def categories(self):
        return [n.category for n in self.sent]


class FailingGateway(NotificationGateway):
    def send(self, notification):
        raise NotificationDispatchError("device refused notification")


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(f"sqlite:///{(tmp_path / 'test.db').as_posix()}")


@pytest.fixture
def clock():
    return FakeClock(MONDAY_9AM)


@pytest.fixture
def wage():
    return WageConfig(
        monthly_salary=300000.0,
        hourly_salary=1875.0,
        overtime_multiplier=1.25,
        monthly_work_hours=160,
        daily_work_hours=8,
        start_hour=9,
        end_hour=18,
    )


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def ledger(store, clock):
    return SessionLedger(store, clock=clock)


@pytest.fixture
def dispatcher(gateway, store):
    return NotificationDispatcher(gateway, store)


@pytest.fixture
def timer(ledger, wage, dispatcher, ticker, clock):
    return SessionTimer(ledger, lambda: wage, dispatcher, ticker=ticker, clock=clock)
