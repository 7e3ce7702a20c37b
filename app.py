# app.py
# -----------------------------------------------
# WorkValue: application context (composition root)
# -----------------------------------------------
# Wires the store, services and timer explicitly; the UI layer receives a
# WorkValueApp instead of reaching for global state.
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from config import AppConfig, configure_logging
from domain import LedgerSummary, Period, WageConfig
from ledger import SessionLedger
from notifications import LoggingNotificationGateway, NotificationDispatcher, NotificationGateway
from plans import CertificationPlanBook
from repository import KeyValueStore
from services import WageCalculator, WageSettingsService
from timer import SessionTimer, ThreadTicker, Ticker

logger = logging.getLogger(__name__)


class WorkValueApp:
    def __init__(
        self,
        store: KeyValueStore,
        gateway: NotificationGateway | None = None,
        ticker: Ticker | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.clock = clock
        self.wage_settings = WageSettingsService(store)
        self.notifier = NotificationDispatcher(gateway or LoggingNotificationGateway(), store)
        self.ledger = SessionLedger(store, clock=clock)
        self.plans = CertificationPlanBook(store, clock=clock)
        self.timer = SessionTimer(
            self.ledger,
            wage_source=lambda: self.wage_settings.wage,
            notifier=self.notifier,
            ticker=ticker,
            calculator=WageCalculator(),
            clock=clock,
        )

    @property
    def wage(self) -> WageConfig:
        return self.wage_settings.wage

    def initialize(self) -> None:
        """Loads every persisted record and resumes an in-flight session."""
        self.wage_settings.load()
        self.notifier.load()
        self.ledger.load()
        self.plans.load()
        self.timer.resume()
        logger.info("WorkValue initialized (%d sessions, %d plans)",
                    len(self.ledger.history), len(self.plans.plans))

    def today(self) -> LedgerSummary:
        return self.ledger.aggregate(self.ledger.todays_sessions())

    def summary(self, period: Period) -> LedgerSummary:
        return self.ledger.summarize(period)

    def reset_all_data(self) -> bool:
        """Ends an active session as paid, then restores every default and wipes stored records."""
        if self.timer.is_working:
            self.timer.end_work()
        self.wage_settings.reset()
        self.ledger.remove_all()
        self.plans.remove_all()
        self.notifier.reset_settings()
        logger.info("All data reset")
        return True

    def shutdown(self) -> None:
        self.timer.shutdown()


def create_app(
    config: AppConfig | None = None,
    gateway: NotificationGateway | None = None,
    ticker: Ticker | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> WorkValueApp:
    config = config or AppConfig.from_env()
    configure_logging(config.log_level)
    store = KeyValueStore(config.database_url, echo=config.echo_sql)
    app = WorkValueApp(
        store,
        gateway=gateway,
        ticker=ticker or ThreadTicker(config.tick_seconds),
        clock=clock,
    )
    app.initialize()
    return app
