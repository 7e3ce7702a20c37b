# notifications.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from domain import NotificationSettings
from repository import KeyValueStore, load_notification_settings, save_notification_settings
from utils import format_currency

logger = logging.getLogger(__name__)

WORK_START_ID = 1001
WORK_END_ID = 1002
LUNCH_ID = 1003
BREAK_REMINDER_ID = 1004
OVERTIME_WARNING_ID = 1005


@dataclass(frozen=True)
class Notification:
    id: int
    category: str
    title: str
    body: str
    payload: str | None = None


class NotificationGateway(ABC):
    """Delivery of local notifications. Presentation lives behind send()."""

    @abstractmethod
    def send(self, notification: Notification) -> None:
        ...

    def on_work_started(self) -> None:
        self.send(Notification(
            WORK_START_ID, "work_start", "Work started",
            "Have a good day at work!", payload="work_start",
        ))

    def on_work_ended(self, total_income: float, total_loss: float) -> None:
        body = f"Good work! You earned {format_currency(total_income)} today."
        if total_loss > 0:
            body += f"\nService overtime loss: {format_currency(total_loss)}"
        self.send(Notification(
            WORK_END_ID, "work_end", "Work ended", body,
            payload=f"work_end:{total_income}:{total_loss}",
        ))

    def on_break_reminder(self, current_earnings: float) -> None:
        self.send(Notification(
            BREAK_REMINDER_ID, "break_reminder", "Break reminder",
            f"Another hour done ({format_currency(current_earnings)} so far). How about a short break?",
            payload=f"break_reminder:{current_earnings}",
        ))

    def on_lunch_milestone(self, morning_earnings: float) -> None:
        self.send(Notification(
            LUNCH_ID, "lunch", "Lunch time",
            f"You earned {format_currency(morning_earnings)} this morning. Enjoy your lunch!",
            payload=f"lunch:{morning_earnings}",
        ))

    def on_service_overtime_warning(self, loss_amount: float) -> None:
        self.send(Notification(
            OVERTIME_WARNING_ID, "overtime_warning", "Service overtime warning",
            f"Unpaid overtime recorded.\nLoss: {format_currency(loss_amount)}",
            payload=f"overtime_warning:{loss_amount}",
        ))


class LoggingNotificationGateway(NotificationGateway):
    """Default gateway: writes every notification to the log."""

    def send(self, notification: Notification) -> None:
        logger.info("[%s] %s: %s", notification.category, notification.title,
                    notification.body.replace("\n", " | "))


class NotificationDispatcher:
    """
    Fires gateway triggers according to the user's toggles.
    Gateway failures are logged and swallowed so they never affect a session.
    """

    def __init__(self, gateway: NotificationGateway, store: KeyValueStore | None = None):
        self.gateway = gateway
        self.store = store
        self._settings = NotificationSettings()

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    def load(self) -> NotificationSettings:
        if self.store is not None:
            self._settings = load_notification_settings(self.store)
        return self._settings

    def update_settings(self, **changes) -> NotificationSettings:
        new = self._settings.update(**changes)
        if self.store is not None:
            save_notification_settings(self.store, new)
        self._settings = new
        return new

    def reset_settings(self) -> NotificationSettings:
        return self.update_settings(**vars(NotificationSettings()))

    def _dispatch(self, event: str, fn: Callable, *args) -> bool:
        try:
            fn(*args)
            return True
        except Exception:
            logger.warning("Notification %s failed; ignored", event, exc_info=True)
            return False

    def work_started(self) -> bool:
        if not self._settings.enabled:
            return False
        return self._dispatch("work_started", self.gateway.on_work_started)

    def work_ended(self, total_income: float, total_loss: float) -> bool:
        if not (self._settings.enabled and self._settings.work_end):
            return False
        return self._dispatch("work_ended", self.gateway.on_work_ended, total_income, total_loss)

    def break_reminder(self, current_earnings: float) -> bool:
        if not (self._settings.enabled and self._settings.break_reminder):
            return False
        return self._dispatch("break_reminder", self.gateway.on_break_reminder, current_earnings)

    def lunch_milestone(self, morning_earnings: float) -> bool:
        if not (self._settings.enabled and self._settings.lunch):
            return False
        return self._dispatch("lunch_milestone", self.gateway.on_lunch_milestone, morning_earnings)

    def service_overtime_warning(self, loss_amount: float) -> bool:
        if not (self._settings.enabled and self._settings.overtime_warning):
            return False
        return self._dispatch("service_overtime_warning",
                              self.gateway.on_service_overtime_warning, loss_amount)
