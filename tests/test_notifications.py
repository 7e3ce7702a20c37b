"""Tests for notifications.py - payloads, gateway, dispatcher toggles."""

import logging

import pytest

from domain import NotificationSettings
from errors import ValidationError
from notifications import (
    LUNCH_ID,
    WORK_END_ID,
    LoggingNotificationGateway,
    NotificationDispatcher,
)
from repository import StorageKeys, load_notification_settings

from conftest import FailingGateway, RecordingGateway


class TestGatewayPayloads:

    def test_work_end_without_loss(self):
        g = RecordingGateway()
        g.on_work_ended(15000.0, 0.0)
        n = g.sent[0]
        assert n.id == WORK_END_ID
        assert n.category == "work_end"
        assert "¥15,000" in n.body
        assert "loss" not in n.body.lower()

    def test_work_end_with_loss(self):
        g = RecordingGateway()
        g.on_work_ended(15000.0, 4687.5)
        n = g.sent[0]
        assert "Service overtime loss: ¥4,687" in n.body
        assert n.payload == "work_end:15000.0:4687.5"

    def test_lunch(self):
        g = RecordingGateway()
        g.on_lunch_milestone(5625.0)
        assert g.sent[0].id == LUNCH_ID
        assert "¥5,625" in g.sent[0].body

    def test_logging_gateway(self, caplog):
        with caplog.at_level(logging.INFO, logger="notifications"):
            LoggingNotificationGateway().on_service_overtime_warning(4687.5)
        assert "[overtime_warning]" in caplog.text
        assert "¥4,687" in caplog.text


class TestDispatcher:

    def test_all_events_enabled_by_default(self):
        g = RecordingGateway()
        d = NotificationDispatcher(g)
        assert d.work_started()
        assert d.break_reminder(1875.0)
        assert d.lunch_milestone(5625.0)
        assert d.work_ended(15000.0, 0.0)
        assert d.service_overtime_warning(100.0)
        assert g.categories == ["work_start", "break_reminder", "lunch", "work_end", "overtime_warning"]

    def test_individual_toggles(self, store):
        g = RecordingGateway()
        d = NotificationDispatcher(g, store)
        d.update_settings(lunch=False, work_end=False)
        assert not d.lunch_milestone(5625.0)
        assert not d.work_ended(1.0, 0.0)
        assert d.break_reminder(1.0)
        assert g.categories == ["break_reminder"]

    def test_master_switch(self):
        g = RecordingGateway()
        d = NotificationDispatcher(g)
        d.update_settings(enabled=False)
        assert not d.work_started()
        assert not d.service_overtime_warning(1.0)
        assert g.sent == []

    def test_settings_persist(self, store):
        NotificationDispatcher(RecordingGateway(), store).update_settings(break_reminder=False)
        assert load_notification_settings(store) == NotificationSettings(break_reminder=False)
        d = NotificationDispatcher(RecordingGateway(), store)
        assert d.load().break_reminder is False
        assert d.reset_settings() == NotificationSettings()

    def test_unknown_setting_rejected(self, store):
        d = NotificationDispatcher(RecordingGateway(), store)
        with pytest.raises(ValidationError) as exc:
            d.update_settings(lunch=False, weekly_digest=True)
        assert exc.value.field == "weekly_digest"
        assert d.settings == NotificationSettings()
        assert not store.contains(StorageKeys.NOTIFICATION_SETTINGS)

    def test_non_boolean_setting_rejected(self):
        d = NotificationDispatcher(RecordingGateway())
        with pytest.raises(ValidationError):
            d.update_settings(enabled="no")
        assert d.settings.enabled is True

    def test_gateway_failure_is_logged_not_raised(self, caplog):
        d = NotificationDispatcher(FailingGateway())
        with caplog.at_level(logging.WARNING, logger="notifications"):
            assert d.work_ended(1.0, 0.0) is False
        assert "Notification work_ended failed" in caplog.text
