"""Tests for utils.py - display helpers and pandas summaries."""

from datetime import timedelta

import pytest

from domain import WorkSession
from services import WageCalculator
from utils import (
    daily_summary,
    format_currency,
    format_minutes,
    plans_to_dataframe,
    sessions_to_dataframe,
    weekly_summary,
)

from conftest import MONDAY_9AM
from test_domain import make_plan


@pytest.fixture
def sessions(wage):
    calc = WageCalculator()

    def done(start, minutes, classification="paid"):
        return calc.complete_session(WorkSession.start(wage, start),
                                     start + timedelta(minutes=minutes), classification)

    return [
        done(MONDAY_9AM, 600, "service"),
        done(MONDAY_9AM + timedelta(hours=11), 60),
        done(MONDAY_9AM + timedelta(days=7), 480),
    ]


@pytest.mark.parametrize("minutes,expected", [
    (0, "0 min"),
    (45, "45 min"),
    (120, "2 h"),
    (135, "2 h 15 min"),
    (-5, "0 min"),
])
def test_format_minutes(minutes, expected):
    assert format_minutes(minutes) == expected


def test_format_currency():
    assert format_currency(19687.5) == "¥19,687"
    assert format_currency(0) == "¥0"
    assert format_currency(float("inf")) == "∞"


def test_sessions_to_dataframe(sessions):
    df = sessions_to_dataframe(sessions)
    assert len(df) == 3
    # newest first
    assert df.loc[0, "Date"] == "2026-10-26"
    assert df.loc[1, "Start"] == "20:00"
    assert df["Service loss"].sum() == 4687.5


def test_sessions_to_dataframe_empty():
    df = sessions_to_dataframe([])
    assert df.empty
    assert "Income" in df.columns


def test_daily_summary(sessions):
    df = daily_summary(sessions)
    monday = df.loc["2026-10-19"]
    assert monday["Sessions"] == 2
    assert monday["Minutes"] == 660
    assert monday["Overtime (min)"] == 120
    assert monday["Income"] == 15000.0 + 1875.0
    assert monday["Service loss"] == 4687.5
    assert list(df.index) == ["2026-10-26", "2026-10-19"]


def test_weekly_summary(sessions):
    df = weekly_summary(sessions)
    assert list(df.index) == ["2026-W44", "2026-W43"]
    assert df.loc["2026-W44", "Income"] == 15000.0


def test_summary_of_nothing():
    df = daily_summary([])
    assert df.empty
    assert "Income" in df.columns


def test_plans_to_dataframe():
    df = plans_to_dataframe([make_plan(), make_plan(id="p2", company_salary_increase=0.0)])
    assert list(df["Company rating"]) == ["poor", "poor"]
    assert df.loc[1, "Company ROI (years)"] == float("inf")
    assert df.loc[0, "Status"] == "planning"
