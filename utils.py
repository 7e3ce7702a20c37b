# utils.py
from __future__ import annotations

import math
from typing import Iterable

import pandas as pd

from domain import CertificationPlan, WorkSession
from services import calculate_roi

SESSION_COLUMNS = [
    "Date", "ISO Week", "Start", "End", "Regular (min)", "Overtime (min)",
    "Service OT (min)", "Income", "Service loss",
]
SUMMARY_COLUMNS = ["Sessions", "Minutes", "Overtime (min)", "Income", "Service loss"]


def format_minutes(minutes: int) -> str:
    minutes = max(0, int(minutes))
    h, m = divmod(minutes, 60)
    if h == 0:
        return f"{m} min"
    if m == 0:
        return f"{h} h"
    return f"{h} h {m} min"


def format_currency(amount: float) -> str:
    """Whole yen with thousands separators (fractions are truncated)."""
    if math.isinf(amount):
        return "∞"
    return f"¥{int(amount):,}"


def sessions_to_dataframe(sessions: Iterable[WorkSession]) -> pd.DataFrame:
    rows = []
    for s in sessions:
        year, week = s.iso_year_week
        rows.append({
            "Date": s.start_time.date().isoformat(),
            "ISO Week": f"{year}-W{week:02d}",
            "Start": s.start_time.strftime("%H:%M"),
            "End": s.end_time.strftime("%H:%M") if s.end_time else "",
            "Regular (min)": s.regular_minutes,
            "Overtime (min)": s.overtime_minutes,
            "Service OT (min)": s.service_overtime_minutes,
            "Income": s.total_income,
            "Service loss": s.total_loss,
        })
    df = pd.DataFrame(rows, columns=SESSION_COLUMNS)
    if not df.empty:
        df = df.sort_values(["Date", "Start"], ascending=False).reset_index(drop=True)
    return df


def _summarize(df: pd.DataFrame, key: str) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS, index=pd.Index([], name=key))
    df = df.assign(**{
        "Minutes": df["Regular (min)"] + df["Overtime (min)"] + df["Service OT (min)"],
        "Overtime (min)": df["Overtime (min)"] + df["Service OT (min)"],
    })
    out = df.groupby(key).agg(**{
        "Sessions": ("Start", "count"),
        "Minutes": ("Minutes", "sum"),
        "Overtime (min)": ("Overtime (min)", "sum"),
        "Income": ("Income", "sum"),
        "Service loss": ("Service loss", "sum"),
    })
    return out.sort_index(ascending=False)


def daily_summary(sessions: Iterable[WorkSession]) -> pd.DataFrame:
    """One row per calendar day (newest first)."""
    return _summarize(sessions_to_dataframe(sessions), "Date")


def weekly_summary(sessions: Iterable[WorkSession]) -> pd.DataFrame:
    """One row per ISO week (newest first)."""
    return _summarize(sessions_to_dataframe(sessions), "ISO Week")


def plans_to_dataframe(plans: Iterable[CertificationPlan]) -> pd.DataFrame:
    rows = []
    for p in plans:
        roi = calculate_roi(p)
        rows.append({
            "Name": p.name,
            "Status": p.status.value,
            "Cost": p.cost,
            "Study hours": p.study_hours,
            "Company ROI (years)": roi.company_roi,
            "Company study wage": roi.company_study_wage,
            "Company rating": roi.company_rating.value,
            "Transfer ROI (years)": roi.transfer_roi,
            "Transfer study wage": roi.transfer_study_wage,
            "Transfer rating": roi.transfer_rating.value,
            "Target": p.target_date.date().isoformat(),
        })
    return pd.DataFrame(rows)
