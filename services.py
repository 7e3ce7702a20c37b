# services.py
from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, Tuple

from domain import (
    CertificationPlan,
    EarningsBreakdown,
    OvertimeClassification,
    ROIRating,
    ROIResult,
    WageConfig,
    WorkSession,
)
from errors import NotWorkingError
from repository import KeyValueStore, StorageKeys, load_wage_config, save_wage_config

logger = logging.getLogger(__name__)


class WageCalculator:
    """Business rules for turning worked minutes into regular / overtime pay."""

    def calculate_total_minutes(self, start: datetime, end: datetime) -> int:
        """Whole minutes between start and end (never negative)."""
        return max(0, int((end - start).total_seconds() // 60))

    def partition(
        self,
        total_minutes: int,
        scheduled_minutes: int,
        hourly_wage: float,
        overtime_multiplier: float,
        classification: OvertimeClassification = OvertimeClassification.PAID,
    ) -> EarningsBreakdown:
        """Splits total minutes into regular and (paid or service) overtime."""
        classification = OvertimeClassification(classification)
        minute_wage = hourly_wage / 60

        if total_minutes <= scheduled_minutes:
            return EarningsBreakdown(
                regular_minutes=total_minutes,
                regular_income=total_minutes * minute_wage,
            )

        regular_income = scheduled_minutes * minute_wage
        extra_minutes = total_minutes - scheduled_minutes
        extra_amount = extra_minutes * minute_wage * overtime_multiplier
        if classification is OvertimeClassification.SERVICE:
            return EarningsBreakdown(
                regular_minutes=scheduled_minutes,
                service_overtime_minutes=extra_minutes,
                regular_income=regular_income,
                service_overtime_loss=extra_amount,
            )
        return EarningsBreakdown(
            regular_minutes=scheduled_minutes,
            overtime_minutes=extra_minutes,
            regular_income=regular_income,
            overtime_income=extra_amount,
        )

    def complete_session(
        self,
        session: WorkSession,
        end_time: datetime,
        classification: OvertimeClassification = OvertimeClassification.PAID,
    ) -> WorkSession:
        """Returns the completed copy of an active session."""
        if not session.is_active:
            raise NotWorkingError()
        classification = OvertimeClassification(classification)
        total = self.calculate_total_minutes(session.start_time, end_time)
        b = self.partition(
            total,
            session.scheduled_daily_minutes,
            session.hourly_wage,
            session.overtime_multiplier,
            classification,
        )
        return replace(
            session,
            end_time=end_time,
            regular_minutes=b.regular_minutes,
            overtime_minutes=b.overtime_minutes,
            service_overtime_minutes=b.service_overtime_minutes,
            regular_income=b.regular_income,
            overtime_income=b.overtime_income,
            service_overtime_loss=b.service_overtime_loss,
            is_service_overtime=classification is OvertimeClassification.SERVICE,
        )

    def current_earnings(self, session: WorkSession, now: datetime) -> float:
        """Optimistic live figure: overtime so far is assumed to be paid."""
        total = self.calculate_total_minutes(session.start_time, now)
        return self.partition(
            total,
            session.scheduled_daily_minutes,
            session.hourly_wage,
            session.overtime_multiplier,
        ).total_income

    def calculate_weekly_overtime(self, sessions: Iterable[WorkSession]) -> Dict[Tuple[int, int], int]:
        """
        Aggregates overtime minutes (paid and service) per ISO week.
        Returns dict {(year, week): minutes}.
        """
        weekly: Dict[Tuple[int, int], int] = {}
        for s in sessions:
            key = s.iso_year_week
            weekly[key] = weekly.get(key, 0) + s.overtime_minutes + s.service_overtime_minutes
        return weekly


# =========================
# Certification ROI
# =========================
def rate_investment(roi: float, study_wage: float) -> ROIRating:
    """Tiers are checked top-down; a failed wage floor drops to the next tier."""
    if roi <= 1.0 and study_wage >= 3000:
        return ROIRating.EXCELLENT
    elif roi <= 2.0 and study_wage >= 2000:
        return ROIRating.GOOD
    elif roi <= 3.0 and study_wage >= 1000:
        return ROIRating.FAIR
    else:
        return ROIRating.POOR


def calculate_roi(plan: CertificationPlan) -> ROIResult:
    company_annual = plan.company_salary_increase * 12
    transfer_annual = plan.transfer_salary_increase * 12

    company_roi = plan.cost / company_annual if company_annual > 0 else math.inf
    transfer_roi = plan.cost / transfer_annual if transfer_annual > 0 else math.inf

    company_wage = company_annual / plan.study_hours if plan.study_hours > 0 else 0.0
    transfer_wage = transfer_annual / plan.study_hours if plan.study_hours > 0 else 0.0

    return ROIResult(
        plan_id=plan.id,
        company_annual_increase=company_annual,
        transfer_annual_increase=transfer_annual,
        company_roi=company_roi,
        transfer_roi=transfer_roi,
        company_study_wage=company_wage,
        transfer_study_wage=transfer_wage,
        company_rating=rate_investment(company_roi, company_wage),
        transfer_rating=rate_investment(transfer_roi, transfer_wage),
    )


# =========================
# Wage settings flow
# =========================
class WageSettingsService:
    """Loads, edits and persists the wage configuration.

    Keeps monthly and hourly salary consistent with the monthly hours when
    one of them is edited.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._wage = WageConfig.default()

    @property
    def wage(self) -> WageConfig:
        return self._wage

    def load(self) -> WageConfig:
        stored = load_wage_config(self.store)
        self._wage = stored if stored is not None else WageConfig.default()
        return self._wage

    def update(self, **changes) -> WageConfig:
        new = self._wage.update(**changes)
        if new != self._wage:
            save_wage_config(self.store, new)
            self._wage = new
            logger.info("Wage settings updated: %s", ", ".join(sorted(changes)))
        return self._wage

    def update_monthly_salary(self, monthly_salary: float) -> WageConfig:
        return self.update(
            monthly_salary=monthly_salary,
            hourly_salary=monthly_salary / self._wage.monthly_work_hours,
        )

    def update_hourly_salary(self, hourly_salary: float) -> WageConfig:
        return self.update(
            hourly_salary=hourly_salary,
            monthly_salary=hourly_salary * self._wage.monthly_work_hours,
        )

    def update_monthly_work_hours(self, monthly_work_hours: int) -> WageConfig:
        if monthly_work_hours <= 0:
            # let WageConfig report the range error
            return self.update(monthly_work_hours=monthly_work_hours)
        return self.update(
            monthly_work_hours=monthly_work_hours,
            hourly_salary=self._wage.monthly_salary / monthly_work_hours,
        )

    def reset(self) -> WageConfig:
        self.store.remove(StorageKeys.WAGE_CONFIG)
        self._wage = WageConfig.default()
        return self._wage
