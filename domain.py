# domain.py
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum

import config
from errors import ValidationError


class OvertimeClassification(str, Enum):
    """How the minutes past the daily schedule are paid."""
    PAID = "paid"
    SERVICE = "service"  # unpaid ("service") overtime


class SessionState(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    SERVICE_OVERTIME_COMPLETED = "service_overtime_completed"


class CertificationStatus(str, Enum):
    PLANNING = "planning"
    STUDYING = "studying"
    ACQUIRED = "acquired"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class ROIRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


def _check_range(field: str, value: float, low: float, high: float) -> None:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field, f"expected a number, got {value!r}")
    if math.isnan(value) or value < low or value > high:
        raise ValidationError(field, f"{value} is outside {low}..{high}")


@dataclass(frozen=True)
class WageConfig:
    """Salary, overtime multiplier and scheduled working hours."""
    monthly_salary: float
    hourly_salary: float
    overtime_multiplier: float
    monthly_work_hours: int
    daily_work_hours: int
    start_hour: int
    end_hour: int

    def __post_init__(self):
        _check_range("monthly_salary", self.monthly_salary,
                     config.MIN_MONTHLY_SALARY, config.MAX_MONTHLY_SALARY)
        _check_range("hourly_salary", self.hourly_salary,
                     config.MIN_HOURLY_SALARY, config.MAX_HOURLY_SALARY)
        _check_range("overtime_multiplier", self.overtime_multiplier,
                     config.MIN_OVERTIME_MULTIPLIER, config.MAX_OVERTIME_MULTIPLIER)
        _check_range("monthly_work_hours", self.monthly_work_hours,
                     config.MIN_MONTHLY_WORK_HOURS, config.MAX_MONTHLY_WORK_HOURS)
        _check_range("daily_work_hours", self.daily_work_hours,
                     config.MIN_DAILY_WORK_HOURS, config.MAX_DAILY_WORK_HOURS)
        _check_range("start_hour", self.start_hour, 0, 23)
        _check_range("end_hour", self.end_hour, 0, 23)
        for name in ("monthly_work_hours", "daily_work_hours", "start_hour", "end_hour"):
            if int(getattr(self, name)) != getattr(self, name):
                raise ValidationError(name, "must be a whole number")

    @classmethod
    def default(cls) -> WageConfig:
        return cls(
            monthly_salary=config.DEFAULT_MONTHLY_SALARY,
            hourly_salary=config.DEFAULT_HOURLY_SALARY,
            overtime_multiplier=config.DEFAULT_OVERTIME_MULTIPLIER,
            monthly_work_hours=config.DEFAULT_MONTHLY_WORK_HOURS,
            daily_work_hours=config.DEFAULT_DAILY_WORK_HOURS,
            start_hour=config.DEFAULT_START_HOUR,
            end_hour=config.DEFAULT_END_HOUR,
        )

    def update(self, **changes) -> WageConfig:
        """Returns a validated copy; the current instance is left untouched."""
        known = {f.name for f in fields(self)}
        for name in changes:
            if name not in known:
                raise ValidationError(name, "unknown wage setting")
        return replace(self, **changes)

    @property
    def scheduled_daily_minutes(self) -> int:
        return int(self.daily_work_hours) * 60

    @property
    def minute_wage(self) -> float:
        return self.hourly_salary / 60


@dataclass(frozen=True)
class EarningsBreakdown:
    """Minute/income partition of one session."""
    regular_minutes: int = 0
    overtime_minutes: int = 0
    service_overtime_minutes: int = 0
    regular_income: float = 0.0
    overtime_income: float = 0.0
    service_overtime_loss: float = 0.0

    @property
    def total_minutes(self) -> int:
        return self.regular_minutes + self.overtime_minutes + self.service_overtime_minutes

    @property
    def total_income(self) -> float:
        # the service overtime loss is pay foregone, never income
        return self.regular_income + self.overtime_income


@dataclass(frozen=True)
class WorkSession:
    """A single timed work interval plus its derived earnings.

    Wage, multiplier and schedule are captured when the session starts so
    later edits of the wage settings never alter it.
    """
    id: str
    start_time: datetime
    scheduled_daily_minutes: int
    hourly_wage: float
    overtime_multiplier: float
    end_time: datetime | None = None
    regular_minutes: int = 0
    overtime_minutes: int = 0
    service_overtime_minutes: int = 0
    regular_income: float = 0.0
    overtime_income: float = 0.0
    service_overtime_loss: float = 0.0
    is_service_overtime: bool = False
    lunch_notified: bool = False

    @classmethod
    def start(cls, wage: WageConfig, start_time: datetime, session_id: str | None = None) -> WorkSession:
        return cls(
            id=session_id or uuid.uuid4().hex,
            start_time=start_time,
            scheduled_daily_minutes=wage.scheduled_daily_minutes,
            hourly_wage=wage.hourly_salary,
            overtime_multiplier=wage.overtime_multiplier,
        )

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def state(self) -> SessionState:
        if self.end_time is None:
            return SessionState.ACTIVE
        if self.is_service_overtime:
            return SessionState.SERVICE_OVERTIME_COMPLETED
        return SessionState.COMPLETED

    @property
    def total_minutes(self) -> int:
        return self.regular_minutes + self.overtime_minutes + self.service_overtime_minutes

    @property
    def total_income(self) -> float:
        return self.regular_income + self.overtime_income

    @property
    def total_loss(self) -> float:
        return self.service_overtime_loss

    @property
    def iso_year_week(self) -> tuple[int, int]:
        """Returns (ISO year, ISO week number) of the start day."""
        iso = self.start_time.isocalendar()
        return (iso[0], iso[1])

    def elapsed_seconds(self, now: datetime) -> int:
        end = self.end_time or now
        return max(0, int((end - self.start_time).total_seconds()))

    def elapsed_minutes(self, now: datetime) -> int:
        return self.elapsed_seconds(now) // 60

    def is_overtime(self, now: datetime) -> bool:
        return self.elapsed_minutes(now) > self.scheduled_daily_minutes


@dataclass(frozen=True)
class LiveSnapshot:
    """What the display shows on every tick while a session is active."""
    session_id: str
    elapsed_seconds: int
    current_earnings: float
    is_overtime: bool


@dataclass(frozen=True)
class LedgerSummary:
    total_income: float = 0.0
    total_work_minutes: int = 0
    total_service_loss: float = 0.0
    session_count: int = 0


@dataclass(frozen=True)
class NotificationSettings:
    """Notification toggles; `enabled` is the master switch."""
    enabled: bool = True
    break_reminder: bool = True
    lunch: bool = True
    work_end: bool = True
    overtime_warning: bool = True

    def update(self, **changes) -> NotificationSettings:
        known = {f.name for f in fields(self)}
        for name, value in changes.items():
            if name not in known:
                raise ValidationError(name, "unknown notification setting")
            if not isinstance(value, bool):
                raise ValidationError(name, f"expected a boolean, got {value!r}")
        return replace(self, **changes)


@dataclass(frozen=True)
class CertificationPlan:
    """A study/investment plan for a certification."""
    id: str
    name: str
    cost: float
    study_hours: int
    company_salary_increase: float
    transfer_salary_increase: float
    created_at: datetime
    target_date: datetime
    acquired_date: datetime | None = None
    status: CertificationStatus = CertificationStatus.PLANNING

    @classmethod
    def new(
        cls,
        name: str,
        cost: float,
        study_hours: int,
        company_salary_increase: float,
        transfer_salary_increase: float,
        target_date: datetime,
        created_at: datetime,
    ) -> CertificationPlan:
        return cls(
            id=uuid.uuid4().hex,
            name=name,
            cost=cost,
            study_hours=study_hours,
            company_salary_increase=company_salary_increase,
            transfer_salary_increase=transfer_salary_increase,
            created_at=created_at,
            target_date=target_date,
        )

    def with_status(self, status: CertificationStatus, at: datetime) -> CertificationPlan:
        """acquired_date is set exactly when the plan is acquired."""
        status = CertificationStatus(status)
        if status is CertificationStatus.ACQUIRED:
            return replace(self, status=status, acquired_date=self.acquired_date or at)
        return replace(self, status=status, acquired_date=None)


def validate_plan(plan: CertificationPlan) -> CertificationPlan:
    """Rejects plans with out-of-range fields; returns the plan unchanged."""
    name = (plan.name or "").strip()
    if not name:
        raise ValidationError("name", "must not be empty")
    if len(name) > config.MAX_PLAN_NAME_LENGTH:
        raise ValidationError("name", f"longer than {config.MAX_PLAN_NAME_LENGTH} characters")
    _check_range("cost", plan.cost, config.MIN_PLAN_COST, config.MAX_PLAN_COST)
    _check_range("study_hours", plan.study_hours, config.MIN_STUDY_HOURS, config.MAX_STUDY_HOURS)
    if int(plan.study_hours) != plan.study_hours:
        raise ValidationError("study_hours", "must be a whole number")
    _check_range("company_salary_increase", plan.company_salary_increase, 0, math.inf)
    _check_range("transfer_salary_increase", plan.transfer_salary_increase, 0, math.inf)
    if (plan.status is CertificationStatus.ACQUIRED) != (plan.acquired_date is not None):
        raise ValidationError("acquired_date", "must be set exactly when the plan is acquired")
    return plan


@dataclass(frozen=True)
class ROIResult:
    """Return on investment of a plan; ROI is years to break even."""
    plan_id: str
    company_annual_increase: float
    transfer_annual_increase: float
    company_roi: float
    transfer_roi: float
    company_study_wage: float
    transfer_study_wage: float
    company_rating: ROIRating
    transfer_rating: ROIRating
