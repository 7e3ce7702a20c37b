# plans.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List

from domain import CertificationPlan, CertificationStatus, ROIResult, validate_plan
from errors import NotFoundError
from repository import KeyValueStore, StorageKeys, load_plans, save_plans
from services import calculate_roi

logger = logging.getLogger(__name__)


class CertificationPlanBook:
    """CRUD over certification plans, backed by the key-value store."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock
        self._plans: List[CertificationPlan] = []

    @property
    def plans(self) -> tuple[CertificationPlan, ...]:
        return tuple(self._plans)

    def load(self) -> List[CertificationPlan]:
        self._plans = load_plans(self.store)
        return list(self._plans)

    def _index(self, plan_id: str) -> int:
        for i, p in enumerate(self._plans):
            if p.id == plan_id:
                return i
        raise NotFoundError(plan_id)

    def get(self, plan_id: str) -> CertificationPlan:
        return self._plans[self._index(plan_id)]

    def create(
        self,
        name: str,
        cost: float,
        study_hours: int,
        company_salary_increase: float,
        transfer_salary_increase: float,
        target_date: datetime,
    ) -> CertificationPlan:
        """New plan in `planning` status."""
        plan = CertificationPlan.new(
            name=name.strip(),
            cost=cost,
            study_hours=study_hours,
            company_salary_increase=company_salary_increase,
            transfer_salary_increase=transfer_salary_increase,
            target_date=target_date,
            created_at=self.clock(),
        )
        return self.add(plan)

    def add(self, plan: CertificationPlan) -> CertificationPlan:
        validate_plan(plan)
        self._plans.append(plan)
        save_plans(self.store, self._plans)
        logger.info("Certification plan added: %s", plan.name)
        return plan

    def update(self, plan: CertificationPlan) -> CertificationPlan:
        i = self._index(plan.id)
        validate_plan(plan)
        self._plans[i] = plan
        save_plans(self.store, self._plans)
        logger.info("Certification plan updated: %s", plan.name)
        return plan

    def set_status(self, plan_id: str, status: CertificationStatus) -> CertificationPlan:
        plan = self.get(plan_id).with_status(status, self.clock())
        return self.update(plan)

    def remove(self, plan_id: str) -> None:
        i = self._index(plan_id)
        removed = self._plans.pop(i)
        save_plans(self.store, self._plans)
        logger.info("Certification plan removed: %s", removed.name)

    def evaluate(self, plan_id: str) -> ROIResult:
        return calculate_roi(self.get(plan_id))

    def evaluate_all(self) -> List[ROIResult]:
        return [calculate_roi(p) for p in self._plans]

    def remove_all(self) -> bool:
        self.store.remove(StorageKeys.CERTIFICATION_PLANS)
        self._plans = []
        return True
