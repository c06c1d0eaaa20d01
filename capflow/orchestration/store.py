"""
In-memory plan store.

Plans are registered by id when built, looked up by the executor, and removed
either explicitly once a request finishes or by reaping terminal plans older
than the store's TTL. Independent runs share one store without sharing plans.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from ..errors import PlanNotFound
from ..models import Plan, utcnow

logger = logging.getLogger(__name__)

DEFAULT_PLAN_TTL = 300.0


class PlanStore:
    def __init__(self, ttl: Optional[float] = DEFAULT_PLAN_TTL):
        """
        Args:
            ttl: Seconds a terminal plan is kept before ``reap`` drops it;
                None keeps terminal plans until discarded
        """
        if ttl is not None and ttl < 0:
            raise ValueError("ttl must be non-negative")
        self.ttl = ttl
        self._plans: Dict[str, Plan] = {}

    def add(self, plan: Plan) -> Plan:
        self._plans[plan.id] = plan
        return plan

    def get(self, plan_id: str) -> Plan:
        """
        Raises:
            PlanNotFound: If no plan with this id is stored
        """
        plan = self._plans.get(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)
        return plan

    def find(self, plan_id: str) -> Optional[Plan]:
        return self._plans.get(plan_id)

    def discard(self, plan_id: str) -> Optional[Plan]:
        return self._plans.pop(plan_id, None)

    def plan_ids(self) -> List[str]:
        return list(self._plans)

    def __contains__(self, plan_id: str) -> bool:
        return plan_id in self._plans

    def __len__(self) -> int:
        return len(self._plans)

    def reap(self, max_age: Optional[float] = None) -> List[str]:
        """
        Remove terminal plans that finished at least ``max_age`` seconds ago.

        Args:
            max_age: Age threshold in seconds (defaults to the store's TTL)

        Returns:
            Ids of the removed plans
        """
        max_age = self.ttl if max_age is None else max_age
        if max_age is None:
            return []

        cutoff = utcnow() - timedelta(seconds=max_age)
        expired = [
            plan_id
            for plan_id, plan in list(self._plans.items())
            if plan.status.is_terminal
            and (plan.completed_at is None or plan.completed_at <= cutoff)
        ]

        for plan_id in expired:
            self._plans.pop(plan_id, None)

        if expired:
            logger.debug("Reaped %d terminal plans", len(expired))
        return expired
