"""In-memory remediation plan store.

Holds at most one plan per incident. Plans are immutable values; every change
replaces the entry, so readers always see a whole plan and never need a lock.

Writers that read-modify-write a plan (the executor) hold the per-incident
``asyncio.Lock`` from :meth:`RemediationPlanStore.lock` for the whole cycle.
There is no global lock: different incidents never block each other.

Finished plans (all steps completed, or one failed) are evicted once
``retention`` has elapsed since ``completed_at``.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from incident_core_lib.config.settings import Settings, get_settings
from incident_core_lib.models.remediation import (
    RemediationPlan,
    RemediationProgress,
    RemediationStep,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RemediationPlanStore:
    """
    Shared plan storage.

    Args:
        retention: How long a finished plan stays queryable
            (default: ``plan_retention_seconds`` from settings)
        clock: Returns the current time; injectable for tests
        settings: Settings to read defaults from (default: global settings)
    """

    def __init__(
        self,
        retention: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utc_now,
        settings: Optional[Settings] = None,
    ):
        if retention is None:
            retention = (settings or get_settings()).plan_retention
        self.retention = retention
        self.clock = clock
        self._plans: Dict[int, RemediationPlan] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def lock(self, incident_id: int) -> asyncio.Lock:
        """Per-incident lock for read-modify-write cycles."""
        lock = self._locks.get(incident_id)
        if lock is None:
            lock = self._locks.setdefault(incident_id, asyncio.Lock())
        return lock

    def create_plan(
        self,
        incident_id: int,
        steps: List[RemediationStep],
        diagnosis_id: Optional[int] = None,
    ) -> RemediationPlan:
        """
        Store a fresh plan for the incident, replacing any previous one.

        Steps are reset to PENDING with no outcome. A plan without steps is
        finished as soon as it is created.

        Raises:
            ValueError: If step ids are not unique
        """
        self.purge_expired()
        now = self.clock()
        plan = RemediationPlan(
            incident_id=incident_id,
            steps=[step.reset() for step in steps],
            diagnosis_id=diagnosis_id,
            created_at=now,
            # Nothing to run: finished on creation, so retention applies
            completed_at=None if steps else now,
        )
        if incident_id in self._plans:
            logger.info(f"Replacing remediation plan for incident {incident_id}")
        self._plans[incident_id] = plan
        logger.info(f"Remediation plan created for incident {incident_id} with {len(plan.steps)} steps")
        return plan

    def get_plan(self, incident_id: int) -> Optional[RemediationPlan]:
        self._evict_if_expired(incident_id)
        return self._plans.get(incident_id)

    def get_progress(self, incident_id: int) -> Optional[RemediationProgress]:
        plan = self.get_plan(incident_id)
        if plan is None:
            return None
        return RemediationProgress.of(plan)

    def replace(self, plan: RemediationPlan) -> None:
        """Atomically swap in a new version of a plan."""
        self._plans[plan.incident_id] = plan

    def purge_expired(self) -> List[int]:
        """Evict every expired plan and return the evicted incident ids."""
        evicted = [
            incident_id for incident_id, plan in list(self._plans.items())
            if self._is_expired(plan)
        ]
        for incident_id in evicted:
            self._evict(incident_id)
        if evicted:
            logger.debug(f"Evicted expired remediation plans: {evicted}")
        return evicted

    def _is_expired(self, plan: RemediationPlan) -> bool:
        if plan.completed_at is None or not plan.is_finished:
            return False
        return self.clock() - plan.completed_at >= self.retention

    def _evict_if_expired(self, incident_id: int) -> None:
        plan = self._plans.get(incident_id)
        if plan is not None and self._is_expired(plan):
            self._evict(incident_id)

    def _evict(self, incident_id: int) -> None:
        self._plans.pop(incident_id, None)
        lock = self._locks.get(incident_id)
        if lock is not None and not lock.locked():
            del self._locks[incident_id]

    def __len__(self) -> int:
        return len(self._plans)
