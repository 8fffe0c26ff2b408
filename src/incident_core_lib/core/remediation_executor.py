"""Remediation plan execution.

Runs plan steps through an ``ActionExecutor`` and records every status change
in the ``RemediationPlanStore``. Each step goes PENDING → IN_PROGRESS →
COMPLETED | FAILED, and the IN_PROGRESS state is stored before the action runs
so pollers can observe it.
"""

import asyncio
import logging
import re
from typing import List, Optional

from incident_core_lib.common.result import Failure, Result, Success
from incident_core_lib.config.settings import Settings, get_settings
from incident_core_lib.core.actions import ActionExecutor
from incident_core_lib.core.plan_store import RemediationPlanStore
from incident_core_lib.models.diagnosis import Diagnosis
from incident_core_lib.models.remediation import (
    ExecutionError,
    ManualStep,
    RemediationAction,
    RemediationProgress,
    RemediationStep,
    RestartService,
    ScaleCluster,
    StepStatus,
)

logger = logging.getLogger(__name__)

NO_ACTION_OUTCOME = "Step completed (no automated action)"

_RESTART_PATTERN = re.compile(
    r"restart\s+(?:the\s+)?(?:service\s+)?(?P<name>[\w\-/]+(?:\.[\w\-/]+)*)(?:\s+service)?\.?",
    re.IGNORECASE,
)
_SCALE_PATTERN = re.compile(
    r"scale\s+(?:the\s+)?(?:cluster\s+)?(?P<cluster>[\w\-/]+(?:\.[\w\-/]+)*)\s+to\s+(?P<count>\d+)(?:\s+nodes?)?\.?",
    re.IGNORECASE,
)


class CancellationToken:
    """Cooperative cancellation flag, checked between steps."""

    def __init__(self):
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "Cancelled by operator") -> None:
        self._reason = reason

    @property
    def is_cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason


def derive_action(text: str) -> RemediationAction:
    """
    Derive an executable action from a free-text step.

    Recognised forms (whole step, case-insensitive):
    - "restart <service>" → RestartService
    - "scale <cluster> to <n>" → ScaleCluster (n > 0)

    Anything else becomes a ManualStep carrying the text.
    """
    stripped = text.strip()

    match = _RESTART_PATTERN.fullmatch(stripped)
    if match:
        return RestartService(service_name=match.group("name"))

    match = _SCALE_PATTERN.fullmatch(stripped)
    if match and int(match.group("count")) > 0:
        return ScaleCluster(cluster_id=match.group("cluster"), desired_capacity=int(match.group("count")))

    return ManualStep(instructions=stripped)


def build_plan_steps(diagnosis: Diagnosis) -> List[RemediationStep]:
    """Structured steps when the diagnosis has them, else one step per text step."""
    if diagnosis.structured_steps:
        return list(diagnosis.structured_steps)
    return [
        RemediationStep(id=f"step-{number}", description=text, action=derive_action(text))
        for number, text in enumerate(diagnosis.steps, start=1)
    ]


class RemediationExecutor:
    """
    Executes remediation plans.

    Args:
        store: Shared plan store
        action_executor: Performs the individual actions
        step_delay: Extra latency per step, in seconds
            (default: ``remediation_step_delay_seconds`` from settings)
        settings: Settings to read defaults from (default: global settings)
    """

    def __init__(
        self,
        store: RemediationPlanStore,
        action_executor: ActionExecutor,
        step_delay: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        if step_delay is None:
            step_delay = (settings or get_settings()).remediation_step_delay_seconds
        self.store = store
        self.action_executor = action_executor
        self.step_delay = step_delay

    async def execute_step(
        self,
        incident_id: int,
        step_id: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> Result[ExecutionError, RemediationStep]:
        """
        Execute one step of the incident's plan.

        PENDING and FAILED steps may run; a COMPLETED step is rejected.
        An action failure is not an error of this call: the step is returned
        with status FAILED and the failure as its outcome.
        """
        async with self.store.lock(incident_id):
            return await self._run_step(incident_id, step_id, cancellation)

    async def execute_all_steps(
        self,
        incident_id: int,
        diagnosis: Diagnosis,
        cancellation: Optional[CancellationToken] = None,
    ) -> Result[ExecutionError, RemediationProgress]:
        """
        Build a plan from the diagnosis and run its steps in order.

        Stops at the first failed step (later steps stay PENDING). The plan
        stays in the store for progress queries.
        """
        async with self.store.lock(incident_id):
            plan = self.store.create_plan(
                incident_id,
                build_plan_steps(diagnosis),
                diagnosis_id=diagnosis.id or None,
            )

            for step in plan.steps:
                result = await self._run_step(incident_id, step.id, cancellation)
                if result.is_failure:
                    return result
                if result.value.status == StepStatus.FAILED:
                    logger.warning(
                        f"Remediation for incident {incident_id} stopped at step {step.id}: "
                        f"{result.value.outcome}"
                    )
                    break

            progress = self.store.get_progress(incident_id)
            if progress is None:
                return Failure(ExecutionError.plan_not_found(incident_id))

            logger.info(f"Remediation for incident {incident_id} finished with status {progress.status.value}")
            return Success(progress)

    async def _run_step(
        self,
        incident_id: int,
        step_id: str,
        cancellation: Optional[CancellationToken],
    ) -> Result[ExecutionError, RemediationStep]:
        """Step lifecycle. Caller holds the incident lock."""
        plan = self.store.get_plan(incident_id)
        if plan is None:
            logger.warning(f"No remediation plan for incident {incident_id}")
            return Failure(ExecutionError.plan_not_found(incident_id))

        index = plan.index_of(step_id)
        if index is None:
            logger.warning(f"Step {step_id} not found in plan for incident {incident_id}")
            return Failure(ExecutionError.step_not_found(incident_id, step_id))

        step = plan.steps[index]
        if step.status == StepStatus.COMPLETED:
            logger.warning(f"Step {step_id} of incident {incident_id} already completed")
            return Failure(ExecutionError.already_completed(incident_id, step_id))

        if cancellation is not None and cancellation.is_cancelled:
            self._finish(plan, index, step, StepStatus.FAILED, f"Cancelled: {cancellation.reason}")
            logger.info(f"Remediation for incident {incident_id} cancelled before step {step_id}")
            return Failure(ExecutionError.cancelled(incident_id, step_id, cancellation.reason))

        running = step.model_copy(update={"status": StepStatus.IN_PROGRESS, "outcome": None})
        plan = plan.with_step(index, running).model_copy(update={
            "started_at": plan.started_at or self.store.clock(),
            "completed_at": None,
        })
        self.store.replace(plan)
        logger.info(f"Executing remediation step {step_id} for incident {incident_id}: {step.description}")

        try:
            if self.step_delay > 0:
                await asyncio.sleep(self.step_delay)

            if step.action is None:
                status, outcome = StepStatus.COMPLETED, NO_ACTION_OUTCOME
            else:
                try:
                    status, outcome = StepStatus.COMPLETED, await self.action_executor.execute(step.action)
                except Exception as e:
                    logger.warning(f"Action for step {step_id} of incident {incident_id} failed: {e}")
                    status, outcome = StepStatus.FAILED, f"Action failed: {str(e) or type(e).__name__}"
        except asyncio.CancelledError:
            self._finish(plan, index, running, StepStatus.FAILED, "Cancelled: task cancelled")
            raise

        return Success(self._finish(plan, index, running, status, outcome))

    def _finish(self, plan, index: int, step: RemediationStep, status: StepStatus, outcome: str) -> RemediationStep:
        """Store the step's final state; stamps completed_at once the plan is finished."""
        finished = step.model_copy(update={"status": status, "outcome": outcome})
        updated = plan.with_step(index, finished)
        if updated.is_finished:
            updated = updated.model_copy(update={"completed_at": self.store.clock()})
        self.store.replace(updated)
        return finished
