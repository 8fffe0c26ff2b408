"""Remediation data models.

Key Models:
- RemediationAction: Discriminated union of executable actions
- RemediationStep: One step of a plan with its execution status and outcome
- RemediationPlan: Ordered steps for one incident, owned by the plan store
- RemediationProgress: Read-only projection of a plan for progress polling
- ExecutionError: Failure value of executor operations
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator
from typing_extensions import Annotated


# ============================================================
# Actions
# ============================================================

class RestartService(BaseModel):
    """Restart a named service."""

    type: Literal["restart_service"] = "restart_service"
    service_name: str = Field(min_length=1)

    class Config:
        frozen = True


class ScaleCluster(BaseModel):
    """Scale a cluster to a desired node count."""

    type: Literal["scale_cluster"] = "scale_cluster"
    cluster_id: str = Field(min_length=1)
    desired_capacity: int = Field(gt=0, description="Target node count, strictly positive")

    class Config:
        frozen = True


class ManualStep(BaseModel):
    """Instructions for an operator; nothing is automated."""

    type: Literal["manual_step"] = "manual_step"
    instructions: str

    class Config:
        frozen = True


RemediationAction = Annotated[
    Union[RestartService, ScaleCluster, ManualStep],
    Field(discriminator="type"),
]


# ============================================================
# Steps & Plans
# ============================================================

class StepStatus(str, Enum):
    """Execution status of a single step."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class RemediationStep(BaseModel):
    """One remediation step."""

    id: str = Field(min_length=1, description="Unique within its plan")
    description: str
    action: Optional[RemediationAction] = None
    status: StepStatus = StepStatus.PENDING
    outcome: Optional[str] = None

    class Config:
        frozen = True

    def reset(self) -> "RemediationStep":
        return self.model_copy(update={"status": StepStatus.PENDING, "outcome": None})


class RemediationPlan(BaseModel):
    """
    Ordered remediation steps for one incident.

    Treated as an immutable value: every state change produces a new plan
    that replaces the previous one in the store.
    """

    incident_id: int
    steps: List[RemediationStep] = Field(default_factory=list)
    diagnosis_id: Optional[int] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = Field(
        default=None,
        description="When the first step went IN_PROGRESS"
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        description="When the plan stopped running (all completed, or a step failed)"
    )

    @field_validator('steps')
    @classmethod
    def step_ids_unique(cls, v):
        """Step ids must be unique within a plan"""
        seen = set()
        for step in v:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            seen.add(step.id)
        return v

    class Config:
        frozen = True

    def index_of(self, step_id: str) -> Optional[int]:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None

    def with_step(self, index: int, step: RemediationStep) -> "RemediationPlan":
        """Copy of this plan with ``steps[index]`` replaced."""
        steps = list(self.steps)
        steps[index] = step
        return self.model_copy(update={"steps": steps})

    @property
    def is_finished(self) -> bool:
        """True once no step is running and every step completed, or any step failed."""
        if any(step.status == StepStatus.IN_PROGRESS for step in self.steps):
            return False
        if any(step.status == StepStatus.FAILED for step in self.steps):
            return True
        return all(step.status == StepStatus.COMPLETED for step in self.steps)


# ============================================================
# Progress projection
# ============================================================

class ExecutionStatus(str, Enum):
    """Overall execution status of a plan."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RemediationProgress(BaseModel):
    """Read-only view over a stored plan."""

    incident_id: int
    diagnosis_id: Optional[int] = None
    steps: List[RemediationStep]
    current_step_index: int = Field(ge=0)
    status: ExecutionStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def of(cls, plan: RemediationPlan) -> "RemediationProgress":
        """
        Derive progress from a plan. Pure; never mutates the plan.

        Status precedence: IN_PROGRESS, then FAILED, then COMPLETED, then
        NOT_STARTED. ``error_message`` carries the first failed outcome.
        """
        steps = plan.steps
        failed = next((step for step in steps if step.status == StepStatus.FAILED), None)

        # A running step (e.g. a retried failure) outranks an earlier failure
        if any(step.status == StepStatus.IN_PROGRESS for step in steps):
            status = ExecutionStatus.IN_PROGRESS
        elif failed is not None:
            status = ExecutionStatus.FAILED
        elif all(step.status == StepStatus.COMPLETED for step in steps):
            status = ExecutionStatus.COMPLETED
        elif all(step.status == StepStatus.PENDING for step in steps):
            status = ExecutionStatus.NOT_STARTED
        else:
            status = ExecutionStatus.IN_PROGRESS

        current = next(
            (i for i, step in enumerate(steps) if step.status != StepStatus.COMPLETED),
            len(steps),
        )

        return cls(
            incident_id=plan.incident_id,
            diagnosis_id=plan.diagnosis_id,
            steps=list(steps),
            current_step_index=current,
            status=status,
            started_at=plan.started_at,
            completed_at=plan.completed_at,
            error_message=failed.outcome if failed is not None else None,
        )


# ============================================================
# Errors
# ============================================================

class ExecutionErrorKind(str, Enum):
    PLAN_NOT_FOUND = "plan_not_found"
    STEP_NOT_FOUND = "step_not_found"
    STEP_ALREADY_COMPLETED = "step_already_completed"
    CANCELLED = "cancelled"


class ExecutionError(BaseModel):
    """Failure value of executor operations."""

    kind: ExecutionErrorKind
    incident_id: int
    step_id: Optional[str] = None
    message: str = ""

    class Config:
        frozen = True

    @classmethod
    def plan_not_found(cls, incident_id: int) -> "ExecutionError":
        return cls(
            kind=ExecutionErrorKind.PLAN_NOT_FOUND,
            incident_id=incident_id,
            message=f"No plan found for incident {incident_id}",
        )

    @classmethod
    def step_not_found(cls, incident_id: int, step_id: str) -> "ExecutionError":
        return cls(
            kind=ExecutionErrorKind.STEP_NOT_FOUND,
            incident_id=incident_id,
            step_id=step_id,
            message=f"Step {step_id} not found in plan",
        )

    @classmethod
    def already_completed(cls, incident_id: int, step_id: str) -> "ExecutionError":
        return cls(
            kind=ExecutionErrorKind.STEP_ALREADY_COMPLETED,
            incident_id=incident_id,
            step_id=step_id,
            message=f"Step {step_id} already completed",
        )

    @classmethod
    def cancelled(cls, incident_id: int, step_id: Optional[str], reason: str) -> "ExecutionError":
        return cls(
            kind=ExecutionErrorKind.CANCELLED,
            incident_id=incident_id,
            step_id=step_id,
            message=reason,
        )
