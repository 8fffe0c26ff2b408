"""Incident data models and the incident status state machine.

Key Models:
- Incident: Root incident entity as seen by the core
- IncidentStatus: Tagged lifecycle status (OPEN → ACKNOWLEDGED → DIAGNOSED → RESOLVED)
- IncidentStatusTransition: Audit record of one status change
- InvalidTransition: Failure value returned when a transition is rejected

Lifecycle Flow:
  OPEN → ACKNOWLEDGED → DIAGNOSED(diagnosis_id) → RESOLVED (terminal)

Progression is monotonic: any strictly forward move is allowed (steps may be
skipped), nothing moves backward, and RESOLVED accepts no further transitions.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from incident_core_lib.common.result import Failure, Result, Success

logger = logging.getLogger(__name__)

UNASSIGNED_ID = 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)



# ============================================================
# Severity & Source
# ============================================================

class Severity(str, Enum):
    """Incident severity levels."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


# Known integrations and their aliases; anything else is a named webhook source.
KNOWN_SOURCES: Dict[str, str] = {
    "cloudwatch": "cloudwatch",
    "aws/cloudwatch": "cloudwatch",
    "sentry": "sentry",
    "github": "github",
    "pagerduty": "pagerduty",
    "manual": "manual",
    "training": "training",
}


def normalize_source(value: str) -> str:
    """Map known source aliases to their canonical name.

    Unknown sources (custom webhooks) are kept as given, minus surrounding
    whitespace.

    Example:
        >>> normalize_source("AWS/CloudWatch")
        'cloudwatch'
        >>> normalize_source("monitoring")
        'monitoring'
    """
    stripped = value.strip()
    return KNOWN_SOURCES.get(stripped.lower(), stripped)


# ============================================================
# Status & Lifecycle Models
# ============================================================

class IncidentStatusKind(str, Enum):
    """
    Incident lifecycle stage.

    Ordered by rank; transitions only ever increase the rank.
    """

    OPEN = "open"
    """Reported, nobody has looked at it yet."""

    ACKNOWLEDGED = "acknowledged"
    """An operator has taken ownership."""

    DIAGNOSED = "diagnosed"
    """A diagnosis exists; the status carries its id."""

    RESOLVED = "resolved"
    """
    TERMINAL STATE: problem fixed.
    No further transitions allowed.
    """

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal"""
        return self == IncidentStatusKind.RESOLVED


_STATUS_RANK = {
    IncidentStatusKind.OPEN: 0,
    IncidentStatusKind.ACKNOWLEDGED: 1,
    IncidentStatusKind.DIAGNOSED: 2,
    IncidentStatusKind.RESOLVED: 3,
}


class IncidentStatus(BaseModel):
    """
    Tagged incident status.

    ``diagnosis_id`` is the payload of the DIAGNOSED variant and must be absent
    for every other kind.
    """

    kind: IncidentStatusKind = Field(description="Lifecycle stage")

    diagnosis_id: Optional[int] = Field(
        default=None,
        description="Diagnosis reference, set only when kind is DIAGNOSED"
    )

    @model_validator(mode='after')
    def payload_matches_kind(self):
        """Ensure the diagnosis reference is present iff the status is DIAGNOSED"""
        if self.kind == IncidentStatusKind.DIAGNOSED and self.diagnosis_id is None:
            raise ValueError("DIAGNOSED status requires diagnosis_id")
        if self.kind != IncidentStatusKind.DIAGNOSED and self.diagnosis_id is not None:
            raise ValueError(f"diagnosis_id can only be set when status is DIAGNOSED (current: {self.kind})")
        return self

    class Config:
        frozen = True

    @classmethod
    def open(cls) -> "IncidentStatus":
        return cls(kind=IncidentStatusKind.OPEN)

    @classmethod
    def acknowledged(cls) -> "IncidentStatus":
        return cls(kind=IncidentStatusKind.ACKNOWLEDGED)

    @classmethod
    def diagnosed(cls, diagnosis_id: int) -> "IncidentStatus":
        return cls(kind=IncidentStatusKind.DIAGNOSED, diagnosis_id=diagnosis_id)

    @classmethod
    def resolved(cls) -> "IncidentStatus":
        return cls(kind=IncidentStatusKind.RESOLVED)

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    def to_persistence(self) -> str:
        """Render as the storage string: OPEN | ACK | DIAGNOSED:<id> | RESOLVED"""
        if self.kind == IncidentStatusKind.DIAGNOSED:
            return f"DIAGNOSED:{self.diagnosis_id}"
        if self.kind == IncidentStatusKind.ACKNOWLEDGED:
            return "ACK"
        return self.kind.name

    @classmethod
    def from_persistence(cls, value: str) -> "IncidentStatus":
        """Parse a storage string. Unknown values are coerced to OPEN."""
        upper = value.strip().upper()
        if upper == "OPEN":
            return cls.open()
        if upper in ("ACK", "ACKNOWLEDGED"):
            return cls.acknowledged()
        if upper == "RESOLVED":
            return cls.resolved()
        if upper.startswith("DIAGNOSED:"):
            try:
                return cls.diagnosed(int(upper.split(":", 1)[1]))
            except ValueError:
                pass
        logger.warning(f"Unknown incident status '{value}', treating as OPEN")
        return cls.open()

    def __str__(self) -> str:
        return self.to_persistence()


class InvalidTransition(BaseModel):
    """Failure value for a rejected status change."""

    from_status: IncidentStatus
    to_status: IncidentStatus
    reason: str

    class Config:
        frozen = True


def is_valid_transition(from_status: IncidentStatus, to_status: IncidentStatus) -> bool:
    """
    Validate status transition.

    Valid: any move to a strictly higher rank
    (OPEN → ACKNOWLEDGED, OPEN → DIAGNOSED, ACKNOWLEDGED → RESOLVED, ...)

    Invalid:
    - RESOLVED → * (terminal)
    - same kind → same kind (DIAGNOSED(1) → DIAGNOSED(2) included)
    - any backward move
    """
    if from_status.is_terminal:
        return False
    return to_status.kind.rank > from_status.kind.rank


def advance(current: IncidentStatus, to: IncidentStatus) -> Result[InvalidTransition, IncidentStatus]:
    """Move ``current`` to ``to`` if the lifecycle allows it."""
    if is_valid_transition(current, to):
        return Success(to)

    if current.is_terminal:
        reason = f"Incident is {current.kind.value}; no further transitions allowed"
    else:
        reason = f"Cannot move from {current.kind.value} to {to.kind.value}"
    return Failure(InvalidTransition(from_status=current, to_status=to, reason=reason))


class IncidentStatusTransition(BaseModel):
    """
    Record of one status change.
    Provides audit trail for the incident lifecycle.
    """

    from_status: IncidentStatus = Field(description="Status before transition")

    to_status: IncidentStatus = Field(description="Status after transition")

    triggered_at: datetime = Field(
        default_factory=utc_now,
        description="When transition occurred"
    )

    triggered_by: str = Field(
        default="system",
        description="Who triggered: operator name or 'system' for automatic transitions"
    )

    reason: str = Field(
        default="",
        description="Human-readable reason for transition",
        max_length=500
    )

    @field_validator('triggered_at')
    @classmethod
    def triggered_at_in_utc(cls, v):
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_transition(self):
        """Ensure transition is valid"""
        if not is_valid_transition(self.from_status, self.to_status):
            raise ValueError(f"Invalid transition: {self.from_status} → {self.to_status}")
        return self

    class Config:
        frozen = True


# ============================================================
# Incident
# ============================================================

class Incident(BaseModel):
    """
    Root incident entity.

    ``id`` is UNASSIGNED_ID (0) until the persistence collaborator assigns one,
    and never changes afterwards.
    """

    id: int = Field(
        default=UNASSIGNED_ID,
        ge=0,
        description="Identifier assigned by persistence (0 = not yet persisted)"
    )

    source: str = Field(
        description="Where the incident came from (cloudwatch, sentry, webhook name, ...)",
        min_length=1,
    )

    title: str = Field(description="Short incident title", min_length=1)

    description: str = Field(description="Full problem description")

    severity: Severity = Field(default=Severity.MEDIUM)

    status: IncidentStatus = Field(default_factory=IncidentStatus.open)

    status_history: List[IncidentStatusTransition] = Field(
        default_factory=list,
        description="Complete history of status changes"
    )

    resolution_text: Optional[str] = Field(
        default=None,
        description="How the incident was resolved, set with RESOLVED"
    )

    created_at: datetime = Field(default_factory=utc_now)

    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_persisted(self) -> bool:
        return self.id != UNASSIGNED_ID

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @field_validator('status', mode='before')
    @classmethod
    def status_from_persistence(cls, v):
        """Accept the storage string form (OPEN, ACK, DIAGNOSED:<id>, RESOLVED)"""
        if isinstance(v, str):
            return IncidentStatus.from_persistence(v)
        return v

    @field_validator('created_at', 'updated_at')
    @classmethod
    def timestamps_in_utc(cls, v):
        return ensure_utc(v)

    @field_validator('title')
    @classmethod
    def title_not_empty(cls, v):
        """Ensure title is not just whitespace"""
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v

    @model_validator(mode='after')
    def validate_timestamp_ordering(self) -> 'Incident':
        """created_at <= updated_at"""
        if self.created_at > self.updated_at:
            raise ValueError(
                f"created_at ({self.created_at}) cannot be after updated_at ({self.updated_at})"
            )
        return self

    def with_id(self, incident_id: int) -> "Incident":
        """Return a copy carrying the persistence-assigned id."""
        if self.is_persisted and incident_id != self.id:
            raise ValueError(f"Incident id is immutable once assigned (current: {self.id})")
        return self.model_copy(update={"id": incident_id})

    def transition_to(
        self,
        status: IncidentStatus,
        triggered_by: str = "system",
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> Result[InvalidTransition, "Incident"]:
        """Apply a status change, returning the updated copy with history appended."""
        def apply(new_status: IncidentStatus) -> "Incident":
            moment = max(ensure_utc(now) if now else utc_now(), self.updated_at)
            record = IncidentStatusTransition(
                from_status=self.status,
                to_status=new_status,
                triggered_at=moment,
                triggered_by=triggered_by,
                reason=reason,
            )
            return self.model_copy(update={
                "status": new_status,
                "status_history": [*self.status_history, record],
                "updated_at": moment,
            })

        return advance(self.status, status).map(apply)

    def describe(self) -> str:
        """Plain-text rendering used as model input."""
        return (
            f"Title: {self.title}\n"
            f"Severity: {self.severity.value}\n"
            f"Source: {self.source}\n"
            f"Status: {self.status}\n"
            f"Reported: {self.created_at.isoformat()}\n"
            f"Description:\n{self.description}"
        )


# ============================================================
# Service errors
# ============================================================

class IncidentErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    PERSISTENCE = "persistence"


class IncidentError(BaseModel):
    """Failure value of incident lifecycle operations."""

    kind: IncidentErrorKind
    reason: Optional[str] = None

    class Config:
        frozen = True

    @property
    def retryable(self) -> bool:
        return self.kind == IncidentErrorKind.PERSISTENCE

    @classmethod
    def not_found(cls, incident_id: int) -> "IncidentError":
        return cls(kind=IncidentErrorKind.NOT_FOUND, reason=f"Incident {incident_id} not found")

    @classmethod
    def invalid_transition(cls, transition: InvalidTransition) -> "IncidentError":
        return cls(kind=IncidentErrorKind.INVALID_TRANSITION, reason=transition.reason)

    @classmethod
    def persistence(cls, reason: str) -> "IncidentError":
        return cls(kind=IncidentErrorKind.PERSISTENCE, reason=reason)
