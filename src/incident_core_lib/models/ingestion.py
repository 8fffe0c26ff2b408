"""Ingestion request and result models.

Submissions are deliberately loose (every field optional, no constraints) so the
validator can report every violation at once instead of failing on the first.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from incident_core_lib.models.incident import Severity

MAX_TITLE_LENGTH = 500
MAX_SOURCE_LENGTH = 100


class IncidentSubmission(BaseModel):
    """Generic inbound incident, e.g. from a webhook."""

    title: Optional[str] = None
    description: Optional[str] = None
    severity: Optional[str] = Field(
        default=None,
        description="Case-insensitive severity name; defaults to MEDIUM when absent or unknown"
    )
    source: Optional[str] = None


class TrainingIncidentSubmission(BaseModel):
    """Historical incident submitted to seed the knowledge base."""

    title: Optional[str] = None
    description: Optional[str] = None
    severity: Severity = Severity.MEDIUM
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the incident originally happened; defaults to now"
    )
    stack_trace: Optional[str] = None
    source: str = "training"


class IngestionErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"


class IngestionError(BaseModel):
    """Failure value of ingestion."""

    kind: IngestionErrorKind
    errors: List[str] = Field(default_factory=list, description="Violated constraints (VALIDATION)")
    message: Optional[str] = Field(default=None, description="Collaborator message (PERSISTENCE)")

    class Config:
        frozen = True

    @property
    def retryable(self) -> bool:
        return self.kind == IngestionErrorKind.PERSISTENCE

    @classmethod
    def unauthorized(cls) -> "IngestionError":
        return cls(kind=IngestionErrorKind.UNAUTHORIZED)

    @classmethod
    def validation(cls, errors: List[str]) -> "IngestionError":
        return cls(kind=IngestionErrorKind.VALIDATION, errors=errors)

    @classmethod
    def persistence(cls, message: str) -> "IngestionError":
        return cls(kind=IngestionErrorKind.PERSISTENCE, message=message)


class IncidentCreated(BaseModel):
    """Success value of ingestion."""

    id: int
    source: str
    title: str
