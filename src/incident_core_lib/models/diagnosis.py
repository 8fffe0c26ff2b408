"""Diagnosis data models.

Key Models:
- Diagnosis: Stored root-cause proposal for one incident
- DiagnosisError: Failure value of the diagnosis pipeline, one kind per stage
- DiagnosisOutcome: Success value of the pipeline (new or already existing)
- LlmDiagnosisResponse: Structured payload expected from the model
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from incident_core_lib.models.incident import ensure_utc
from incident_core_lib.models.remediation import RemediationStep


class Confidence(str, Enum):
    """Model-reported confidence in a diagnosis."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DiagnosisVerification(str, Enum):
    """Whether a human confirmed the diagnosis."""

    UNVERIFIED = "UNVERIFIED"
    VERIFIED = "VERIFIED"


class Diagnosis(BaseModel):
    """
    Stored diagnosis.

    ``id`` is 0 until the diagnosis repository assigns one.
    """

    id: int = Field(default=0, ge=0)
    incident_id: int = Field(gt=0)
    root_cause: str = Field(min_length=1)
    steps: List[str] = Field(default_factory=list)
    structured_steps: List[RemediationStep] = Field(
        default_factory=list,
        description="Steps with executable actions; preferred over text steps when present"
    )
    confidence: Confidence
    verification: DiagnosisVerification = DiagnosisVerification.UNVERIFIED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None

    @field_validator('created_at', 'verified_at')
    @classmethod
    def timestamps_in_utc(cls, v):
        return ensure_utc(v) if v is not None else v

    @property
    def is_verified(self) -> bool:
        return self.verification == DiagnosisVerification.VERIFIED


# ============================================================
# Pipeline results
# ============================================================

class DiagnosisErrorKind(str, Enum):
    """
    Failure kinds, one per pipeline stage so callers can apply different
    retry and alerting policies.
    """

    INCIDENT_NOT_FOUND = "incident_not_found"
    """Nothing to diagnose. Terminal."""

    INCIDENT_RESOLVED = "incident_resolved"
    """Incident already resolved; diagnosis rejected."""

    RETRIEVAL_FAILED = "retrieval_failed"
    """No supporting context available."""

    LLM_UNAVAILABLE = "llm_unavailable"
    """Model unreachable. Transient; eligible for caller-driven retry."""

    LLM_RESPONSE_INVALID = "llm_response_invalid"
    """Model answered but unusably. Not worth retrying unchanged."""

    PERSISTENCE_FAILED = "persistence_failed"
    """Store fault while reading or writing. Retryable by the caller."""

    NOT_FOUND = "not_found"
    """Diagnosis lookup by id missed."""


_RETRYABLE = {DiagnosisErrorKind.LLM_UNAVAILABLE, DiagnosisErrorKind.PERSISTENCE_FAILED}


class DiagnosisError(BaseModel):
    """Failure value of diagnosis operations."""

    kind: DiagnosisErrorKind
    reason: Optional[str] = None

    class Config:
        frozen = True

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE

    @classmethod
    def incident_not_found(cls) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.INCIDENT_NOT_FOUND)

    @classmethod
    def incident_resolved(cls) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.INCIDENT_RESOLVED, reason="Incident is already resolved")

    @classmethod
    def retrieval_failed(cls, reason: Optional[str] = None) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.RETRIEVAL_FAILED, reason=reason)

    @classmethod
    def llm_unavailable(cls, reason: Optional[str] = None) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.LLM_UNAVAILABLE, reason=reason)

    @classmethod
    def llm_response_invalid(cls, reason: str) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.LLM_RESPONSE_INVALID, reason=reason)

    @classmethod
    def persistence_failed(cls, reason: str) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.PERSISTENCE_FAILED, reason=reason)

    @classmethod
    def not_found(cls) -> "DiagnosisError":
        return cls(kind=DiagnosisErrorKind.NOT_FOUND)


class DiagnosisOutcome(BaseModel):
    """Success value of ``diagnose``."""

    diagnosis: Diagnosis
    is_new: bool = Field(description="False when an existing diagnosis was returned")


class LlmDiagnosisResponse(BaseModel):
    """
    JSON object the model must answer with:

        {"rootCause": "...", "steps": ["...", "..."], "confidence": "HIGH|MEDIUM|LOW"}
    """

    root_cause: str = Field(alias="rootCause", min_length=1)
    steps: List[str]
    confidence: Confidence

    @field_validator('root_cause')
    @classmethod
    def root_cause_not_blank(cls, v):
        if not v.strip():
            raise ValueError("rootCause cannot be blank")
        return v.strip()

    @field_validator('steps')
    @classmethod
    def drop_blank_steps(cls, v):
        return [step.strip() for step in v if step.strip()]

    @field_validator('confidence', mode='before')
    @classmethod
    def confidence_case_insensitive(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    class Config:
        populate_by_name = True
