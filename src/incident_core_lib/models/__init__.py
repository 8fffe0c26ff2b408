"""
Domain models for the incident core.

This package provides the Pydantic models shared by every component so that
pipelines, services and adapters agree on one representation.
"""

from incident_core_lib.models.incident import (
    # Incident & lifecycle
    Incident,
    IncidentError,
    IncidentErrorKind,
    IncidentStatus,
    IncidentStatusKind,
    IncidentStatusTransition,
    InvalidTransition,
    Severity,
    UNASSIGNED_ID,
    advance,
    ensure_utc,
    is_valid_transition,
    normalize_source,
)
from incident_core_lib.models.remediation import (
    # Remediation
    ExecutionError,
    ExecutionErrorKind,
    ExecutionStatus,
    ManualStep,
    RemediationAction,
    RemediationPlan,
    RemediationProgress,
    RemediationStep,
    RestartService,
    ScaleCluster,
    StepStatus,
)
from incident_core_lib.models.diagnosis import (
    # Diagnosis
    Confidence,
    Diagnosis,
    DiagnosisError,
    DiagnosisErrorKind,
    DiagnosisOutcome,
    DiagnosisVerification,
    LlmDiagnosisResponse,
)
from incident_core_lib.models.retrieval import (
    # Retrieval
    ContextKind,
    ContextSnippet,
    RetrievalContext,
)
from incident_core_lib.models.ingestion import (
    # Ingestion
    IncidentCreated,
    IncidentSubmission,
    IngestionError,
    IngestionErrorKind,
    MAX_SOURCE_LENGTH,
    MAX_TITLE_LENGTH,
    TrainingIncidentSubmission,
)

__all__ = [
    # Incident
    "Incident", "IncidentError", "IncidentErrorKind", "IncidentStatus",
    "IncidentStatusKind", "IncidentStatusTransition",
    "InvalidTransition", "Severity", "UNASSIGNED_ID", "advance", "ensure_utc", "is_valid_transition",
    "normalize_source",
    # Remediation
    "ExecutionError", "ExecutionErrorKind", "ExecutionStatus", "ManualStep",
    "RemediationAction", "RemediationPlan", "RemediationProgress", "RemediationStep",
    "RestartService", "ScaleCluster", "StepStatus",
    # Diagnosis
    "Confidence", "Diagnosis", "DiagnosisError", "DiagnosisErrorKind",
    "DiagnosisOutcome", "DiagnosisVerification", "LlmDiagnosisResponse",
    # Retrieval
    "ContextKind", "ContextSnippet", "RetrievalContext",
    # Ingestion
    "IncidentCreated", "IncidentSubmission", "IngestionError", "IngestionErrorKind",
    "MAX_SOURCE_LENGTH", "MAX_TITLE_LENGTH", "TrainingIncidentSubmission",
]
