"""Core Package

Diagnosis, remediation, ingestion and lifecycle services. Everything here
returns ``Result`` values and reaches the outside world only through the
collaborator interfaces.
"""

from .actions import ActionExecutor, SimulatedActionExecutor
from .diagnoses import DiagnosisService
from .diagnosis_pipeline import DiagnosisPipeline, parse_diagnosis_response
from .incidents import IncidentService
from .ingestion import IngestionService, TrainingIngestionService
from .interfaces import (
    ContextRetriever,
    DiagnosisGenerator,
    DiagnosisRepository,
    IncidentRepository,
    Pagination,
    SearchCriteria,
)
from .plan_store import RemediationPlanStore
from .prompts import PromptInputs
from .remediation_executor import (
    CancellationToken,
    RemediationExecutor,
    build_plan_steps,
    derive_action,
)
from .validation import normalize_submission, parse_severity, validate_submission

__all__ = [
    "ActionExecutor",
    "SimulatedActionExecutor",
    "DiagnosisService",
    "DiagnosisPipeline",
    "parse_diagnosis_response",
    "IncidentService",
    "IngestionService",
    "TrainingIngestionService",
    "ContextRetriever",
    "DiagnosisGenerator",
    "DiagnosisRepository",
    "IncidentRepository",
    "Pagination",
    "SearchCriteria",
    "RemediationPlanStore",
    "PromptInputs",
    "CancellationToken",
    "RemediationExecutor",
    "build_plan_steps",
    "derive_action",
    "normalize_submission",
    "parse_severity",
    "validate_submission",
]
