"""Incident Core Library

Incident lifecycle, diagnosis pipeline, remediation execution and ingestion
for the incident analyst services.
"""

__version__ = "0.1.0"

# Export result algebra and shared models first (no dependencies)
from incident_core_lib.common import Failure, Result, Success
from incident_core_lib.models import (
    Diagnosis, DiagnosisError, Incident, IncidentStatus, RemediationPlan,
    RemediationProgress, RemediationStep, Severity,
)

# Export configuration
from incident_core_lib.config import Settings, get_settings, reset_settings

# Export core services
from incident_core_lib.core import (
    DiagnosisPipeline,
    IngestionService,
    RemediationExecutor,
    RemediationPlanStore,
)


# Lazy import for adapters so importing the core does not pull in
# the HTTP and LLM client stacks
def __getattr__(name):
    """Lazy import for adapter classes."""
    if name == "IncidentServiceClient":
        from incident_core_lib.clients import IncidentServiceClient
        return IncidentServiceClient
    if name == "LLMDiagnosisGenerator":
        from incident_core_lib.infrastructure.llm import LLMDiagnosisGenerator
        return LLMDiagnosisGenerator
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    # Result algebra
    "Failure", "Result", "Success",
    # Models
    "Diagnosis", "DiagnosisError", "Incident", "IncidentStatus", "RemediationPlan",
    "RemediationProgress", "RemediationStep", "Severity",
    # Configuration
    "Settings", "get_settings", "reset_settings",
    # Core services
    "DiagnosisPipeline", "IngestionService", "RemediationExecutor", "RemediationPlanStore",
    # Adapters (lazy loaded)
    "IncidentServiceClient", "LLMDiagnosisGenerator",
]
