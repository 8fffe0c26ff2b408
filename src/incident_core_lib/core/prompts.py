"""Diagnosis prompt template.

The template is fixed; only the application profile, the incident and the
retrieved context vary between calls.
"""

from typing import List

from pydantic import BaseModel, Field

from incident_core_lib.models.incident import Incident
from incident_core_lib.models.retrieval import RetrievalContext

DIAGNOSIS_PROMPT = """You are an incident analyst for {app_name}, running on {app_stack}.
Known components: {app_components}

Diagnose the incident below using the supporting context.
When sources disagree, trust them in this order:
  1. Past resolutions of similar incidents
  2. Verified diagnoses
  3. Runbook procedures
  4. Pattern matches against raw similar incidents

Respond with a single JSON object and nothing else:
{{
  "rootCause": "...",
  "steps": ["...", "..."],
  "confidence": "HIGH|MEDIUM|LOW"
}}

Incident:
{incident}

Context:
{context}
"""


class PromptInputs(BaseModel):
    """Everything the model sees for one diagnosis."""

    app_name: str
    app_stack: str
    app_components: List[str] = Field(default_factory=list)
    incident: Incident
    context: RetrievalContext

    def render(self) -> str:
        return DIAGNOSIS_PROMPT.format(
            app_name=self.app_name,
            app_stack=self.app_stack,
            app_components=", ".join(self.app_components) or "unspecified",
            incident=self.incident.describe(),
            context=self.context.render(),
        )
