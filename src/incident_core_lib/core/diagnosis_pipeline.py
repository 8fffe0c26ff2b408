"""Diagnosis pipeline.

Orchestrates one diagnosis:

    lookup → resolved check → existing diagnosis → retrieval → model call
           → parse → persist diagnosis → transition incident to DIAGNOSED

Every collaborator fault is caught at its stage and converted into the
matching ``DiagnosisError`` kind, so ``diagnose`` never raises for runtime
failures.
"""

import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from incident_core_lib.common.result import Failure, Result, Success, attempt_async
from incident_core_lib.config.settings import Settings, get_settings
from incident_core_lib.core.interfaces import (
    ContextRetriever,
    DiagnosisGenerator,
    DiagnosisRepository,
    IncidentRepository,
)
from incident_core_lib.core.prompts import PromptInputs
from incident_core_lib.models.diagnosis import (
    Diagnosis,
    DiagnosisError,
    DiagnosisOutcome,
    DiagnosisVerification,
    LlmDiagnosisResponse,
)
from incident_core_lib.models.incident import Incident, IncidentStatus, IncidentStatusKind

logger = logging.getLogger(__name__)

_FENCE = "```"


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""
    text = raw.strip()
    if text.startswith(_FENCE):
        # Drop the opening fence line, including any language tag
        newline = text.find("\n")
        text = text[newline + 1:] if newline != -1 else text[len(_FENCE):]
    if text.endswith(_FENCE):
        text = text[:-len(_FENCE)]
    return text.strip()


def parse_diagnosis_response(raw: str) -> Result[DiagnosisError, LlmDiagnosisResponse]:
    """
    Parse the model's raw answer.

    Expected shape: ``{"rootCause": str, "steps": [str], "confidence": "HIGH|MEDIUM|LOW"}``,
    optionally wrapped in a markdown code fence.
    """
    cleaned = strip_code_fences(raw)
    if not cleaned:
        return Failure(DiagnosisError.llm_response_invalid("Empty model response"))

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return Failure(DiagnosisError.llm_response_invalid(f"Failed to parse LLM response: {e}"))

    if not isinstance(payload, dict):
        return Failure(DiagnosisError.llm_response_invalid(
            f"Expected a JSON object, got {type(payload).__name__}"
        ))

    try:
        return Success(LlmDiagnosisResponse.model_validate(payload))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'response'}: {err['msg']}"
            for err in e.errors()
        )
        return Failure(DiagnosisError.llm_response_invalid(f"Invalid LLM response: {problems}"))


class DiagnosisPipeline:
    """
    Produces diagnoses for incidents.

    Args:
        incident_repository: Incident persistence
        diagnosis_repository: Diagnosis persistence
        retriever: Supporting-context retrieval
        generator: Generative model
        app_name: Application name given to the model
        app_stack: Platform description given to the model
        app_components: Known components given to the model
        settings: Settings the app profile defaults come from (default: global settings)

    Example:
        ```python
        pipeline = DiagnosisPipeline(incidents, diagnoses, retriever, generator)
        result = await pipeline.diagnose(42)
        result.fold(
            lambda error: logger.warning(error.kind),
            lambda outcome: print(outcome.diagnosis.root_cause),
        )
        ```
    """

    def __init__(
        self,
        incident_repository: IncidentRepository,
        diagnosis_repository: DiagnosisRepository,
        retriever: ContextRetriever,
        generator: DiagnosisGenerator,
        app_name: Optional[str] = None,
        app_stack: Optional[str] = None,
        app_components: Optional[List[str]] = None,
        settings: Optional[Settings] = None,
    ):
        if app_name is None or app_stack is None or app_components is None:
            settings = settings or get_settings()
            app_name = settings.app_name if app_name is None else app_name
            app_stack = settings.app_stack if app_stack is None else app_stack
            app_components = settings.app_components if app_components is None else app_components
        self.incident_repository = incident_repository
        self.diagnosis_repository = diagnosis_repository
        self.retriever = retriever
        self.generator = generator
        self.app_name = app_name
        self.app_stack = app_stack
        self.app_components = list(app_components)

    async def diagnose(self, incident_id: int) -> Result[DiagnosisError, DiagnosisOutcome]:
        """Diagnose one incident, or return the diagnosis it already has."""
        lookup = await attempt_async(
            lambda: self.incident_repository.find_by_id(incident_id),
            lambda e: DiagnosisError.persistence_failed(f"Incident lookup failed: {e}"),
        )
        if lookup.is_failure:
            logger.error(f"Incident {incident_id} lookup failed: {lookup.error.reason}")
            return lookup

        incident = lookup.value
        if incident is None:
            logger.info(f"Incident {incident_id} not found, nothing to diagnose")
            return Failure(DiagnosisError.incident_not_found())

        if incident.is_terminal:
            logger.warning(f"Incident {incident_id} is resolved, diagnosis rejected")
            return Failure(DiagnosisError.incident_resolved())

        existing = await attempt_async(
            lambda: self.diagnosis_repository.find_by_incident_id(incident_id),
            lambda e: DiagnosisError.persistence_failed(f"Diagnosis lookup failed: {e}"),
        )
        if existing.is_failure:
            logger.error(f"Diagnosis lookup for incident {incident_id} failed: {existing.error.reason}")
            return existing
        if existing.value is not None:
            logger.info(f"Incident {incident_id} already has diagnosis {existing.value.id}")
            if incident.status.kind.rank < IncidentStatusKind.DIAGNOSED.rank:
                # An earlier run saved the diagnosis but failed to update the incident
                linked = await self._mark_diagnosed(incident, existing.value)
                if linked.is_failure:
                    return linked
            return Success(DiagnosisOutcome(diagnosis=existing.value, is_new=False))

        proposal = await self._propose(incident)
        if proposal.is_failure:
            return proposal

        return await self._persist(incident, proposal.value)

    async def _propose(self, incident: Incident) -> Result[DiagnosisError, LlmDiagnosisResponse]:
        """Retrieval, model call and parsing."""
        retrieved = await attempt_async(
            lambda: self.retriever.retrieve_context(incident),
            lambda e: DiagnosisError.retrieval_failed(str(e) or type(e).__name__),
        )
        if retrieved.is_failure:
            logger.warning(f"Context retrieval failed for incident {incident.id}: {retrieved.error.reason}")
            return retrieved

        context = retrieved.value
        if context is None or context.is_empty:
            logger.warning(f"No supporting context found for incident {incident.id}")
            return Failure(DiagnosisError.retrieval_failed("No supporting context found"))

        inputs = PromptInputs(
            app_name=self.app_name,
            app_stack=self.app_stack,
            app_components=self.app_components,
            incident=incident,
            context=context,
        )
        raw = await attempt_async(
            lambda: self.generator.propose(inputs),
            lambda e: DiagnosisError.llm_unavailable(str(e) or type(e).__name__),
        )
        if raw.is_failure:
            logger.warning(f"Model unavailable for incident {incident.id}: {raw.error.reason}")
            return raw

        parsed = parse_diagnosis_response(raw.value)
        if parsed.is_failure:
            logger.warning(f"Unusable model response for incident {incident.id}: {parsed.error.reason}")
            logger.debug(f"Raw model response: {raw.value[:500]}")
        return parsed

    async def _persist(
        self,
        incident: Incident,
        response: LlmDiagnosisResponse,
    ) -> Result[DiagnosisError, DiagnosisOutcome]:
        """Store the diagnosis and move the incident to DIAGNOSED."""
        draft = Diagnosis(
            incident_id=incident.id,
            root_cause=response.root_cause,
            steps=response.steps,
            confidence=response.confidence,
            verification=DiagnosisVerification.UNVERIFIED,
        )
        saved = await attempt_async(
            lambda: self.diagnosis_repository.save(draft),
            lambda e: DiagnosisError.persistence_failed(f"Failed to save diagnosis: {e}"),
        )
        if saved.is_failure:
            logger.error(f"Diagnosis for incident {incident.id} not saved: {saved.error.reason}")
            return saved

        diagnosis = saved.value
        linked = await self._mark_diagnosed(incident, diagnosis)
        if linked.is_failure:
            return linked

        logger.info(
            f"Diagnosis {diagnosis.id} generated for incident {incident.id} "
            f"(confidence={diagnosis.confidence.value}, steps={len(diagnosis.steps)})"
        )
        return Success(DiagnosisOutcome(diagnosis=diagnosis, is_new=True))

    async def _mark_diagnosed(self, incident: Incident, diagnosis: Diagnosis) -> Result[DiagnosisError, None]:
        """Move the incident to DIAGNOSED(diagnosis.id) and persist it."""
        transitioned = incident.transition_to(
            IncidentStatus.diagnosed(diagnosis.id),
            triggered_by="diagnosis_pipeline",
            reason=f"Diagnosis {diagnosis.id} generated",
        )
        if transitioned.is_failure:
            # Only reachable for an incident already DIAGNOSED without a stored diagnosis
            logger.warning(
                f"Incident {incident.id} status left unchanged: {transitioned.error.reason}"
            )
            return Success(None)

        updated = await attempt_async(
            lambda: self.incident_repository.update(transitioned.value),
            lambda e: DiagnosisError.persistence_failed(f"Failed to update incident status: {e}"),
        )
        if updated.is_failure:
            logger.error(f"Incident {incident.id} status not updated: {updated.error.reason}")
            return updated
        return Success(None)
