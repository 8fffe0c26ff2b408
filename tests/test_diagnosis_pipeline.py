"""Tests for the diagnosis pipeline."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from conftest import ScriptedGenerator, StaticRetriever, llm_answer, make_incident
from incident_core_lib.core.diagnosis_pipeline import (
    DiagnosisPipeline,
    parse_diagnosis_response,
    strip_code_fences,
)
from incident_core_lib.models import (
    Confidence,
    Diagnosis,
    DiagnosisErrorKind,
    DiagnosisVerification,
    IncidentStatus,
    RetrievalContext,
)


def pipeline(incident_repo, diagnosis_repo, retriever, generator) -> DiagnosisPipeline:
    return DiagnosisPipeline(
        incident_repo,
        diagnosis_repo,
        retriever,
        generator,
        app_name="Shop",
        app_stack="AWS ECS",
        app_components=["api", "payments"],
    )


class TestParseDiagnosisResponse:
    def test_plain_json(self):
        parsed = parse_diagnosis_response(llm_answer()).get_or_none()
        assert parsed.root_cause == "Connection pool exhausted"
        assert parsed.steps == ["restart api", "Notify on-call"]
        assert parsed.confidence == Confidence.HIGH

    @pytest.mark.parametrize("raw", [
        "```json\n{body}\n```",
        "```\n{body}\n```",
        "  ```json\n{body}```  ",
    ])
    def test_code_fences_are_stripped(self, raw):
        result = parse_diagnosis_response(raw.format(body=llm_answer()))
        assert result.is_success

    def test_confidence_is_case_insensitive(self):
        assert parse_diagnosis_response(llm_answer(confidence="medium")).get_or_none().confidence == Confidence.MEDIUM

    def test_blank_steps_are_dropped(self):
        parsed = parse_diagnosis_response(llm_answer(steps=["a", "  ", "", "b"])).get_or_none()
        assert parsed.steps == ["a", "b"]

    @pytest.mark.parametrize("raw", [
        "",
        "not json at all",
        "[1, 2, 3]",
        '{"steps": [], "confidence": "HIGH"}',
        '{"rootCause": "  ", "steps": [], "confidence": "HIGH"}',
        '{"rootCause": "x", "steps": [], "confidence": "CERTAIN"}',
        '{"rootCause": "x", "steps": "restart", "confidence": "LOW"}',
    ])
    def test_invalid_responses(self, raw):
        result = parse_diagnosis_response(raw)
        assert result.error.kind == DiagnosisErrorKind.LLM_RESPONSE_INVALID
        assert result.error.reason

    def test_strip_code_fences_leaves_plain_text(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestDiagnose:
    @pytest.mark.asyncio
    async def test_missing_incident(self, incident_repo, diagnosis_repo, context):
        retriever = StaticRetriever(context)
        generator = ScriptedGenerator(llm_answer())

        result = await pipeline(incident_repo, diagnosis_repo, retriever, generator).diagnose(999)

        assert result.error.kind == DiagnosisErrorKind.INCIDENT_NOT_FOUND
        assert retriever.calls == []
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_lookup_fault_is_not_reported_as_missing(self, diagnosis_repo, context):
        repo = AsyncMock()
        repo.find_by_id.side_effect = ConnectionError("db down")

        result = await pipeline(repo, diagnosis_repo, StaticRetriever(context), ScriptedGenerator()).diagnose(1)

        assert result.error.kind == DiagnosisErrorKind.PERSISTENCE_FAILED
        assert result.error.retryable

    @pytest.mark.asyncio
    async def test_resolved_incident_is_rejected(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident(status=IncidentStatus.resolved()))
        generator = ScriptedGenerator(llm_answer())

        result = await pipeline(incident_repo, diagnosis_repo, StaticRetriever(context), generator).diagnose(incident.id)

        assert result.error.kind == DiagnosisErrorKind.INCIDENT_RESOLVED
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_existing_diagnosis_is_returned(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident())
        existing = await diagnosis_repo.save(Diagnosis(
            incident_id=incident.id, root_cause="Known", confidence=Confidence.LOW,
        ))
        retriever = StaticRetriever(context)
        generator = ScriptedGenerator(llm_answer())

        result = await pipeline(incident_repo, diagnosis_repo, retriever, generator).diagnose(incident.id)

        outcome = result.get_or_none()
        assert outcome.is_new is False
        assert outcome.diagnosis == existing
        assert retriever.calls == []
        assert generator.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("retriever", [
        StaticRetriever(None),
        StaticRetriever(RetrievalContext()),
        StaticRetriever(error=TimeoutError("vector store timeout")),
    ])
    async def test_no_context_is_retrieval_failure(self, incident_repo, diagnosis_repo, retriever):
        incident = await incident_repo.create(make_incident())
        generator = ScriptedGenerator(llm_answer())

        result = await pipeline(incident_repo, diagnosis_repo, retriever, generator).diagnose(incident.id)

        assert result.error.kind == DiagnosisErrorKind.RETRIEVAL_FAILED
        assert generator.calls == []
        assert (await incident_repo.find_by_id(incident.id)).status == IncidentStatus.open()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        asyncio.TimeoutError(),
        ConnectionError("refused"),
        RuntimeError("All providers failed"),
    ])
    async def test_model_fault_is_llm_unavailable(self, incident_repo, diagnosis_repo, context, error):
        incident = await incident_repo.create(make_incident())

        result = await pipeline(
            incident_repo, diagnosis_repo, StaticRetriever(context), ScriptedGenerator(error=error),
        ).diagnose(incident.id)

        assert result.error.kind == DiagnosisErrorKind.LLM_UNAVAILABLE
        assert result.error.retryable
        assert len(diagnosis_repo) == 0

    @pytest.mark.asyncio
    async def test_unparsable_answer(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident())

        result = await pipeline(
            incident_repo, diagnosis_repo, StaticRetriever(context), ScriptedGenerator("I think it's DNS"),
        ).diagnose(incident.id)

        assert result.error.kind == DiagnosisErrorKind.LLM_RESPONSE_INVALID
        assert not result.error.retryable
        assert len(diagnosis_repo) == 0

    @pytest.mark.asyncio
    async def test_new_diagnosis_is_persisted_and_incident_transitioned(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident())
        generator = ScriptedGenerator(f"```json\n{llm_answer()}\n```")

        result = await pipeline(
            incident_repo, diagnosis_repo, StaticRetriever(context), generator,
        ).diagnose(incident.id)

        outcome = result.get_or_none()
        assert outcome.is_new is True
        diagnosis = outcome.diagnosis
        assert diagnosis.id == 1
        assert diagnosis.incident_id == incident.id
        assert diagnosis.verification == DiagnosisVerification.UNVERIFIED
        assert await diagnosis_repo.find_by_incident_id(incident.id) == diagnosis

        updated = await incident_repo.find_by_id(incident.id)
        assert updated.status == IncidentStatus.diagnosed(diagnosis.id)
        assert updated.status_history[-1].triggered_by == "diagnosis_pipeline"

    @pytest.mark.asyncio
    async def test_prompt_carries_profile_incident_and_ranked_context(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident())
        generator = ScriptedGenerator(llm_answer())

        await pipeline(incident_repo, diagnosis_repo, StaticRetriever(context), generator).diagnose(incident.id)

        inputs = generator.calls[0]
        assert inputs.app_name == "Shop"
        assert inputs.app_components == ["api", "payments"]
        prompt = inputs.render()
        assert "High CPU on api-gateway" in prompt
        assert "Past resolutions" in prompt
        assert prompt.index("=== Past Resolutions ===") < prompt.index("=== Runbook Procedures ===")
        assert '"rootCause"' in prompt

    @pytest.mark.asyncio
    async def test_acknowledged_incident_can_be_diagnosed(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident(status=IncidentStatus.acknowledged()))

        result = await pipeline(
            incident_repo, diagnosis_repo, StaticRetriever(context), ScriptedGenerator(llm_answer()),
        ).diagnose(incident.id)

        assert result.is_success
        assert (await incident_repo.find_by_id(incident.id)).status.diagnosis_id == result.value.diagnosis.id

    @pytest.mark.asyncio
    async def test_diagnosis_save_fault(self, incident_repo, context):
        incident = await incident_repo.create(make_incident())
        diagnoses = AsyncMock()
        diagnoses.find_by_incident_id.return_value = None
        diagnoses.save.side_effect = IOError("disk full")

        result = await pipeline(
            incident_repo, diagnoses, StaticRetriever(context), ScriptedGenerator(llm_answer()),
        ).diagnose(incident.id)

        assert result.error.kind == DiagnosisErrorKind.PERSISTENCE_FAILED
        assert "disk full" in result.error.reason
        assert (await incident_repo.find_by_id(incident.id)).status == IncidentStatus.open()

    @pytest.mark.asyncio
    async def test_incident_update_fault(self, diagnosis_repo, context):
        incident = make_incident().with_id(3)
        incidents = AsyncMock()
        incidents.find_by_id.return_value = incident
        incidents.update.side_effect = ConnectionError("lost connection")

        result = await pipeline(
            incidents, diagnosis_repo, StaticRetriever(context), ScriptedGenerator(llm_answer()),
        ).diagnose(3)

        assert result.error.kind == DiagnosisErrorKind.PERSISTENCE_FAILED

    @pytest.mark.asyncio
    async def test_retry_after_incident_update_fault_links_saved_diagnosis(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident())
        generator = ScriptedGenerator(llm_answer())
        diagnose = pipeline(incident_repo, diagnosis_repo, StaticRetriever(context), generator).diagnose
        working_update = incident_repo.update

        incident_repo.update = AsyncMock(side_effect=ConnectionError("lost connection"))
        first = await diagnose(incident.id)
        incident_repo.update = working_update
        retry = await diagnose(incident.id)

        assert first.error.kind == DiagnosisErrorKind.PERSISTENCE_FAILED
        outcome = retry.get_or_none()
        assert outcome.is_new is False
        stored = await incident_repo.find_by_id(incident.id)
        assert stored.status == IncidentStatus.diagnosed(outcome.diagnosis.id)
        assert len(generator.calls) == 1
        assert len(diagnosis_repo) == 1

    @pytest.mark.asyncio
    async def test_existing_diagnosis_keeps_diagnosed_incident_untouched(self, incident_repo, diagnosis_repo, context):
        incident = await incident_repo.create(make_incident(status=IncidentStatus.diagnosed(1)))
        await diagnosis_repo.save(Diagnosis(incident_id=incident.id, root_cause="Known", confidence=Confidence.LOW))
        incident_repo.update = AsyncMock()

        result = await pipeline(
            incident_repo, diagnosis_repo, StaticRetriever(context), ScriptedGenerator(llm_answer()),
        ).diagnose(incident.id)

        assert result.get_or_none().is_new is False
        incident_repo.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_incident_with_naive_timestamps_can_be_diagnosed(self, incident_repo, diagnosis_repo, context):
        naive = datetime(2026, 1, 1, 0, 0)
        incident = await incident_repo.create(make_incident(created_at=naive, updated_at=naive))

        result = await pipeline(
            incident_repo, diagnosis_repo, StaticRetriever(context), ScriptedGenerator(llm_answer()),
        ).diagnose(incident.id)

        assert result.is_success
        stored = await incident_repo.find_by_id(incident.id)
        assert stored.created_at.tzinfo is not None
        assert stored.status_history[-1].triggered_at >= stored.created_at
