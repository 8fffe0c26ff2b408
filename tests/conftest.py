"""Shared fixtures and collaborator fakes."""

import json
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from incident_core_lib.core.interfaces import ContextRetriever, DiagnosisGenerator
from incident_core_lib.core.prompts import PromptInputs
from incident_core_lib.infrastructure.persistence.memory import (
    InMemoryDiagnosisRepository,
    InMemoryIncidentRepository,
)
from incident_core_lib.models import (
    ContextSnippet,
    Incident,
    RetrievalContext,
    Severity,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StaticRetriever(ContextRetriever):
    """Returns a fixed context (or raises) and records the incidents it was asked about."""

    def __init__(self, context: Optional[RetrievalContext] = None, error: Optional[Exception] = None):
        self.context = context
        self.error = error
        self.calls: List[Incident] = []

    async def retrieve_context(self, incident: Incident) -> Optional[RetrievalContext]:
        self.calls.append(incident)
        if self.error is not None:
            raise self.error
        return self.context


class ScriptedGenerator(DiagnosisGenerator):
    """Returns a canned model answer (or raises) and records prompts."""

    def __init__(self, answer: str = "", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: List[PromptInputs] = []

    async def propose(self, prompt_inputs: PromptInputs) -> str:
        self.calls.append(prompt_inputs)
        if self.error is not None:
            raise self.error
        return self.answer


def make_incident(**overrides) -> Incident:
    fields = dict(
        source="cloudwatch",
        title="High CPU on api-gateway",
        description="CPU above 95% for 10 minutes",
        severity=Severity.HIGH,
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return Incident(**fields)


def llm_answer(root_cause: str = "Connection pool exhausted", steps=None, confidence: str = "HIGH") -> str:
    return json.dumps({
        "rootCause": root_cause,
        "steps": steps if steps is not None else ["restart api", "Notify on-call"],
        "confidence": confidence,
    })


@pytest.fixture
def incident_repo():
    return InMemoryIncidentRepository()


@pytest.fixture
def diagnosis_repo():
    return InMemoryDiagnosisRepository()


@pytest.fixture
def context():
    return RetrievalContext(
        past_resolutions=[ContextSnippet(reference="incident-7", text="Restarted api to clear pool", score=0.91)],
        runbook_fragments=[ContextSnippet(reference="rb-3", text="Scale api cluster when CPU is high")],
    )


@pytest.fixture
def clock():
    return FakeClock()
