"""Collaborator interfaces.

The core never talks to a database, a vector store or a model API directly;
it depends on these abstract classes and receives implementations at
construction time.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, Field

from incident_core_lib.models.diagnosis import Diagnosis
from incident_core_lib.models.incident import Incident, IncidentStatusKind, Severity
from incident_core_lib.models.retrieval import RetrievalContext

if TYPE_CHECKING:
    from incident_core_lib.core.prompts import PromptInputs


class SearchCriteria(BaseModel):
    """Incident search filters; unset fields do not filter."""

    query: Optional[str] = Field(default=None, description="Case-insensitive match on title or description")
    status: Optional[IncidentStatusKind] = None
    severity: Optional[Severity] = None
    source: Optional[str] = None


class Pagination(BaseModel):
    """Pagination parameters for list operations"""

    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class IncidentRepository(ABC):
    """Incident persistence."""

    @abstractmethod
    async def find_by_id(self, incident_id: int) -> Optional[Incident]:
        """Return the incident, or None if it does not exist."""
        pass

    @abstractmethod
    async def create(self, incident: Incident) -> Incident:
        """Persist a new incident and return it with its assigned id."""
        pass

    @abstractmethod
    async def update(self, incident: Incident) -> Incident:
        pass

    @abstractmethod
    async def search(self, criteria: SearchCriteria, pagination: Pagination) -> List[Incident]:
        """Newest first."""
        pass


class DiagnosisRepository(ABC):
    """Diagnosis persistence."""

    @abstractmethod
    async def find_by_id(self, diagnosis_id: int) -> Optional[Diagnosis]:
        pass

    @abstractmethod
    async def find_by_incident_id(self, incident_id: int) -> Optional[Diagnosis]:
        pass

    @abstractmethod
    async def save(self, diagnosis: Diagnosis) -> Diagnosis:
        """Persist a new diagnosis and return it with its assigned id."""
        pass

    @abstractmethod
    async def update(self, diagnosis: Diagnosis) -> Diagnosis:
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 50) -> List[Diagnosis]:
        pass


class ContextRetriever(ABC):
    """Retrieves supporting evidence for an incident."""

    @abstractmethod
    async def retrieve_context(self, incident: Incident) -> Optional[RetrievalContext]:
        """
        Return ranked context for the incident.

        None means nothing relevant was found.
        """
        pass


class DiagnosisGenerator(ABC):
    """Generative model behind the diagnosis step."""

    @abstractmethod
    async def propose(self, prompt_inputs: "PromptInputs") -> str:
        """
        Return the model's raw text answer.

        Raises on timeout, transport failure or unavailability.
        """
        pass
