"""Incident lifecycle operations."""

import logging
from typing import List, Optional

from incident_core_lib.common.result import Failure, Result, Success, attempt_async
from incident_core_lib.core.interfaces import IncidentRepository, Pagination, SearchCriteria
from incident_core_lib.models.incident import Incident, IncidentError, IncidentStatus

logger = logging.getLogger(__name__)


def _persistence_error(e: Exception) -> IncidentError:
    return IncidentError.persistence(str(e) or type(e).__name__)


class IncidentService:
    """
    Reads incidents and applies status changes through the lifecycle rules.

    Args:
        repository: Incident persistence
    """

    def __init__(self, repository: IncidentRepository):
        self.repository = repository

    async def get(self, incident_id: int) -> Result[IncidentError, Incident]:
        found = await attempt_async(lambda: self.repository.find_by_id(incident_id), _persistence_error)
        if found.is_failure:
            return found
        if found.value is None:
            return Failure(IncidentError.not_found(incident_id))
        return Success(found.value)

    async def list_recent(self, limit: int = 50) -> Result[IncidentError, List[Incident]]:
        return await self.search(SearchCriteria(), Pagination(limit=limit))

    async def search(
        self,
        criteria: SearchCriteria,
        pagination: Optional[Pagination] = None,
    ) -> Result[IncidentError, List[Incident]]:
        page = pagination or Pagination()
        return await attempt_async(lambda: self.repository.search(criteria, page), _persistence_error)

    async def create(self, incident: Incident) -> Result[IncidentError, Incident]:
        created = await attempt_async(lambda: self.repository.create(incident), _persistence_error)
        if created.is_success:
            logger.info(f"Incident {created.value.id} created: {created.value.title}")
        return created

    async def update_status(
        self,
        incident_id: int,
        status: IncidentStatus,
        triggered_by: str = "system",
        reason: str = "",
    ) -> Result[IncidentError, Incident]:
        """Move an incident to ``status`` if the lifecycle allows it."""
        return await self._transition(incident_id, status, triggered_by, reason)

    async def acknowledge(self, incident_id: int, triggered_by: str = "system") -> Result[IncidentError, Incident]:
        return await self._transition(incident_id, IncidentStatus.acknowledged(), triggered_by, "Acknowledged")

    async def resolve(
        self,
        incident_id: int,
        resolution_text: str,
        triggered_by: str = "system",
    ) -> Result[IncidentError, Incident]:
        """Resolve the incident and record how it was fixed."""
        return await self._transition(
            incident_id,
            IncidentStatus.resolved(),
            triggered_by,
            "Resolved",
            resolution_text=resolution_text,
        )

    async def _transition(
        self,
        incident_id: int,
        status: IncidentStatus,
        triggered_by: str,
        reason: str,
        resolution_text: Optional[str] = None,
    ) -> Result[IncidentError, Incident]:
        current = await self.get(incident_id)
        if current.is_failure:
            return current

        moved = current.value.transition_to(status, triggered_by=triggered_by, reason=reason)
        if moved.is_failure:
            logger.warning(f"Rejected status change for incident {incident_id}: {moved.error.reason}")
            return Failure(IncidentError.invalid_transition(moved.error))

        incident = moved.value
        if resolution_text is not None:
            incident = incident.model_copy(update={"resolution_text": resolution_text})

        updated = await attempt_async(lambda: self.repository.update(incident), _persistence_error)
        if updated.is_success:
            logger.info(f"Incident {incident_id} moved to {status}")
        else:
            logger.error(f"Failed to update incident {incident_id}: {updated.error.reason}")
        return updated
