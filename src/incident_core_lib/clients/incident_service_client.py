"""HTTP client for the incident persistence service."""

import logging
from typing import List, Optional

import httpx

from incident_core_lib.clients.base import BaseServiceClient
from incident_core_lib.config.settings import Settings, get_settings
from incident_core_lib.core.interfaces import IncidentRepository, Pagination, SearchCriteria
from incident_core_lib.models.incident import Incident

logger = logging.getLogger(__name__)


class IncidentServiceClient(BaseServiceClient, IncidentRepository):
    """Incident repository backed by a REST service.

    Faults (transport errors, non-2xx answers other than a lookup 404) are
    raised as ``httpx.HTTPError``; the core converts them into its own
    error values.

    Usage:
        client = IncidentServiceClient()  # INCIDENT_SERVICE_URL
        await client.wait_until_ready()
        incident = await client.find_by_id(42)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        """Unset ``base_url``/``timeout`` come from ``incident_service_url``/``incident_service_timeout``."""
        if base_url is None or timeout is None:
            settings = settings or get_settings()
            base_url = settings.incident_service_url if base_url is None else base_url
            timeout = settings.incident_service_timeout if timeout is None else timeout
        super().__init__(base_url=base_url, timeout=timeout, api_key=api_key, transport=transport)

    async def find_by_id(self, incident_id: int) -> Optional[Incident]:
        """Get incident by ID.

        Returns:
            The incident, or None if the service answers 404
        """
        async with self._get_client() as client:
            response = await client.get(
                f"{self.base_url}/api/v1/incidents/{incident_id}",
                headers=self._headers(),
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return Incident.model_validate(response.json())

    async def create(self, incident: Incident) -> Incident:
        """Create an incident; the service assigns the id."""
        async with self._get_client() as client:
            response = await client.post(
                f"{self.base_url}/api/v1/incidents",
                json=incident.model_dump(mode='json', exclude={"id"}),
                headers=self._headers(),
            )
            response.raise_for_status()
            created = Incident.model_validate(response.json())
            logger.debug(f"Incident {created.id} created via {self.base_url}")
            return created

    async def update(self, incident: Incident) -> Incident:
        if not incident.is_persisted:
            raise ValueError("Cannot update an incident that has not been created")

        async with self._get_client() as client:
            response = await client.put(
                f"{self.base_url}/api/v1/incidents/{incident.id}",
                json=incident.model_dump(mode='json'),
                headers=self._headers(),
            )
            response.raise_for_status()
            return Incident.model_validate(response.json())

    async def search(self, criteria: SearchCriteria, pagination: Pagination) -> List[Incident]:
        """Search incidents, newest first."""
        params = {
            key: value
            for key, value in criteria.model_dump(mode='json').items()
            if value is not None
        }
        params.update(limit=pagination.limit, offset=pagination.offset)

        async with self._get_client() as client:
            response = await client.get(
                f"{self.base_url}/api/v1/incidents",
                params=params,
                headers=self._headers(),
            )
            response.raise_for_status()
            return [Incident.model_validate(item) for item in response.json()]
