"""Base client for collaborator REST services."""

import logging
from typing import Callable, Optional

import httpx

from incident_core_lib.utils.resilience import service_startup_retry

logger = logging.getLogger(__name__)


class BaseServiceClient:
    """Base class for async HTTP clients of collaborator services.

    Usage:
        class IncidentServiceClient(BaseServiceClient):
            async def find_by_id(self, incident_id: int) -> Optional[Incident]:
                async with self._get_client() as client:
                    response = await client.get(
                        f"{self.base_url}/api/v1/incidents/{incident_id}",
                        headers=self._headers(),
                    )
                    ...
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize service client.

        Args:
            base_url: Service base URL (e.g., http://incident-store:8005)
            timeout: Request timeout in seconds (default: 30.0)
            api_key: Optional key sent as X-API-Key
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport

        logger.info(f"Initialized {self.__class__.__name__} with base_url={self.base_url}")

    def _headers(self, correlation_id: Optional[str] = None) -> dict:
        """Request headers with optional credentials and correlation ID."""
        headers = {
            "Content-Type": "application/json",
        }

        if self._api_key:
            headers["X-API-Key"] = self._api_key

        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout.

        Returns:
            Configured AsyncClient ready for use with async context manager
        """
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def health_check(self) -> None:
        """Probe GET /health.

        Raises:
            httpx.HTTPError: If the service is unreachable or unhealthy
        """
        async with self._get_client() as client:
            response = await client.get(f"{self.base_url}/health", headers=self._headers())
            response.raise_for_status()

    async def wait_until_ready(self, retry_policy: Callable = service_startup_retry) -> None:
        """Block until the service answers its health check.

        Args:
            retry_policy: tenacity retry decorator (default: start-up policy)

        Raises:
            httpx.HTTPError: If the service is still unavailable after all attempts
        """
        await retry_policy(self.health_check)()
        logger.info(f"{self.__class__.__name__} connected to {self.base_url}")
