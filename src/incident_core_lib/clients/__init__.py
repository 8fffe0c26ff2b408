"""Clients for collaborator services."""

from incident_core_lib.clients.base import BaseServiceClient
from incident_core_lib.clients.incident_service_client import IncidentServiceClient

__all__ = [
    "BaseServiceClient",
    "IncidentServiceClient",
]
