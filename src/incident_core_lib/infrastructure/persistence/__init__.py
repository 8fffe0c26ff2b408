"""Persistence adapters."""

from .memory import InMemoryDiagnosisRepository, InMemoryIncidentRepository

__all__ = [
    "InMemoryDiagnosisRepository",
    "InMemoryIncidentRepository",
]
