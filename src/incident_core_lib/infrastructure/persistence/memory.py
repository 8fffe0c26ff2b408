"""In-memory repositories.

Reference implementations of the persistence interfaces, used for local runs
and tests. Ids are assigned from 1 upwards in creation order.
"""

import itertools
import logging
from typing import Dict, List, Optional

from incident_core_lib.core.interfaces import (
    DiagnosisRepository,
    IncidentRepository,
    Pagination,
    SearchCriteria,
)
from incident_core_lib.models.diagnosis import Diagnosis
from incident_core_lib.models.incident import Incident

logger = logging.getLogger(__name__)


class InMemoryIncidentRepository(IncidentRepository):
    """Dict-backed incident store."""

    def __init__(self):
        self._incidents: Dict[int, Incident] = {}
        self._ids = itertools.count(1)

    async def find_by_id(self, incident_id: int) -> Optional[Incident]:
        return self._incidents.get(incident_id)

    async def create(self, incident: Incident) -> Incident:
        if incident.is_persisted:
            raise ValueError(f"Incident {incident.id} already has an id")
        created = incident.with_id(next(self._ids))
        self._incidents[created.id] = created
        return created

    async def update(self, incident: Incident) -> Incident:
        if incident.id not in self._incidents:
            raise KeyError(f"Incident {incident.id} does not exist")
        self._incidents[incident.id] = incident
        return incident

    async def search(self, criteria: SearchCriteria, pagination: Pagination) -> List[Incident]:
        matches = [i for i in self._incidents.values() if self._matches(i, criteria)]
        matches.sort(key=lambda i: (i.created_at, i.id), reverse=True)
        return matches[pagination.offset:pagination.offset + pagination.limit]

    @staticmethod
    def _matches(incident: Incident, criteria: SearchCriteria) -> bool:
        if criteria.status is not None and incident.status.kind != criteria.status:
            return False
        if criteria.severity is not None and incident.severity != criteria.severity:
            return False
        if criteria.source is not None and incident.source.lower() != criteria.source.lower():
            return False
        if criteria.query:
            needle = criteria.query.lower()
            return needle in incident.title.lower() or needle in incident.description.lower()
        return True

    def __len__(self) -> int:
        return len(self._incidents)


class InMemoryDiagnosisRepository(DiagnosisRepository):
    """Dict-backed diagnosis store."""

    def __init__(self):
        self._diagnoses: Dict[int, Diagnosis] = {}
        self._ids = itertools.count(1)

    async def find_by_id(self, diagnosis_id: int) -> Optional[Diagnosis]:
        return self._diagnoses.get(diagnosis_id)

    async def find_by_incident_id(self, incident_id: int) -> Optional[Diagnosis]:
        # Most recent diagnosis wins
        matches = [d for d in self._diagnoses.values() if d.incident_id == incident_id]
        return max(matches, key=lambda d: d.id) if matches else None

    async def save(self, diagnosis: Diagnosis) -> Diagnosis:
        saved = diagnosis.model_copy(update={"id": next(self._ids)})
        self._diagnoses[saved.id] = saved
        logger.debug(f"Diagnosis {saved.id} saved for incident {saved.incident_id}")
        return saved

    async def update(self, diagnosis: Diagnosis) -> Diagnosis:
        if diagnosis.id not in self._diagnoses:
            raise KeyError(f"Diagnosis {diagnosis.id} does not exist")
        self._diagnoses[diagnosis.id] = diagnosis
        return diagnosis

    async def list_recent(self, limit: int = 50) -> List[Diagnosis]:
        ordered = sorted(self._diagnoses.values(), key=lambda d: (d.created_at, d.id), reverse=True)
        return ordered[:limit]

    def __len__(self) -> int:
        return len(self._diagnoses)
