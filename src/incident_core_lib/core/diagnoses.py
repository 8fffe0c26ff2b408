"""Stored diagnosis lookup and human verification."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from incident_core_lib.common.result import Failure, Result, Success, attempt_async
from incident_core_lib.core.interfaces import DiagnosisRepository
from incident_core_lib.models.diagnosis import Diagnosis, DiagnosisError, DiagnosisVerification
from incident_core_lib.models.incident import utc_now

logger = logging.getLogger(__name__)


def _persistence_error(e: Exception) -> DiagnosisError:
    return DiagnosisError.persistence_failed(str(e) or type(e).__name__)


class DiagnosisService:
    """
    Args:
        repository: Diagnosis persistence
        clock: Returns the current time; injectable for tests
    """

    def __init__(self, repository: DiagnosisRepository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.clock = clock

    async def get(self, diagnosis_id: int) -> Result[DiagnosisError, Diagnosis]:
        found = await attempt_async(lambda: self.repository.find_by_id(diagnosis_id), _persistence_error)
        if found.is_failure:
            return found
        if found.value is None:
            return Failure(DiagnosisError.not_found())
        return Success(found.value)

    async def get_by_incident_id(self, incident_id: int) -> Result[DiagnosisError, Optional[Diagnosis]]:
        return await attempt_async(lambda: self.repository.find_by_incident_id(incident_id), _persistence_error)

    async def list_recent(self, limit: int = 50) -> Result[DiagnosisError, List[Diagnosis]]:
        return await attempt_async(lambda: self.repository.list_recent(limit), _persistence_error)

    async def verify(self, diagnosis_id: int, user: str) -> Result[DiagnosisError, Diagnosis]:
        """Mark a diagnosis as confirmed by ``user``."""
        found = await self.get(diagnosis_id)
        if found.is_failure:
            return found

        verified = found.value.model_copy(update={
            "verification": DiagnosisVerification.VERIFIED,
            "verified_at": self.clock(),
            "verified_by": user,
        })
        updated = await attempt_async(lambda: self.repository.update(verified), _persistence_error)
        if updated.is_success:
            logger.info(f"Diagnosis {diagnosis_id} verified by {user}")
        return updated
