"""Incident ingestion.

- IngestionService: authenticated webhook submissions
- TrainingIngestionService: historical incidents used to seed the knowledge
  base, additionally journaled to a daily JSONL file
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from incident_core_lib.auth.shared_secret import verify_shared_secret
from incident_core_lib.common.result import Failure, Result, Success, attempt_async
from incident_core_lib.config.settings import Settings, get_settings
from incident_core_lib.core.interfaces import IncidentRepository
from incident_core_lib.core.validation import normalize_submission, validate_submission
from incident_core_lib.models.incident import Incident, IncidentStatus, normalize_source, utc_now
from incident_core_lib.models.ingestion import (
    IncidentCreated,
    IncidentSubmission,
    IngestionError,
    TrainingIncidentSubmission,
)

logger = logging.getLogger(__name__)


def _persistence_error(e: Exception) -> IngestionError:
    return IngestionError.persistence(str(e) or "Unknown error")


class IngestionService:
    """
    Accepts incidents from external systems.

    Args:
        repository: Incident persistence
        api_key: Shared secret callers must present
            (default: ``ingestion_api_key`` from settings)
        settings: Settings to read defaults from (default: global settings)
    """

    def __init__(
        self,
        repository: IncidentRepository,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        if api_key is None:
            api_key = (settings or get_settings()).ingestion_api_key.get_secret_value()
        self.repository = repository
        self._api_key = api_key

    async def ingest(
        self,
        submission: IncidentSubmission,
        provided_key: Optional[str],
    ) -> Result[IngestionError, IncidentCreated]:
        """Authenticate, validate, normalize and persist one submission."""
        if not verify_shared_secret(provided_key, self._api_key):
            logger.warning("Unauthorized webhook ingestion attempt")
            return Failure(IngestionError.unauthorized())

        validation = validate_submission(submission)
        if validation.is_failure:
            logger.debug(f"Webhook validation failed: {validation.error}")
            return Failure(IngestionError.validation(validation.error))

        incident = normalize_submission(submission)
        created = await attempt_async(lambda: self.repository.create(incident), _persistence_error)
        if created.is_failure:
            logger.error(f"Failed to ingest incident via webhook: {created.error.message}")
            return created

        logger.info(
            f"Ingested incident via webhook: source={created.value.source}, "
            f"title={created.value.title}, id={created.value.id}"
        )
        return created.map(lambda c: IncidentCreated(id=c.id, source=c.source, title=c.title))


class TrainingIngestionService:
    """
    Accepts historical incidents for training.

    Every accepted submission is appended to
    ``<log_dir>/training-incidents-YYYY-MM-DD.jsonl``. Journal write failures
    are logged and never fail the submission.

    Args:
        repository: Incident persistence
        log_dir: Journal directory (default: ``training_log_dir`` from settings)
        clock: Returns the current time; injectable for tests
        settings: Settings to read defaults from (default: global settings)
    """

    def __init__(
        self,
        repository: IncidentRepository,
        log_dir: Optional[Union[str, Path]] = None,
        clock: Callable[[], datetime] = utc_now,
        settings: Optional[Settings] = None,
    ):
        if log_dir is None:
            log_dir = (settings or get_settings()).training_log_dir
        self.repository = repository
        self.log_dir = Path(log_dir)
        self.clock = clock

    async def submit(self, submission: TrainingIncidentSubmission) -> Result[IngestionError, Incident]:
        validation = validate_submission(IncidentSubmission(
            title=submission.title,
            description=submission.description,
            source=submission.source,
        ))
        if validation.is_failure:
            logger.debug(f"Training submission rejected: {validation.error}")
            return Failure(IngestionError.validation(validation.error))

        timestamp = submission.timestamp or self.clock()
        incident = Incident(
            source=normalize_source(submission.source),
            title=submission.title.strip(),
            description=self._build_description(submission.description.strip(), submission.stack_trace),
            severity=submission.severity,
            status=IncidentStatus.open(),
            created_at=timestamp,
            updated_at=timestamp,
        )

        created = await attempt_async(lambda: self.repository.create(incident), _persistence_error)
        if created.is_failure:
            logger.error(f"Failed to store training incident: {created.error.message}")
            return created

        logger.info(f"Training incident {created.value.id} stored: {created.value.title}")
        self._journal(submission, created.value)
        return Success(created.value)

    @staticmethod
    def _build_description(description: str, stack_trace: Optional[str]) -> str:
        if not stack_trace or not stack_trace.strip():
            return description
        return f"{description}\n\nStack Trace:\n{stack_trace}"

    def journal_path(self, moment: Optional[datetime] = None) -> Path:
        day = (moment or self.clock()).strftime("%Y-%m-%d")
        return self.log_dir / f"training-incidents-{day}.jsonl"

    def _journal(self, submission: TrainingIncidentSubmission, created: Incident) -> None:
        entry = {
            "title": submission.title,
            "description": submission.description,
            "severity": submission.severity.value,
            "timestamp": (submission.timestamp or created.created_at).isoformat(),
            "stackTrace": submission.stack_trace,
            "source": submission.source,
            "createdAt": created.created_at.isoformat(),
        }
        path = self.journal_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
            logger.info(f"Logged training data to {path}")
        except OSError as e:
            logger.warning(f"Failed to log training data to {path}: {e}")
