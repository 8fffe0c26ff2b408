"""Submission validation and normalization.

Turns loosely-typed inbound submissions into canonical ``Incident`` values.
Validation collects every violated constraint instead of stopping at the
first one, so webhook callers can fix a payload in one round trip.
"""

import logging
from datetime import datetime
from typing import List, Optional

from incident_core_lib.common.result import Failure, Result, Success
from incident_core_lib.models.incident import (
    Incident,
    IncidentStatus,
    Severity,
    UNASSIGNED_ID,
    normalize_source,
    utc_now,
)
from incident_core_lib.models.ingestion import (
    IncidentSubmission,
    MAX_SOURCE_LENGTH,
    MAX_TITLE_LENGTH,
)

logger = logging.getLogger(__name__)


def parse_severity(value: Optional[str]) -> Severity:
    """
    Parse a severity name, case-insensitively.

    Absent, blank or unknown values fall back to MEDIUM; this never raises.
    """
    if value is None:
        return Severity.MEDIUM
    try:
        return Severity(value.strip().upper())
    except ValueError:
        logger.debug(f"Unknown severity '{value}', defaulting to MEDIUM")
        return Severity.MEDIUM


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_submission(submission: IncidentSubmission) -> Result[List[str], None]:
    """
    Check a submission against the ingestion constraints.

    Returns:
        Success(None) when valid, otherwise Failure with one message per
        violation, ordered title, description, source.
    """
    errors: List[str] = []

    if _is_blank(submission.title):
        errors.append("title is required and must not be blank")
    elif len(submission.title.strip()) > MAX_TITLE_LENGTH:
        errors.append(f"title must not exceed {MAX_TITLE_LENGTH} characters")

    if _is_blank(submission.description):
        errors.append("description is required and must not be blank")

    if _is_blank(submission.source):
        errors.append("source is required and must not be blank")
    elif len(submission.source.strip()) > MAX_SOURCE_LENGTH:
        errors.append(f"source must not exceed {MAX_SOURCE_LENGTH} characters")

    if errors:
        logger.debug(f"Submission rejected: {errors}")
        return Failure(errors)
    return Success(None)


def normalize_submission(submission: IncidentSubmission, now: Optional[datetime] = None) -> Incident:
    """Build an unpersisted OPEN incident from a validated submission."""
    moment = now or utc_now()
    return Incident(
        id=UNASSIGNED_ID,
        source=normalize_source(submission.source),
        title=submission.title.strip(),
        description=submission.description.strip(),
        severity=parse_severity(submission.severity),
        status=IncidentStatus.open(),
        created_at=moment,
        updated_at=moment,
    )
