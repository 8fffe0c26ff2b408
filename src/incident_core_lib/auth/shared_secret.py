"""Shared-secret verification for inbound webhook callers."""

import logging
import secrets
from typing import Optional

logger = logging.getLogger(__name__)


def verify_shared_secret(provided: Optional[str], configured: Optional[str]) -> bool:
    """Check a caller-supplied key against the configured secret.

    Comparison is constant-time. An unset or empty configured secret never
    authorizes, so a missing configuration fails closed.

    Args:
        provided: Key sent by the caller (e.g. from an X-API-Key header)
        configured: Expected secret

    Returns:
        True if the keys match
    """
    if not configured:
        logger.warning("Shared secret not configured, rejecting caller")
        return False

    if provided is None:
        logger.warning("Caller did not supply a shared secret")
        return False

    if not secrets.compare_digest(provided.encode("utf-8"), configured.encode("utf-8")):
        logger.warning("Caller supplied an invalid shared secret")
        return False

    return True
