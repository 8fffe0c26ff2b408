"""Authentication utilities.

Inbound ingestion callers authenticate with a pre-shared key.
"""

from incident_core_lib.auth.shared_secret import verify_shared_secret

__all__ = [
    "verify_shared_secret",
]
