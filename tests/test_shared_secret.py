"""Tests for shared-secret verification."""

import pytest

from incident_core_lib.auth import verify_shared_secret


@pytest.mark.parametrize("provided, configured, expected", [
    ("s3cret", "s3cret", True),
    ("wrong", "s3cret", False),
    ("", "s3cret", False),
    (None, "s3cret", False),
    ("s3cret", "", False),
    ("", "", False),
    (None, None, False),
    ("ключ", "ключ", True),
])
def test_verify_shared_secret(provided, configured, expected):
    assert verify_shared_secret(provided, configured) is expected
