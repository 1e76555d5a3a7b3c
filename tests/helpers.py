"""Shared constants for the test suite."""

from datetime import datetime, timezone

TEST_SECRET_KEY = "test-secret-key-0123456789abcdef0123456789abcdef"
ALICE_PASSWORD = "Valid1Pass!"
# Fixed attempt time for lockout tests; the guard takes `now` explicitly.
T0 = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
