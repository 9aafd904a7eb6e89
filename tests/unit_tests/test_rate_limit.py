"""Tests for rate limiting behaviour."""

import pytest
from fastapi.testclient import TestClient

from quickbook.dependencies import get_current_player
from quickbook.main import app
from tests.mocks.models import MOCK_PLAYER


class TestRateLimiting:
    """Verify that rate limiting kicks in for session-creating endpoints."""

    @pytest.fixture()
    def limited_client(self, _test_env):
        """
        TestClient with rate limiting **enabled** (unlike the default
        `client` fixture which disables it for convenience).
        """
        from quickbook.rate_limit import limiter

        limiter.enabled = True
        # Reset in-memory state so previous tests don't pollute counts
        limiter.reset()

        async def _mock_current_player():
            return MOCK_PLAYER

        app.dependency_overrides[get_current_player] = _mock_current_player

        with TestClient(app, raise_server_exceptions=False) as tc:
            yield tc

        app.dependency_overrides.clear()
        limiter.enabled = False

    def test_open_wizard_rate_limit(self, limited_client):
        """POST /api/wizard/sessions is limited to 10 requests/minute."""
        for i in range(10):
            resp = limited_client.post("/api/wizard/sessions")
            assert resp.status_code == 201, f"Request {i + 1} should succeed"

        # 11th request should be rate-limited
        resp = limited_client.post("/api/wizard/sessions")
        assert resp.status_code == 429

    def test_reads_not_limited_at_low_volume(self, limited_client):
        sid = limited_client.post("/api/wizard/sessions").json()["session_id"]
        for _ in range(20):
            resp = limited_client.get(f"/api/wizard/sessions/{sid}")
            assert resp.status_code == 200
