"""
Shared test fixtures.

Provides:
  • a simulated clock and an in-memory booking backend
  • a factory for wizard controllers wired to both
  • a FastAPI TestClient whose wizard registry hands out fake backends

The `client` fixture runs the full lifespan (session sweeper start /
shutdown) so the HTTP surface is exercised as in production.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from quickbook.dependencies import get_current_player
from quickbook.main import app
from quickbook.models import Preselection
from quickbook.services.registry import WizardRegistry
from quickbook.services.reservation import utcnow
from quickbook.services.wizard import WizardController
from tests.mocks.models import MOCK_PLAYER, SimClock
from tests.mocks.services import FakeBookingBackend


# ── Engine fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> SimClock:
    return SimClock()


@pytest.fixture()
def backend(clock: SimClock) -> FakeBookingBackend:
    return FakeBookingBackend(clock=clock)


@pytest.fixture()
async def make_wizard(backend: FakeBookingBackend, clock: SimClock):
    """
    Factory for controllers; the countdown ticker is effectively disabled
    so tests drive expiry with ``reservations.tick()``.
    """
    created: list[WizardController] = []

    def _make(preselected: Preselection | None = None, **kwargs) -> WizardController:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("tick_interval", 3600)
        controller = WizardController(backend, preselected, **kwargs)
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        await controller.close()


# ── HTTP fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch):
    """
    Patches the wizard registry so sessions get in-memory backends, and
    disables rate limiting.
    """
    backends: list[FakeBookingBackend] = []

    def _factory(token: str) -> FakeBookingBackend:
        fake = FakeBookingBackend(clock=utcnow)
        backends.append(fake)
        return fake

    test_registry = WizardRegistry(backend_factory=_factory)
    test_registry.backends = backends  # type: ignore[attr-defined]

    # Patch everywhere `registry` was imported
    for mod_path in (
        "quickbook.services.registry",
        "quickbook.main",
        "quickbook.routers.health",
        "quickbook.routers.wizard",
    ):
        monkeypatch.setattr(f"{mod_path}.registry", test_registry)

    # ── Disable rate limiting in tests ────────────────────────────────
    from quickbook.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    return test_registry


@pytest.fixture()
def wizard_registry(_test_env) -> WizardRegistry:
    return _test_env


@pytest.fixture()
def client(_test_env: WizardRegistry) -> TestClient:
    """FastAPI TestClient with fake backends and auth bypassed."""
    async def _mock_current_player():
        return MOCK_PLAYER

    app.dependency_overrides[get_current_player] = _mock_current_player

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def unauthed_client(_test_env: WizardRegistry) -> TestClient:
    """
    TestClient without auth overrides — requests are rejected unless
    a session cookie is provided.
    """
    app.dependency_overrides.clear()

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()
