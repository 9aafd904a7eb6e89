"""
Wizard session registry – holds the open wizard sessions.

One WizardController per session, each with its own booking backend
client bound to the player's session token.  Sessions idle for longer
than ``WIZARD_SESSION_TTL_SECONDS`` are closed by a background sweeper.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

from quickbook.config import WIZARD_SESSION_TTL_SECONDS, WIZARD_SWEEP_INTERVAL
from quickbook.errors import SessionForbiddenError, SessionNotFoundError
from quickbook.models import BookingCompletion, Preselection
from quickbook.services.background import BackgroundWorker
from quickbook.services.booking_api.client import BookingApiClient
from quickbook.services.booking_backend import BookingBackend
from quickbook.services.wizard import WizardController

logger = logging.getLogger(__name__)

BackendFactory = Callable[[str], BookingBackend]


@dataclass
class WizardSession:
    id: str
    owner: str
    controller: WizardController
    backend: BookingBackend
    touched_at: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.touched_at = time.monotonic()


class SessionSweeper(BackgroundWorker):
    """Closes sessions nobody touched within the TTL."""

    def __init__(self, registry: WizardRegistry, interval: float) -> None:
        super().__init__(interval=interval, name="wizard-session-sweeper")
        self._registry = registry

    async def _tick(self) -> None:
        await self._registry.sweep()


class WizardRegistry:
    def __init__(
        self,
        backend_factory: BackendFactory | None = None,
        *,
        ttl_seconds: float = WIZARD_SESSION_TTL_SECONDS,
        sweep_interval: float = WIZARD_SWEEP_INTERVAL,
    ) -> None:
        self._backend_factory = backend_factory or (lambda token: BookingApiClient(token=token))
        self._ttl = ttl_seconds
        self._sessions: dict[str, WizardSession] = {}
        self._sweeper = SessionSweeper(self, sweep_interval)

    def __len__(self) -> int:
        return len(self._sessions)

    async def start(self) -> None:
        await self._sweeper.start()

    async def stop(self) -> None:
        """Stop the sweeper and close every open session."""
        await self._sweeper.stop()
        for session_id in list(self._sessions):
            await self._discard(session_id)

    async def create(
        self,
        owner: str,
        token: str,
        preselected: Preselection | None = None,
    ) -> WizardSession:
        backend = self._backend_factory(token)
        session_id = uuid.uuid4().hex

        def _completed(completion: BookingCompletion) -> None:
            logger.info("Session %s completed booking %s", session_id, completion.booking_id)

        controller = WizardController(backend, preselected, on_complete=_completed)
        session = WizardSession(id=session_id, owner=owner, controller=controller, backend=backend)
        self._sessions[session_id] = session
        await controller.open()
        logger.info("Opened wizard session %s for %s", session_id, owner)
        return session

    def get(self, session_id: str, owner: str) -> WizardSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.owner != owner:
            raise SessionForbiddenError(session_id)
        session.touch()
        return session

    async def close(self, session_id: str, owner: str) -> BookingCompletion | None:
        self.get(session_id, owner)
        return await self._discard(session_id)

    async def sweep(self) -> int:
        """Close sessions idle for longer than the TTL. Returns how many."""
        cutoff = time.monotonic() - self._ttl
        stale = [sid for sid, s in self._sessions.items() if s.touched_at < cutoff]
        for session_id in stale:
            logger.info("Closing idle wizard session %s", session_id)
            await self._discard(session_id)
        return len(stale)

    async def _discard(self, session_id: str) -> BookingCompletion | None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        try:
            return await session.controller.close()
        finally:
            await session.backend.close()


# ── Singleton instance ────────────────────────────────────────────────────
registry = WizardRegistry()
