"""
Time-boxed reservation holds.

One ReservationManager serves one wizard session and tracks at most one
hold.  State machine::

    IDLE ──reserve()──▶ RESERVING ──ok──▶ HELD ──expires_at──▶ EXPIRED
                            │               │
                            └─error──▶ FAILED ◀─fail()─┤
                                            └─consume()─▶ CONSUMED

    HELD / EXPIRED / FAILED / RESERVING ──abandon()──▶ IDLE

While a hold is HELD a countdown ticker runs every ``tick_interval``
seconds; it is torn down on every transition out of HELD.  The local
countdown is advisory: a submission that succeeds on the server
consumes the hold even if the countdown reached zero meanwhile.
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import Callable

from quickbook.config import RESERVATION_TICK_SECONDS
from quickbook.errors import BookingApiError, WizardStateError
from quickbook.models import ReservationHold, ReservationState, ReservationView
from quickbook.services.background import BackgroundWorker

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ExpiryListener = Callable[[ReservationHold], None]


def utcnow() -> datetime:
    return datetime.now(UTC)


class CountdownTicker(BackgroundWorker):
    """Calls ``ReservationManager.tick`` while a hold is HELD."""

    def __init__(self, manager: ReservationManager, interval: float) -> None:
        super().__init__(interval=interval, name="reservation-countdown")
        self._manager = manager

    async def _tick(self) -> None:
        self._manager.tick()


class ReservationManager:
    def __init__(
        self,
        backend,
        *,
        clock: Clock = utcnow,
        tick_interval: float = RESERVATION_TICK_SECONDS,
        on_expired: ExpiryListener | None = None,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._tick_interval = tick_interval
        self._on_expired = on_expired
        self._state = ReservationState.IDLE
        self._hold: ReservationHold | None = None
        self._slot: tuple[str, datetime, datetime] | None = None
        self._error: BookingApiError | None = None
        self._attempt = 0
        self._ticker: CountdownTicker | None = None

    # ── Introspection ──────────────────────────────────────────────────

    @property
    def state(self) -> ReservationState:
        return self._state

    @property
    def hold(self) -> ReservationHold | None:
        return self._hold

    @property
    def error(self) -> BookingApiError | None:
        return self._error

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and self._ticker.running

    def holds(self, court_id: str, start: datetime, end: datetime) -> bool:
        """True when a HELD hold covers exactly this court and slot."""
        return self._state is ReservationState.HELD and self._slot == (court_id, start, end)

    def remaining_seconds(self) -> int | None:
        if self._hold is None or self._state not in (ReservationState.HELD, ReservationState.EXPIRED):
            return None
        delta = (self._hold.expires_at - self._clock()).total_seconds()
        return max(0, math.floor(delta))

    def view(self) -> ReservationView:
        return ReservationView(
            state=self._state,
            hold=self._hold,
            remaining_seconds=self.remaining_seconds(),
        )

    # ── Transitions ────────────────────────────────────────────────────

    async def reserve(self, court_id: str, start: datetime, end: datetime) -> ReservationHold | None:
        """
        Create a hold on *court_id* for [start, end).

        Returns None when the attempt was abandoned while the request was
        in flight.  Backend errors move the manager to FAILED and are
        re-raised.
        """
        if self._state in (ReservationState.HELD, ReservationState.RESERVING):
            raise WizardStateError(f"Cannot reserve while a reservation is {self._state.value}")
        if self._state is ReservationState.CONSUMED:
            raise WizardStateError("Reservation already consumed by a booking")

        self._attempt += 1
        attempt = self._attempt
        self._state = ReservationState.RESERVING
        self._slot = (court_id, start, end)
        self._hold = None
        self._error = None
        logger.info("Reserving court %s from %s to %s", court_id, start.isoformat(), end.isoformat())

        try:
            hold = await self._backend.create_reservation(court_id, start, end)
        except BookingApiError as exc:
            if attempt != self._attempt:
                logger.info("Discarding failure of abandoned reservation attempt for court %s", court_id)
                return None
            self._state = ReservationState.FAILED
            self._error = exc
            logger.warning("Reservation for court %s failed: %s", court_id, exc.message)
            raise

        if attempt != self._attempt:
            logger.info("Reservation %s arrived after its selection changed, releasing", hold.id)
            await self.release_quietly(hold)
            return None

        self._hold = hold
        self._state = ReservationState.HELD
        logger.info("Reservation %s held until %s", hold.id, hold.expires_at.isoformat())
        await self._start_ticker()
        # an already-past expiry must not wait a full tick
        self.tick()
        return hold

    def tick(self) -> None:
        """Expire the hold once the clock reaches ``expires_at``. Idempotent."""
        if self._state is not ReservationState.HELD or self._hold is None:
            return
        if self._clock() < self._hold.expires_at:
            return
        self._state = ReservationState.EXPIRED
        self._stop_ticker()
        logger.info("Reservation %s expired", self._hold.id)
        if self._on_expired is not None:
            self._on_expired(self._hold)

    def consume(self) -> None:
        """The booking for the held slot succeeded on the server."""
        if self._state not in (ReservationState.HELD, ReservationState.EXPIRED):
            raise WizardStateError(f"Cannot consume a reservation that is {self._state.value}")
        self._state = ReservationState.CONSUMED
        self._stop_ticker()
        logger.info("Reservation %s consumed", self._hold.id if self._hold else None)

    def fail(self, error: BookingApiError) -> None:
        """The server rejected the held slot (e.g. a racing booking took it)."""
        if self._state not in (ReservationState.HELD, ReservationState.EXPIRED):
            raise WizardStateError(f"Cannot fail a reservation that is {self._state.value}")
        self._state = ReservationState.FAILED
        self._error = error
        self._stop_ticker()

    def abandon(self) -> ReservationHold | None:
        """
        Drop the current attempt and return to IDLE.

        Returns the hold that was still HELD, so the caller may release it.
        A CONSUMED reservation is terminal and is left untouched.
        """
        if self._state is ReservationState.CONSUMED:
            return None
        previous = self._hold if self._state is ReservationState.HELD else None
        if self._state is not ReservationState.IDLE:
            logger.info("Abandoning reservation attempt (state=%s)", self._state.value)
        self._attempt += 1
        self._stop_ticker()
        self._state = ReservationState.IDLE
        self._hold = None
        self._slot = None
        self._error = None
        return previous

    async def release_quietly(self, hold: ReservationHold) -> None:
        """Best-effort release; failures are logged and ignored."""
        try:
            await self._backend.release_reservation(hold.id)
        except BookingApiError as exc:
            logger.warning("Courtesy release of reservation %s failed: %s", hold.id, exc.message)

    async def shutdown(self) -> None:
        if self._ticker is not None:
            ticker, self._ticker = self._ticker, None
            await ticker.stop()

    # ── Ticker ─────────────────────────────────────────────────────────

    async def _start_ticker(self) -> None:
        self._stop_ticker()
        self._ticker = CountdownTicker(self, self._tick_interval)
        await self._ticker.start()

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
