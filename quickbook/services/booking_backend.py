"""
Interface of the booking backend as seen by the engine.

BookingApiClient implements it over HTTP; tests substitute an in-memory
fake so the wizard is decoupled from the transport.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from quickbook.models import (
    AvailabilityQuery,
    AvailabilityResult,
    ClubSummary,
    CourtCandidate,
    PaymentProvider,
    PriceSegment,
    ReservationHold,
)


class BookingBackend(Protocol):
    """Protocol every booking backend must satisfy."""

    # ── Catalogue ─────────────────────────────────────────────────────
    async def list_clubs(self) -> list[ClubSummary]:
        ...

    async def get_club(self, club_id: str) -> ClubSummary:
        """Club with business hours and timezone."""
        ...

    async def get_court(self, court_id: str) -> CourtCandidate:
        ...

    async def list_payment_providers(self, club_id: str) -> list[PaymentProvider]:
        ...

    # ── Availability & pricing ────────────────────────────────────────
    async def list_available_courts(
        self,
        query: AvailabilityQuery,
        club: ClubSummary | None = None,
    ) -> AvailabilityResult:
        """Courts free for the whole slot; suggestions when there are none."""
        ...

    async def get_price_timeline(self, court_id: str, on: date) -> list[PriceSegment]:
        ...

    # ── Holds & bookings ──────────────────────────────────────────────
    async def create_reservation(
        self, court_id: str, start: datetime, end: datetime,
    ) -> ReservationHold:
        """Raises ConflictError when the slot is already claimed."""
        ...

    async def release_reservation(self, reservation_id: str) -> None:
        ...

    async def create_booking(
        self,
        court_id: str,
        start: datetime,
        end: datetime,
        payment_provider_id: str,
        reservation_id: str | None = None,
    ) -> str:
        """Returns the booking id. Raises ConflictError when the slot was taken."""
        ...

    async def close(self) -> None:
        ...
