"""
Async HTTP client for the booking backend.

Handles request construction, status → exception mapping, and
JSON ↔ Pydantic parsing.  One instance is bound to one player session.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

import httpx
from pydantic import ValidationError

from quickbook.config import BOOKING_API_TIMEOUT, BOOKING_API_URL
from quickbook.errors import BookingApiError, ConflictError, NotFoundError
from quickbook.models import (
    AvailabilityQuery,
    AvailabilityResult,
    ClubSummary,
    CourtCandidate,
    PaymentProvider,
    PriceSegment,
    ReservationHold,
    SuggestionSet,
)
from quickbook.services.booking_api.api_models import (
    AvailableCourtsResponse,
    BookingResponse,
    ClubEntry,
    ClubsResponse,
    CourtEntry,
    ErrorBody,
    PaymentProvidersResponse,
    PriceTimelineResponse,
    ReservationResponse,
)
from quickbook.services.booking_api.config import (
    AVAILABLE_COURTS_PATH,
    BOOKINGS_PATH,
    CLUB_PATH,
    CLUBS_PATH,
    COURT_PATH,
    DEFAULT_HEADERS,
    PAYMENT_PROVIDERS_PATH,
    PRICE_TIMELINE_PATH,
    RELEASE_PATH,
    RESERVE_PATH,
)
from quickbook.services.business_hours import club_local_to_utc

logger = logging.getLogger(__name__)


def _iso_utc(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _parse_instant(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class BookingApiClient:
    """Async HTTP client for the booking backend."""

    def __init__(
        self,
        base_url: str = BOOKING_API_URL,
        token: str | None = None,
        timeout: float = BOOKING_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = dict(DEFAULT_HEADERS)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── Plumbing ──────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s %s", method, path, kwargs.get("params") or "")
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise BookingApiError(f"Booking backend unreachable: {exc}") from exc

        if resp.is_success:
            return resp

        body = self._error_body(resp)
        message = body.error or f"Booking backend returned {resp.status_code}"
        if resp.status_code == 409:
            raise ConflictError(message)
        if resp.status_code == 404:
            raise NotFoundError(message)
        raise BookingApiError(message, status_code=resp.status_code, code=body.code)

    @staticmethod
    def _error_body(resp: httpx.Response) -> ErrorBody:
        try:
            return ErrorBody.model_validate(resp.json())
        except (ValueError, ValidationError):
            return ErrorBody()

    @staticmethod
    def _parse(model, resp: httpx.Response):
        try:
            return model.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise BookingApiError(
                f"Malformed response from booking backend: {exc}",
                status_code=resp.status_code,
            ) from exc

    # ── Clubs & courts ────────────────────────────────────────────────

    async def list_clubs(self) -> list[ClubSummary]:
        resp = await self._request("GET", CLUBS_PATH)
        return [c.to_model() for c in self._parse(ClubsResponse, resp).clubs]

    async def get_club(self, club_id: str) -> ClubSummary:
        resp = await self._request("GET", CLUB_PATH.format(club_id=club_id))
        return self._parse(ClubEntry, resp).to_model()

    async def get_court(self, court_id: str) -> CourtCandidate:
        resp = await self._request("GET", COURT_PATH.format(court_id=court_id))
        return self._parse(CourtEntry, resp).to_model()

    async def list_available_courts(
        self,
        query: AvailabilityQuery,
        club: ClubSummary | None = None,
    ) -> AvailabilityResult:
        """
        Courts free for the whole slot, each priced for the exact duration.

        The backend works in UTC, so the club-local date/time of *query*
        is converted using the club's timezone before sending.
        """
        start_utc = club_local_to_utc(club, query.date, query.start_time)
        params = {
            "date": start_utc.date().isoformat(),
            "start": start_utc.strftime("%H:%M"),
            "duration": str(query.duration_minutes),
            "courtType": query.court_format,
        }
        resp = await self._request(
            "GET", AVAILABLE_COURTS_PATH.format(club_id=query.club_id), params=params,
        )
        data = self._parse(AvailableCourtsResponse, resp)
        return AvailabilityResult(
            courts=[c.to_model() for c in data.availableCourts],
            suggestions=SuggestionSet(
                alternative_durations=[d.to_model() for d in data.alternativeDurations],
                alternative_time_slots=[t.to_model() for t in data.alternativeTimeSlots],
            ),
        )

    async def get_price_timeline(self, court_id: str, on: date) -> list[PriceSegment]:
        resp = await self._request(
            "GET",
            PRICE_TIMELINE_PATH.format(court_id=court_id),
            params={"date": on.isoformat()},
        )
        return [s.to_model() for s in self._parse(PriceTimelineResponse, resp).timeline]

    async def list_payment_providers(self, club_id: str) -> list[PaymentProvider]:
        resp = await self._request("GET", PAYMENT_PROVIDERS_PATH.format(club_id=club_id))
        return [p.to_model() for p in self._parse(PaymentProvidersResponse, resp).providers]

    # ── Reservations & bookings ───────────────────────────────────────

    async def create_reservation(
        self, court_id: str, start: datetime, end: datetime,
    ) -> ReservationHold:
        resp = await self._request(
            "POST",
            RESERVE_PATH,
            json={"courtId": court_id, "startTime": _iso_utc(start), "endTime": _iso_utc(end)},
        )
        data = self._parse(ReservationResponse, resp)
        return ReservationHold(
            id=data.reservationId,
            court_id=data.courtId,
            expires_at=_parse_instant(data.expiresAt),
            price_cents=data.priceCents,
        )

    async def release_reservation(self, reservation_id: str) -> None:
        await self._request("DELETE", RELEASE_PATH.format(reservation_id=reservation_id))

    async def create_booking(
        self,
        court_id: str,
        start: datetime,
        end: datetime,
        payment_provider_id: str,
        reservation_id: str | None = None,
    ) -> str:
        payload = {
            "courtId": court_id,
            "startTime": _iso_utc(start),
            "endTime": _iso_utc(end),
            "paymentProviderId": payment_provider_id,
        }
        if reservation_id:
            payload["reservationId"] = reservation_id
        resp = await self._request("POST", BOOKINGS_PATH, json=payload)
        return self._parse(BookingResponse, resp).bookingId
