"""Tests for the booking backend HTTP client (wire mapping only)."""

import json
from datetime import UTC, date, datetime

import httpx
import pytest

from quickbook.errors import BookingApiError, ConflictError, NotFoundError
from quickbook.services.booking_api.client import BookingApiClient
from tests.mocks.models import MOCK_CLUB, make_query


def _client(handler, token: str | None = "player-token") -> BookingApiClient:
    return BookingApiClient(
        base_url="https://booking.test/api",
        token=token,
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    async def test_bearer_token_sent(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"clubs": []})

        client = _client(handler)
        assert await client.list_clubs() == []
        await client.close()

        assert seen[0].headers["Authorization"] == "Bearer player-token"
        assert seen[0].url.path == "/api/clubs"

    async def test_club_detail_translates_weekdays(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "id": "padel-arena",
                "name": "Padel Arena",
                "timezone": "Europe/Vilnius",
                "businessHours": [
                    {"dayOfWeek": 0, "openTime": "10:00", "closeTime": "20:00"},
                    {"dayOfWeek": 1, "openTime": "08:00", "closeTime": "23:00"},
                ],
            })

        client = _client(handler)
        club = await client.get_club("padel-arena")
        await client.close()

        # Sunday on the wire is weekday 6, Monday is 0
        assert [(h.day_of_week, h.open_time) for h in club.business_hours] == [(6, "10:00"), (0, "08:00")]

    async def test_available_courts_query_in_utc(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "availableCourts": [
                    {"id": "c1", "name": "Court 1", "type": "padel", "defaultPriceCents": 2000, "priceCents": 3000},
                ],
            })

        client = _client(handler)
        result = await client.list_available_courts(make_query("01:00", 90), MOCK_CLUB)
        await client.close()

        params = seen[0].url.params
        assert seen[0].url.path == "/api/clubs/padel-arena/available-courts"
        # 01:00 in Vilnius on June 1st is 22:00 UTC the day before
        assert params["date"] == "2025-05-31"
        assert params["start"] == "22:00"
        assert params["duration"] == "90"
        assert params["courtType"] == "padel"
        assert result.courts[0].price_cents == 3000
        assert result.suggestions.is_empty

    async def test_alternatives_parsed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "availableCourts": [],
                "alternativeDurations": [{"duration": 90, "availableCourtCount": 2}],
                "alternativeTimeSlots": [{"startTime": "12:00", "availableCourtCount": 1}],
            })

        client = _client(handler)
        result = await client.list_available_courts(make_query(), MOCK_CLUB)
        await client.close()

        assert result.courts == []
        assert result.suggestions.alternative_durations[0].duration == 90
        assert result.suggestions.alternative_time_slots[0].start_time == "12:00"

    async def test_price_timeline(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["date"] == "2025-06-01"
            return httpx.Response(200, json={"timeline": [{"start": "08:00", "end": "24:00", "priceCents": 3000}]})

        client = _client(handler)
        timeline = await client.get_price_timeline("c1", date(2025, 6, 1))
        await client.close()

        assert timeline[0].end == "24:00"
        assert timeline[0].price_cents == 3000

    async def test_reservation_round_trip(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(201, json={
                "reservationId": "res-1",
                "courtId": "c1",
                "startTime": "2025-06-01T07:00:00.000Z",
                "endTime": "2025-06-01T08:00:00.000Z",
                "priceCents": 4000,
                "expiresAt": "2025-06-01T06:05:00.000Z",
            })

        client = _client(handler)
        hold = await client.create_reservation(
            "c1", datetime(2025, 6, 1, 7, 0, tzinfo=UTC), datetime(2025, 6, 1, 8, 0, tzinfo=UTC),
        )
        await client.close()

        assert seen[0] == {
            "courtId": "c1",
            "startTime": "2025-06-01T07:00:00Z",
            "endTime": "2025-06-01T08:00:00Z",
        }
        assert hold.id == "res-1"
        assert hold.price_cents == 4000
        assert hold.expires_at == datetime(2025, 6, 1, 6, 5, tzinfo=UTC)

    async def test_booking_references_reservation(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(201, json={"bookingId": "b-42"})

        client = _client(handler)
        booking_id = await client.create_booking(
            "c1",
            datetime(2025, 6, 1, 7, 0, tzinfo=UTC),
            datetime(2025, 6, 1, 8, 0, tzinfo=UTC),
            "card",
            "res-1",
        )
        await client.close()

        assert booking_id == "b-42"
        assert seen[0]["paymentProviderId"] == "card"
        assert seen[0]["reservationId"] == "res-1"


class TestErrors:
    @pytest.mark.parametrize(
        "status, exc_type",
        [(409, ConflictError), (404, NotFoundError), (500, BookingApiError)],
    )
    async def test_status_mapping(self, status, exc_type):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": "nope"})

        client = _client(handler)
        with pytest.raises(exc_type) as exc_info:
            await client.create_reservation(
                "c1", datetime(2025, 6, 1, 7, 0, tzinfo=UTC), datetime(2025, 6, 1, 8, 0, tzinfo=UTC),
            )
        await client.close()
        assert exc_info.value.message == "nope"

    async def test_club_closed_code_preserved(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"error": "Club is closed", "code": "club_closed"})

        client = _client(handler)
        with pytest.raises(BookingApiError) as exc_info:
            await client.list_available_courts(make_query(), MOCK_CLUB)
        await client.close()

        assert exc_info.value.status_code == 422
        assert exc_info.value.code == "club_closed"

    async def test_transport_error_has_no_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(BookingApiError) as exc_info:
            await client.list_clubs()
        await client.close()

        assert exc_info.value.status_code is None

    async def test_malformed_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        client = _client(handler)
        with pytest.raises(BookingApiError):
            await client.get_court("c1")
        await client.close()
