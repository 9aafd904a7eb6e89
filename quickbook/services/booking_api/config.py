from __future__ import annotations

CLUBS_PATH = "/clubs"
CLUB_PATH = "/clubs/{club_id}"
AVAILABLE_COURTS_PATH = "/clubs/{club_id}/available-courts"
PAYMENT_PROVIDERS_PATH = "/clubs/{club_id}/payment-providers"
COURT_PATH = "/courts/{court_id}"
PRICE_TIMELINE_PATH = "/courts/{court_id}/price-timeline"
RESERVE_PATH = "/bookings/reserve"
RELEASE_PATH = "/bookings/reserve/{reservation_id}"
BOOKINGS_PATH = "/bookings"

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "quickbook/0.1",
    "Accept": "application/json",
}

# Error code the availability endpoint uses for windows outside opening hours.
CLUB_CLOSED_CODE = "club_closed"
