"""Tests for clock arithmetic, opening hours and timezone conversion."""

from datetime import UTC, date, datetime

import pytest

from quickbook.services.business_hours import (
    calculate_end_time,
    club_local_to_utc,
    club_today,
    hours_for,
    is_valid_time,
    is_within_business_hours,
    normalize_time,
    slot_bounds_utc,
    time_to_minutes,
    would_end_after_closing,
)
from tests.mocks.models import BOOKING_DATE, MOCK_CLUB, make_club


class TestClockArithmetic:
    @pytest.mark.parametrize("value", ["00:00", "9:30", "23:59"])
    def test_valid_times(self, value):
        assert is_valid_time(value)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "1230"])
    def test_invalid_times(self, value):
        assert not is_valid_time(value)

    def test_time_to_minutes_accepts_end_of_day(self):
        assert time_to_minutes("24:00") == 1440
        assert time_to_minutes("01:30") == 90

    def test_normalize_pads(self):
        assert normalize_time("9:05") == "09:05"

    def test_end_time(self):
        assert calculate_end_time("10:00", 90) == "11:30"

    def test_end_time_wraps_past_midnight(self):
        assert calculate_end_time("23:00", 120) == "01:00"


class TestOpeningHours:
    def test_club_hours_for_weekday(self):
        hours = hours_for(MOCK_CLUB, BOOKING_DATE)
        assert (hours.open_time, hours.close_time) == ("08:00", "23:00")

    def test_fallback_window_without_club(self):
        hours = hours_for(None, BOOKING_DATE)
        assert (hours.open_time, hours.close_time) == ("09:00", "22:00")

    def test_ending_exactly_at_closing_is_allowed(self):
        assert not would_end_after_closing(MOCK_CLUB, BOOKING_DATE, "21:00", 120)
        assert would_end_after_closing(MOCK_CLUB, BOOKING_DATE, "21:30", 120)

    def test_midnight_closing(self):
        club = make_club(close_time="00:00")
        assert not would_end_after_closing(club, BOOKING_DATE, "22:00", 120)

    def test_closed_day(self):
        club = make_club(closed_days=(BOOKING_DATE.weekday(),))
        assert would_end_after_closing(club, BOOKING_DATE, "10:00", 60)
        assert not is_within_business_hours(club, BOOKING_DATE, "10:00", 60)

    def test_before_opening_is_outside(self):
        assert not is_within_business_hours(MOCK_CLUB, BOOKING_DATE, "07:00", 60)
        assert is_within_business_hours(MOCK_CLUB, BOOKING_DATE, "08:00", 60)


class TestTimezones:
    def test_local_to_utc_in_summer(self):
        # Vilnius is UTC+3 in June
        assert club_local_to_utc(MOCK_CLUB, BOOKING_DATE, "10:00") == datetime(2025, 6, 1, 7, 0, tzinfo=UTC)

    def test_slot_bounds(self):
        start, end = slot_bounds_utc(MOCK_CLUB, BOOKING_DATE, "23:00", 120)
        assert start == datetime(2025, 6, 1, 20, 0, tzinfo=UTC)
        assert end == datetime(2025, 6, 1, 22, 0, tzinfo=UTC)

    def test_unknown_zone_falls_back_to_default(self):
        club = make_club(timezone="Mars/Olympus")
        # default zone is Europe/Kyiv, also UTC+3 in June
        assert club_local_to_utc(club, BOOKING_DATE, "10:00") == datetime(2025, 6, 1, 7, 0, tzinfo=UTC)

    def test_club_today_uses_club_zone(self):
        late_evening_utc = datetime(2025, 5, 31, 22, 30, tzinfo=UTC)
        assert club_today(MOCK_CLUB, late_evening_utc) == date(2025, 6, 1)
