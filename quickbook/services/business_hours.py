"""
Clock arithmetic on "HH:MM" strings, club opening hours and
club-local → UTC conversion.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from quickbook.config import BUSINESS_END_HOUR, BUSINESS_START_HOUR, DEFAULT_CLUB_TIMEZONE
from quickbook.models import BusinessHours, ClubSummary

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

MINUTES_PER_DAY = 24 * 60


def is_valid_time(value: str) -> bool:
    return bool(_TIME_RE.match(value or ""))


def time_to_minutes(value: str) -> int:
    """Minutes since midnight. "24:00" is accepted as end-of-day."""
    if value == "24:00":
        return MINUTES_PER_DAY
    match = _TIME_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    if minutes < 0:
        return "00:00"
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """Zero-pad an HH:MM string, e.g. 9:05 becomes 09:05."""
    return minutes_to_time(time_to_minutes(value))


def calculate_end_time(start_time: str, duration_minutes: int) -> str:
    """End time on a 24-hour clock (wraps past midnight)."""
    total = time_to_minutes(start_time) + duration_minutes
    return minutes_to_time(total % MINUTES_PER_DAY)


# ── Opening hours ─────────────────────────────────────────────────────────


def hours_for(club: ClubSummary | None, on: date) -> BusinessHours:
    """Opening hours on *on*, falling back to the configured window."""
    if club is not None:
        for entry in club.business_hours:
            if entry.day_of_week == on.weekday():
                return entry
    return BusinessHours(
        day_of_week=on.weekday(),
        open_time=minutes_to_time(BUSINESS_START_HOUR * 60),
        close_time=minutes_to_time(BUSINESS_END_HOUR * 60) if BUSINESS_END_HOUR < 24 else None,
    )


def _close_minutes(hours: BusinessHours) -> int:
    if hours.close_time is None:
        return MINUTES_PER_DAY
    close = time_to_minutes(hours.close_time)
    # "00:00" closing means midnight
    return close or MINUTES_PER_DAY


def would_end_after_closing(
    club: ClubSummary | None,
    on: date,
    start_time: str,
    duration_minutes: int,
) -> bool:
    hours = hours_for(club, on)
    if hours.is_closed:
        return True
    end = time_to_minutes(start_time) + duration_minutes
    return end > _close_minutes(hours)


def is_within_business_hours(
    club: ClubSummary | None,
    on: date,
    start_time: str,
    duration_minutes: int,
) -> bool:
    """True when the whole slot fits in the club's opening window."""
    hours = hours_for(club, on)
    if hours.is_closed:
        return False
    start = time_to_minutes(start_time)
    open_ = time_to_minutes(hours.open_time) if hours.open_time else 0
    return start >= open_ and start + duration_minutes <= _close_minutes(hours)


# ── Timezones ─────────────────────────────────────────────────────────────


def club_zone(club: ClubSummary | None) -> ZoneInfo:
    name = (club.timezone if club else None) or DEFAULT_CLUB_TIMEZONE
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown club timezone %r, using %s", name, DEFAULT_CLUB_TIMEZONE)
        return ZoneInfo(DEFAULT_CLUB_TIMEZONE)


def club_local_to_utc(club: ClubSummary | None, on: date, clock_time: str) -> datetime:
    minutes = time_to_minutes(clock_time)
    local = datetime.combine(on, time(0, 0), tzinfo=club_zone(club)) + timedelta(minutes=minutes)
    return local.astimezone(UTC)


def slot_bounds_utc(
    club: ClubSummary | None,
    on: date,
    start_time: str,
    duration_minutes: int,
) -> tuple[datetime, datetime]:
    start = club_local_to_utc(club, on, start_time)
    return start, start + timedelta(minutes=duration_minutes)


def club_today(club: ClubSummary | None, now: datetime) -> date:
    """The club-local calendar date at instant *now*."""
    return now.astimezone(club_zone(club)).date()
