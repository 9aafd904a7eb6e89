"""
Fallback suggestions for requests with no available courts.

Durations are offered before start times: when at least one alternative
duration exists, alternative time slots are withheld so the player only
ever sees one kind of alternative.
"""

from __future__ import annotations

from datetime import date, datetime

from quickbook.models import (
    AlternativeDuration,
    AlternativeTimeSlot,
    AvailabilityQuery,
    ClubSummary,
    SuggestionSet,
)
from quickbook.services.business_hours import (
    club_local_to_utc,
    time_to_minutes,
    would_end_after_closing,
)


class SuggestionEngine:
    def __init__(self, club: ClubSummary | None = None, now: datetime | None = None) -> None:
        self._club = club
        self._now = now

    def rank(self, raw: SuggestionSet, query: AvailabilityQuery) -> SuggestionSet:
        """Drop unusable alternatives and order the rest."""
        durations = self._rank_durations(raw.alternative_durations, query)
        if durations:
            return SuggestionSet(alternative_durations=durations)
        return SuggestionSet(
            alternative_time_slots=self._rank_time_slots(raw.alternative_time_slots, query),
        )

    def _rank_durations(
        self, items: list[AlternativeDuration], query: AvailabilityQuery,
    ) -> list[AlternativeDuration]:
        seen: set[int] = set()
        usable: list[AlternativeDuration] = []
        for item in items:
            if item.available_court_count <= 0 or item.duration == query.duration_minutes:
                continue
            if item.duration in seen:
                continue
            if would_end_after_closing(self._club, query.date, query.start_time, item.duration):
                continue
            seen.add(item.duration)
            usable.append(item)
        # shorter commitments first
        usable.sort(key=lambda d: d.duration)
        return usable

    def _rank_time_slots(
        self, items: list[AlternativeTimeSlot], query: AvailabilityQuery,
    ) -> list[AlternativeTimeSlot]:
        requested = time_to_minutes(query.start_time)
        seen: set[str] = set()
        usable: list[AlternativeTimeSlot] = []
        for item in items:
            if item.available_court_count <= 0 or item.start_time == query.start_time:
                continue
            if item.start_time in seen:
                continue
            if would_end_after_closing(self._club, query.date, item.start_time, query.duration_minutes):
                continue
            if self._in_past(query.date, item.start_time):
                continue
            seen.add(item.start_time)
            usable.append(item)
        # closest to the requested time, earlier wins a tie
        usable.sort(key=lambda s: (abs(time_to_minutes(s.start_time) - requested), time_to_minutes(s.start_time)))
        return usable

    def _in_past(self, on: date, start_time: str) -> bool:
        if self._now is None:
            return False
        return club_local_to_utc(self._club, on, start_time) <= self._now
