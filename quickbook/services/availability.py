"""
Availability queries keyed by AvailabilityQuery.

The resolver issues at most one backend request per distinct key: a
query for a key that is in flight joins the pending request, and a key
that was already satisfied is answered from memory until invalidated.
Failed queries are never remembered, so re-issuing the same key retries.

Deciding whether a response is still *wanted* is the caller's concern
(the wizard compares the key against its current one on arrival).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from quickbook.errors import AvailabilityError, BookingApiError
from quickbook.models import AvailabilityQuery, AvailabilityResult, ClubSummary, SuggestionSet
from quickbook.services.booking_api.config import CLUB_CLOSED_CODE
from quickbook.services.business_hours import is_within_business_hours
from quickbook.services.pricing import PriceResolver
from quickbook.services.suggestions import SuggestionEngine

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    def __init__(
        self,
        backend,
        price_resolver: PriceResolver | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._backend = backend
        self._prices = price_resolver or PriceResolver(backend)
        self._clock = clock
        self._pending: dict[AvailabilityQuery, asyncio.Task[AvailabilityResult]] = {}
        self._satisfied: dict[AvailabilityQuery, AvailabilityResult] = {}

    def is_pending(self, key: AvailabilityQuery) -> bool:
        return key in self._pending

    def cached(self, key: AvailabilityQuery) -> AvailabilityResult | None:
        return self._satisfied.get(key)

    def invalidate(self, key: AvailabilityQuery | None = None) -> None:
        """Forget satisfied results (one key, or all of them)."""
        if key is None:
            self._satisfied.clear()
        else:
            self._satisfied.pop(key, None)

    async def query(
        self,
        key: AvailabilityQuery,
        club: ClubSummary | None = None,
    ) -> AvailabilityResult:
        """
        Available courts for *key*, priced for the exact duration.

        Raises AvailabilityError: CLUB_CLOSED when the window is outside
        the club's opening hours (no request is made), TRANSIENT when the
        backend could not be reached or failed.
        """
        cached = self._satisfied.get(key)
        if cached is not None:
            logger.debug("Availability for %s already satisfied", key)
            return cached

        task = self._pending.get(key)
        if task is None:
            if club is not None and not is_within_business_hours(
                club, key.date, key.start_time, key.duration_minutes,
            ):
                raise AvailabilityError.club_closed()
            task = asyncio.create_task(self._fetch(key, club), name=f"availability-{key.club_id}")
            self._pending[key] = task
        else:
            logger.debug("Joining in-flight availability query for %s", key)

        # one waiter going away must not cancel the shared request
        return await asyncio.shield(task)

    async def _fetch(self, key: AvailabilityQuery, club: ClubSummary | None) -> AvailabilityResult:
        try:
            try:
                raw = await self._backend.list_available_courts(key, club)
            except BookingApiError as exc:
                if exc.code == CLUB_CLOSED_CODE:
                    raise AvailabilityError.club_closed(exc.message) from exc
                logger.warning("Availability query for %s failed: %s", key, exc.message)
                raise AvailabilityError.transient() from exc

            courts = raw.courts
            if courts:
                courts = await self._prices.resolve_missing(
                    courts, key.date, key.start_time, key.duration_minutes,
                )
                suggestions = SuggestionSet()
            else:
                now = self._clock() if self._clock else None
                suggestions = SuggestionEngine(club, now).rank(raw.suggestions, key)

            result = AvailabilityResult(courts=courts, suggestions=suggestions)
            self._satisfied[key] = result
            logger.info(
                "Availability for club %s %s %s (%d min): %d courts",
                key.club_id, key.date, key.start_time, key.duration_minutes, len(courts),
            )
            return result
        finally:
            self._pending.pop(key, None)
