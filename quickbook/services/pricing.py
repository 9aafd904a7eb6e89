"""
Price resolution for candidate courts.

All amounts are integer minor-currency units (cents).  Rounding is
half-up and happens once, on the final amount of each computation.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from quickbook.errors import BookingApiError
from quickbook.models import CourtCandidate, PriceEstimate, PriceRange, PriceSegment
from quickbook.services.business_hours import time_to_minutes

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60


def round_half_up(value: Decimal | int | float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def prorate(hourly_cents: int, minutes: int) -> Decimal:
    """Unrounded price of *minutes* at an hourly rate."""
    return Decimal(hourly_cents) * minutes / MINUTES_PER_HOUR


def default_slot_price(default_price_cents: int, duration_minutes: int) -> int:
    return round_half_up(prorate(default_price_cents, duration_minutes))


def resolve_slot_price(
    default_price_cents: int,
    start_time: str,
    duration_minutes: int,
    segments: Iterable[PriceSegment] = (),
) -> int:
    """
    Price of a slot given a court's tariff timeline for the day.

    Minutes covered by a segment are billed at that segment's hourly
    rate; uncovered minutes fall back to the court's default rate.
    With no segments this is ``round(default / 60 * duration)``.
    """
    slot_start = time_to_minutes(start_time)
    slot_end = slot_start + duration_minutes

    ordered = sorted(segments, key=lambda s: time_to_minutes(s.start))
    if not ordered:
        return default_slot_price(default_price_cents, duration_minutes)

    total = Decimal(0)
    covered = 0
    for segment in ordered:
        seg_start = time_to_minutes(segment.start)
        seg_end = time_to_minutes(segment.end)
        overlap = min(slot_end, seg_end) - max(slot_start, seg_start)
        if overlap > 0:
            total += prorate(segment.price_cents, overlap)
            covered += overlap

    uncovered = duration_minutes - covered
    if uncovered > 0:
        total += prorate(default_price_cents, uncovered)

    return round_half_up(total)


class PriceResolver:
    """
    Derives price estimates from candidate courts.

    *timeline_source* is anything with an async
    ``get_price_timeline(court_id, on)`` (the booking API client); it is
    only consulted for candidates whose price the backend did not resolve.
    """

    def __init__(self, timeline_source: object | None = None) -> None:
        self._timeline_source = timeline_source

    @staticmethod
    def candidate_price(candidate: CourtCandidate, duration_minutes: int) -> int:
        if candidate.price_cents is not None:
            return candidate.price_cents
        return default_slot_price(candidate.default_price_cents, duration_minutes)

    def estimate(
        self,
        candidates: list[CourtCandidate],
        duration_minutes: int | None = None,
    ) -> PriceEstimate:
        """
        Mean price with min/max range, or an unknown estimate when no
        court is bookable.

        Candidates without a resolved price need *duration_minutes* to be
        priced at their default rate.
        """
        if not candidates:
            return PriceEstimate()

        prices: list[int] = []
        for candidate in candidates:
            if candidate.price_cents is None:
                if duration_minutes is None:
                    raise ValueError(f"Court {candidate.id} has no resolved price")
                logger.debug("Court %s missing resolved price, using default rate", candidate.id)
            prices.append(self.candidate_price(candidate, duration_minutes or 0))

        mean = Decimal(sum(prices)) / len(prices)
        return PriceEstimate(
            value=round_half_up(mean),
            range=PriceRange(min=min(prices), max=max(prices)),
        )

    async def resolve_missing(
        self,
        candidates: list[CourtCandidate],
        on: date,
        start_time: str,
        duration_minutes: int,
    ) -> list[CourtCandidate]:
        """Fill in ``price_cents`` for candidates the backend left unpriced."""
        resolved: list[CourtCandidate] = []
        for candidate in candidates:
            if candidate.price_cents is not None:
                resolved.append(candidate)
                continue
            segments: list[PriceSegment] = []
            if self._timeline_source is not None:
                try:
                    segments = await self._timeline_source.get_price_timeline(candidate.id, on)
                except BookingApiError as exc:
                    logger.warning(
                        "Price timeline for court %s unavailable (%s), using default rate",
                        candidate.id, exc.message,
                    )
            price = resolve_slot_price(
                candidate.default_price_cents, start_time, duration_minutes, segments,
            )
            resolved.append(candidate.model_copy(update={"price_cents": price}))
        return resolved
