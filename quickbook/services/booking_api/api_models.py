"""
Pydantic models that mirror the booking backend's JSON shapes.

These are *internal* – the rest of the engine never imports them directly.
The BookingApiClient translates them into quickbook.models.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from quickbook.models import (
    AlternativeDuration,
    AlternativeTimeSlot,
    BusinessHours,
    ClubSummary,
    CourtCandidate,
    PaymentProvider,
    PriceSegment,
)


# ── Clubs ─────────────────────────────────────────────────────────────────

class BusinessHoursEntry(BaseModel):
    dayOfWeek: int  # 0 = Sunday
    openTime: str | None = None
    closeTime: str | None = None
    isClosed: bool = False

    def to_model(self) -> BusinessHours:
        return BusinessHours(
            day_of_week=(self.dayOfWeek + 6) % 7,
            open_time=self.openTime,
            close_time=self.closeTime,
            is_closed=self.isClosed,
        )


class ClubEntry(BaseModel):
    id: str
    name: str
    location: str | None = None
    city: str | None = None
    timezone: str | None = None
    businessHours: list[BusinessHoursEntry] = Field(default_factory=list)

    def to_model(self) -> ClubSummary:
        return ClubSummary(
            id=self.id,
            name=self.name,
            city=self.city,
            location=self.location,
            timezone=self.timezone,
            business_hours=[h.to_model() for h in self.businessHours],
        )


class ClubsResponse(BaseModel):
    clubs: list[ClubEntry]


# ── Courts ────────────────────────────────────────────────────────────────

class CourtEntry(BaseModel):
    id: str
    name: str
    type: str | None = None
    surface: str | None = None
    indoor: bool = False
    defaultPriceCents: int
    priceCents: int | None = None

    def to_model(self) -> CourtCandidate:
        return CourtCandidate(
            id=self.id,
            name=self.name,
            type=self.type,
            surface=self.surface,
            indoor=self.indoor,
            default_price_cents=self.defaultPriceCents,
            price_cents=self.priceCents,
        )


class AlternativeDurationEntry(BaseModel):
    duration: int
    availableCourtCount: int

    def to_model(self) -> AlternativeDuration:
        return AlternativeDuration(duration=self.duration, available_court_count=self.availableCourtCount)


class AlternativeTimeSlotEntry(BaseModel):
    startTime: str
    availableCourtCount: int

    def to_model(self) -> AlternativeTimeSlot:
        return AlternativeTimeSlot(start_time=self.startTime, available_court_count=self.availableCourtCount)


class AvailableCourtsResponse(BaseModel):
    availableCourts: list[CourtEntry] = Field(default_factory=list)
    alternativeDurations: list[AlternativeDurationEntry] = Field(default_factory=list)
    alternativeTimeSlots: list[AlternativeTimeSlotEntry] = Field(default_factory=list)


class PriceSegmentEntry(BaseModel):
    start: str
    end: str
    priceCents: int

    def to_model(self) -> PriceSegment:
        return PriceSegment(start=self.start, end=self.end, price_cents=self.priceCents)


class PriceTimelineResponse(BaseModel):
    timeline: list[PriceSegmentEntry] = Field(default_factory=list)


# ── Payment providers ─────────────────────────────────────────────────────

class PaymentProviderEntry(BaseModel):
    id: str
    name: str

    def to_model(self) -> PaymentProvider:
        return PaymentProvider(id=self.id, name=self.name)


class PaymentProvidersResponse(BaseModel):
    providers: list[PaymentProviderEntry] = Field(default_factory=list)


# ── Reservations & bookings ───────────────────────────────────────────────

class ReservationResponse(BaseModel):
    reservationId: str
    courtId: str
    startTime: str
    endTime: str
    priceCents: int | None = None
    expiresAt: str


class BookingResponse(BaseModel):
    bookingId: str


class ErrorBody(BaseModel):
    error: str | None = None
    code: str | None = None
