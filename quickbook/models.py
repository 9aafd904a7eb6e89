"""Pydantic models for the quick-booking engine and its HTTP API."""

from __future__ import annotations

from datetime import date as Date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field

_HHMM = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


# ── Steps ──────────────────────────────────────────────────────────────────


class StepId(str, Enum):
    """Wizard steps, in their fixed canonical order."""
    CLUB_SELECTION = "club_selection"
    DATE_TIME = "date_time"
    COURT_SELECTION = "court_selection"
    PRE_PAYMENT_CONFIRMATION = "pre_payment_confirmation"
    PAYMENT = "payment"
    FINAL_CONFIRMATION = "final_confirmation"


class StepDescriptor(BaseModel):
    """One entry of a wizard plan."""
    model_config = ConfigDict(frozen=True)

    id: StepId = Field(..., description="Step identifier")
    label: str = Field(..., description="Translation key of the step title")
    required: bool = Field(..., description="Whether the step gates the forward action")


# ── Clubs & courts ─────────────────────────────────────────────────────────


class BusinessHours(BaseModel):
    """Opening hours for one weekday."""
    day_of_week: int = Field(..., ge=0, le=6, description="Day of week (0=Monday, 6=Sunday)")
    open_time: Optional[str] = Field(None, pattern=_HHMM, description="Opening time (HH:MM)")
    close_time: Optional[str] = Field(None, pattern=_HHMM, description="Closing time (HH:MM)")
    is_closed: bool = Field(default=False, description="Closed for the whole day")


class ClubSummary(BaseModel):
    """Club reference with the display attributes the wizard denormalizes."""
    id: str = Field(..., min_length=1, description="Club identifier")
    name: str = Field(..., description="Club name")
    city: Optional[str] = Field(None, description="City")
    location: Optional[str] = Field(None, description="Formatted address")
    timezone: Optional[str] = Field(None, description="IANA timezone of the club")
    business_hours: List[BusinessHours] = Field(default_factory=list, description="Weekly opening hours")


class CourtCandidate(BaseModel):
    """A court, annotated with its resolved price for the requested slot."""
    id: str = Field(..., min_length=1, description="Court identifier")
    name: str = Field(..., description="Court name")
    type: Optional[str] = Field(None, description="Court format (padel, tennis, ...)")
    surface: Optional[str] = Field(None, description="Surface type")
    indoor: bool = Field(default=False, description="Whether the court is indoor")
    default_price_cents: int = Field(..., ge=0, description="Default hourly rate in cents")
    price_cents: Optional[int] = Field(None, ge=0, description="Resolved price for the exact slot")


class PriceSegment(BaseModel):
    """A tariff segment of a court's price timeline for one day."""
    start: str = Field(..., pattern=_HHMM, description="Segment start (HH:MM)")
    end: str = Field(..., description="Segment end (HH:MM, 24:00 allowed)")
    price_cents: int = Field(..., ge=0, description="Hourly rate in cents")


class PaymentProvider(BaseModel):
    id: str = Field(..., min_length=1, description="Provider identifier")
    name: str = Field(..., description="Display name")


# ── Selections ─────────────────────────────────────────────────────────────


class DateTimeSelection(BaseModel):
    """Date, start time, duration and court format of a booking attempt."""
    date: Date = Field(..., description="Club-local booking date")
    start_time: str = Field(..., pattern=_HHMM, description="Club-local start time (HH:MM)")
    duration_minutes: int = Field(..., gt=0, description="Duration in minutes")
    court_format: Optional[str] = Field(None, description="Court format, defaults to the configured one")


class Preselection(BaseModel):
    """Inputs supplied by the caller when opening the wizard."""
    club_id: Optional[str] = Field(None, description="Preselected club")
    court_id: Optional[str] = Field(None, description="Preselected court")
    date_time: Optional[DateTimeSelection] = Field(None, description="Preselected date and time")
    club: Optional[ClubSummary] = Field(None, description="Denormalized data of the preselected club")
    available_court_formats: List[str] = Field(default_factory=list, description="Formats offered by the club")


class AvailabilityQuery(BaseModel):
    """Key of an availability query. Equal keys never cause two requests."""
    model_config = ConfigDict(frozen=True)

    club_id: str
    date: Date
    start_time: str
    duration_minutes: int
    court_format: str


# ── Availability & suggestions ─────────────────────────────────────────────


class AlternativeDuration(BaseModel):
    duration: int = Field(..., gt=0, description="Alternative duration in minutes")
    available_court_count: int = Field(..., ge=0, description="Courts free for this duration")


class AlternativeTimeSlot(BaseModel):
    start_time: str = Field(..., pattern=_HHMM, description="Alternative start time (HH:MM)")
    available_court_count: int = Field(..., ge=0, description="Courts free from this time")


Suggestion = Union[AlternativeDuration, AlternativeTimeSlot]


class SuggestionSet(BaseModel):
    """Advisory alternatives for a request with no available courts."""
    alternative_durations: List[AlternativeDuration] = Field(default_factory=list)
    alternative_time_slots: List[AlternativeTimeSlot] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.alternative_durations and not self.alternative_time_slots


class AvailabilityResult(BaseModel):
    courts: List[CourtCandidate] = Field(default_factory=list)
    suggestions: SuggestionSet = Field(default_factory=SuggestionSet)


class PriceRange(BaseModel):
    min: int
    max: int


class PriceEstimate(BaseModel):
    """Estimated price; ``value`` is None when nothing is bookable."""
    value: Optional[int] = Field(None, description="Rounded mean price in cents")
    range: Optional[PriceRange] = Field(None, description="Min/max across candidates")

    @property
    def known(self) -> bool:
        return self.value is not None


# ── Reservation & booking ──────────────────────────────────────────────────


class ReservationState(str, Enum):
    IDLE = "idle"
    RESERVING = "reserving"
    HELD = "held"
    EXPIRED = "expired"
    FAILED = "failed"
    CONSUMED = "consumed"


class ReservationHold(BaseModel):
    """Server-issued claim token on a court/slot."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Reservation identifier")
    court_id: str = Field(..., description="Held court")
    expires_at: datetime = Field(..., description="Expiry instant (timezone-aware)")
    price_cents: Optional[int] = Field(None, description="Price the backend quoted for the slot")


class BookingCompletion(BaseModel):
    """Payload handed to the completion callback once a booking succeeds."""
    booking_id: str
    court_id: str
    date: Date
    start_time: str
    end_time: str


# ── Draft projection ───────────────────────────────────────────────────────


class DraftError(BaseModel):
    """Field-scoped error stored in the draft."""
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    retryable: bool = Field(default=False, description="Re-issuing the same action may succeed")


class ReservationView(BaseModel):
    state: ReservationState
    hold: Optional[ReservationHold] = None
    remaining_seconds: Optional[int] = None


class DraftSnapshot(BaseModel):
    """Read-only projection of a booking draft."""
    club: Optional[ClubSummary] = None
    club_id: Optional[str] = None
    date: Optional[Date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_minutes: int
    duration_options: List[int] = Field(default_factory=list)
    court_format: str
    court: Optional[CourtCandidate] = None
    court_id: Optional[str] = None
    payment_provider: Optional[PaymentProvider] = None
    available_clubs: List[ClubSummary] = Field(default_factory=list)
    available_courts: List[CourtCandidate] = Field(default_factory=list)
    available_payment_providers: List[PaymentProvider] = Field(default_factory=list)
    available_court_formats: List[str] = Field(default_factory=list)
    suggestions: Optional[SuggestionSet] = None
    estimate: Optional[PriceEstimate] = None
    total_price_cents: Optional[int] = None
    loading_availability: bool = False
    submitting: bool = False
    reservation: ReservationView
    booking_id: Optional[str] = None
    errors: Dict[str, DraftError] = Field(default_factory=dict)


class WizardSnapshot(BaseModel):
    session_id: str
    steps: List[StepDescriptor]
    current_step: StepId
    can_advance: bool
    draft: DraftSnapshot


# ── API request bodies ─────────────────────────────────────────────────────


class SelectClubRequest(BaseModel):
    club_id: str = Field(..., description="Club to book at")


class SelectCourtRequest(BaseModel):
    court_id: str = Field(..., description="Court from the available list")


class SelectPaymentProviderRequest(BaseModel):
    provider_id: str = Field(..., description="Payment provider identifier")


class AcceptSuggestionRequest(BaseModel):
    duration: Optional[int] = Field(None, gt=0, description="Accept an alternative duration")
    start_time: Optional[str] = Field(None, pattern=_HHMM, description="Accept an alternative start time")


class CloseSessionResponse(BaseModel):
    completion: Optional[BookingCompletion] = None


# ── Misc ───────────────────────────────────────────────────────────────────


class PlayerInfo(BaseModel):
    email: EmailStr
    token: str = Field(..., description="Raw session token, forwarded to the booking backend")


class Error(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Health status")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(..., description="Current timestamp")
    open_sessions: int = Field(0, description="Wizard sessions currently held in memory")
