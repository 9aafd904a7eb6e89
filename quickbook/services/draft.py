"""
The booking draft and the transitions that mutate it.

Fields depend on each other in this order: club → date/time → court.
Changing an earlier field clears whatever was derived from it; every
mutation of a draft goes through one of the ``apply_*`` functions below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from quickbook.config import DEFAULT_COURT_FORMAT, DEFAULT_DURATION_MINUTES
from quickbook.models import (
    AlternativeDuration,
    AlternativeTimeSlot,
    AvailabilityQuery,
    ClubSummary,
    CourtCandidate,
    DraftError,
    PaymentProvider,
    PriceEstimate,
    ReservationHold,
    Suggestion,
    SuggestionSet,
)
from quickbook.services.business_hours import calculate_end_time
from quickbook.services.pricing import default_slot_price

# Field-scoped error keys
ERR_CLUBS = "clubs"
ERR_CLUB = "club"
ERR_COURT = "court"
ERR_AVAILABILITY = "availability"
ERR_PAYMENT_PROVIDERS = "payment_providers"
ERR_PAYMENT = "payment"


@dataclass
class BookingDraft:
    club_id: str | None = None
    club: ClubSummary | None = None
    date: date | None = None
    start_time: str | None = None
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    court_format: str = DEFAULT_COURT_FORMAT
    court_id: str | None = None
    court: CourtCandidate | None = None
    # Preselected by the caller; survives date/time changes.
    court_pinned: bool = False
    payment_provider: PaymentProvider | None = None

    available_clubs: list[ClubSummary] = field(default_factory=list)
    available_courts: list[CourtCandidate] = field(default_factory=list)
    available_payment_providers: list[PaymentProvider] = field(default_factory=list)
    available_court_formats: list[str] = field(default_factory=list)
    suggestions: SuggestionSet | None = None
    estimate: PriceEstimate | None = None

    # Key of the availability query whose response the draft is waiting for.
    availability_key: AvailabilityQuery | None = None
    loading_availability: bool = False
    submitting: bool = False
    booking_id: str | None = None
    errors: dict[str, DraftError] = field(default_factory=dict)

    def current_key(self) -> AvailabilityQuery | None:
        if not self.club_id or self.date is None or not self.start_time:
            return None
        return AvailabilityQuery(
            club_id=self.club_id,
            date=self.date,
            start_time=self.start_time,
            duration_minutes=self.duration_minutes,
            court_format=self.court_format,
        )

    @property
    def end_time(self) -> str | None:
        if not self.start_time:
            return None
        return calculate_end_time(self.start_time, self.duration_minutes)

    def total_price_cents(self, hold: ReservationHold | None = None) -> int | None:
        if hold is not None and hold.price_cents is not None and hold.court_id == self.court_id:
            return hold.price_cents
        if self.court is not None:
            if self.court.price_cents is not None:
                return self.court.price_cents
            return default_slot_price(self.court.default_price_cents, self.duration_minutes)
        return self.estimate.value if self.estimate else None


# ── Transitions ────────────────────────────────────────────────────────────


def _clear_availability(draft: BookingDraft) -> None:
    draft.available_courts = []
    draft.suggestions = None
    draft.estimate = None
    draft.availability_key = None
    draft.loading_availability = False
    draft.errors.pop(ERR_AVAILABILITY, None)


def _clear_court(draft: BookingDraft) -> None:
    if draft.court_pinned:
        # the court id is fixed by the caller; only its slot price is stale
        if draft.court is not None:
            draft.court = draft.court.model_copy(update={"price_cents": None})
    else:
        draft.court_id = None
        draft.court = None
    draft.errors.pop(ERR_COURT, None)
    draft.errors.pop(ERR_PAYMENT, None)


def apply_club(draft: BookingDraft, club_id: str, club: ClubSummary | None) -> bool:
    """Select a club. Returns False when nothing changed."""
    if draft.club_id == club_id and (club is None or draft.club == club):
        return False
    changed_club = draft.club_id != club_id
    draft.club_id = club_id
    draft.club = club
    draft.errors.pop(ERR_CLUB, None)
    _clear_availability(draft)
    if changed_club:
        _clear_court(draft)
        draft.payment_provider = None
        draft.available_payment_providers = []
        draft.errors.pop(ERR_PAYMENT_PROVIDERS, None)
    return changed_club


def apply_date_time(
    draft: BookingDraft,
    on: date,
    start_time: str,
    duration_minutes: int,
    court_format: str,
) -> bool:
    if (draft.date, draft.start_time, draft.duration_minutes, draft.court_format) == (
        on, start_time, duration_minutes, court_format,
    ):
        return False
    draft.date = on
    draft.start_time = start_time
    draft.duration_minutes = duration_minutes
    draft.court_format = court_format
    _clear_availability(draft)
    _clear_court(draft)
    return True


def apply_court(draft: BookingDraft, court: CourtCandidate) -> bool:
    if draft.court_id == court.id and draft.court == court:
        return False
    changed = draft.court_id != court.id
    draft.court_id = court.id
    draft.court = court
    draft.errors.pop(ERR_COURT, None)
    if changed:
        draft.errors.pop(ERR_PAYMENT, None)
    return changed


def apply_payment_provider(draft: BookingDraft, provider: PaymentProvider) -> None:
    draft.payment_provider = provider
    draft.errors.pop(ERR_PAYMENT, None)


def apply_suggestion(draft: BookingDraft, suggestion: Suggestion) -> None:
    """Replace the one field the suggestion changes and drop derived state."""
    if isinstance(suggestion, AlternativeDuration):
        draft.duration_minutes = suggestion.duration
    elif isinstance(suggestion, AlternativeTimeSlot):
        draft.start_time = suggestion.start_time
    else:
        raise TypeError(f"Unknown suggestion {suggestion!r}")
    _clear_court(draft)
    _clear_availability(draft)


def reject_court(draft: BookingDraft) -> None:
    """The backend refused the selected court; it must be chosen again."""
    _clear_court(draft)
    if draft.court_pinned:
        draft.errors[ERR_COURT] = DraftError(
            code="court_taken",
            message="The selected court was booked by someone else",
        )


def unset_club(draft: BookingDraft) -> None:
    """Treat a preselected club whose detail could not be loaded as unselected."""
    draft.club_id = None
    draft.club = None
    _clear_availability(draft)


def unset_court(draft: BookingDraft) -> None:
    draft.court_pinned = False
    draft.court_id = None
    draft.court = None


def set_clubs(draft: BookingDraft, clubs: list[ClubSummary]) -> None:
    draft.available_clubs = list(clubs)
    draft.errors.pop(ERR_CLUBS, None)


def set_payment_providers(draft: BookingDraft, providers: list[PaymentProvider]) -> None:
    draft.available_payment_providers = list(providers)
    draft.errors.pop(ERR_PAYMENT_PROVIDERS, None)
    if draft.payment_provider is not None and draft.payment_provider not in providers:
        draft.payment_provider = None


def set_error(draft: BookingDraft, key: str, error: DraftError) -> None:
    draft.errors[key] = error


def clear_error(draft: BookingDraft, key: str) -> None:
    draft.errors.pop(key, None)


def begin_availability(draft: BookingDraft, key: AvailabilityQuery) -> None:
    draft.availability_key = key
    draft.loading_availability = True
    draft.errors.pop(ERR_AVAILABILITY, None)


def apply_availability(
    draft: BookingDraft,
    courts: list[CourtCandidate],
    suggestions: SuggestionSet,
    estimate: PriceEstimate,
) -> None:
    """Store the response for ``draft.availability_key``."""
    draft.available_courts = list(courts)
    draft.suggestions = None if courts else suggestions
    draft.estimate = estimate
    draft.loading_availability = False

    if draft.court_id is None:
        return
    match = next((c for c in courts if c.id == draft.court_id), None)
    if match is not None:
        draft.court = match
        draft.errors.pop(ERR_COURT, None)
    elif draft.court_pinned:
        draft.errors[ERR_COURT] = DraftError(
            code="court_unavailable",
            message="The selected court is not available for this time",
        )
    else:
        draft.court_id = None
        draft.court = None


def end_availability(draft: BookingDraft, key: AvailabilityQuery) -> None:
    if draft.availability_key == key:
        draft.loading_availability = False


def fail_availability(draft: BookingDraft, error: DraftError) -> None:
    draft.available_courts = []
    draft.suggestions = None
    draft.estimate = PriceEstimate()
    draft.loading_availability = False
    draft.errors[ERR_AVAILABILITY] = error


def begin_submission(draft: BookingDraft) -> None:
    draft.submitting = True
    draft.errors.pop(ERR_PAYMENT, None)


def end_submission(draft: BookingDraft) -> None:
    draft.submitting = False


def confirm_booking(draft: BookingDraft, booking_id: str) -> None:
    draft.booking_id = booking_id
    draft.errors.pop(ERR_PAYMENT, None)
