"""
Quick-booking wizard controller.

Owns one BookingDraft and the current step of a planned flow, and
coordinates availability, pricing and the reservation hold.  Every
backend failure is captured into the draft as a field-scoped
``DraftError``; only input validation (``WizardValidationError``) and
precondition violations (``WizardStateError``) are raised to callers,
always before any network call.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from quickbook.config import DURATION_OPTIONS, RESERVATION_TICK_SECONDS
from quickbook.errors import (
    AvailabilityError,
    BookingApiError,
    ConflictError,
    WizardStateError,
    WizardValidationError,
)
from quickbook.models import (
    BookingCompletion,
    ClubSummary,
    CourtCandidate,
    DraftError,
    DraftSnapshot,
    PaymentProvider,
    Preselection,
    ReservationHold,
    ReservationState,
    StepDescriptor,
    StepId,
    Suggestion,
)
from quickbook.services import draft as transitions
from quickbook.services.availability import AvailabilityResolver
from quickbook.services.business_hours import (
    club_today,
    is_valid_time,
    normalize_time,
    slot_bounds_utc,
    would_end_after_closing,
)
from quickbook.services.draft import (
    ERR_AVAILABILITY,
    ERR_CLUB,
    ERR_CLUBS,
    ERR_COURT,
    ERR_PAYMENT,
    ERR_PAYMENT_PROVIDERS,
    BookingDraft,
)
from quickbook.services.pricing import PriceResolver
from quickbook.services.reservation import Clock, ReservationManager, utcnow
from quickbook.services.step_planner import plan

logger = logging.getLogger(__name__)

CompletionListener = Callable[[BookingCompletion], None]


class WizardController:
    def __init__(
        self,
        backend,
        preselected: Preselection | None = None,
        *,
        clock: Clock = utcnow,
        tick_interval: float = RESERVATION_TICK_SECONDS,
        on_complete: CompletionListener | None = None,
    ) -> None:
        self._backend = backend
        self._preselected = preselected or Preselection()
        self._steps = plan(self._preselected)
        self._clock = clock
        self._on_complete = on_complete
        self._prices = PriceResolver(backend)
        self._availability = AvailabilityResolver(backend, self._prices, clock=clock)
        self._reservations = ReservationManager(
            backend,
            clock=clock,
            tick_interval=tick_interval,
            on_expired=self._handle_expired,
        )
        self._draft = self._initial_draft()
        self._step_index = 0
        self._completion: BookingCompletion | None = None
        self._opened = False
        self._closed = False

    # ── Introspection ──────────────────────────────────────────────────

    @property
    def steps(self) -> tuple[StepDescriptor, ...]:
        return self._steps

    @property
    def current_step(self) -> StepId:
        return self._steps[self._step_index].id

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def reservations(self) -> ReservationManager:
        return self._reservations

    @property
    def availability(self) -> AvailabilityResolver:
        return self._availability

    @property
    def completion(self) -> BookingCompletion | None:
        return self._completion

    @property
    def closed(self) -> bool:
        return self._closed

    def can_advance(self) -> bool:
        """Whether the current step's required inputs are in place."""
        d = self._draft
        step = self.current_step
        if step is StepId.CLUB_SELECTION:
            return bool(d.club_id)
        if step is StepId.DATE_TIME:
            return (
                d.date is not None
                and bool(d.start_time)
                and d.duration_minutes > 0
                and not would_end_after_closing(d.club, d.date, d.start_time, d.duration_minutes)
            )
        if step is StepId.COURT_SELECTION:
            return d.court is not None
        if step is StepId.PRE_PAYMENT_CONFIRMATION:
            return (
                d.current_key() is not None
                and d.court is not None
                and ERR_COURT not in d.errors
            )
        if step is StepId.PAYMENT:
            # leaving payment happens through submit()
            return d.booking_id is not None
        return False

    def can_submit(self) -> bool:
        return (
            self.current_step is StepId.PAYMENT
            and self._draft.payment_provider is not None
            and self._reservations.state is ReservationState.HELD
            and not self._draft.submitting
        )

    def snapshot(self) -> DraftSnapshot:
        d = self._draft
        view = self._reservations.view()
        return DraftSnapshot(
            club=d.club,
            club_id=d.club_id,
            date=d.date,
            start_time=d.start_time,
            end_time=d.end_time,
            duration_minutes=d.duration_minutes,
            court_format=d.court_format,
            duration_options=list(DURATION_OPTIONS),
            court=d.court,
            court_id=d.court_id,
            payment_provider=d.payment_provider,
            available_clubs=d.available_clubs,
            available_courts=d.available_courts,
            available_payment_providers=d.available_payment_providers,
            available_court_formats=d.available_court_formats,
            suggestions=d.suggestions,
            estimate=d.estimate,
            total_price_cents=d.total_price_cents(view.hold),
            loading_availability=d.loading_availability,
            submitting=d.submitting,
            reservation=view,
            booking_id=d.booking_id,
            errors=dict(d.errors),
        )

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def open(self) -> None:
        """Prefetch preselected entities and enter the first planned step."""
        self._ensure_open()
        if self._opened:
            return
        self._opened = True
        d = self._draft

        if d.club_id and d.club is None:
            try:
                club = await self._backend.get_club(d.club_id)
            except BookingApiError as exc:
                logger.warning("Preselected club %s unavailable: %s", d.club_id, exc.message)
                transitions.unset_club(d)
            else:
                transitions.apply_club(d, d.club_id, club)

        if d.court_id and d.court is None:
            try:
                court = await self._backend.get_court(d.court_id)
            except BookingApiError as exc:
                logger.warning("Preselected court %s unavailable: %s", d.court_id, exc.message)
                transitions.unset_court(d)
            else:
                transitions.apply_court(d, court)

        if d.club_id:
            await self._load_payment_providers(required=False)

        logger.info(
            "Wizard opened with steps %s",
            ", ".join(s.id.value for s in self._steps),
        )
        await self._enter(self.current_step)

    async def close(self) -> BookingCompletion | None:
        """
        Tear the wizard down and discard the draft.

        A hold that is still HELD is released as a courtesy, unless a
        submission is consuming it.  Returns the booking completion, if
        the flow reached one.
        """
        if self._closed:
            return self._completion
        if self._draft.submitting:
            # the in-flight booking consumes this hold
            self._reservations.abandon()
        else:
            await self._abandon_reservation()
        await self._reservations.shutdown()
        self._closed = True
        self._draft = self._initial_draft()
        self._step_index = 0
        logger.info("Wizard closed (booking=%s)", self._completion.booking_id if self._completion else None)
        return self._completion

    # ── Selections ─────────────────────────────────────────────────────

    async def select_club(self, club: ClubSummary | str) -> None:
        self._ensure_editable()
        club_id = club.id if isinstance(club, ClubSummary) else club
        if not club_id or not club_id.strip():
            raise WizardValidationError("club_id", "Club id must not be empty")
        d = self._draft
        summary = club if isinstance(club, ClubSummary) else self._find_club(club_id)
        if summary is None and d.available_clubs:
            raise WizardValidationError("club_id", f"Unknown club {club_id}")

        if not transitions.apply_club(d, club_id, summary):
            return
        await self._abandon_reservation()

        if summary is None or not summary.business_hours:
            # club list entries do not carry opening hours
            try:
                detail = await self._backend.get_club(club_id)
            except BookingApiError as exc:
                logger.warning("Detail of club %s unavailable: %s", club_id, exc.message)
            else:
                if d.club_id == club_id:
                    transitions.apply_club(d, club_id, detail)
        if d.club_id == club_id:
            await self._load_payment_providers(required=False)

    async def set_date_time(
        self,
        on: date,
        start_time: str,
        duration_minutes: int,
        court_format: str | None = None,
    ) -> None:
        self._ensure_editable()
        d = self._draft
        if not isinstance(on, date):
            raise WizardValidationError("date", "Date is required")
        if on < club_today(d.club, self._clock()):
            raise WizardValidationError("date", "Date must not be in the past")
        if not isinstance(start_time, str) or not is_valid_time(start_time):
            raise WizardValidationError("start_time", "Start time must be HH:MM")
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise WizardValidationError("duration_minutes", "Duration must be a positive number of minutes")
        fmt = court_format or d.court_format
        if d.available_court_formats and fmt not in d.available_court_formats:
            raise WizardValidationError("court_format", f"Court format {fmt!r} is not offered")

        if not transitions.apply_date_time(d, on, normalize_time(start_time), duration_minutes, fmt):
            return
        await self._abandon_reservation()
        await self._refresh_availability()

    async def select_court(self, court: CourtCandidate | str) -> None:
        self._ensure_editable()
        court_id = court.id if isinstance(court, CourtCandidate) else court
        if not court_id or not court_id.strip():
            raise WizardValidationError("court_id", "Court id must not be empty")
        d = self._draft
        if d.court_pinned:
            raise WizardStateError("The court was preselected and cannot be changed")
        candidate = next((c for c in d.available_courts if c.id == court_id), None)
        if candidate is None:
            raise WizardValidationError("court_id", f"Court {court_id} is not available for the selected time")

        if transitions.apply_court(d, candidate):
            await self._abandon_reservation()

    def select_payment_provider(self, provider: PaymentProvider | str) -> None:
        self._ensure_editable()
        provider_id = provider.id if isinstance(provider, PaymentProvider) else provider
        if not provider_id or not provider_id.strip():
            raise WizardValidationError("provider_id", "Payment provider must not be empty")
        d = self._draft
        offered = next((p for p in d.available_payment_providers if p.id == provider_id), None)
        if offered is None:
            if d.available_payment_providers:
                raise WizardValidationError("provider_id", f"Payment provider {provider_id} is not offered")
            offered = provider if isinstance(provider, PaymentProvider) else PaymentProvider(id=provider_id, name=provider_id)
        transitions.apply_payment_provider(d, offered)

    async def accept_suggestion(
        self,
        *,
        duration: int | None = None,
        start_time: str | None = None,
    ) -> None:
        """Apply one of the offered alternatives and query availability again."""
        self._ensure_editable()
        if (duration is None) == (start_time is None):
            raise WizardValidationError("suggestion", "Give exactly one of duration or start_time")
        suggestions = self._draft.suggestions
        chosen: Suggestion | None = None
        if suggestions is not None:
            if duration is not None:
                chosen = next((s for s in suggestions.alternative_durations if s.duration == duration), None)
            else:
                wanted = normalize_time(start_time) if is_valid_time(start_time) else start_time
                chosen = next(
                    (s for s in suggestions.alternative_time_slots if normalize_time(s.start_time) == wanted),
                    None,
                )
        if chosen is None:
            raise WizardValidationError("suggestion", "No such suggestion is on offer")

        transitions.apply_suggestion(self._draft, chosen)
        await self._abandon_reservation()
        await self._refresh_availability()

    async def retry_availability(self) -> None:
        """Re-issue the failed load of the current step."""
        self._ensure_editable()
        d = self._draft
        if self.current_step is StepId.CLUB_SELECTION and ERR_CLUBS in d.errors:
            await self._load_clubs()
            return
        error = d.errors.get(ERR_AVAILABILITY)
        if error is None or not error.retryable:
            raise WizardStateError("There is no retryable availability failure")
        key = d.current_key()
        if key is not None:
            self._availability.invalidate(key)
        await self._refresh_availability()

    # ── Navigation ─────────────────────────────────────────────────────

    async def advance(self) -> bool:
        """
        Move to the next planned step.

        A no-op returning False when the current step's requirements are
        not met; entering a step triggers the loads it depends on.
        """
        self._ensure_editable()
        if not self.can_advance() or self._step_index >= len(self._steps) - 1:
            logger.debug("advance() ignored on %s", self.current_step.value)
            return False
        self._step_index += 1
        logger.info("Wizard advanced to %s", self.current_step.value)
        await self._enter(self.current_step)
        return True

    async def retreat(self) -> bool:
        """
        Move to the previous planned step.

        A HELD reservation is kept; leaving payment with an expired or
        failed one returns the reservation to IDLE.
        """
        self._ensure_editable()
        if self._step_index == 0 or self.current_step is StepId.FINAL_CONFIRMATION:
            return False
        if self.current_step is StepId.PAYMENT and self._reservations.state is not ReservationState.HELD:
            self._reservations.abandon()
        self._step_index -= 1
        transitions.clear_error(self._draft, ERR_PAYMENT)
        logger.info("Wizard moved back to %s", self.current_step.value)
        await self._enter(self.current_step)
        return True

    async def submit(self) -> str | None:
        """
        Book the held court and slot with the selected payment provider.

        Returns the booking id, or None when the backend refused; the
        failure is then recorded on the payment step.
        """
        self._ensure_open()
        d = self._draft
        if self.current_step is not StepId.PAYMENT:
            raise WizardStateError("Submission is only possible on the payment step")
        if d.payment_provider is None:
            raise WizardStateError("No payment provider selected")
        if d.submitting:
            raise WizardStateError("A submission is already in flight")
        hold = self._reservations.hold
        if self._reservations.state is not ReservationState.HELD or hold is None:
            raise WizardStateError(
                f"No reservation is held (state={self._reservations.state.value})"
            )

        key = d.current_key()
        start, end = slot_bounds_utc(d.club, d.date, d.start_time, d.duration_minutes)
        transitions.begin_submission(d)
        logger.info("Submitting booking for court %s with reservation %s", d.court_id, hold.id)
        try:
            booking_id = await self._backend.create_booking(
                d.court_id, start, end, d.payment_provider.id, hold.id,
            )
        except ConflictError as exc:
            # the server is authoritative over the local countdown
            logger.warning("Booking conflict for court %s: %s", d.court_id, exc.message)
            if not self._closed:
                self._reservations.fail(exc)
            self._availability.invalidate(key)
            transitions.reject_court(d)
            transitions.set_error(d, ERR_PAYMENT, DraftError(code="conflict", message=exc.message))
            return None
        except BookingApiError as exc:
            if self._reservations.state is ReservationState.EXPIRED:
                transitions.set_error(d, ERR_PAYMENT, self._expired_error())
            else:
                transitions.set_error(
                    d, ERR_PAYMENT,
                    DraftError(code="submission_failed", message=exc.message, retryable=True),
                )
            logger.warning("Booking submission failed: %s", exc.message)
            return None
        finally:
            transitions.end_submission(d)

        if self._closed:
            logger.warning("Booking %s confirmed after the wizard was closed", booking_id)
            return booking_id
        self._reservations.consume()
        transitions.confirm_booking(d, booking_id)
        self._step_index += 1
        self._completion = BookingCompletion(
            booking_id=booking_id,
            court_id=d.court_id,
            date=d.date,
            start_time=d.start_time,
            end_time=d.end_time,
        )
        logger.info("Booking %s confirmed", booking_id)
        if self._on_complete is not None:
            self._on_complete(self._completion)
        return booking_id

    # ── Step entry ─────────────────────────────────────────────────────

    async def _enter(self, step: StepId) -> None:
        d = self._draft
        if step is StepId.CLUB_SELECTION:
            if not d.available_clubs:
                await self._load_clubs()
        elif step in (StepId.DATE_TIME, StepId.COURT_SELECTION):
            await self._refresh_availability()
        elif step is StepId.PRE_PAYMENT_CONFIRMATION:
            self._check_confirmable()
            if d.court_pinned and ERR_COURT not in d.errors:
                await self._refresh_availability()
        elif step is StepId.PAYMENT:
            await self._load_payment_providers(required=True)
            await self._ensure_reservation()

    def _check_confirmable(self) -> None:
        d = self._draft
        if not d.club_id:
            transitions.set_error(d, ERR_CLUB, DraftError(code="missing_club", message="No club selected"))
        if d.court is None:
            transitions.set_error(d, ERR_COURT, DraftError(code="missing_court", message="No court selected"))

    async def _load_clubs(self) -> None:
        d = self._draft
        try:
            clubs = await self._backend.list_clubs()
        except BookingApiError as exc:
            logger.warning("Could not load clubs: %s", exc.message)
            transitions.set_error(
                d, ERR_CLUBS, DraftError(code="clubs_unavailable", message=exc.message, retryable=True),
            )
            return
        transitions.set_clubs(d, clubs)

    async def _load_payment_providers(self, *, required: bool) -> None:
        d = self._draft
        club_id = d.club_id
        if not club_id or d.available_payment_providers:
            return
        try:
            providers = await self._backend.list_payment_providers(club_id)
        except BookingApiError as exc:
            logger.warning("Could not load payment providers for club %s: %s", club_id, exc.message)
            if required:
                transitions.set_error(
                    d, ERR_PAYMENT_PROVIDERS,
                    DraftError(code="payment_providers_unavailable", message=exc.message, retryable=True),
                )
            return
        if d.club_id == club_id:
            transitions.set_payment_providers(d, providers)

    async def _refresh_availability(self) -> None:
        d = self._draft
        key = d.current_key()
        if key is None:
            return
        transitions.begin_availability(d, key)
        try:
            result = await self._availability.query(key, d.club)
        except AvailabilityError as exc:
            if d.availability_key != key:
                logger.debug("Discarding stale availability failure for %s", key)
                return
            transitions.fail_availability(
                d, DraftError(code=exc.kind.value, message=exc.message, retryable=exc.retryable),
            )
            return
        finally:
            transitions.end_availability(d, key)
        if d.availability_key != key:
            logger.debug("Discarding stale availability response for %s", key)
            return
        estimate = self._prices.estimate(result.courts, key.duration_minutes)
        transitions.apply_availability(d, result.courts, result.suggestions, estimate)

    async def _ensure_reservation(self) -> None:
        d = self._draft
        if d.court_id is None or d.current_key() is None:
            return
        start, end = slot_bounds_utc(d.club, d.date, d.start_time, d.duration_minutes)
        if self._reservations.holds(d.court_id, start, end):
            return
        if self._reservations.state is ReservationState.RESERVING:
            return
        await self._abandon_reservation()

        key = d.current_key()
        try:
            hold = await self._reservations.reserve(d.court_id, start, end)
        except ConflictError as exc:
            self._availability.invalidate(key)
            transitions.reject_court(d)
            transitions.set_error(d, ERR_PAYMENT, DraftError(code="conflict", message=exc.message))
            return
        except BookingApiError as exc:
            transitions.set_error(
                d, ERR_PAYMENT,
                DraftError(code="reservation_failed", message=exc.message, retryable=True),
            )
            return
        if hold is not None:
            transitions.clear_error(d, ERR_PAYMENT)

    async def _abandon_reservation(self) -> None:
        hold = self._reservations.abandon()
        if hold is not None:
            await self._reservations.release_quietly(hold)

    def _handle_expired(self, hold: ReservationHold) -> None:
        if self._draft.submitting:
            logger.info("Reservation %s expired during submission, awaiting server", hold.id)
            return
        transitions.set_error(self._draft, ERR_PAYMENT, self._expired_error())

    @staticmethod
    def _expired_error() -> DraftError:
        return DraftError(
            code="reservation_expired",
            message="Your reservation has expired. Please select a court again.",
        )

    # ── Helpers ────────────────────────────────────────────────────────

    def _ensure_open(self) -> None:
        if self._closed:
            raise WizardStateError("The wizard is closed")

    def _ensure_editable(self) -> None:
        self._ensure_open()
        if self._draft.submitting:
            raise WizardStateError("A booking submission is in flight")

    def _find_club(self, club_id: str) -> ClubSummary | None:
        return next((c for c in self._draft.available_clubs if c.id == club_id), None)

    def _initial_draft(self) -> BookingDraft:
        p = self._preselected
        d = BookingDraft(
            club_id=p.club_id or None,
            club=p.club,
            court_id=p.court_id or None,
            court_pinned=bool(p.court_id),
            available_court_formats=list(p.available_court_formats),
        )
        if p.date_time is not None:
            d.date = p.date_time.date
            d.start_time = normalize_time(p.date_time.start_time)
            d.duration_minutes = p.date_time.duration_minutes
            if p.date_time.court_format:
                d.court_format = p.date_time.court_format
        if d.available_court_formats and d.court_format not in d.available_court_formats:
            d.court_format = d.available_court_formats[0]
        return d
