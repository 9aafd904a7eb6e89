"""
Wizard session endpoints.

Every route drives one WizardController owned by the calling player and
answers with a fresh snapshot of the wizard.  Engine exceptions are
mapped to HTTP errors by the handlers registered in ``quickbook.main``.
"""

from fastapi import APIRouter, Request, status

from quickbook.dependencies import CurrentPlayer
from quickbook.models import (
    AcceptSuggestionRequest,
    CloseSessionResponse,
    DateTimeSelection,
    Preselection,
    SelectClubRequest,
    SelectCourtRequest,
    SelectPaymentProviderRequest,
    WizardSnapshot,
)
from quickbook.rate_limit import STRICT, limiter
from quickbook.services.registry import WizardSession, registry

router = APIRouter(prefix="/api/wizard/sessions", tags=["wizard"])


def _snapshot(session: WizardSession) -> WizardSnapshot:
    controller = session.controller
    return WizardSnapshot(
        session_id=session.id,
        steps=list(controller.steps),
        current_step=controller.current_step,
        can_advance=controller.can_advance(),
        draft=controller.snapshot(),
    )


@router.post(
    "",
    response_model=WizardSnapshot,
    status_code=status.HTTP_201_CREATED,
    operation_id="openWizard",
    summary="Open a booking wizard, optionally with preselected inputs",
)
@limiter.limit(STRICT)
async def open_wizard(
    request: Request,
    player: CurrentPlayer,
    body: Preselection | None = None,
) -> WizardSnapshot:
    session = await registry.create(player.email, player.token, body)
    return _snapshot(session)


@router.get(
    "/{session_id}",
    response_model=WizardSnapshot,
    operation_id="getWizard",
    summary="Current step and draft of a wizard",
)
async def get_wizard(session_id: str, player: CurrentPlayer) -> WizardSnapshot:
    return _snapshot(registry.get(session_id, player.email))


@router.delete(
    "/{session_id}",
    response_model=CloseSessionResponse,
    operation_id="closeWizard",
    summary="Close a wizard and discard its draft",
)
async def close_wizard(session_id: str, player: CurrentPlayer) -> CloseSessionResponse:
    completion = await registry.close(session_id, player.email)
    return CloseSessionResponse(completion=completion)


# ── Selections ─────────────────────────────────────────────────────────────


@router.post(
    "/{session_id}/club",
    response_model=WizardSnapshot,
    operation_id="selectClub",
    summary="Select the club",
)
async def select_club(session_id: str, body: SelectClubRequest, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.select_club(body.club_id)
    return _snapshot(session)


@router.put(
    "/{session_id}/date-time",
    response_model=WizardSnapshot,
    operation_id="setDateTime",
    summary="Set date, start time, duration and court format",
)
async def set_date_time(session_id: str, body: DateTimeSelection, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.set_date_time(
        body.date, body.start_time, body.duration_minutes, body.court_format,
    )
    return _snapshot(session)


@router.post(
    "/{session_id}/court",
    response_model=WizardSnapshot,
    operation_id="selectCourt",
    summary="Select one of the available courts",
)
async def select_court(session_id: str, body: SelectCourtRequest, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.select_court(body.court_id)
    return _snapshot(session)


@router.post(
    "/{session_id}/payment-provider",
    response_model=WizardSnapshot,
    operation_id="selectPaymentProvider",
    summary="Select the payment provider",
)
async def select_payment_provider(
    session_id: str,
    body: SelectPaymentProviderRequest,
    player: CurrentPlayer,
) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    session.controller.select_payment_provider(body.provider_id)
    return _snapshot(session)


@router.post(
    "/{session_id}/suggestions/accept",
    response_model=WizardSnapshot,
    operation_id="acceptSuggestion",
    summary="Accept an alternative duration or start time",
)
async def accept_suggestion(
    session_id: str,
    body: AcceptSuggestionRequest,
    player: CurrentPlayer,
) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.accept_suggestion(duration=body.duration, start_time=body.start_time)
    return _snapshot(session)


@router.post(
    "/{session_id}/availability/retry",
    response_model=WizardSnapshot,
    operation_id="retryAvailability",
    summary="Retry a transient loading failure",
)
async def retry_availability(session_id: str, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.retry_availability()
    return _snapshot(session)


# ── Navigation ─────────────────────────────────────────────────────────────


@router.post(
    "/{session_id}/advance",
    response_model=WizardSnapshot,
    operation_id="advanceWizard",
    summary="Move to the next step when the current one is complete",
)
async def advance(session_id: str, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.advance()
    return _snapshot(session)


@router.post(
    "/{session_id}/retreat",
    response_model=WizardSnapshot,
    operation_id="retreatWizard",
    summary="Move back to the previous step",
)
async def retreat(session_id: str, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.retreat()
    return _snapshot(session)


@router.post(
    "/{session_id}/submit",
    response_model=WizardSnapshot,
    operation_id="submitBooking",
    summary="Book the held court with the selected payment provider",
)
@limiter.limit(STRICT)
async def submit(request: Request, session_id: str, player: CurrentPlayer) -> WizardSnapshot:
    session = registry.get(session_id, player.email)
    await session.controller.submit()
    return _snapshot(session)
