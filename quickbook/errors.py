"""
Exception taxonomy for the booking engine.

Backend failures are raised by the booking API client and converted into
field-scoped ``DraftError`` values by the wizard; they never escape an
asynchronous wizard operation.  ``WizardValidationError`` and
``WizardStateError`` are raised synchronously, before any network call.
"""

from __future__ import annotations

from enum import Enum


class BookingApiError(Exception):
    """Non-2xx response or transport failure from the booking backend."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ConflictError(BookingApiError):
    """The backend answered 409: the court/slot is already claimed."""

    def __init__(self, message: str = "Selected time slot is already booked or reserved") -> None:
        super().__init__(message, status_code=409)


class NotFoundError(BookingApiError):
    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message, status_code=404)


class AvailabilityErrorKind(str, Enum):
    CLUB_CLOSED = "club_closed"
    TRANSIENT = "transient"


class AvailabilityError(Exception):
    """
    Availability query failure.

    ``CLUB_CLOSED`` means the requested window is outside the club's
    opening hours and only a different request can succeed.
    ``TRANSIENT`` covers network and server failures; re-issuing the same
    query may succeed.
    """

    def __init__(self, kind: AvailabilityErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.kind is AvailabilityErrorKind.TRANSIENT

    @classmethod
    def club_closed(cls, message: str = "Club is closed for the requested time") -> AvailabilityError:
        return cls(AvailabilityErrorKind.CLUB_CLOSED, message)

    @classmethod
    def transient(cls, message: str = "Could not load available courts") -> AvailabilityError:
        return cls(AvailabilityErrorKind.TRANSIENT, message)


class WizardValidationError(ValueError):
    """Malformed input. The draft is left unchanged."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class WizardStateError(RuntimeError):
    """An operation was called while its precondition does not hold."""


class SessionNotFoundError(LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Wizard session {session_id} not found")
        self.session_id = session_id


class SessionForbiddenError(PermissionError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Wizard session {session_id} belongs to another player")
        self.session_id = session_id
