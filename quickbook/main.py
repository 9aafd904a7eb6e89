"""FastAPI application hosting quick-booking wizard sessions."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from quickbook.config import ENVIRONMENT, LOG_LEVEL
from quickbook.errors import (
    SessionForbiddenError,
    SessionNotFoundError,
    WizardStateError,
    WizardValidationError,
)
from quickbook.models import Error
from quickbook.rate_limit import limiter
from quickbook.routers import health, wizard
from quickbook.services.registry import registry

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting quick-booking service (%s)", ENVIRONMENT)
    await registry.start()
    yield
    await registry.stop()
    logger.info("Quick-booking service stopped")


app = FastAPI(
    title="Quick Booking API",
    description="Booking wizard sessions for padel and tennis courts",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(health.router)
app.include_router(wizard.router)


# ── Error mapping ──────────────────────────────────────────────────────────


def _error(status_code: int, error: str, message: str, details: dict | None = None) -> JSONResponse:
    body = Error(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(WizardValidationError)
async def _validation_error(request: Request, exc: WizardValidationError) -> JSONResponse:
    return _error(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", exc.message, {"field": exc.field},
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request body or parameters are invalid",
        {"errors": jsonable_errors(exc)},
    )


@app.exception_handler(WizardStateError)
async def _state_error(request: Request, exc: WizardStateError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, "invalid_state", str(exc))


@app.exception_handler(SessionNotFoundError)
async def _session_not_found(request: Request, exc: SessionNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "not_found", str(exc), {"session_id": exc.session_id})


@app.exception_handler(SessionForbiddenError)
async def _session_forbidden(request: Request, exc: SessionForbiddenError) -> JSONResponse:
    return _error(status.HTTP_403_FORBIDDEN, "forbidden", str(exc), {"session_id": exc.session_id})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
