"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from quickbook.models import HealthResponse
from quickbook.services.registry import registry

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check with the number of open wizard sessions",
)
async def get_health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        timestamp=datetime.now(timezone.utc),
        open_sessions=len(registry),
    )
