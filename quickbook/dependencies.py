import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Cookie, Depends, HTTPException, status

from quickbook.config import JWT_ALGORITHM, JWT_EXPIRY_DAYS, JWT_SECRET
from quickbook.models import PlayerInfo

logger = logging.getLogger(__name__)


# ── JWT / Session ──────────────────────────────────────────────────────────


def create_jwt(email: str) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": email,
        "iat": now,
        "exp": now + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def get_current_player(
    session: Annotated[str | None, Cookie()] = None,
) -> PlayerInfo:
    """
    Player behind the ``session`` cookie.

    The raw token is kept so it can be forwarded to the booking backend
    on the player's behalf.
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    try:
        payload = jwt.decode(session, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
        ) from None
    except jwt.PyJWTError:
        logger.info("Rejected invalid session token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session. Please log in again.",
        ) from None

    email: str | None = payload.get("sub")
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload.",
        )

    return PlayerInfo(email=email, token=session)


CurrentPlayer = Annotated[PlayerInfo, Depends(get_current_player)]
