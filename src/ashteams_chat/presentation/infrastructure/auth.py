"""JWT session helpers and the request-identity dependency.

A logged-in user carries a signed JWT, either in the HTTP-only session
cookie set at login or in an ``Authorization: Bearer <token>`` header.
Anonymous callers identify themselves with a ``sessionId`` instead. A
missing, expired or invalid token simply means "not logged in".
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Query, Request, Response
from loguru import logger

from ashteams_chat.config import Settings
from ashteams_chat.domain.models import Caller

ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def create_token(user_id: int, settings: Settings) -> str:
    """Create a signed JWT for *user_id*."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expiry_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and verify a JWT. Raises on invalid/expired tokens."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_expiry_hours * 3600,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=settings.auth_cookie_name, httponly=True, samesite="lax")


def _read_token(request: Request, settings: Settings) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get(settings.auth_cookie_name)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


async def get_current_user_id(request: Request) -> int | None:
    """FastAPI dependency: the logged-in user's id, or None."""
    settings: Settings = request.app.state.settings
    token = _read_token(request, settings)
    if not token:
        return None

    try:
        claims = decode_token(token, settings)
        user_id = int(claims["sub"])
    except jwt.ExpiredSignatureError:
        logger.info("Expired session token presented")
        return None
    except (jwt.InvalidTokenError, KeyError, ValueError):
        logger.warning("Invalid session token presented")
        return None

    # Tokens outlive the in-memory store across restarts
    if request.app.state.store.get_user(user_id) is None:
        return None
    return user_id


async def get_caller(
    request: Request,
    session_id: str | None = Query(default=None, alias="sessionId"),
) -> Caller:
    """FastAPI dependency: identity for chat-scoped routes (login or ``?sessionId=``)."""
    user_id = await get_current_user_id(request)
    return Caller(user_id=user_id, session_id=session_id or None)
