"""Anonymous session route."""

import secrets

from fastapi import APIRouter

from ashteams_chat.presentation.schemas import AnonymousSessionResponse

router = APIRouter(prefix="/api", tags=["session"])


@router.post("/anonymous-session", response_model=AnonymousSessionResponse)
async def create_anonymous_session():
    """Issue an opaque token that scopes chats for a caller without an account."""
    return AnonymousSessionResponse(session_id=secrets.token_urlsafe(16))
