"""HTTP request/response schemas (Pydantic models) for the REST API.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Errors / sessions
# ---------------------------------------------------------------------------


class ErrorResponse(ApiModel):
    message: str


class AnonymousSessionResponse(ApiModel):
    """Response from POST /api/anonymous-session."""

    session_id: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class CredentialsRequest(ApiModel):
    """Request body for POST /api/register and POST /api/login."""

    email: str | None = Field(default=None, description="Account email")
    password: str | None = Field(default=None, description="Plain-text password")


class UserResponse(ApiModel):
    """A user as exposed to clients (never includes the password hash)."""

    id: int
    email: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------


class CreateChatRequest(ApiModel):
    """Request body for POST /api/chats.

    Anonymous callers send their ``sessionId`` in the body.
    """

    title: str | None = None
    session_id: str | None = None


class UpdateChatRequest(ApiModel):
    """Request body for PATCH /api/chats/{id}."""

    title: str | None = None


class ChatResponse(ApiModel):
    id: int
    user_id: int | None
    title: str
    is_anonymous: bool
    session_id: str | None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class SendMessageRequest(ApiModel):
    """Request body for POST /api/chats/{id}/messages."""

    content: str | None = Field(default=None, description="The new user message")


class MessageResponse(ApiModel):
    id: int
    chat_id: int
    role: str
    content: str
    created_at: datetime


class SendMessageResponse(ApiModel):
    """Both messages persisted by one turn."""

    user_message: MessageResponse
    ai_message: MessageResponse
