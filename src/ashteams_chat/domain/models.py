"""Domain entities and value objects.

These are the core data structures of the chat domain, independent of the
storage backend and of the HTTP framework.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]

# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------


@dataclass
class User:
    id: int
    email: str
    password_hash: str
    created_at: datetime


@dataclass
class Chat:
    """A conversation owned by either a registered user or an anonymous session.

    Exactly one of ``user_id`` and ``session_id`` is set.
    """

    id: int
    user_id: int | None
    title: str
    is_anonymous: bool
    session_id: str | None
    created_at: datetime
    updated_at: datetime


@dataclass
class Message:
    id: int
    chat_id: int
    role: Role
    content: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Request identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Caller:
    """Who is making a request: a logged-in user, an anonymous session, or nobody."""

    user_id: int | None = None
    session_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


# ---------------------------------------------------------------------------
# Shared DTO (used by the use cases and the completion client)
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """A single conversation turn as sent to the completion provider."""

    role: str = Field(description="Message role: 'system', 'user' or 'assistant'")
    content: str = Field(description="Message content")
