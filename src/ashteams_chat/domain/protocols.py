"""Domain service interfaces (ports).

The use cases depend on these protocols, not on a concrete store, so the
in-memory implementation can be swapped for a persistent one without touching
callers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from ashteams_chat.domain.models import Chat, ChatMessage, Message, Role, User

# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


@runtime_checkable
class ICompletionClient(Protocol):
    """Interface for the hosted chat-completion provider.

    Implementations: CompletionClient (httpx, OpenRouter).
    """

    async def complete(self, messages: list[ChatMessage]) -> str: ...

    def stream(self, messages: list[ChatMessage]) -> AsyncIterator[str]: ...


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@runtime_checkable
class IChatStore(Protocol):
    """Interface for user, chat and message storage.

    Implementations: MemoryChatStore (process-local, lock-guarded).

    Lookups return ``None`` or an empty list on a miss; they never raise.
    """

    # Users
    def create_user(self, email: str, password_hash: str) -> User: ...

    def get_user(self, user_id: int) -> User | None: ...

    def get_user_by_email(self, email: str) -> User | None: ...

    # Chats
    def create_chat(
        self,
        title: str,
        *,
        user_id: int | None = None,
        session_id: str | None = None,
    ) -> Chat: ...

    def get_chat(self, chat_id: int) -> Chat | None: ...

    def get_chats_by_user(self, user_id: int) -> list[Chat]: ...

    def get_chats_by_session(self, session_id: str) -> list[Chat]: ...

    def delete_chat(self, chat_id: int) -> None: ...

    def update_chat_title(self, chat_id: int, title: str) -> None: ...

    # Messages
    def create_message(self, chat_id: int, role: Role, content: str) -> Message: ...

    def get_messages_by_chat(self, chat_id: int) -> list[Message]: ...

    def clear_messages(self, chat_id: int) -> None: ...
