"""Chat use case — chat management and the message relay to the AI provider.

This module contains all business logic behind the chat endpoints:
ownership checks, input validation, history conversion, the completion call
and the apology fallback. It has **no dependency on FastAPI** and can be
invoked from any transport layer.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass

from loguru import logger

from ashteams_chat.application.exceptions import (
    CompletionError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ashteams_chat.domain.models import Caller, Chat, ChatMessage, Message
from ashteams_chat.domain.protocols import IChatStore, ICompletionClient

APOLOGY_MESSAGE = (
    "I apologize, but I'm having trouble generating a response right now. "
    "Please try again later."
)


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


@dataclass
class PendingTurn:
    """A validated turn whose user message is stored and whose reply is not."""

    chat: Chat
    user_message: Message
    history: list[ChatMessage]


@dataclass
class TurnResult:
    """Both persisted messages of a completed turn."""

    user_message: Message
    ai_message: Message
    failed: bool = False


class StreamReset:
    """Marker: the fragments streamed so far are void and replaced by what follows."""

    def __repr__(self) -> str:
        return "STREAM_RESET"


STREAM_RESET = StreamReset()


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def authorize_chat(chat: Chat, caller: Caller) -> None:
    """Check that *caller* owns *chat*.

    A logged-in identity takes precedence over a session token.

    Raises:
        ForbiddenError: The caller's identity does not own the chat.
        UnauthorizedError: The caller has neither a login nor a session token.
    """
    if caller.is_authenticated:
        if chat.user_id != caller.user_id:
            raise ForbiddenError("Unauthorized")
    elif caller.session_id:
        if chat.session_id != caller.session_id:
            raise ForbiddenError("Unauthorized")
    else:
        raise UnauthorizedError("Authentication required")


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class ChatUseCase:
    """Chat CRUD plus the send-message flow.

    Parameters
    ----------
    store:
        Storage for chats and messages.
    completion_client:
        The hosted completion provider used to generate replies.
    """

    def __init__(self, store: IChatStore, completion_client: ICompletionClient) -> None:
        self.store = store
        self.completion_client = completion_client

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    def list_chats(self, caller: Caller) -> list[Chat]:
        """Return the caller's chats, most recently updated first."""
        if caller.is_authenticated:
            chats = self.store.get_chats_by_user(caller.user_id)
        elif caller.session_id:
            chats = self.store.get_chats_by_session(caller.session_id)
        else:
            raise ValidationError("Authentication or session ID required")
        return sorted(chats, key=lambda c: (c.updated_at, c.id), reverse=True)

    def create_chat(self, caller: Caller, title: str | None) -> Chat:
        if not title:
            raise ValidationError("Title is required")
        if caller.is_authenticated:
            return self.store.create_chat(title, user_id=caller.user_id)
        if caller.session_id:
            return self.store.create_chat(title, session_id=caller.session_id)
        raise ValidationError("Authentication or session ID required")

    def get_chat(self, caller: Caller, chat_id: int) -> Chat:
        """Return the chat if it exists and belongs to *caller*."""
        chat = self._require_chat(chat_id)
        authorize_chat(chat, caller)
        return chat

    def delete_chat(self, caller: Caller, chat_id: int) -> None:
        self.get_chat(caller, chat_id)
        self.store.delete_chat(chat_id)

    def rename_chat(self, caller: Caller, chat_id: int, title: str | None) -> Chat:
        """Set a new title. An empty title leaves the chat unchanged."""
        chat = self.get_chat(caller, chat_id)
        if title:
            self.store.update_chat_title(chat_id, title)
            chat = self.store.get_chat(chat_id) or chat
        return chat

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def list_messages(self, caller: Caller, chat_id: int) -> list[Message]:
        self.get_chat(caller, chat_id)
        return self.store.get_messages_by_chat(chat_id)

    def clear_messages(self, caller: Caller, chat_id: int) -> None:
        self.get_chat(caller, chat_id)
        self.store.clear_messages(chat_id)

    def start_turn(self, caller: Caller, chat_id: int, content: str | None) -> PendingTurn:
        """Validate a new user message, store it and load the history.

        Checks run in order: chat exists, content is non-blank, caller owns
        the chat.
        """
        chat = self._require_chat(chat_id)
        if not content or not content.strip():
            raise ValidationError("Message content is required")
        authorize_chat(chat, caller)

        user_message = self.store.create_message(chat.id, "user", content.strip())
        history = [
            ChatMessage(role=m.role, content=m.content)
            for m in self.store.get_messages_by_chat(chat.id)
        ]
        return PendingTurn(chat=chat, user_message=user_message, history=history)

    async def send_message(self, caller: Caller, chat_id: int, content: str | None) -> TurnResult:
        """Store the user's message and the assistant's reply.

        Failures of the completion call never propagate: the apology text is
        stored as the assistant turn instead, so every accepted user message
        gets a reply.
        """
        turn = self.start_turn(caller, chat_id, content)

        failed = False
        try:
            reply = await self.completion_client.complete(turn.history)
        except CompletionError as exc:
            logger.error("AI response error for chat {}: {}", turn.chat.id, exc)
            reply, failed = APOLOGY_MESSAGE, True
        except Exception:
            logger.exception("Unexpected completion client failure for chat {}", turn.chat.id)
            reply, failed = APOLOGY_MESSAGE, True

        ai_message = self.store.create_message(turn.chat.id, "assistant", reply)
        return TurnResult(user_message=turn.user_message, ai_message=ai_message, failed=failed)

    async def stream_reply(self, turn: PendingTurn) -> AsyncIterator[str | StreamReset | TurnResult]:
        """Yield reply fragments, then a final ``TurnResult``.

        If the provider fails at any point, ``STREAM_RESET`` is yielded when
        fragments were already sent, then the apology text, which is stored in
        place of the partial reply. If the consumer stops early, nothing is
        stored for the assistant turn.
        """
        parts: list[str] = []
        failed = False

        try:
            async with aclosing(self.completion_client.stream(turn.history)) as fragments:
                async for fragment in fragments:
                    parts.append(fragment)
                    yield fragment
        except CompletionError as exc:
            logger.error("AI stream error for chat {}: {}", turn.chat.id, exc)
            failed = True
        except Exception:
            logger.exception("Unexpected completion stream failure for chat {}", turn.chat.id)
            failed = True

        if failed:
            if parts:
                yield STREAM_RESET
            yield APOLOGY_MESSAGE

        reply = APOLOGY_MESSAGE if failed else "".join(parts)
        ai_message = self.store.create_message(turn.chat.id, "assistant", reply)
        yield TurnResult(user_message=turn.user_message, ai_message=ai_message, failed=failed)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_chat(self, chat_id: int) -> Chat:
        chat = self.store.get_chat(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        return chat
