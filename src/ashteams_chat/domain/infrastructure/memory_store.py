"""In-memory chat store.

Keeps users, chats and messages in process-local dictionaries. State lives
for the lifetime of the process only. Every public method runs under one
re-entrant lock, so id assignment and insertion are atomic even when FastAPI
dispatches sync work to its threadpool.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime

from loguru import logger

from ashteams_chat.application.exceptions import DuplicateEmailError
from ashteams_chat.domain.models import Chat, Message, Role, User


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryChatStore:
    """CRUD operations for users, chats and messages held in memory."""

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._chats: dict[int, Chat] = {}
        self._messages: dict[int, Message] = {}
        # One counter per entity kind; ids are never reused.
        self._next_user_id = 1
        self._next_chat_id = 1
        self._next_message_id = 1
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, password_hash: str) -> User:
        """Create a new user and return it.

        Raises:
            DuplicateEmailError: If a user with *email* already exists.
        """
        with self._lock:
            if self._find_user_by_email(email) is not None:
                raise DuplicateEmailError(email)
            user = User(
                id=self._next_user_id,
                email=email,
                password_hash=password_hash,
                created_at=_utcnow(),
            )
            self._next_user_id += 1
            self._users[user.id] = user
            logger.debug("Created user {} ({})", user.id, email)
            return replace(user)

    def get_user(self, user_id: int) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            user = self._find_user_by_email(email)
            return replace(user) if user else None

    def _find_user_by_email(self, email: str) -> User | None:
        return next((u for u in self._users.values() if u.email == email), None)

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    def create_chat(
        self,
        title: str,
        *,
        user_id: int | None = None,
        session_id: str | None = None,
    ) -> Chat:
        """Create a chat owned by exactly one of *user_id* or *session_id*."""
        if (user_id is None) == (session_id is None):
            raise ValueError("exactly one of user_id or session_id must be given")

        with self._lock:
            now = _utcnow()
            chat = Chat(
                id=self._next_chat_id,
                user_id=user_id,
                title=title,
                is_anonymous=session_id is not None,
                session_id=session_id,
                created_at=now,
                updated_at=now,
            )
            self._next_chat_id += 1
            self._chats[chat.id] = chat
            logger.debug("Created chat {} (anonymous={})", chat.id, chat.is_anonymous)
            return replace(chat)

    def get_chat(self, chat_id: int) -> Chat | None:
        """Return a chat by ID, or None if not found."""
        with self._lock:
            chat = self._chats.get(chat_id)
            return replace(chat) if chat else None

    def get_chats_by_user(self, user_id: int) -> list[Chat]:
        with self._lock:
            return [replace(c) for c in self._chats.values() if c.user_id == user_id]

    def get_chats_by_session(self, session_id: str) -> list[Chat]:
        with self._lock:
            return [replace(c) for c in self._chats.values() if c.session_id == session_id]

    def delete_chat(self, chat_id: int) -> None:
        """Delete a chat and all of its messages. Unknown ids are ignored."""
        with self._lock:
            if self._chats.pop(chat_id, None) is None:
                return
            self._drop_messages(chat_id)
            logger.debug("Deleted chat {}", chat_id)

    def update_chat_title(self, chat_id: int, title: str) -> None:
        with self._lock:
            chat = self._chats.get(chat_id)
            if chat is None:
                return
            chat.title = title
            self._touch_chat(chat)

    def _touch_chat(self, chat: Chat) -> None:
        # updated_at must never move backwards, even if the wall clock does.
        chat.updated_at = max(chat.updated_at, _utcnow())

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def create_message(self, chat_id: int, role: Role, content: str) -> Message:
        """Persist a message and refresh its chat's ``updated_at``.

        If the chat no longer exists (deleted while a reply was pending) the
        message is returned but not stored, so no orphan can outlive its chat.
        """
        with self._lock:
            message = Message(
                id=self._next_message_id,
                chat_id=chat_id,
                role=role,
                content=content,
                created_at=_utcnow(),
            )
            self._next_message_id += 1

            chat = self._chats.get(chat_id)
            if chat is None:
                logger.warning("Chat {} vanished before message {} was stored", chat_id, message.id)
                return replace(message)

            self._messages[message.id] = message
            self._touch_chat(chat)
            return replace(message)

    def get_messages_by_chat(self, chat_id: int) -> list[Message]:
        """Return all messages in a chat, oldest first (ties in insertion order)."""
        with self._lock:
            messages = [m for m in self._messages.values() if m.chat_id == chat_id]
            messages.sort(key=lambda m: (m.created_at, m.id))
            return [replace(m) for m in messages]

    def clear_messages(self, chat_id: int) -> None:
        """Delete every message in a chat, keeping the chat itself."""
        with self._lock:
            self._drop_messages(chat_id)

    def _drop_messages(self, chat_id: int) -> None:
        doomed = [mid for mid, m in self._messages.items() if m.chat_id == chat_id]
        for mid in doomed:
            del self._messages[mid]
