"""Storage implementations of the domain ports."""

from ashteams_chat.domain.infrastructure.memory_store import MemoryChatStore

__all__ = ["MemoryChatStore"]
