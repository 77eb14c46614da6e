"""Tests for MemoryChatStore — CRUD and invariants of the in-memory store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest

from ashteams_chat.application.exceptions import DuplicateEmailError
from ashteams_chat.domain.infrastructure import MemoryChatStore, memory_store
from ashteams_chat.domain.protocols import IChatStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> Clock:
    """Freeze the store's clock; tests move it by assigning ``clock.now``."""
    c = Clock(T0)
    monkeypatch.setattr(memory_store, "_utcnow", c)
    return c


def test_implements_protocol(store: MemoryChatStore):
    assert isinstance(store, IChatStore)


class TestUsers:
    def test_create_user(self, store: MemoryChatStore):
        user = store.create_user("alice@example.com", "hash")
        assert user.id == 1
        assert user.email == "alice@example.com"
        assert user.password_hash == "hash"
        assert user.created_at.tzinfo is not None

    def test_ids_increase(self, store: MemoryChatStore):
        a = store.create_user("a@example.com", "h")
        b = store.create_user("b@example.com", "h")
        assert b.id == a.id + 1

    def test_duplicate_email_rejected(self, store: MemoryChatStore):
        store.create_user("alice@example.com", "h1")
        with pytest.raises(DuplicateEmailError):
            store.create_user("alice@example.com", "h2")

    def test_duplicate_does_not_consume_id(self, store: MemoryChatStore):
        store.create_user("alice@example.com", "h")
        with pytest.raises(DuplicateEmailError):
            store.create_user("alice@example.com", "h")
        assert store.create_user("bob@example.com", "h").id == 2

    def test_get_user_by_email(self, store: MemoryChatStore):
        user = store.create_user("alice@example.com", "h")
        assert store.get_user_by_email("alice@example.com") == user
        assert store.get_user_by_email("nobody@example.com") is None

    def test_get_user_not_found(self, store: MemoryChatStore):
        assert store.get_user(42) is None


class TestChats:
    def test_create_anonymous_chat(self, store: MemoryChatStore):
        chat = store.create_chat("Chat 1", session_id="abc")
        assert chat.id == 1
        assert chat.is_anonymous is True
        assert chat.session_id == "abc"
        assert chat.user_id is None
        assert chat.created_at == chat.updated_at

    def test_create_user_chat(self, store: MemoryChatStore):
        chat = store.create_chat("Chat 1", user_id=7)
        assert chat.is_anonymous is False
        assert chat.user_id == 7
        assert chat.session_id is None

    @pytest.mark.parametrize(
        "owner",
        [{}, {"user_id": 1, "session_id": "abc"}],
        ids=["neither", "both"],
    )
    def test_requires_exactly_one_owner(self, store: MemoryChatStore, owner: dict):
        with pytest.raises(ValueError, match="exactly one"):
            store.create_chat("Chat", **owner)

    def test_counters_are_per_entity_kind(self, store: MemoryChatStore):
        store.create_user("a@example.com", "h")
        store.create_user("b@example.com", "h")
        chat = store.create_chat("Chat", session_id="abc")
        message = store.create_message(chat.id, "user", "hi")
        assert chat.id == 1
        assert message.id == 1

    def test_ids_never_reused_after_delete(self, store: MemoryChatStore):
        first = store.create_chat("A", session_id="s")
        store.delete_chat(first.id)
        second = store.create_chat("B", session_id="s")
        assert second.id == first.id + 1

    def test_list_by_owner(self, store: MemoryChatStore):
        mine = store.create_chat("Mine", user_id=1)
        store.create_chat("Theirs", user_id=2)
        anon = store.create_chat("Anon", session_id="abc")
        store.create_chat("Other anon", session_id="xyz")

        assert [c.id for c in store.get_chats_by_user(1)] == [mine.id]
        assert [c.id for c in store.get_chats_by_session("abc")] == [anon.id]
        assert store.get_chats_by_session("nope") == []

    def test_returned_chat_is_a_copy(self, store: MemoryChatStore):
        chat = store.create_chat("Original", session_id="abc")
        chat.title = "Mutated"
        assert store.get_chat(chat.id).title == "Original"

    def test_update_title(self, store: MemoryChatStore, clock: Clock):
        chat = store.create_chat("Old", session_id="abc")
        clock.now = T0 + timedelta(seconds=5)
        store.update_chat_title(chat.id, "New")

        updated = store.get_chat(chat.id)
        assert updated.title == "New"
        assert updated.updated_at == T0 + timedelta(seconds=5)

    def test_update_title_missing_chat_is_noop(self, store: MemoryChatStore):
        store.update_chat_title(99, "Whatever")
        assert store.get_chat(99) is None


class TestDeletion:
    def test_delete_cascades_to_messages(self, store: MemoryChatStore):
        chat = store.create_chat("Chat", session_id="abc")
        store.create_message(chat.id, "user", "hi")
        store.create_message(chat.id, "assistant", "hello")

        store.delete_chat(chat.id)

        assert store.get_chat(chat.id) is None
        assert store.get_messages_by_chat(chat.id) == []

    def test_delete_leaves_other_chats_alone(self, store: MemoryChatStore):
        doomed = store.create_chat("Doomed", session_id="abc")
        kept = store.create_chat("Kept", session_id="abc")
        store.create_message(doomed.id, "user", "bye")
        store.create_message(kept.id, "user", "stay")

        store.delete_chat(doomed.id)

        assert [m.content for m in store.get_messages_by_chat(kept.id)] == ["stay"]

    def test_delete_twice_is_noop(self, store: MemoryChatStore):
        chat = store.create_chat("Chat", session_id="abc")
        store.delete_chat(chat.id)
        store.delete_chat(chat.id)
        store.delete_chat(12345)

    def test_clear_messages_keeps_chat(self, store: MemoryChatStore):
        chat = store.create_chat("Chat", session_id="abc")
        store.create_message(chat.id, "user", "hi")

        store.clear_messages(chat.id)
        store.clear_messages(chat.id)

        assert store.get_chat(chat.id) is not None
        assert store.get_messages_by_chat(chat.id) == []


class TestMessages:
    def test_create_message_touches_chat(self, store: MemoryChatStore, clock: Clock):
        chat = store.create_chat("Chat", session_id="abc")
        clock.now = T0 + timedelta(minutes=1)

        store.create_message(chat.id, "user", "hi")

        assert store.get_chat(chat.id).updated_at == T0 + timedelta(minutes=1)

    def test_updated_at_never_moves_backwards(self, store: MemoryChatStore, clock: Clock):
        chat = store.create_chat("Chat", session_id="abc")
        clock.now = T0 - timedelta(hours=1)

        store.create_message(chat.id, "user", "hi")
        store.update_chat_title(chat.id, "Renamed")

        assert store.get_chat(chat.id).updated_at == T0

    def test_messages_sorted_by_created_at(self, store: MemoryChatStore, clock: Clock):
        chat = store.create_chat("Chat", session_id="abc")
        clock.now = T0 + timedelta(seconds=10)
        late = store.create_message(chat.id, "user", "late")
        clock.now = T0 + timedelta(seconds=5)
        early = store.create_message(chat.id, "assistant", "early")

        assert [m.id for m in store.get_messages_by_chat(chat.id)] == [early.id, late.id]

    def test_timestamp_ties_keep_insertion_order(self, store: MemoryChatStore, clock: Clock):
        chat = store.create_chat("Chat", session_id="abc")
        ids = [store.create_message(chat.id, "user", str(i)).id for i in range(5)]

        assert [m.id for m in store.get_messages_by_chat(chat.id)] == ids

    def test_only_own_chat_messages_returned(self, store: MemoryChatStore):
        a = store.create_chat("A", session_id="abc")
        b = store.create_chat("B", session_id="abc")
        store.create_message(a.id, "user", "in a")
        store.create_message(b.id, "user", "in b")

        assert [m.content for m in store.get_messages_by_chat(a.id)] == ["in a"]

    def test_message_for_missing_chat_is_not_stored(self, store: MemoryChatStore):
        message = store.create_message(404, "assistant", "too late")
        assert message.id == 1
        assert message.content == "too late"
        assert store.get_messages_by_chat(404) == []

    def test_empty_chat_returns_empty_list(self, store: MemoryChatStore):
        assert store.get_messages_by_chat(1) == []


class TestConcurrency:
    WORKERS = 8
    PER_WORKER = 50

    def _run_in_threads(self, work) -> None:
        barrier = threading.Barrier(self.WORKERS)

        def worker() -> None:
            barrier.wait()
            for _ in range(self.PER_WORKER):
                work()

        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            for future in [pool.submit(worker) for _ in range(self.WORKERS)]:
                future.result()

    def test_concurrent_messages_get_unique_contiguous_ids(self, store: MemoryChatStore):
        chat = store.create_chat("Busy", session_id="abc")
        ids: list[int] = []

        self._run_in_threads(lambda: ids.append(store.create_message(chat.id, "user", "hi").id))

        total = self.WORKERS * self.PER_WORKER
        assert sorted(ids) == list(range(1, total + 1))
        assert len(store.get_messages_by_chat(chat.id)) == total

    def test_concurrent_chats_get_unique_contiguous_ids(self, store: MemoryChatStore):
        ids: list[int] = []

        self._run_in_threads(lambda: ids.append(store.create_chat("c", session_id="abc").id))

        total = self.WORKERS * self.PER_WORKER
        assert sorted(ids) == list(range(1, total + 1))
        assert len(store.get_chats_by_session("abc")) == total
