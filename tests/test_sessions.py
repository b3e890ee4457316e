"""Tests for conversation sessions and their stores."""

import threading

import pytest

from assistant.sessions import (
    HISTORY_LIMIT,
    CacheSessionStore,
    ConversationSession,
    InMemorySessionStore,
    get_session_store,
)


@pytest.fixture
def locmem_cache(settings):
    settings.CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}


class TestConversationSession:
    def test_history_is_capped(self):
        session = ConversationSession(session_id="s")
        for n in range(15):
            session.add_query(f"q{n}")
        assert len(session.history) == HISTORY_LIMIT == 10
        assert session.history[0].query == "q5"

    def test_record_intent_without_query(self):
        session = ConversationSession(session_id="s")
        session.record_intent("SPRINT")
        session.record_intent("BLOCKERS")
        assert session.intents == ["SPRINT", "BLOCKERS"]

    def test_remember_reply_keeps_few_issues(self):
        session = ConversationSession(session_id="s")
        session.remember_reply("hello", [{"key": f"NIHK-{n}"} for n in range(8)])
        assert session.last_response == "hello"
        assert len(session.last_issues) == 5

        session.remember_reply("again")
        assert len(session.last_issues) == 5

    def test_dict_round_trip(self):
        session = ConversationSession(session_id="s")
        session.add_query("What's due?", "show upcoming deadlines")
        session.record_intent("TIMELINE")
        restored = ConversationSession.from_dict(session.to_dict())
        assert restored.history[0].normalized == "show upcoming deadlines"
        assert restored.intents == ["TIMELINE"]
        assert restored.history.maxlen == HISTORY_LIMIT


class TestInMemorySessionStore:
    def test_get_or_create_defaults(self):
        store = InMemorySessionStore()
        session = store.get_or_create(None)
        assert session.session_id == "default"
        assert store.get("default") is session
        assert len(store) == 1

    def test_reset_replaces_session(self):
        store = InMemorySessionStore()
        session = store.get_or_create("abc")
        session.add_query("hello")
        store.update(session)

        store.reset("abc")

        assert len(store.get("abc").history) == 0

    def test_concurrent_creates_from_threads(self):
        store = InMemorySessionStore()

        def worker(n):
            for i in range(50):
                store.get_or_create(f"t{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 400
        assert store.get("t7-49").session_id == "t7-49"


@pytest.mark.usefixtures("locmem_cache")
class TestCacheSessionStore:
    def test_update_and_get(self):
        store = CacheSessionStore(timeout=60)
        session = store.get_or_create("cached")
        session.add_query("show blockers", "show blockers")
        session.record_intent("BLOCKERS")
        store.update(session)

        loaded = store.get("cached")
        assert loaded is not session
        assert loaded.intents == ["BLOCKERS"]

    def test_missing_session(self):
        assert CacheSessionStore().get("nobody") is None

    def test_unreadable_entry_is_discarded(self):
        from django.core.cache import cache

        cache.set("compass:session:broken", {"unexpected": True})
        assert CacheSessionStore().get("broken") is None


def test_store_selection(settings):
    settings.SESSION_STORE = "cache"
    assert isinstance(get_session_store(), CacheSessionStore)
    settings.SESSION_STORE = "memory"
    assert isinstance(get_session_store(), InMemorySessionStore)
