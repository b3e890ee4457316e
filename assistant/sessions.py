"""Conversation sessions and their stores.

A session keeps a bounded history of recent questions and intents plus the
last reply. The pipeline receives a store explicitly; ``get_session_store``
picks the configured backend.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger("assistant.sessions")

HISTORY_LIMIT = 10
LAST_ISSUES_LIMIT = 5
DEFAULT_SESSION_ID = "default"


@dataclass
class HistoryEntry:
    query: str
    normalized: str = ""
    intent: str | None = None


@dataclass
class ConversationSession:
    session_id: str
    history: deque = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    last_response: str | None = None
    last_issues: list[dict] = field(default_factory=list)

    def add_query(self, query: str, normalized: str = "") -> HistoryEntry:
        entry = HistoryEntry(query=query, normalized=normalized)
        self.history.append(entry)
        return entry

    def record_intent(self, intent: str) -> None:
        """Attach *intent* to the newest history entry, creating one if needed."""
        if not self.history or self.history[-1].intent is not None:
            self.history.append(HistoryEntry(query=""))
        self.history[-1].intent = intent

    @property
    def intents(self) -> list[str]:
        return [e.intent for e in self.history if e.intent]

    def remember_reply(self, message: str, issues: list[dict] | None = None) -> None:
        self.last_response = message
        if issues:
            self.last_issues = list(issues[:LAST_ISSUES_LIMIT])

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "history": [vars(e) for e in self.history],
            "last_response": self.last_response,
            "last_issues": self.last_issues,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ConversationSession:
        session = cls(session_id=data["session_id"])
        for entry in data.get("history", []):
            session.history.append(HistoryEntry(**entry))
        session.last_response = data.get("last_response")
        session.last_issues = data.get("last_issues") or []
        return session


class SessionStore(ABC):
    """Get/create/update/reset conversation sessions by id."""

    @abstractmethod
    def get(self, session_id: str) -> ConversationSession | None:
        ...

    @abstractmethod
    def update(self, session: ConversationSession) -> None:
        ...

    def create(self, session_id: str) -> ConversationSession:
        session = ConversationSession(session_id=session_id)
        self.update(session)
        return session

    def get_or_create(self, session_id: str | None) -> ConversationSession:
        session_id = session_id or DEFAULT_SESSION_ID
        session = self.get(session_id)
        if session is None:
            logger.debug("Creating session %s", session_id)
            session = self.create(session_id)
        return session

    def reset(self, session_id: str) -> ConversationSession:
        """Replace the session with an empty one."""
        logger.info("Resetting session %s", session_id)
        return self.create(session_id)


class InMemorySessionStore(SessionStore):
    """Process-local store. Sessions live until reset or process exit."""

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> ConversationSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def update(self, session: ConversationSession) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class CacheSessionStore(SessionStore):
    """Store backed by Django's cache, shared across processes (Redis in production)."""

    prefix = "compass:session:"

    def __init__(self, timeout: int | None = None) -> None:
        self.timeout = timeout if timeout is not None else settings.SESSION_TTL

    def get(self, session_id: str) -> ConversationSession | None:
        data = cache.get(f"{self.prefix}{session_id}")
        if data is None:
            return None
        try:
            return ConversationSession.from_dict(data)
        except (KeyError, TypeError):
            logger.warning("Discarding unreadable cached session %s", session_id)
            return None

    def update(self, session: ConversationSession) -> None:
        cache.set(f"{self.prefix}{session.session_id}", session.to_dict(), timeout=self.timeout)


def get_session_store() -> SessionStore:
    """Build the store selected by ``settings.SESSION_STORE``."""
    backend = settings.SESSION_STORE
    if backend == "cache":
        return CacheSessionStore()
    if backend != "memory":
        logger.warning("Unknown SESSION_STORE %r, using in-memory sessions", backend)
    return InMemorySessionStore()
