"""In-process debate session store.

Sessions are a cache, not a system of record: they live in process memory,
are evicted least-recently-used beyond ``max_count``, and expire after
``max_idle_seconds`` without access. Callers needing durability must persist
transcripts themselves.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Protocol

from agents.roster import PersonaRoster
from debate.orchestrator import DebateRoundRunner
from debate.session import DebateSession
from models.config import EngineConfig

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], DebateSession]


class SessionStore(Protocol):
    def get(self, session_id: str) -> Optional[DebateSession]:
        ...

    def get_or_create(self, session_id: str) -> DebateSession:
        ...

    def delete(self, session_id: str) -> bool:
        ...

    def clear(self) -> None:
        ...

    def __len__(self) -> int:
        ...


class InMemorySessionStore:
    """Thread-safe LRU map of session id -> ``DebateSession`` with idle expiry."""

    def __init__(
        self,
        factory: SessionFactory,
        max_count: int = 1024,
        max_idle_seconds: Optional[float] = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_count < 1:
            raise ValueError(f"max_count must be >= 1, got {max_count}.")
        self.factory = factory
        self.max_count = max_count
        self.max_idle_seconds = max_idle_seconds
        self.clock = clock
        self._sessions: OrderedDict[str, tuple[DebateSession, float]] = OrderedDict()
        self._lock = threading.Lock()

    def _expire_idle(self, now: float) -> None:
        if self.max_idle_seconds is None:
            return
        cutoff = now - self.max_idle_seconds
        # Entries are in access order, so expired ones are at the front.
        while self._sessions:
            session_id, (_, last_access) = next(iter(self._sessions.items()))
            if last_access > cutoff:
                break
            del self._sessions[session_id]
            logger.warning("Debate session %s expired after idling", session_id)

    def _touch(self, session_id: str, session: DebateSession, now: float) -> None:
        self._sessions[session_id] = (session, now)
        self._sessions.move_to_end(session_id)

    def get(self, session_id: str) -> Optional[DebateSession]:
        with self._lock:
            now = self.clock()
            self._expire_idle(now)
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            self._touch(session_id, entry[0], now)
            return entry[0]

    def get_or_create(self, session_id: str) -> DebateSession:
        with self._lock:
            now = self.clock()
            self._expire_idle(now)
            entry = self._sessions.get(session_id)
            if entry is not None:
                self._touch(session_id, entry[0], now)
                return entry[0]

            session = self.factory(session_id)
            self._touch(session_id, session, now)
            while len(self._sessions) > self.max_count:
                evicted, _ = self._sessions.popitem(last=False)
                logger.warning("Debate session %s evicted (store full)", evicted)
            return session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions


def session_factory(
    roster: PersonaRoster,
    config: EngineConfig,
    current_price: Optional[float] = None,
) -> SessionFactory:
    """Factory producing sessions that share one compiled round graph."""
    runner = DebateRoundRunner(roster)

    def _create(session_id: str) -> DebateSession:
        return DebateSession(
            session_id,
            runner,
            current_price=current_price or config.default_price,
            total_rounds=config.debate_rounds,
            timeout=config.timeout_seconds,
        )

    return _create


def store_from_config(
    config: EngineConfig,
    roster: Optional[PersonaRoster] = None,
) -> InMemorySessionStore:
    roster = roster or PersonaRoster.from_config(config)
    return InMemorySessionStore(
        session_factory(roster, config),
        max_count=config.session_max_count,
        max_idle_seconds=config.session_max_idle_seconds,
    )


# ---------------------------------------------------------------------------
# Process-wide default store
# ---------------------------------------------------------------------------
_default_store: Optional[InMemorySessionStore] = None
_default_lock = threading.Lock()


def configure_default_store(store: Optional[InMemorySessionStore]) -> None:
    """Replace the process-wide store (``None`` rebuilds it lazily from defaults)."""
    global _default_store
    with _default_lock:
        _default_store = store


def get_default_store() -> InMemorySessionStore:
    global _default_store
    with _default_lock:
        if _default_store is None:
            _default_store = store_from_config(EngineConfig())
        return _default_store


def get_or_create_session(session_id: str) -> DebateSession:
    return get_default_store().get_or_create(session_id)


def delete_session(session_id: str) -> bool:
    return get_default_store().delete(session_id)
