"""Multi-round persona debates and their session store."""

from debate.orchestrator import DebateRoundRunner, RoundOutcome, compile_round_graph
from debate.session import DebateSession, run_debate
from debate.store import (
    InMemorySessionStore,
    SessionStore,
    configure_default_store,
    delete_session,
    get_or_create_session,
    store_from_config,
)

__all__ = [
    "DebateRoundRunner",
    "DebateSession",
    "InMemorySessionStore",
    "RoundOutcome",
    "SessionStore",
    "compile_round_graph",
    "configure_default_store",
    "delete_session",
    "get_or_create_session",
    "run_debate",
    "store_from_config",
]
