"""Analyst personas, their backends, and the deterministic fallback."""

from agents.adapter import AdapterError, Failed, Generated, PersonaAdapter
from agents.backends import CallableBackend, LangChainBackend, TextBackend
from agents.fallback import FallbackAdapter
from agents.normalizer import PayloadNotFoundError, normalize_reply
from agents.personas import PERSONAS, PersonaSpec, get_persona
from agents.roster import PersonaReply, PersonaRoster

__all__ = [
    "AdapterError",
    "CallableBackend",
    "Failed",
    "FallbackAdapter",
    "Generated",
    "LangChainBackend",
    "PERSONAS",
    "PayloadNotFoundError",
    "PersonaAdapter",
    "PersonaReply",
    "PersonaRoster",
    "PersonaSpec",
    "TextBackend",
    "get_persona",
    "normalize_reply",
]
