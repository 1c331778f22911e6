"""Persona roster: resolves each call to the live adapter or the fallback.

The roster is where a ``Failed`` outcome is turned into a fallback opinion
for that one call. Other personas and later calls are unaffected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from agents.adapter import AdapterError, Failed, Generated, PersonaAdapter
from agents.backends import TextBackend
from agents.fallback import FallbackAdapter
from agents.personas import PERSONAS, PersonaSpec
from agents.registry import create_backend
from models.config import EngineConfig
from models.context import AnalysisContext
from models.opinion import IndependentAnalysis, StructuredOpinion
from models.persona import PERSONA_ORDER, PersonaId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersonaReply:
    """Opinion served for one call, and whether the fallback produced it."""

    persona: PersonaId
    opinion: StructuredOpinion
    fallback: bool = False
    error: Optional[AdapterError] = None

    def to_analysis(self, role: str = "") -> IndependentAnalysis:
        return IndependentAnalysis.from_opinion(
            self.persona, self.opinion, role=role, fallback=self.fallback,
        )


class PersonaRoster:
    """Live adapter (or none) plus a fallback for every persona."""

    def __init__(
        self,
        adapters: Mapping[PersonaId, Optional[PersonaAdapter]],
        timeout: float | None = 25.0,
    ) -> None:
        self.adapters = {p: adapters.get(p) for p in PERSONA_ORDER}
        self.fallbacks = {p: FallbackAdapter(PERSONAS[p]) for p in PERSONA_ORDER}
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: EngineConfig) -> PersonaRoster:
        """Build live adapters for every persona whose credential is set."""
        adapters: dict[PersonaId, Optional[PersonaAdapter]] = {}
        for persona in PERSONA_ORDER:
            backend_cfg = config.backend_for(persona)
            if config.mock or backend_cfg is None:
                adapters[persona] = None
                continue
            backend = create_backend(
                backend_cfg, timeout=config.timeout_seconds, max_retries=config.max_retries,
            )
            if backend is None:
                logger.info(
                    "%s not set; %s will use the fallback adapter",
                    backend_cfg.api_key_env, persona.value,
                )
                adapters[persona] = None
            else:
                adapters[persona] = PersonaAdapter(PERSONAS[persona], backend)
        return cls(adapters, timeout=config.timeout_seconds)

    @classmethod
    def with_backends(
        cls,
        backends: Mapping[PersonaId, TextBackend],
        timeout: float | None = 25.0,
    ) -> PersonaRoster:
        adapters = {p: PersonaAdapter(PERSONAS[p], b) for p, b in backends.items()}
        return cls(adapters, timeout=timeout)

    @classmethod
    def offline(cls) -> PersonaRoster:
        """Every persona served by the deterministic fallback."""
        return cls({}, timeout=None)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def spec(self, persona: PersonaId) -> PersonaSpec:
        return PERSONAS[persona]

    def is_live(self, persona: PersonaId) -> bool:
        return self.adapters.get(persona) is not None

    async def opine(
        self,
        persona: PersonaId,
        context: AnalysisContext,
        timeout: float | None = None,
    ) -> PersonaReply:
        """One opinion for *persona*; never raises for backend failures."""
        adapter = self.adapters.get(persona)
        if adapter is None:
            return PersonaReply(persona, self.fallbacks[persona].opine(context), fallback=True)

        outcome = await adapter.try_generate(
            context, timeout=timeout if timeout is not None else self.timeout,
        )
        if isinstance(outcome, Generated):
            return PersonaReply(persona, outcome.opinion)

        assert isinstance(outcome, Failed)
        logger.warning(
            "%s failed on %s round %d, using fallback: %s",
            persona.value, context.symbol, context.round, outcome.error,
        )
        return PersonaReply(
            persona,
            self.fallbacks[persona].opine(context),
            fallback=True,
            error=outcome.error,
        )

    async def analyze(
        self,
        persona: PersonaId,
        context: AnalysisContext,
        timeout: float | None = None,
    ) -> IndependentAnalysis:
        reply = await self.opine(persona, context, timeout=timeout)
        return reply.to_analysis(role=PERSONAS[persona].analysis_role)
