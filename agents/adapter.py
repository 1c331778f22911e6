"""Persona adapter: one backend bound to one persona's prompt contract.

``generate`` raises on any failure. ``try_generate`` turns the same call into
an explicit outcome value (``Generated`` or ``Failed``) so callers decide what
to substitute without catching exceptions themselves.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

from agents.backends import TextBackend
from agents.normalizer import normalize_reply
from agents.personas import PersonaSpec
from agents.prompts import build_persona_prompt, system_prompt_for
from models.context import AnalysisContext
from models.opinion import StructuredOpinion
from models.persona import PersonaId

logger = logging.getLogger(__name__)


class AdapterError(RuntimeError):
    """One backend call failed: exception, timeout or unparseable reply."""

    def __init__(self, persona: PersonaId, message: str, cause: BaseException | None = None):
        super().__init__(f"[{persona.value}] {message}")
        self.persona = persona
        self.cause = cause


@dataclass(frozen=True)
class Generated:
    opinion: StructuredOpinion


@dataclass(frozen=True)
class Failed:
    error: AdapterError


AdapterOutcome = Union[Generated, Failed]


class PersonaAdapter:
    """Uniform adapter; persona behaviour comes entirely from ``spec``."""

    def __init__(self, spec: PersonaSpec, backend: TextBackend) -> None:
        self.spec = spec
        self.backend = backend

    @property
    def persona(self) -> PersonaId:
        return self.spec.persona

    async def generate(self, context: AnalysisContext) -> StructuredOpinion:
        system_prompt = system_prompt_for(self.persona)
        user_prompt = build_persona_prompt(self.spec, context)
        logger.debug(
            "%s round %d prompt: %d chars",
            self.persona.value, context.round, len(user_prompt),
        )
        raw = await self.backend.generate(system_prompt, user_prompt)
        return normalize_reply(raw)

    async def try_generate(
        self,
        context: AnalysisContext,
        timeout: float | None = None,
    ) -> AdapterOutcome:
        """Run ``generate`` under *timeout* and report the outcome.

        Cancellation of the caller is not an outcome and propagates.
        """
        try:
            if timeout is None:
                opinion = await self.generate(context)
            else:
                opinion = await asyncio.wait_for(self.generate(context), timeout)
        except asyncio.TimeoutError as exc:
            return Failed(AdapterError(self.persona, f"timed out after {timeout}s", exc))
        except Exception as exc:
            return Failed(AdapterError(self.persona, f"{type(exc).__name__}: {exc}", exc))
        return Generated(opinion)
