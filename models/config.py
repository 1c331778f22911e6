"""Engine configuration models, loaded from YAML.

Read by the persona roster and the analysis runner.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from models.persona import PersonaId


class BackendConfig(BaseModel):
    """Text-generation backend serving one persona."""

    provider: str = Field(
        description="Registered provider name, e.g. 'anthropic', 'google', 'openai'."
    )
    model: str = Field(description="Model name, e.g. 'gpt-4o', 'gemini-2.0-flash'.")
    api_key_env: str = Field(
        description="Environment variable holding the provider credential."
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for the model.",
    )
    max_tokens: int = Field(
        default=1500,
        gt=0,
        description="Upper bound on reply length.",
    )

    def api_key(self) -> str | None:
        """Return the credential from the environment, or ``None`` if unset."""
        value = os.environ.get(self.api_key_env, "").strip()
        return value or None


def _default_backends() -> dict[PersonaId, BackendConfig]:
    return {
        PersonaId.BALANCED: BackendConfig(
            provider="anthropic",
            model="claude-sonnet-4-20250514",
            api_key_env="ANTHROPIC_API_KEY",
        ),
        PersonaId.GROWTH: BackendConfig(
            provider="google",
            model="gemini-2.0-flash",
            api_key_env="GOOGLE_API_KEY",
        ),
        PersonaId.MACRO: BackendConfig(
            provider="openai",
            model="gpt-4o",
            api_key_env="OPENAI_API_KEY",
        ),
    }


def _default_usage_limits() -> dict[str, dict[str, int]]:
    # -1 = unlimited, 0 = not available on this tier
    return {
        "free": {"analysis_free": 1, "cross_validation": 0, "debate": 0},
        "lite": {"analysis_free": 1, "cross_validation": 3, "debate": 0},
        "basic": {"analysis_free": 1, "cross_validation": 5, "debate": 2},
        "pro": {"analysis_free": 1, "cross_validation": 10, "debate": 10},
    }


class EngineConfig(BaseModel):
    """Top-level configuration for the analysis engine."""

    backends: dict[PersonaId, BackendConfig] = Field(
        default_factory=_default_backends,
        description="Backend per persona.",
    )
    timeout_seconds: float = Field(
        default=25.0,
        gt=0,
        description="Ceiling for a single backend call; a timeout counts as a failure.",
    )
    max_retries: int = Field(
        default=1,
        ge=0,
        description="Retries the provider client performs before a call is failed.",
    )
    default_price: float = Field(
        default=70000.0,
        gt=0,
        description="Current price used when none is supplied and the market-data lookup fails.",
    )
    debate_rounds: int = Field(
        default=4,
        ge=1,
        description="Number of rounds in a full debate; the last one is the closing round.",
    )
    mock: bool = Field(
        default=False,
        description="Serve every persona from the deterministic fallback (no API calls).",
    )
    session_max_count: int = Field(
        default=1024,
        ge=1,
        description="Maximum debate sessions held in memory (least recently used evicted first).",
    )
    session_max_idle_seconds: float | None = Field(
        default=3600.0,
        gt=0,
        description="Evict debate sessions idle for longer than this; null disables idle expiry.",
    )
    usage_limits: dict[str, dict[str, int]] = Field(
        default_factory=_default_usage_limits,
        description="Daily limit per tier and feature key.",
    )
    daily_cost_limit: int | None = Field(
        default=1713,
        gt=0,
        description="Daily API cost ceiling for pro users; null disables the cap.",
    )

    def backend_for(self, persona: PersonaId) -> BackendConfig | None:
        return self.backends.get(persona)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load and validate an ``EngineConfig`` from a YAML file.

        Raises ``FileNotFoundError`` if the file does not exist and
        ``ValueError`` if the content is not a valid YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)

        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping in {path}, got {type(raw).__name__}."
            )

        return cls(**raw)
