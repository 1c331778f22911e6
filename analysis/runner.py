"""Caller-facing analysis entry point.

Flow for every request:
  1. Validate input and resolve the tier policy
  2. Check the usage quota (when a user id and a meter are present)
  3. Resolve the current price
  4. Run the tier's pipeline
  5. Record usage (best-effort) and wrap the result
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from agents.roster import PersonaRoster
from analysis.errors import AnalysisInputError, UsageLimitExceeded
from analysis.market import PriceProvider, resolve_current_price
from analysis.pipelines import run_comparison, run_cross_validation, run_single
from analysis.policy import TierPolicy, estimated_cost, select_policy
from analysis.usage import InMemoryUsageMeter, UsageMeter
from debate.session import DebateSession, run_debate
from debate.store import InMemorySessionStore, session_factory, store_from_config
from models.analysis import (
    AnalysisOptions,
    AnalysisPayload,
    AnalysisType,
    SubscriptionTier,
    TierAnalysisResult,
    UsageLimit,
)
from models.config import EngineConfig
from models.context import AnalysisContext

logger = logging.getLogger(__name__)


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise AnalysisInputError(f"{label} is required.")
    return str(value).strip()


class AnalysisRunner:
    """Runs one tier-dependent analysis per call."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        roster: Optional[PersonaRoster] = None,
        usage_meter: Optional[UsageMeter] = None,
        price_provider: Optional[PriceProvider] = None,
        session_store: Optional[InMemorySessionStore] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.roster = roster or PersonaRoster.from_config(self.config)
        self.usage_meter = usage_meter
        self.price_provider = price_provider
        self.session_store = session_store or store_from_config(self.config, self.roster)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        price_provider: Optional[PriceProvider] = None,
    ) -> AnalysisRunner:
        """Runner with live adapters and an in-memory usage meter."""
        return cls(
            config,
            usage_meter=InMemoryUsageMeter(
                config.usage_limits, daily_cost_limit=config.daily_cost_limit,
            ),
            price_provider=price_provider,
        )

    # ------------------------------------------------------------------
    # Usage metering (best-effort around the meter itself)
    # ------------------------------------------------------------------

    async def _check_usage(
        self,
        user_id: Optional[str],
        policy: TierPolicy,
    ) -> Optional[UsageLimit]:
        if not user_id or self.usage_meter is None:
            return None
        try:
            usage = await self.usage_meter.check(user_id, policy.tier, policy.feature_key)
        except Exception as exc:
            logger.warning("Usage check failed for %s, proceeding: %s", user_id, exc)
            return None
        if not usage.allowed:
            raise UsageLimitExceeded(
                feature=policy.feature_key,
                remaining=usage.remaining,
                limit=usage.limit,
                used=usage.used,
                reset_time=usage.reset_time,
                message=usage.message,
            )
        return usage

    async def _record_usage(
        self,
        user_id: Optional[str],
        policy: TierPolicy,
        cost: int,
    ) -> None:
        if not user_id or self.usage_meter is None:
            return
        try:
            await self.usage_meter.increment(user_id, policy.feature_key, cost)
        except Exception as exc:
            logger.warning("Usage increment failed for %s: %s", user_id, exc)

    # ------------------------------------------------------------------
    # Debate
    # ------------------------------------------------------------------

    def _require_open_session(self, session_id: Optional[str], rounds: int) -> None:
        if not session_id:
            return
        session = self.session_store.get(session_id)
        if session is not None and session.last_round >= rounds:
            raise AnalysisInputError(
                f"Debate session '{session_id}' already finished {session.last_round} "
                f"rounds; request more rounds or start a new session."
            )

    def _debate_session(self, options: AnalysisOptions, current_price: float) -> DebateSession:
        if options.session_id:
            session = self.session_store.get_or_create(options.session_id)
        else:
            private_id = f"adhoc-{uuid.uuid4().hex[:12]}"
            session = session_factory(self.roster, self.config)(private_id)
        session.set_current_price(current_price)
        session.sector = options.sector
        if options.timeout_seconds is not None:
            session.timeout = options.timeout_seconds
        return session

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(
        self,
        tier: Union[str, SubscriptionTier],
        symbol: str,
        symbol_name: str,
        current_price: Optional[float] = None,
        options: Optional[AnalysisOptions] = None,
    ) -> TierAnalysisResult:
        """Run the pipeline *tier* is entitled to.

        Raises ``AnalysisInputError`` for structural input errors and
        ``UsageLimitExceeded`` when the quota refuses the request. Backend
        failures never surface here; they are served by the fallback.
        """
        started = time.perf_counter()
        options = options or AnalysisOptions()
        symbol = _require_text(symbol, "Symbol")
        symbol_name = _require_text(symbol_name, "Symbol name")
        if current_price is not None and current_price <= 0:
            raise AnalysisInputError(f"Current price must be positive, got {current_price}.")

        policy = select_policy(tier, debate=options.debate_rounds is not None)
        rounds = options.debate_rounds or 1
        if policy.analysis_type == AnalysisType.DEBATE:
            self._require_open_session(options.session_id, rounds)
        usage = await self._check_usage(options.user_id, policy)

        price = await resolve_current_price(
            symbol, current_price, self.price_provider, self.config.default_price,
        )
        logger.info(
            "Analysis %s for %s (%s tier, %d personas)",
            policy.analysis_type.value, symbol, policy.tier.value, policy.persona_count,
        )

        timeout = options.timeout_seconds
        result: AnalysisPayload
        if policy.analysis_type == AnalysisType.DEBATE:
            session = self._debate_session(options, price)
            result = await run_debate(session, symbol, symbol_name, rounds)
        else:
            context = AnalysisContext(
                symbol=symbol,
                symbol_name=symbol_name,
                sector=options.sector,
                current_price=price,
            )
            if policy.analysis_type == AnalysisType.SINGLE:
                result = await run_single(self.roster, context, policy.personas[0], timeout)
            elif policy.analysis_type == AnalysisType.COMPARISON:
                result = await run_comparison(self.roster, context, policy.personas, timeout)
            else:
                result = await run_cross_validation(self.roster, context, policy.personas, timeout)

        cost = estimated_cost(policy, rounds)
        await self._record_usage(options.user_id, policy, cost)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info("Analysis for %s finished in %d ms", symbol, elapsed_ms)
        return TierAnalysisResult(
            tier=policy.tier,
            analysis_type=policy.analysis_type,
            result=result,
            used_personas=list(policy.personas),
            estimated_cost=cost,
            current_price=price,
            elapsed_ms=elapsed_ms,
            timestamp=datetime.now(timezone.utc).isoformat(),
            usage=usage,
        )


async def run_analysis(
    tier: Union[str, SubscriptionTier],
    symbol: str,
    symbol_name: str,
    current_price: Optional[float] = None,
    options: Optional[AnalysisOptions] = None,
    config: Optional[EngineConfig] = None,
) -> TierAnalysisResult:
    """Convenience wrapper: build a runner from *config* and run once."""
    runner = AnalysisRunner(config or EngineConfig())
    return await runner.run(tier, symbol, symbol_name, current_price, options)
