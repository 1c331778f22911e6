"""
End-to-end tests for the analysis entry point.

Tests verify:
  1. Free tier runs one persona (single)
  2. Lite tier compares two personas directly
  3. Basic/pro tiers cross-validate three personas
  4. Debates run through a session
  5. Validation and quota errors surface before any backend call
  6. Usage-meter failures are best-effort
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from agents.backends import CallableBackend
from agents.roster import PersonaRoster
from analysis.errors import AnalysisInputError, UsageLimitExceeded
from analysis.pipelines import compare_analyses
from analysis.runner import AnalysisRunner, run_analysis
from analysis.usage import InMemoryUsageMeter
from models.analysis import (
    AnalysisOptions,
    AnalysisType,
    ComparisonAnalysisResult,
    DebateAnalysisResult,
    SingleAnalysisResult,
    UsageLimit,
)
from models.config import EngineConfig
from models.consensus import ConsensusGrade, ConsensusResult
from models.opinion import Direction, IndependentAnalysis, StructuredOpinion, WithTarget
from models.persona import PersonaId

SYMBOL = "005930"
NAME = "Samsung Electronics"


def _run_async(coro):
    return asyncio.run(coro)


def _backend(score: int, price: float | None = None, content: str = "Demand is recovering.") -> CallableBackend:
    async def _gen(system_prompt, user_prompt):
        payload = {"content": content, "score": score}
        if price is not None:
            payload.update(target_price=price, target_date="2025-Q3")
        return json.dumps(payload)

    return CallableBackend(_gen)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(mock=True)


def _runner(config, backends=None, **kwargs) -> AnalysisRunner:
    roster = PersonaRoster.with_backends(backends) if backends else PersonaRoster.offline()
    return AnalysisRunner(config, roster=roster, **kwargs)


# =============================================================================
# TIER PIPELINES
# =============================================================================


class TestTierPipelines:
    def test_free_tier_runs_single_persona(self, config):
        result = _run_async(_runner(config).run("free", SYMBOL, NAME, 70000))
        assert result.analysis_type == AnalysisType.SINGLE
        assert result.used_personas == [PersonaId.GROWTH]
        assert isinstance(result.result, SingleAnalysisResult)
        analysis = result.result.analysis
        assert 1 <= analysis.opinion.score <= 5
        assert result.result.direction in set(Direction)
        assert result.estimated_cost == 5
        assert result.result.upgrade_message

    def test_lite_tier_compares_two(self, config):
        runner = _runner(config, {
            PersonaId.BALANCED: _backend(5, 90000),
            PersonaId.GROWTH: _backend(4, 85000),
            PersonaId.MACRO: _backend(1, 50000),
        })
        result = _run_async(runner.run("lite", SYMBOL, NAME, 70000))
        assert result.analysis_type == AnalysisType.COMPARISON
        assert result.used_personas == [PersonaId.GROWTH, PersonaId.BALANCED]
        assert isinstance(result.result, ComparisonAnalysisResult)
        comparison = result.result.comparison
        assert comparison.direction_match is True
        assert comparison.price_difference == 5000
        assert comparison.price_difference_percent == pytest.approx(5.88, abs=0.01)

    def test_basic_tier_cross_validates(self, config):
        runner = _runner(config, {
            PersonaId.BALANCED: _backend(5, 90000),
            PersonaId.GROWTH: _backend(5, 88000),
            PersonaId.MACRO: _backend(2, 60000),
        })
        result = _run_async(runner.run("basic", SYMBOL, NAME, 70000))
        assert result.analysis_type == AnalysisType.CROSS_VALIDATION
        consensus = result.result
        assert isinstance(consensus, ConsensusResult)
        assert consensus.votes == {Direction.UP: 2, Direction.DOWN: 1, Direction.NEUTRAL: 0}
        assert consensus.majority_direction == Direction.UP
        assert consensus.grade == ConsensusGrade.MODERATE
        assert result.estimated_cost == 30

    def test_pro_tier_strong_consensus(self, config):
        runner = _runner(config, {
            PersonaId.BALANCED: _backend(5, 88000),
            PersonaId.GROWTH: _backend(5, 90000),
            PersonaId.MACRO: _backend(5, 89000),
        })
        result = _run_async(runner.run("pro", SYMBOL, NAME, 70000))
        assert result.result.grade == ConsensusGrade.STRONG
        assert result.result.confidence >= 90

    def test_backend_failure_never_reaches_caller(self, config):
        async def _boom(system_prompt, user_prompt):
            raise ConnectionError("503")

        runner = _runner(config, {
            PersonaId.BALANCED: _backend(4, 80000),
            PersonaId.GROWTH: CallableBackend(_boom),
            PersonaId.MACRO: _backend(4, 78000),
        })
        result = _run_async(runner.run("basic", SYMBOL, NAME, 70000))
        fallbacks = {a.persona: a.fallback for a in result.result.analyses}
        assert fallbacks == {
            PersonaId.BALANCED: False,
            PersonaId.GROWTH: True,
            PersonaId.MACRO: False,
        }

    def test_offline_result_serialises(self, config):
        result = _run_async(_runner(config).run("pro", SYMBOL, NAME, 70000))
        data = json.loads(result.model_dump_json())
        assert data["analysis_type"] == "cross_validation"
        assert data["tier"] == "pro"
        assert data["current_price"] == 70000


class TestCompareAnalyses:
    def _analysis(self, persona, score, price=None):
        fields = dict(content="Memory prices are recovering strongly.", score=score)
        if price is not None:
            fields["target"] = WithTarget(price=price)
        return IndependentAnalysis.from_opinion(persona, StructuredOpinion(**fields))

    def test_missing_target_gives_no_price_difference(self):
        comparison = compare_analyses(
            self._analysis(PersonaId.BALANCED, 4, 80000),
            self._analysis(PersonaId.GROWTH, 2),
        )
        assert comparison.direction_match is False
        assert comparison.price_difference is None
        assert comparison.price_difference_percent is None
        assert any(d.startswith("Direction") for d in comparison.differences)

    def test_common_points(self):
        comparison = compare_analyses(
            self._analysis(PersonaId.BALANCED, 4, 80000),
            self._analysis(PersonaId.GROWTH, 5, 80000),
        )
        assert comparison.common_points == ["Memory prices are recovering strongly."]
        assert comparison.differences == []


# =============================================================================
# DEBATE
# =============================================================================


class TestDebateThroughRunner:
    def test_debate_with_session(self, config):
        runner = _runner(config)
        options = AnalysisOptions(debate_rounds=2, session_id="s-1", sector="Semiconductors")
        result = _run_async(runner.run("pro", SYMBOL, NAME, 70000, options))
        assert result.analysis_type == AnalysisType.DEBATE
        assert isinstance(result.result, DebateAnalysisResult)
        assert len(result.result.messages) == 6
        assert result.estimated_cost == 60
        assert len(runner.session_store.get("s-1").get_messages()) == 6

    def test_debate_without_session_is_private(self, config):
        runner = _runner(config)
        _run_async(runner.run("basic", SYMBOL, NAME, 70000, AnalysisOptions(debate_rounds=1)))
        assert len(runner.session_store) == 0

    def test_finished_session_is_rejected_without_charge(self, config):
        meter = InMemoryUsageMeter(config.usage_limits)
        runner = _runner(config, usage_meter=meter)
        options = AnalysisOptions(debate_rounds=2, session_id="s-2", user_id="u1")
        _run_async(runner.run("pro", SYMBOL, NAME, 70000, options))

        with pytest.raises(AnalysisInputError, match="already finished 2 rounds"):
            _run_async(runner.run("pro", SYMBOL, NAME, 70000, options))
        assert meter.used("u1", "debate") == 1

        longer = AnalysisOptions(debate_rounds=3, session_id="s-2", user_id="u1")
        result = _run_async(runner.run("pro", SYMBOL, NAME, 70000, longer))
        assert len(result.result.messages) == 9
        assert meter.used("u1", "debate") == 2

    def test_debate_rejected_for_lite(self, config):
        with pytest.raises(AnalysisInputError):
            _run_async(_runner(config).run("lite", SYMBOL, NAME, 70000, AnalysisOptions(debate_rounds=2)))


# =============================================================================
# VALIDATION
# =============================================================================


class TestValidation:
    @pytest.mark.parametrize(
        "tier,symbol,name,price",
        [
            ("basic", "", NAME, 70000),
            ("basic", SYMBOL, "  ", 70000),
            ("basic", SYMBOL, NAME, -1),
            ("gold", SYMBOL, NAME, 70000),
            (None, SYMBOL, NAME, 70000),
        ],
    )
    def test_structural_errors(self, config, tier, symbol, name, price):
        backend = AsyncMock()
        runner = _runner(config, {PersonaId.BALANCED: backend})
        with pytest.raises(AnalysisInputError):
            _run_async(runner.run(tier, symbol, name, price))
        backend.generate.assert_not_awaited()

    def test_missing_price_uses_provider_then_default(self, config):
        provider = AsyncMock(side_effect=RuntimeError("no quote"))
        runner = _runner(config, price_provider=provider)
        result = _run_async(runner.run("free", SYMBOL, NAME))
        assert result.current_price == config.default_price

        provider = AsyncMock(return_value=71500)
        runner = _runner(config, price_provider=provider)
        result = _run_async(runner.run("free", SYMBOL, NAME))
        assert result.current_price == 71500


# =============================================================================
# USAGE
# =============================================================================


class TestUsage:
    def test_quota_exceeded_before_dispatch(self, config):
        meter = InMemoryUsageMeter(config.usage_limits)
        backend = AsyncMock()
        backend.generate.return_value = '{"content": "Steady.", "score": 4}'
        runner = _runner(config, {PersonaId.GROWTH: backend}, usage_meter=meter)
        options = AnalysisOptions(user_id="u1")

        _run_async(runner.run("free", SYMBOL, NAME, 70000, options))
        assert backend.generate.await_count == 1

        with pytest.raises(UsageLimitExceeded) as excinfo:
            _run_async(runner.run("free", SYMBOL, NAME, 70000, options))
        assert excinfo.value.remaining == 0
        assert excinfo.value.limit == 1
        assert excinfo.value.reset_time is not None
        assert backend.generate.await_count == 1

    def test_usage_attached_to_result(self, config):
        meter = InMemoryUsageMeter(config.usage_limits)
        runner = _runner(config, usage_meter=meter)
        result = _run_async(runner.run("basic", SYMBOL, NAME, 70000, AnalysisOptions(user_id="u1")))
        assert result.usage.allowed is True
        assert result.usage.remaining == 5
        assert meter.used("u1", "cross_validation") == 1

    def test_pro_cost_cap_refuses_before_dispatch(self, config):
        meter = InMemoryUsageMeter(config.usage_limits, daily_cost_limit=30)
        runner = _runner(config, usage_meter=meter)
        options = AnalysisOptions(user_id="u1")

        result = _run_async(runner.run("pro", SYMBOL, NAME, 70000, options))
        assert meter.today_cost("u1") == result.estimated_cost == 30

        with pytest.raises(UsageLimitExceeded, match="cost limit"):
            _run_async(runner.run("pro", SYMBOL, NAME, 70000, options))
        assert meter.used("u1", "cross_validation") == 1

    def test_no_user_id_skips_metering(self, config):
        meter = AsyncMock()
        runner = _runner(config, usage_meter=meter)
        result = _run_async(runner.run("basic", SYMBOL, NAME, 70000))
        meter.check.assert_not_awaited()
        meter.increment.assert_not_awaited()
        assert result.usage is None

    def test_check_failure_proceeds(self, config):
        meter = AsyncMock()
        meter.check.side_effect = ConnectionError("db down")
        runner = _runner(config, usage_meter=meter)
        result = _run_async(runner.run("basic", SYMBOL, NAME, 70000, AnalysisOptions(user_id="u1")))
        assert result.usage is None
        assert result.analysis_type == AnalysisType.CROSS_VALIDATION

    def test_increment_failure_still_returns_result(self, config, caplog):
        meter = AsyncMock()
        meter.check.return_value = UsageLimit(
            allowed=True, remaining=3, limit=5, used=2,
            reset_time="2025-03-16T00:00:00+00:00",
        )
        meter.increment.side_effect = ConnectionError("db down")
        runner = _runner(config, usage_meter=meter)
        with caplog.at_level("WARNING", logger="analysis.runner"):
            result = _run_async(runner.run("basic", SYMBOL, NAME, 70000, AnalysisOptions(user_id="u1")))
        assert isinstance(result.result, ConsensusResult)
        assert "Usage increment failed" in caplog.text


# =============================================================================
# CONVENIENCE
# =============================================================================


class TestRunAnalysis:
    def test_run_analysis_with_mock_config(self):
        result = _run_async(run_analysis("lite", SYMBOL, NAME, 70000, config=EngineConfig(mock=True)))
        assert result.analysis_type == AnalysisType.COMPARISON
        assert all(a.fallback for a in result.result.analyses)
