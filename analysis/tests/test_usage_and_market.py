"""Tests for usage metering and current-price resolution."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from analysis.market import resolve_current_price
from analysis.usage import InMemoryUsageMeter, next_utc_midnight
from models.analysis import SubscriptionTier
from models.config import EngineConfig


def _run_async(coro):
    return asyncio.run(coro)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 15, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def meter(clock) -> InMemoryUsageMeter:
    return InMemoryUsageMeter(EngineConfig().usage_limits, clock=clock)


# =============================================================================
# USAGE METER
# =============================================================================


class TestInMemoryUsageMeter:
    def test_allowed_until_limit(self, meter):
        for used in range(5):
            usage = _run_async(meter.check("u1", SubscriptionTier.BASIC, "cross_validation"))
            assert usage.allowed is True
            assert usage.remaining == 5 - used
            _run_async(meter.increment("u1", "cross_validation"))

        usage = _run_async(meter.check("u1", SubscriptionTier.BASIC, "cross_validation"))
        assert usage.allowed is False
        assert usage.remaining == 0
        assert usage.used == 5
        assert "limit of 5" in usage.message

    def test_feature_not_on_tier(self, meter):
        usage = _run_async(meter.check("u1", SubscriptionTier.LITE, "debate"))
        assert usage.allowed is False
        assert "not available" in usage.message

    def test_unlimited(self, clock):
        meter = InMemoryUsageMeter({"pro": {"cross_validation": -1}}, clock=clock)
        for _ in range(3):
            _run_async(meter.increment("u1", "cross_validation"))
        usage = _run_async(meter.check("u1", SubscriptionTier.PRO, "cross_validation"))
        assert usage.allowed is True
        assert usage.remaining == -1

    def test_counts_are_per_user(self, meter):
        _run_async(meter.increment("u1", "analysis_free"))
        assert _run_async(meter.check("u1", SubscriptionTier.FREE, "analysis_free")).allowed is False
        assert _run_async(meter.check("u2", SubscriptionTier.FREE, "analysis_free")).allowed is True

    def test_counters_reset_next_day(self, meter, clock):
        _run_async(meter.increment("u1", "analysis_free"))
        usage = _run_async(meter.check("u1", SubscriptionTier.FREE, "analysis_free"))
        assert usage.reset_time == datetime(2025, 3, 16, tzinfo=timezone.utc)

        clock.now = datetime(2025, 3, 16, 0, 1, tzinfo=timezone.utc)
        assert _run_async(meter.check("u1", SubscriptionTier.FREE, "analysis_free")).allowed is True

    def test_cost_accumulates_per_user_and_day(self, meter, clock):
        _run_async(meter.increment("u1", "cross_validation", cost=30))
        _run_async(meter.increment("u1", "debate", cost=120))
        assert meter.today_cost("u1") == 150
        assert meter.today_cost("u2") == 0

        clock.now = datetime(2025, 3, 16, 0, 1, tzinfo=timezone.utc)
        assert meter.today_cost("u1") == 0

    def test_pro_refused_at_daily_cost_limit(self, clock):
        meter = InMemoryUsageMeter(EngineConfig().usage_limits, clock=clock, daily_cost_limit=100)
        _run_async(meter.increment("u1", "cross_validation", cost=60))
        assert _run_async(meter.check("u1", SubscriptionTier.PRO, "cross_validation")).allowed is True

        _run_async(meter.increment("u1", "cross_validation", cost=40))
        usage = _run_async(meter.check("u1", SubscriptionTier.PRO, "cross_validation"))
        assert usage.allowed is False
        assert usage.remaining == 0
        assert "cost limit of 100" in usage.message

    def test_cost_limit_applies_to_pro_only(self, clock):
        meter = InMemoryUsageMeter(EngineConfig().usage_limits, clock=clock, daily_cost_limit=10)
        _run_async(meter.increment("u1", "analysis_free", cost=50))
        assert _run_async(meter.check("u1", SubscriptionTier.BASIC, "cross_validation")).allowed is True

    def test_no_cost_limit(self, clock):
        meter = InMemoryUsageMeter(EngineConfig().usage_limits, clock=clock)
        _run_async(meter.increment("u1", "cross_validation", cost=10 ** 6))
        assert _run_async(meter.check("u1", SubscriptionTier.PRO, "cross_validation")).allowed is True

    def test_next_utc_midnight(self):
        now = datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc)
        assert next_utc_midnight(now) == datetime(2026, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# MARKET PRICE
# =============================================================================


class TestResolveCurrentPrice:
    def test_explicit_price_wins(self):
        provider = AsyncMock(return_value=65000)
        assert _run_async(resolve_current_price("X", 71500, provider, 70000)) == 71500
        provider.assert_not_awaited()

    def test_provider_price(self):
        provider = AsyncMock(return_value=65000)
        assert _run_async(resolve_current_price("X", None, provider, 70000)) == 65000

    def test_provider_failure_uses_default(self, caplog):
        provider = AsyncMock(side_effect=TimeoutError("quote service down"))
        with caplog.at_level("WARNING", logger="analysis.market"):
            price = _run_async(resolve_current_price("X", None, provider, 70000))
        assert price == 70000
        assert "Price lookup for X failed" in caplog.text

    def test_provider_returns_nothing(self):
        provider = AsyncMock(return_value=None)
        assert _run_async(resolve_current_price("X", None, provider, 70000)) == 70000

    def test_no_provider(self):
        assert _run_async(resolve_current_price("X", None, None, 70000)) == 70000
