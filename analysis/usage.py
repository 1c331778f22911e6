"""Usage metering: daily quota per (user, feature).

The engine only calls ``check`` and ``increment``; where the counts live is
the meter's business. ``InMemoryUsageMeter`` keeps per-UTC-day counters.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Protocol

from models.analysis import SubscriptionTier, UsageLimit

logger = logging.getLogger(__name__)

UNLIMITED = -1


class UsageMeter(Protocol):
    async def check(self, user_id: str, tier: SubscriptionTier, feature: str) -> UsageLimit:
        ...

    async def increment(self, user_id: str, feature: str, cost: int = 1) -> None:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_utc_midnight(now: datetime) -> datetime:
    tomorrow = now.astimezone(timezone.utc).date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=timezone.utc)


class InMemoryUsageMeter:
    """Daily counters reset at UTC midnight.

    Besides the per-feature counts, the meter sums the ``cost`` of every
    recorded call per (user, day). Pro users are refused once that sum
    reaches ``daily_cost_limit``.
    """

    def __init__(
        self,
        limits: dict[str, dict[str, int]],
        clock: Callable[[], datetime] = _utc_now,
        daily_cost_limit: Optional[int] = None,
    ) -> None:
        self.limits = limits
        self.clock = clock
        self.daily_cost_limit = daily_cost_limit
        self._counts: dict[tuple[str, str, date], int] = {}
        self._costs: dict[tuple[str, date], int] = {}
        self._lock = threading.Lock()

    def _today(self) -> date:
        return self.clock().astimezone(timezone.utc).date()

    def limit_for(self, tier: SubscriptionTier, feature: str) -> int:
        return self.limits.get(tier.value, {}).get(feature, 0)

    def used(self, user_id: str, feature: str) -> int:
        today = self._today()
        with self._lock:
            return self._counts.get((user_id, feature, today), 0)

    def today_cost(self, user_id: str) -> int:
        today = self._today()
        with self._lock:
            return self._costs.get((user_id, today), 0)

    def _over_cost_limit(self, user_id: str, tier: SubscriptionTier) -> bool:
        if tier != SubscriptionTier.PRO or self.daily_cost_limit is None:
            return False
        return self.today_cost(user_id) >= self.daily_cost_limit

    async def check(self, user_id: str, tier: SubscriptionTier, feature: str) -> UsageLimit:
        now = self.clock()
        limit = self.limit_for(tier, feature)
        used = self.used(user_id, feature)
        reset_time = next_utc_midnight(now)

        if self._over_cost_limit(user_id, tier):
            logger.warning(
                "User %s hit the daily cost limit (%d >= %d)",
                user_id, self.today_cost(user_id), self.daily_cost_limit,
            )
            return UsageLimit(
                allowed=False,
                remaining=0,
                limit=limit,
                used=used,
                reset_time=reset_time,
                message=f"Daily API cost limit of {self.daily_cost_limit} reached.",
            )

        if limit == UNLIMITED:
            return UsageLimit(
                allowed=True, remaining=UNLIMITED, limit=UNLIMITED,
                used=used, reset_time=reset_time,
            )

        remaining = max(0, limit - used)
        message: Optional[str] = None
        if remaining == 0:
            if limit == 0:
                message = f"'{feature}' is not available on the {tier.value} tier."
            else:
                message = f"Daily '{feature}' limit of {limit} reached."
        return UsageLimit(
            allowed=remaining > 0,
            remaining=remaining,
            limit=limit,
            used=used,
            reset_time=reset_time,
            message=message,
        )

    async def increment(self, user_id: str, feature: str, cost: int = 1) -> None:
        today = self._today()
        key = (user_id, feature, today)
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1
            count = self._counts[key]
            total = self._costs[(user_id, today)] = self._costs.get((user_id, today), 0) + cost
        logger.debug("Usage %s/%s -> %d (cost %d, day total %d)", user_id, feature, count, cost, total)
