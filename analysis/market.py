"""Current-price resolution with a configured default."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

# Async lookup: symbol -> current price (None when unknown).
PriceProvider = Callable[[str], Awaitable[Optional[float]]]


async def resolve_current_price(
    symbol: str,
    explicit: Optional[float],
    provider: Optional[PriceProvider],
    default_price: float,
) -> float:
    """Explicit price, else the provider's price, else *default_price*."""
    if explicit is not None:
        return explicit

    if provider is not None:
        try:
            price = await provider(symbol)
        except Exception as exc:
            logger.warning("Price lookup for %s failed: %s", symbol, exc)
        else:
            if price is not None and price > 0:
                return float(price)
            logger.warning("Price lookup for %s returned no usable price", symbol)

    logger.warning("Using default price %.2f for %s", default_price, symbol)
    return default_price
