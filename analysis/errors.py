"""Errors surfaced to callers of the analysis entry point."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class AnalysisInputError(ValueError):
    """Structural input error; rejected before any backend call."""


class UsageLimitExceeded(Exception):
    """The usage meter refused the request."""

    def __init__(
        self,
        feature: str,
        remaining: int,
        limit: int,
        used: int,
        reset_time: datetime,
        message: Optional[str] = None,
    ) -> None:
        self.feature = feature
        self.remaining = remaining
        self.limit = limit
        self.used = used
        self.reset_time = reset_time
        self.message = message or (
            f"Daily limit reached for '{feature}' ({used}/{limit}); "
            f"resets at {reset_time.isoformat()}."
        )
        super().__init__(self.message)
