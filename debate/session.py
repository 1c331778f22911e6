"""Debate session: append-only transcript plus latest target per persona."""

from __future__ import annotations

import logging
import time
from typing import Optional

from agents.personas import PERSONAS
from consensus.agreement import compute_consensus
from debate.orchestrator import DebateRoundRunner
from models.analysis import DebateAnalysisResult
from models.context import PreviousTarget
from models.debate import DebateMessage
from models.opinion import IndependentAnalysis
from models.persona import PersonaId

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_ROUNDS = 4


class DebateSession:
    """State of one multi-round debate.

    Rounds are expected to be advanced sequentially by one caller. Running the
    same round number twice appends a second set of messages.
    """

    def __init__(
        self,
        session_id: str,
        runner: DebateRoundRunner,
        current_price: float,
        total_rounds: int = DEFAULT_TOTAL_ROUNDS,
        sector: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if total_rounds < 1:
            raise ValueError(f"total_rounds must be >= 1, got {total_rounds}.")
        self.session_id = session_id
        self.runner = runner
        self.current_price = current_price
        self.total_rounds = total_rounds
        self.sector = sector
        self.timeout = timeout
        self.created_at = time.time()
        self._messages: list[DebateMessage] = []
        self._targets: dict[PersonaId, PreviousTarget] = {}

    @property
    def persona_count(self) -> int:
        return len(self.runner.personas)

    @property
    def message_count(self) -> int:
        return len(self._messages)

    @property
    def last_round(self) -> int:
        return max((m.round for m in self._messages), default=0)

    def set_current_price(self, price: float) -> None:
        if price <= 0:
            raise ValueError(f"Current price must be positive, got {price}.")
        self.current_price = price

    async def run_round(
        self,
        symbol: str,
        symbol_name: str,
        round_number: int,
    ) -> list[DebateMessage]:
        """Run one round and append its messages to the transcript."""
        if round_number < 1:
            raise ValueError(f"Round number must be >= 1, got {round_number}.")
        if round_number > self.total_rounds:
            raise ValueError(
                f"Round {round_number} exceeds the session's {self.total_rounds} rounds."
            )

        outcome = await self.runner.run(
            symbol=symbol,
            symbol_name=symbol_name,
            round_number=round_number,
            total_rounds=self.total_rounds,
            current_price=self.current_price,
            prior_messages=self._messages,
            targets=self._targets,
            sector=self.sector,
            timeout=self.timeout,
        )
        self._messages.extend(outcome.messages)
        self._targets = outcome.targets
        return list(outcome.messages)

    def get_messages(self) -> list[DebateMessage]:
        return list(self._messages)

    def get_targets(self) -> dict[PersonaId, PreviousTarget]:
        return dict(self._targets)

    def reset(self) -> None:
        self._messages.clear()
        self._targets.clear()

    def __repr__(self) -> str:
        return (
            f"DebateSession({self.session_id!r}, messages={self.message_count}, "
            f"last_round={self.last_round}/{self.total_rounds})"
        )


def final_round_analyses(
    messages: list[DebateMessage],
    round_number: int,
) -> list[IndependentAnalysis]:
    return [
        IndependentAnalysis.from_opinion(
            m.persona,
            m.to_opinion(),
            role=PERSONAS[m.persona].analysis_role,
            fallback=m.fallback,
        )
        for m in messages
        if m.round == round_number
    ]


async def run_debate(
    session: DebateSession,
    symbol: str,
    symbol_name: str,
    rounds: Optional[int] = None,
) -> DebateAnalysisResult:
    """Run the remaining rounds up to *rounds* and cross-validate the last one.

    A session that already reached *rounds* runs nothing new and returns the
    consensus of its stored final round.
    """
    if rounds is not None:
        if rounds < 1:
            raise ValueError(f"Debate needs at least one round, got {rounds}.")
        session.total_rounds = rounds
    rounds = session.total_rounds

    for round_number in range(session.last_round + 1, rounds + 1):
        await session.run_round(symbol, symbol_name, round_number)

    messages = session.get_messages()
    consensus = compute_consensus(final_round_analyses(messages, rounds))
    logger.info(
        "Debate %s on %s finished after %d rounds: %s",
        session.session_id, symbol, rounds, consensus.grade.value,
    )
    return DebateAnalysisResult(
        rounds=rounds,
        messages=messages,
        targets=session.get_targets(),
        consensus=consensus,
    )
