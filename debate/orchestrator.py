"""
LangGraph orchestration of one debate round.

Graph structure (personas chained in the fixed dispatch order):

    START -> balanced -> growth -> macro -> END

Each node builds its context from the prior rounds' transcript plus the
messages already produced earlier in the same round, so persona N reacts to
personas 1..N-1 of this round as well as to everything said before.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from typing import Annotated, Optional, Sequence, TypedDict

from langgraph.graph import END, START, StateGraph

from agents.roster import PersonaRoster
from models.context import AnalysisContext, PreviousTarget
from models.debate import DebateMessage
from models.persona import PERSONA_ORDER, PersonaId

logger = logging.getLogger(__name__)


def merge_targets(
    left: dict[PersonaId, PreviousTarget],
    right: dict[PersonaId, PreviousTarget],
) -> dict[PersonaId, PreviousTarget]:
    """Latest target per persona; new values overwrite, never accumulate."""
    merged = dict(left or {})
    merged.update(right or {})
    return merged


# =============================================================================
# STATE
# =============================================================================


class RoundState(TypedDict):
    """State that flows through one round's graph."""

    # --- Input (read-only) ---
    symbol: str
    symbol_name: str
    sector: Optional[str]
    round: int
    total_rounds: int
    current_price: float
    timeout: Optional[float]
    prior_messages: list  # DebateMessage from earlier rounds

    # --- Accumulated by the persona nodes ---
    round_messages: Annotated[list, operator.add]
    targets: Annotated[dict, merge_targets]


@dataclass
class RoundOutcome:
    messages: list[DebateMessage] = field(default_factory=list)
    targets: dict[PersonaId, PreviousTarget] = field(default_factory=dict)


def context_for(state: RoundState) -> AnalysisContext:
    """Context for the next speaker: prior rounds plus this round so far."""
    transcript = list(state["prior_messages"]) + list(state["round_messages"])
    return AnalysisContext(
        symbol=state["symbol"],
        symbol_name=state["symbol_name"],
        sector=state.get("sector"),
        round=state["round"],
        total_rounds=state["total_rounds"],
        current_price=state["current_price"],
        previous_messages=[m.to_transcript_entry() for m in transcript],
        previous_targets=dict(state["targets"]),
    )


# =============================================================================
# NODES
# =============================================================================


def make_persona_node(roster: PersonaRoster, persona: PersonaId):
    """Node that asks *persona* for its statement in the current round."""

    async def persona_node(state: RoundState) -> dict:
        context = context_for(state)
        reply = await roster.opine(persona, context, timeout=state.get("timeout"))
        message = DebateMessage.from_opinion(
            persona, state["round"], reply.opinion, fallback=reply.fallback,
        )
        logger.info(
            "Round %d %s: score %d, target %s%s",
            state["round"], persona.value, message.score,
            message.target_price, " (fallback)" if reply.fallback else "",
        )

        update: dict = {"round_messages": [message]}
        target = message.to_previous_target()
        if target is not None:
            update["targets"] = {persona: target}
        return update

    persona_node.__name__ = f"{persona.value}_node"
    return persona_node


# =============================================================================
# GRAPH CONSTRUCTION
# =============================================================================


def build_round_graph(
    roster: PersonaRoster,
    personas: Sequence[PersonaId] = PERSONA_ORDER,
) -> StateGraph:
    """Chain one node per persona, in order."""
    graph = StateGraph(RoundState)

    previous = START
    for persona in personas:
        graph.add_node(persona.value, make_persona_node(roster, persona))
        graph.add_edge(previous, persona.value)
        previous = persona.value
    graph.add_edge(previous, END)

    return graph


def compile_round_graph(
    roster: PersonaRoster,
    personas: Sequence[PersonaId] = PERSONA_ORDER,
):
    """Build and compile the round graph, ready for invocation."""
    return build_round_graph(roster, personas).compile()


class DebateRoundRunner:
    """Runs rounds through one compiled graph."""

    def __init__(
        self,
        roster: PersonaRoster,
        personas: Sequence[PersonaId] = PERSONA_ORDER,
    ) -> None:
        self.roster = roster
        self.personas = tuple(personas)
        self.graph = compile_round_graph(roster, self.personas)

    async def run(
        self,
        symbol: str,
        symbol_name: str,
        round_number: int,
        total_rounds: int,
        current_price: float,
        prior_messages: Sequence[DebateMessage] = (),
        targets: Optional[dict[PersonaId, PreviousTarget]] = None,
        sector: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RoundOutcome:
        initial_state: RoundState = {
            "symbol": symbol,
            "symbol_name": symbol_name,
            "sector": sector,
            "round": round_number,
            "total_rounds": total_rounds,
            "current_price": current_price,
            "timeout": timeout,
            "prior_messages": list(prior_messages),
            "round_messages": [],
            "targets": dict(targets or {}),
        }
        final_state = await self.graph.ainvoke(initial_state)
        return RoundOutcome(
            messages=list(final_state["round_messages"]),
            targets=dict(final_state["targets"]),
        )
