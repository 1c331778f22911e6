"""Deterministic fallback adapter (for testing and offline use).

Output is a pure function of (symbol, round, persona) plus the context's
current price, prior target and transcript, so identical inputs always give
identical opinions. Used for every persona without credentials and for any
single call whose live backend failed.
"""

from __future__ import annotations

import hashlib
import random

from agents.normalizer import opinion_from_payload
from agents.personas import PERSONAS, PersonaSpec
from models.context import AnalysisContext
from models.opinion import StructuredOpinion
from models.persona import PersonaId

# Score choices skew each persona toward its risk bias.
_SCORE_CHOICES: dict[PersonaId, tuple[int, ...]] = {
    PersonaId.BALANCED: (3, 4, 4),
    PersonaId.GROWTH: (4, 5, 5),
    PersonaId.MACRO: (2, 3, 4),
}

# Drift applied to a prior target instead of a full re-roll.
PRIOR_DRIFT = (0.95, 1.05)

_TEMPLATES: dict[PersonaId, dict[str, tuple[str, ...]]] = {
    PersonaId.BALANCED: {
        "opening": (
            "{name} shows steady earnings quality for a {sector} name. Margins have held up "
            "and the balance sheet leaves room for investment. Valuation sits close to the "
            "historical average, so upside depends on earnings delivery.",
            "Fundamentals at {name} look sound. Cash flow covers capital spending and the "
            "debt load is manageable. The current multiple is fair rather than cheap, which "
            "argues for a measured target.",
        ),
        "reacting": (
            "{other} makes a fair point, but the numbers need to confirm it. Earnings "
            "revisions for {name} are still mixed. I keep my view close to the fundamentals "
            "and adjust the target only slightly.",
            "I agree with part of what {other} said about {name}. Margin trends support the "
            "case, yet valuation already prices in some recovery. A balanced target still "
            "looks right to me.",
        ),
        "closing": (
            "Summing up on {name}: the panel agrees the fundamentals are solid. We differ on "
            "how much growth to pay for. My final target reflects earnings we can already see.",
        ),
    },
    PersonaId.GROWTH: {
        "opening": (
            "{name} is positioned for the next growth leg in {sector}. New business lines are "
            "scaling fast and trend data keeps improving. The market is under-pricing that "
            "acceleration.",
            "Trend indicators for {name} are turning up. Order momentum and product adoption "
            "point to upside beyond consensus. I see room for a meaningful re-rating.",
        ),
        "reacting": (
            "{other} is too cautious on {name}. The growth data shows demand still "
            "accelerating. Risks are real, but they are small next to the opportunity.",
            "I take {other}'s risk point seriously, yet it misses the innovation pipeline at "
            "{name}. Global competitiveness is improving quarter by quarter. My target stays "
            "ambitious.",
        ),
        "closing": (
            "Final view on {name}: the panel underestimates the growth runway. Trend data "
            "still supports upside, and my closing target reflects that conviction.",
        ),
    },
    PersonaId.MACRO: {
        "opening": (
            "The macro backdrop for {name} is mixed. Rates and currency moves weigh on "
            "{sector} valuations. I start from a cautious base case and stress-test the "
            "upside.",
            "For {name}, the rate cycle and global demand matter more than company news right "
            "now. Geopolitical risk adds volatility. A conservative target is appropriate.",
        ),
        "reacting": (
            "{other}'s thesis on {name} depends on a benign rate environment. If rates stay "
            "high, that upside shrinks. I hold a conservative view until the macro picture "
            "clears.",
            "I partly share {other}'s view, but currency and rate risk deserve more weight "
            "for {name}. The downside scenario is not priced in. My target moves only "
            "modestly.",
        ),
        "closing": (
            "Closing the discussion on {name}: the panel agrees on solid fundamentals and "
            "differs on growth and macro risk. My final target balances both with a margin "
            "of safety.",
        ),
    },
}

_RISKS: dict[PersonaId, tuple[str, ...]] = {
    PersonaId.BALANCED: (
        "Earnings miss against consensus",
        "Margin pressure from input costs",
        "Valuation already near fair value",
        "Slower capital return than expected",
    ),
    PersonaId.GROWTH: (
        "Growth slowdown in new business lines",
        "Competitive response from global peers",
        "High expectations already priced in",
        "Execution risk on product launches",
    ),
    PersonaId.MACRO: (
        "Higher-for-longer interest rates",
        "Adverse currency moves",
        "Geopolitical supply chain disruption",
        "Global demand slowdown",
    ),
}

_SOURCES: dict[PersonaId, tuple[str, ...]] = {
    PersonaId.BALANCED: ("Quarterly earnings report", "Company filings"),
    PersonaId.GROWTH: ("Industry trend data", "Product adoption metrics"),
    PersonaId.MACRO: ("Central bank releases", "Macroeconomic indicators"),
}


def fallback_seed(symbol: str, round_number: int, persona: PersonaId) -> int:
    """Stable seed for (symbol, round, persona); independent of PYTHONHASHSEED."""
    digest = hashlib.sha256(f"{symbol}|{round_number}|{persona.value}".encode("utf-8"))
    return int(digest.hexdigest()[:16], 16)


def round_price(price: float) -> float:
    if price >= 10000:
        return float(round(price / 100) * 100)
    return round(price, 2)


def round_phase(context: AnalysisContext) -> str:
    if context.is_final_round:
        return "closing"
    if context.round <= 1:
        return "opening"
    return "reacting"


class FallbackAdapter:
    """Seeded, template-based stand-in for a persona's live backend."""

    def __init__(self, spec: PersonaSpec) -> None:
        self.spec = spec

    @property
    def persona(self) -> PersonaId:
        return self.spec.persona

    def opine(self, context: AnalysisContext) -> StructuredOpinion:
        rng = random.Random(fallback_seed(context.symbol, context.round, self.persona))
        phase = round_phase(context)

        prior = context.target_for(self.persona)
        if prior is not None:
            price = prior.price * rng.uniform(*PRIOR_DRIFT)
            target_date = prior.date
            rationale = f"Revised from my previous target of {prior.price:,.0f}"
        else:
            price = context.current_price * rng.uniform(*self.spec.target_band)
            months = rng.randint(*self.spec.horizon_months)
            target_date = f"within {months} months"
            low, high = self.spec.band_percent
            rationale = (
                f"{self.spec.risk_bias.value.capitalize()} view: "
                f"{low}-{high}% band over the current price"
            )

        content = rng.choice(_TEMPLATES[self.persona][phase]).format(
            name=context.symbol_name,
            sector=context.sector or "its sector",
            other=self._colleague(context),
        )
        payload = {
            "content": content,
            "score": rng.choice(_SCORE_CHOICES[self.persona]),
            "risks": rng.sample(_RISKS[self.persona], 2),
            "sources": list(_SOURCES[self.persona]),
            "target_price": round_price(price),
            "target_date": target_date,
            "price_rationale": rationale,
        }
        return opinion_from_payload(payload)

    async def generate(self, context: AnalysisContext) -> StructuredOpinion:
        return self.opine(context)

    def _colleague(self, context: AnalysisContext) -> str:
        others = context.messages_from_others(self.persona)
        if others:
            return PERSONAS[others[-1].persona].display_name
        for persona, spec in PERSONAS.items():
            if persona != self.persona:
                return spec.display_name
        return "the panel"
