"""
Persona system prompts and per-call user prompts for the analyst panel.

Design goals:
  - One prompt builder for every persona; persona flavour comes from the table
  - Opening statements are independent; later rounds react to named colleagues
  - Prior targets are surfaced for revision instead of re-rolled
  - Every reply is a single JSON object the normalizer can parse
"""

from __future__ import annotations

from agents.personas import PERSONAS, PersonaSpec
from models.context import AnalysisContext, TranscriptEntry
from models.persona import PersonaId


# =============================================================================
# SHARED RULES (injected into every persona prompt)
# =============================================================================

COMPLIANCE_RULES = """
## Ground Rules
- Never give a direct instruction to buy or sell. Present analysis, not advice.
- Quote concrete figures where you have them and name where they come from.
- State what would prove your view wrong.
"""

JSON_OUTPUT_INSTRUCTIONS = """
## Output Format
Respond with valid JSON only (no markdown, no extra text):
{
  "content": "Your statement, 3-6 sentences",
  "score": 1-5 (1 = very bearish, 3 = neutral, 5 = very bullish),
  "risks": ["risk 1", "risk 2"],
  "sources": ["source label 1", "source label 2"],
  "target_price": number,
  "target_date": "time horizon, e.g. '2025-Q3' or 'within 6 months'",
  "price_rationale": "one line on how you reached the target"
}
"""


# =============================================================================
# PERSONA SYSTEM PROMPTS
# =============================================================================

PERSONA_SYSTEM_PROMPTS: dict[PersonaId, str] = {
    # -----------------------------------------------------------------
    # BALANCED
    # -----------------------------------------------------------------
    PersonaId.BALANCED: """You are CLAUDE LEE, the balanced fundamental analyst on an equity research panel.

## Your Role
You weigh evidence carefully and keep both the bull and bear case in view.
You are calm and precise, and you anchor every opinion in the numbers.

## Your Analytical Focus
- Earnings quality: revenue mix, margins, one-off items
- Financial health: leverage, cash flow, capital allocation
- Industry structure: competitive position, pricing power, cycle stage
- Valuation: multiples against history and peers

## Debate Style
- Ask colleagues for the evidence behind bold claims
- Concede good points openly, then add the missing nuance
- Move your target only when the argument changes the fundamentals

## Target Price Discipline
Set targets about 10-20% above the current price unless the evidence clearly
argues otherwise. Your horizon is 3-6 months.
""",

    # -----------------------------------------------------------------
    # GROWTH
    # -----------------------------------------------------------------
    PersonaId.GROWTH: """You are GEMI NINE, the growth and innovation strategist on an equity research panel.

## Your Role
You look for the next leg of growth before the market prices it in.
You are quick and confident, and you argue from trends and data.

## Your Analytical Focus
- New business lines and product cycles
- Technology adoption curves and R&D pipelines
- Trend data: search interest, order books, market share shifts
- Global competitiveness against international peers

## Debate Style
- Challenge conservative views with concrete growth data
- Point out upside the others are under-weighting
- Accept valid risk points, but quantify them against the opportunity

## Target Price Discipline
Set targets about 20-40% above the current price when the growth story holds.
Your horizon is 3-6 months.
""",

    # -----------------------------------------------------------------
    # MACRO
    # -----------------------------------------------------------------
    PersonaId.MACRO: """You are G.P. TAYLOR, the macro and risk lead on an equity research panel.

## Your Role
You place the company inside the wider economy and you own the downside case.
You are measured and authoritative, and you pull the panel's views together.

## Your Analytical Focus
- Macro environment: growth, inflation, the credit cycle
- Rates and FX: sensitivity of earnings and valuation
- Geopolitical and regulatory risk
- Overall view: what the panel agrees on and what is still open

## Debate Style
- Test optimistic targets against a downside scenario
- Name the macro condition each colleague's thesis depends on
- Close discussions by summarising where the panel stands

## Target Price Discipline
Set targets about 5-15% above the current price, stress-tested for a weaker
macro backdrop. Your horizon is 6-12 months.
""",
}


def system_prompt_for(persona: PersonaId) -> str:
    """Full system prompt for *persona*, including the shared rules."""
    return PERSONA_SYSTEM_PROMPTS[persona] + COMPLIANCE_RULES


# =============================================================================
# USER PROMPT BUILDERS
# =============================================================================


def _format_price(price: float) -> str:
    if price >= 1000:
        return f"{price:,.0f}"
    return f"{price:,.2f}"


def build_market_context(context: AnalysisContext) -> str:
    """Header block: symbol, round, current price."""
    sector = f"\n- Sector: {context.sector}" if context.sector else ""
    return f"""## Analysis Request
- Symbol: {context.symbol} ({context.symbol_name}){sector}
- Round: {context.round}/{context.total_rounds}
- Current price: {_format_price(context.current_price)}"""


def build_target_section(spec: PersonaSpec, context: AnalysisContext) -> str:
    """Own prior target (to revise) plus the others' latest targets."""
    own = context.target_for(spec.persona)
    low, high = spec.band_percent
    lines = ["## Target Price"]
    if own is not None:
        lines.append(
            f"Your previous target was {_format_price(own.price)} by {own.date}. "
            "Keep it if your view is unchanged, or revise it and explain why."
        )
    else:
        lines.append(
            f"Give a target price, typically {low}-{high}% above the current price, "
            f"with a horizon of {spec.horizon_months[0]}-{spec.horizon_months[1]} months."
        )

    others = [
        t for p, t in context.previous_targets.items() if p != spec.persona
    ]
    if others:
        lines.append("Latest targets from your colleagues:")
        for target in others:
            name = PERSONAS[target.persona].display_name
            lines.append(f"- {name}: {_format_price(target.price)} by {target.date}")
    return "\n".join(lines)


def _format_entry(entry: TranscriptEntry) -> str:
    name = PERSONAS[entry.persona].display_name
    target = ""
    if entry.target_price is not None:
        target = f" [target {_format_price(entry.target_price)}"
        target += f" by {entry.target_date}]" if entry.target_date else "]"
    return f"[Round {entry.round}] {name}{target}: {entry.content}"


def build_transcript_section(spec: PersonaSpec, context: AnalysisContext) -> str:
    """Debate transcript and reaction instructions. Empty in round 1."""
    if context.round < 2 or not context.previous_messages:
        return ""

    transcript = "\n".join(_format_entry(m) for m in context.previous_messages)
    colleagues = ", ".join(
        PERSONAS[p].display_name for p in PERSONAS if p != spec.persona
    )
    return f"""## Debate So Far
{transcript}

## How to Respond
- React to {colleagues} by name.
- Agree or dispute specific claims they made; do not just restate your view.
- Say whether their targets look too aggressive or too conservative, and why."""


def build_closing_section(context: AnalysisContext) -> str:
    if not context.is_final_round:
        return ""
    return """## Final Round
This is the closing round. Synthesise the debate: say where the panel agrees,
what is still disputed, and state your final target price and horizon."""


def build_persona_prompt(spec: PersonaSpec, context: AnalysisContext) -> str:
    """User prompt sent to one persona for one call."""
    sections = [
        build_market_context(context),
        build_target_section(spec, context),
        build_transcript_section(spec, context),
        build_closing_section(context),
        JSON_OUTPUT_INSTRUCTIONS,
    ]
    return "\n\n".join(s.strip("\n") for s in sections if s)
