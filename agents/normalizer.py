"""Response normalizer: raw model text -> ``StructuredOpinion``.

Only a missing payload is an error. A payload that is present but has
malformed fields degrades each bad field to its default and carries on.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from models.opinion import (
    DEFAULT_SCORE,
    StructuredOpinion,
    WithoutTarget,
    WithTarget,
    clamp_score,
)

logger = logging.getLogger(__name__)

EMPTY_CONTENT_PLACEHOLDER = "(no analysis text provided)"

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


class PayloadNotFoundError(ValueError):
    """No balanced JSON object could be located or decoded in a reply."""


# =============================================================================
# PAYLOAD EXTRACTION
# =============================================================================


def extract_payload(text: str) -> dict:
    """Decode the outermost balanced ``{...}`` in *text*.

    Prose and code fences around the object are ignored. Braces inside JSON
    strings do not count towards the balance.
    """
    start = text.find("{")
    if start < 0:
        raise PayloadNotFoundError("No '{' found in model reply.")

    depth = 0
    in_string = False
    escaped = False
    end = -1
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break

    if end < 0:
        raise PayloadNotFoundError("Unbalanced braces in model reply.")

    try:
        payload = json.loads(text[start:end + 1])
    except ValueError as exc:
        raise PayloadNotFoundError(f"Could not decode reply payload: {exc}") from exc

    if not isinstance(payload, dict):
        raise PayloadNotFoundError(
            f"Expected a JSON object, got {type(payload).__name__}."
        )
    return payload


# =============================================================================
# FIELD COERCION
# =============================================================================


def _field(payload: dict, snake: str) -> Any:
    if snake in payload:
        return payload[snake]
    head, *rest = snake.split("_")
    camel = head + "".join(part.capitalize() for part in rest)
    return payload.get(camel)


def coerce_score(value: Any) -> int:
    """Integer score in [1, 5]; 3 when missing or unusable."""
    if isinstance(value, bool):
        return DEFAULT_SCORE
    if isinstance(value, int):
        return clamp_score(value)
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_SCORE
    if isinstance(value, float):
        if not math.isfinite(value):
            return DEFAULT_SCORE
        return clamp_score(round(value))
    return DEFAULT_SCORE


def coerce_string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def coerce_price(value: Any) -> float | None:
    """Positive price from a number or a numeric string, else ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = value
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if not match:
            return None
        raw = match.group()
    else:
        return None
    try:
        price = float(raw)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def _optional_text(value: Any) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# =============================================================================
# ENTRY POINTS
# =============================================================================


def opinion_from_payload(payload: dict) -> StructuredOpinion:
    """Build a ``StructuredOpinion`` from an already-decoded payload."""
    content = _optional_text(_field(payload, "content")) or EMPTY_CONTENT_PLACEHOLDER

    price = coerce_price(_field(payload, "target_price"))
    target_date = _optional_text(_field(payload, "target_date"))
    target = WithTarget(price=price, date=target_date) if price else WithoutTarget()

    return StructuredOpinion(
        content=content,
        score=coerce_score(_field(payload, "score")),
        risks=coerce_string_list(_field(payload, "risks")),
        sources=coerce_string_list(_field(payload, "sources")),
        target=target,
        price_rationale=_optional_text(_field(payload, "price_rationale")),
        date_rationale=_optional_text(_field(payload, "date_rationale")),
        methodology=_optional_text(_field(payload, "methodology")),
    )


def normalize_reply(text: str) -> StructuredOpinion:
    """Parse a raw model reply.

    Raises ``PayloadNotFoundError`` when the reply holds no JSON object.
    """
    payload = extract_payload(text)
    logger.debug("Decoded reply payload with keys %s", sorted(payload))
    return opinion_from_payload(payload)
