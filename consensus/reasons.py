"""Reason extraction and keyword-overlap similarity.

Independent analysts phrase the same point differently, so sentences are
compared by the keywords they share rather than by exact text.
"""

from __future__ import annotations

import re
from typing import Mapping, Sequence

from consensus.policy import DEFAULT_POLICY, ConsensusPolicy
from models.consensus import SharedReason, UniqueReason
from models.persona import PersonaId

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|(?<=。)\s*|\n+")
_BULLET_RE = re.compile(r"^\s*(?:[-*•·]|\d+[.)])\s*")
_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)

STOPWORDS = frozenset("""
a an and are as at be been but by can could do does for from had has have
he her his if in into is it its may might more most much not of on or our
over so some such than that the their them then there these they this those
to too under up very was we were what when which while who will with would
you your i my me also just only still now yet about after before both each
""".split())


def split_sentences(text: str) -> list[str]:
    sentences = []
    for raw in _SENTENCE_SPLIT_RE.split(text or ""):
        if not raw:
            continue
        sentence = _BULLET_RE.sub("", raw).strip()
        if sentence:
            sentences.append(sentence)
    return sentences


def extract_reasons(text: str, policy: ConsensusPolicy = DEFAULT_POLICY) -> list[str]:
    """Candidate reason sentences: length-banded, de-duplicated, capped."""
    reasons: list[str] = []
    seen: set[str] = set()
    for sentence in split_sentences(text):
        if not policy.min_reason_length <= len(sentence) <= policy.max_reason_length:
            continue
        key = sentence.lower()
        if key in seen:
            continue
        seen.add(key)
        reasons.append(sentence)
        if len(reasons) >= policy.max_reasons_per_persona:
            break
    return reasons


def keywords(text: str, policy: ConsensusPolicy = DEFAULT_POLICY) -> frozenset[str]:
    return frozenset(
        token
        for token in _TOKEN_RE.findall(text.lower())
        if len(token) >= policy.min_keyword_length and token not in STOPWORDS
    )


def are_similar(a: str, b: str, policy: ConsensusPolicy = DEFAULT_POLICY) -> bool:
    """Share enough keywords, relative to the shorter sentence."""
    ka, kb = keywords(a, policy), keywords(b, policy)
    if not ka or not kb:
        return False
    shared = len(ka & kb)
    if shared < policy.min_shared_keywords:
        return False
    return shared / min(len(ka), len(kb)) >= policy.min_overlap


def match_reasons(
    candidates: Mapping[PersonaId, Sequence[str]],
    policy: ConsensusPolicy = DEFAULT_POLICY,
) -> tuple[list[SharedReason], list[UniqueReason]]:
    """Greedy pairing of similar reasons across personas.

    Personas are visited in mapping order. Each unused candidate is matched
    against the first unused similar candidate of every later persona; a
    candidate matched at least once becomes a shared reason worded as the
    earliest persona said it. Everything left over is unique.
    """
    personas = list(candidates)
    used: dict[PersonaId, set[int]] = {p: set() for p in personas}
    shared: list[SharedReason] = []

    for i, persona in enumerate(personas):
        for ci, reason in enumerate(candidates[persona]):
            if ci in used[persona]:
                continue
            matched = [persona]
            for other in personas[i + 1:]:
                for oi, other_reason in enumerate(candidates[other]):
                    if oi in used[other]:
                        continue
                    if are_similar(reason, other_reason, policy):
                        used[other].add(oi)
                        matched.append(other)
                        break
            if len(matched) > 1:
                used[persona].add(ci)
                shared.append(SharedReason(text=reason, personas=matched))

    unique = [
        UniqueReason(persona=persona, reason=reason)
        for persona in personas
        for ci, reason in enumerate(candidates[persona])
        if ci not in used[persona]
    ]
    return shared, unique


def common_points(a: str, b: str, policy: ConsensusPolicy = DEFAULT_POLICY) -> list[str]:
    """Sentences of *a* that have a similar sentence in *b*."""
    theirs = extract_reasons(b, policy)
    return [
        reason
        for reason in extract_reasons(a, policy)
        if any(are_similar(reason, other, policy) for other in theirs)
    ]
