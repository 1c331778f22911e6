"""Tests for reason extraction and keyword similarity."""

from consensus.policy import ConsensusPolicy
from consensus.reasons import (
    are_similar,
    common_points,
    extract_reasons,
    keywords,
    match_reasons,
    split_sentences,
)
from models.persona import PersonaId


class TestSplitSentences:
    def test_punctuation_and_bullets(self):
        text = "First point here. Second one!\n- Third bullet\n2) Fourth item?"
        assert split_sentences(text) == [
            "First point here.",
            "Second one!",
            "Third bullet",
            "Fourth item?",
        ]

    def test_decimal_numbers_are_not_split(self):
        assert split_sentences("Margins rose 2.5 points in Q2.") == [
            "Margins rose 2.5 points in Q2."
        ]


class TestExtractReasons:
    def test_length_band(self):
        text = "Too short. " + "This sentence is long enough to count. " + "x" * 250
        assert extract_reasons(text) == ["This sentence is long enough to count."]

    def test_deduplicated_and_capped(self):
        text = " ".join(f"Reason number {i} is worth noting." for i in range(8))
        text += " Reason number 0 is worth noting."
        reasons = extract_reasons(text)
        assert len(reasons) == 5
        assert len(set(reasons)) == 5

    def test_custom_cap(self):
        text = "Reason one is worth noting. Reason two is worth noting."
        assert len(extract_reasons(text, ConsensusPolicy(max_reasons_per_persona=1))) == 1


class TestSimilarity:
    def test_keywords_drop_stopwords_and_short_tokens(self):
        assert keywords("The rates are a risk to us") == frozenset({"rates", "risk", "us"})

    def test_similar_phrasing(self):
        assert are_similar(
            "Rising interest rates pressure valuations.",
            "Interest rates keep rising and weigh on valuations.",
        )

    def test_single_shared_word_is_not_enough(self):
        assert not are_similar("Rates are rising quickly.", "Rates look stable overall.")

    def test_empty(self):
        assert not are_similar("", "Rates are rising.")


class TestMatchReasons:
    def test_three_way_share(self):
        shared, unique = match_reasons({
            PersonaId.BALANCED: ["HBM demand supports memory margins."],
            PersonaId.GROWTH: ["Strong HBM demand lifts memory margins."],
            PersonaId.MACRO: ["Memory margins depend on HBM demand."],
        })
        assert len(shared) == 1
        assert shared[0].personas == [PersonaId.BALANCED, PersonaId.GROWTH, PersonaId.MACRO]
        assert unique == []

    def test_each_candidate_used_once(self):
        shared, unique = match_reasons({
            PersonaId.BALANCED: [
                "Memory prices are recovering.",
                "Memory prices are recovering fast.",
            ],
            PersonaId.GROWTH: ["Memory prices are recovering well."],
        })
        assert len(shared) == 1
        assert [u.reason for u in unique] == ["Memory prices are recovering fast."]


class TestCommonPoints:
    def test_common_points(self):
        a = "Foundry losses are narrowing steadily. Dividend stays flat."
        b = "The foundry division losses keep narrowing. AI demand is strong."
        assert common_points(a, b) == ["Foundry losses are narrowing steadily."]
