"""Unit tests for the vagueness classifiers."""

from __future__ import annotations

import pytest

from quorum.intelligence.vagueness import (
    ClaudeVaguenessClassifier,
    HeuristicVaguenessClassifier,
    has_proper_noun,
    parse_vagueness_reply,
)


@pytest.fixture
def heuristics() -> HeuristicVaguenessClassifier:
    return HeuristicVaguenessClassifier()


class TestHeuristics:
    @pytest.mark.parametrize("answer", ["none", "N/A", "  None  "])
    def test_explicit_none_is_concrete(
        self, heuristics: HeuristicVaguenessClassifier, answer: str
    ) -> None:
        result = heuristics.decide(answer)
        assert result is not None
        assert result.is_vague is False

    def test_brief_answer_is_vague(self, heuristics: HeuristicVaguenessClassifier) -> None:
        result = heuristics.decide("did stuff")
        assert result is not None
        assert result.is_vague is True
        assert "specific example" in result.missing_elements

    @pytest.mark.parametrize(
        "answer",
        [
            "We reviewed it on Tuesday afternoon",
            "Shipped the billing export feature",
            "I met with the finance lead about pricing",
            "Cut churn by 12% across the board",
            "We paired with Priya on the migration",
        ],
    )
    def test_concrete_indicators(self, heuristics: HeuristicVaguenessClassifier, answer: str) -> None:
        result = heuristics.decide(answer)
        assert result is not None
        assert result.is_vague is False

    def test_multiple_vague_phrases(self, heuristics: HeuristicVaguenessClassifier) -> None:
        result = heuristics.decide("We worked on some stuff with the group")
        assert result is not None
        assert result.is_vague is True

    def test_single_vague_phrase_is_undecided(
        self, heuristics: HeuristicVaguenessClassifier
    ) -> None:
        assert heuristics.decide("I generally review the weekly numbers") is None

    @pytest.mark.asyncio
    async def test_classify_treats_undecided_as_concrete(
        self, heuristics: HeuristicVaguenessClassifier
    ) -> None:
        result = await heuristics.classify("Q", "I generally review the weekly numbers")
        assert result.is_vague is False


class TestProperNoun:
    def test_sentence_start_does_not_count(self) -> None:
        assert not has_proper_noun("Things happened. Stuff got done")

    def test_pronoun_i_does_not_count(self) -> None:
        assert not has_proper_noun("then I looked at it")

    def test_mid_sentence_capital_counts(self) -> None:
        assert has_proper_noun("the call with Acme went long")


class TestParseReply:
    def test_reads_fenced_json(self) -> None:
        result = parse_vagueness_reply(
            '```json\n{"isVague": true, "reason": "No example", "missingElements": ["date"]}\n```'
        )
        assert result.is_vague is True
        assert result.reason == "No example"
        assert result.missing_elements == ("date",)

    def test_garbage_counts_as_concrete(self) -> None:
        result = parse_vagueness_reply("I think this is vague")
        assert result.is_vague is False
        assert result.reason == "Could not parse classification"

    @pytest.mark.parametrize(
        "content", ['{"isVague": "maybe"}', '["isVague"]', '{"missingElements": [1, 2]}']
    )
    def test_wrong_shape_counts_as_concrete(self, content: str) -> None:
        result = parse_vagueness_reply(content)
        assert result.is_vague is False
        assert result.reason == "Could not parse classification"


class TestClaudeClassifier:
    @pytest.mark.asyncio
    async def test_heuristics_short_circuit(self, claude) -> None:
        claude.content = '{"isVague": true}'
        classifier = ClaudeVaguenessClassifier(claude)

        result = await classifier.classify("Q", "n/a")

        assert result.is_vague is False
        assert claude.calls == []

    @pytest.mark.asyncio
    async def test_model_judges_undecided_answers(self, claude) -> None:
        claude.content = '{"isVague": true, "reason": "No instance named"}'
        classifier = ClaudeVaguenessClassifier(claude)

        result = await classifier.classify(
            "What did you avoid?", "I generally review the weekly numbers"
        )

        assert result.is_vague is True
        assert len(claude.calls) == 1
        assert "I generally review the weekly numbers" in claude.calls[0][1]
