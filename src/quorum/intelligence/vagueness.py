"""Vagueness classifiers.

``HeuristicVaguenessClassifier`` settles the obvious cases with patterns and
returns None when it cannot tell. ``ClaudeVaguenessClassifier`` consults it
first and only calls the model for the undecided remainder.
"""

from __future__ import annotations

import re

import structlog
from pydantic import ValidationError

from quorum.governance.collaborators import VaguenessResult
from quorum.intelligence.claude_client import ClaudeClient
from quorum.intelligence.prompts import VAGUENESS_SYSTEM
from quorum.intelligence.replies import VaguenessReply, parse_reply
from quorum.rendering import render

logger = structlog.get_logger(__name__)

MIN_WORDS = 3
MIN_VAGUE_PHRASES = 2
CLASSIFY_MAX_TOKENS = 256

EXPLICIT_NONE = frozenset({"none", "n/a"})

CONCRETE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
        r"\b(january|february|march|april|may|june|july|august|september|october|november|december)\b",
        r"\b(last|this|next)\s+(week|month|quarter|year)\b",
        r"\b\d{1,2}[/-]\d{1,2}\b",
        r"\b(q[1-4]|h[12])\b",
        r"\b(yesterday|today|tomorrow)\b",
        r"\d+%|\$\d+|\b\d+\s*(people|users|customers|hours|days|meetings)\b",
        r"\b(completed|delivered|shipped|launched|presented|submitted)\b",
        r"\b(met with|talked to|emailed|called|messaged)\b",
        r"\bthe\s+\w+\s+(project|team|meeting|report|document|proposal|presentation)\b",
    )
)

SENTENCE_END = (".", "?", "!")

VAGUE_PHRASES: tuple[str, ...] = (
    "stuff",
    "things",
    "various",
    "several",
    "some",
    "a lot",
    "many",
    "lots of",
    "kind of",
    "sort of",
    "basically",
    "essentially",
    "generally",
    "usually",
    "sometimes",
    "often",
    "pretty much",
    "more or less",
    "helped",
    "improved",
    "worked on",
    "dealt with",
    "handled",
    "took care of",
    "etc",
    "and so on",
)

VAGUE_PATTERNS = tuple(
    re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE) for phrase in VAGUE_PHRASES
)


def has_concrete_indicators(answer: str) -> bool:
    if any(pattern.search(answer) for pattern in CONCRETE_PATTERNS):
        return True
    return has_proper_noun(answer)


def has_proper_noun(answer: str) -> bool:
    """True if a capitalised word appears anywhere but the start of a sentence."""
    words = answer.split()
    for previous, word in zip(words, words[1:]):
        if word == "I" or not word[0].isupper():
            continue
        if not previous.endswith(SENTENCE_END):
            return True
    return False


def count_vague_phrases(answer: str) -> int:
    return sum(1 for pattern in VAGUE_PATTERNS if pattern.search(answer))


class HeuristicVaguenessClassifier:
    """Pattern-based first pass over an answer."""

    def decide(self, answer: str) -> VaguenessResult | None:
        """Classify the answer if the patterns are conclusive.

        Returns:
            A verdict, or None when the answer needs a model to judge.
        """
        text = answer.strip()
        if text.lower() in EXPLICIT_NONE:
            return VaguenessResult(is_vague=False, reason="Explicitly stated none/n/a")
        if len(text.split()) < MIN_WORDS:
            return VaguenessResult(
                is_vague=True,
                reason="Answer is too brief to contain concrete details",
                missing_elements=("specific example", "named instance", "observable outcome"),
            )
        if has_concrete_indicators(text):
            return VaguenessResult(is_vague=False, reason="Contains concrete indicators")
        if count_vague_phrases(text) >= MIN_VAGUE_PHRASES:
            return VaguenessResult(
                is_vague=True,
                reason="Uses vague language without concrete specifics",
                missing_elements=("named project or person", "date or timeline", "outcome"),
            )
        return None

    async def classify(self, question: str, answer: str) -> VaguenessResult:
        """Classify without a model; undecided answers count as concrete."""
        return self.decide(answer) or VaguenessResult(is_vague=False)


class ClaudeVaguenessClassifier:
    """Heuristics first, then the model for anything they leave open.

    Attributes:
        client: Open ClaudeClient
        heuristics: First-pass classifier
    """

    def __init__(
        self, client: ClaudeClient, heuristics: HeuristicVaguenessClassifier | None = None
    ) -> None:
        self.client = client
        self.heuristics = heuristics or HeuristicVaguenessClassifier()

    async def classify(self, question: str, answer: str) -> VaguenessResult:
        decided = self.heuristics.decide(answer)
        if decided is not None:
            logger.debug("vagueness_heuristic_decided", is_vague=decided.is_vague)
            return decided

        reply = await self.client.send_message(
            VAGUENESS_SYSTEM,
            render("prompts/vagueness.j2", question=question, answer=answer),
            max_tokens=CLASSIFY_MAX_TOKENS,
        )
        return parse_vagueness_reply(reply.content)


def parse_vagueness_reply(content: str) -> VaguenessResult:
    """Read the model's JSON verdict; an unreadable reply counts as concrete."""
    try:
        reply = parse_reply(content, VaguenessReply)
    except (ValidationError, ValueError) as e:
        logger.warning("vagueness_reply_unparseable", error=str(e))
        return VaguenessResult(is_vague=False, reason="Could not parse classification")
    return VaguenessResult(
        is_vague=reply.is_vague,
        reason=reply.reason,
        missing_elements=tuple(reply.missing_elements),
    )
