"""Generation calls made during a Quick Version audit."""

from __future__ import annotations

import re

import structlog
from pydantic import ValidationError

from quorum.governance.collaborators import DirectionEvaluation
from quorum.governance.enums import ProblemDirection
from quorum.governance.quick_data import QuickOutput, QuickProblem, QuickSessionData
from quorum.governance.session_data import ReflectionAnswer
from quorum.governance.states import MAX_QUICK_PROBLEMS
from quorum.governance.summary import render_quick_summary
from quorum.intelligence.claude_client import ClaudeClient, ClaudeClientError, GenerationError
from quorum.intelligence.prompts import (
    DIRECTION_SYSTEM,
    PROBLEM_EXTRACTION_SYSTEM,
    QUICK_OUTPUT_SYSTEM,
)
from quorum.intelligence.replies import (
    DirectionReply,
    ProblemListReply,
    QuickOutputReply,
    parse_reply,
)
from quorum.rendering import render

logger = structlog.get_logger(__name__)

PROBLEMS_MAX_TOKENS = 256
DIRECTION_MAX_TOKENS = 512
QUICK_OUTPUT_MAX_TOKENS = 2048

UNEVALUATED_RATIONALE = "Could not evaluate direction"

# Tried in order; the first that yields two or more parts wins.
_LIST_SEPARATORS = (
    re.compile(r"(?:^|\s)\d+[.)]\s*"),
    re.compile(r"(?:^|\n)\s*[-•]\s*"),
    re.compile(r",\s*(?=\w)"),
    re.compile(r"\n"),
)


def answer_text(answer: ReflectionAnswer | None, missing: str = "not answered") -> str:
    """The text a prompt should quote for a gated answer."""
    if answer is None:
        return missing
    if answer.skipped and answer.concrete_example is None:
        return f"{answer.answer} (no example given)"
    return answer.best_answer


def split_problem_list(answer: str) -> list[str]:
    """Split a free-text list of problems without the model.

    Falls back to the whole answer as a single problem.
    """
    for separator in _LIST_SEPARATORS:
        parts = [part.strip() for part in separator.split(answer) if part.strip()]
        if len(parts) >= 2:
            return parts[:MAX_QUICK_PROBLEMS]
    return [answer.strip()]


class QuickAIService:
    """Quick Version collaborators backed by Claude.

    Problem extraction falls back to splitting the answer locally and
    direction evaluation falls back to stable, so the audit can continue
    offline. Output generation failures propagate.
    """

    def __init__(self, client: ClaudeClient) -> None:
        self.client = client
        self.logger = logger.bind(component="quick_ai")

    async def extract_problems(self, answer: str) -> list[str]:
        try:
            reply = await self.client.send_message(
                PROBLEM_EXTRACTION_SYSTEM,
                render("prompts/problem_extraction.j2", answer=answer),
                max_tokens=PROBLEMS_MAX_TOKENS,
            )
            names = parse_reply(reply.content, ProblemListReply).root
        except (ClaudeClientError, ValidationError, ValueError) as e:
            self.logger.warning("problem_extraction_fallback", error=str(e))
            return split_problem_list(answer)
        names = [name.strip() for name in names if name.strip()]
        return names[:MAX_QUICK_PROBLEMS] or split_problem_list(answer)

    async def evaluate_direction(self, problem: QuickProblem) -> DirectionEvaluation:
        try:
            reply = await self.client.send_message(
                DIRECTION_SYSTEM,
                render("prompts/direction.j2", problem=problem, answer_text=answer_text),
                max_tokens=DIRECTION_MAX_TOKENS,
            )
            parsed = parse_reply(reply.content, DirectionReply)
        except (ClaudeClientError, ValidationError, ValueError) as e:
            self.logger.warning("direction_fallback", problem=problem.name, error=str(e))
            return DirectionEvaluation(
                direction=ProblemDirection.stable,
                rationale=UNEVALUATED_RATIONALE,
                confidence="low",
            )
        return DirectionEvaluation(
            direction=parsed.direction,
            rationale=parsed.rationale or UNEVALUATED_RATIONALE,
            confidence=parsed.confidence,
        )

    async def generate_quick_output(self, session_data: QuickSessionData) -> QuickOutput:
        reply = await self.client.send_message(
            QUICK_OUTPUT_SYSTEM,
            render("prompts/quick_output.j2", data=session_data, answer_text=answer_text),
            max_tokens=QUICK_OUTPUT_MAX_TOKENS,
        )
        try:
            parsed = parse_reply(reply.content, QuickOutputReply)
        except (ValidationError, ValueError) as e:
            self.logger.warning("quick_output_unparseable", error=str(e))
            raise GenerationError(f"Failed to parse audit output: {e}") from e

        avoided_decision = parsed.avoided_decision or session_data.avoided_decision_text or ""
        avoided_decision_cost = (
            parsed.avoided_decision_cost or session_data.avoided_decision_cost or ""
        )
        markdown = parsed.full_output_markdown.strip() or render_quick_summary(
            session_data,
            assessment=parsed.assessment,
            avoided_decision=avoided_decision,
            avoided_decision_cost=avoided_decision_cost,
            bet_prediction=parsed.bet_prediction,
            bet_wrong_if=parsed.bet_wrong_if,
        )
        self.logger.info("quick_output_generated", length=len(markdown))
        return QuickOutput(
            assessment=parsed.assessment,
            avoided_decision=avoided_decision,
            avoided_decision_cost=avoided_decision_cost,
            bet_prediction=parsed.bet_prediction,
            bet_wrong_if=parsed.bet_wrong_if,
            markdown=markdown,
        )
