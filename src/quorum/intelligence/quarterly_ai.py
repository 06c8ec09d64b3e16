"""Generation calls made during a Quarterly Review."""

from __future__ import annotations

import uuid

import structlog

from quorum.governance.enums import BoardRoleType
from quorum.governance.quarterly_data import QuarterlySessionData
from quorum.governance.states import REFLECTION_QUESTIONS
from quorum.intelligence.claude_client import ClaudeClient, ClaudeClientError
from quorum.intelligence.prompts import BOARD_QUESTION_SYSTEM, REPORT_SYSTEM, TREND_SYSTEM
from quorum.rendering import render

logger = structlog.get_logger(__name__)

TREND_MAX_TOKENS = 128
BOARD_QUESTION_MAX_TOKENS = 256
REPORT_MAX_TOKENS = 2048


def clean_question(text: str) -> str:
    """Trim whitespace and any wrapping quotes from a generated question."""
    return text.strip().strip("\"'").strip()


class QuarterlyAIService:
    """Quarterly collaborators backed by Claude.

    Board questions fall back to the member's anchored demand (or the role's
    signature question) when the API fails, so interrogation can continue
    offline. Trend and report failures propagate.
    """

    def __init__(self, client: ClaudeClient) -> None:
        self.client = client
        self.logger = logger.bind(component="quarterly_ai")

    async def generate_trend_description(
        self,
        previous_appreciating: int,
        current_appreciating: int,
        previous_depreciating: int,
        current_depreciating: int,
    ) -> str:
        reply = await self.client.send_message(
            TREND_SYSTEM,
            render(
                "prompts/trend.j2",
                previous_appreciating=previous_appreciating,
                current_appreciating=current_appreciating,
                previous_depreciating=previous_depreciating,
                current_depreciating=current_depreciating,
            ),
            max_tokens=TREND_MAX_TOKENS,
        )
        return reply.content.strip()

    async def generate_board_question(
        self,
        role: BoardRoleType,
        persona_name: str,
        anchored_problem_id: uuid.UUID | None,
        anchored_demand: str | None,
        session_context: str,
    ) -> str:
        fallback = anchored_demand or role.profile.signature_question
        try:
            reply = await self.client.send_message(
                BOARD_QUESTION_SYSTEM,
                render(
                    "prompts/board_question.j2",
                    role=role,
                    persona_name=persona_name,
                    anchored_demand=anchored_demand,
                    session_context=session_context,
                ),
                max_tokens=BOARD_QUESTION_MAX_TOKENS,
            )
        except ClaudeClientError as e:
            self.logger.warning(
                "board_question_fallback",
                role=role.value,
                anchored_problem_id=str(anchored_problem_id) if anchored_problem_id else None,
                error=str(e),
            )
            return fallback
        return clean_question(reply.content) or fallback

    async def generate_report(self, session_data: QuarterlySessionData) -> str:
        reflections = [
            (REFLECTION_QUESTIONS[state].text, reflection)
            for state, reflection in session_data.reflections.items()
        ]
        reply = await self.client.send_message(
            REPORT_SYSTEM,
            render(
                "prompts/report.j2",
                data=session_data,
                reflections=reflections,
                board_responses=(
                    session_data.core_board_responses + session_data.growth_board_responses
                ),
            ),
            max_tokens=REPORT_MAX_TOKENS,
        )
        report = reply.content.strip()
        self.logger.info("quarterly_report_generated", length=len(report))
        return report
