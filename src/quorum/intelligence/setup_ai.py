"""Generation calls made during Setup: health statements, anchoring, personas."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from pydantic import ValidationError

from quorum.governance.collaborators import HealthStatements, RoleAnchoring
from quorum.governance.enums import BoardRoleType
from quorum.governance.setup_data import DraftProblem, Persona
from quorum.intelligence.claude_client import ClaudeClient, GenerationError
from quorum.intelligence.prompts import (
    ANCHORING_SYSTEM,
    HEALTH_STATEMENTS_SYSTEM,
    PERSONA_SYSTEM,
)
from quorum.intelligence.replies import (
    AnchoringEntry,
    HealthStatementsReply,
    PersonaReply,
    load_reply_json,
    parse_reply,
)
from quorum.rendering import render

logger = structlog.get_logger(__name__)

HEALTH_MAX_TOKENS = 512
PERSONA_MAX_TOKENS = 512

DEFAULT_PERSONAS: dict[BoardRoleType, Persona] = {
    BoardRoleType.accountability: Persona(
        name="Maya Chen",
        background=(
            "Former executive coach with 15 years in high-performance environments. "
            "Known for holding leaders to their word."
        ),
        communication_style="Direct and evidence-focused. Asks for proof before accepting claims.",
    ),
    BoardRoleType.market_reality: Persona(
        name="Marcus Webb",
        background=(
            "Tech industry veteran who has seen multiple disruption cycles. "
            "Data-driven and skeptical of narratives."
        ),
        communication_style="Skeptical but fair. Backs up challenges with data and examples.",
    ),
    BoardRoleType.avoidance: Persona(
        name="Sarah Blackwell",
        background=(
            "Organizational psychologist specializing in leadership blind spots. "
            "Comfortable with uncomfortable conversations."
        ),
        communication_style="Persistent and uncomfortable. Does not let you off the hook easily.",
    ),
    BoardRoleType.long_term_positioning: Persona(
        name="David Park",
        background=(
            "Strategy consultant who has guided dozens of career pivots. "
            "Always thinking about the long game."
        ),
        communication_style="Forward-looking and strategic. Always connects today to tomorrow.",
    ),
    BoardRoleType.devils_advocate: Persona(
        name="Alexandra Reyes",
        background=(
            "Former debate champion turned executive advisor. "
            "Questions everything to find the truth."
        ),
        communication_style="Contrarian by design. Challenges your assumptions constructively.",
    ),
    BoardRoleType.portfolio_defender: Persona(
        name="James Morrison",
        background=(
            "Investment mindset applied to careers. "
            "Believes in protecting and compounding advantages."
        ),
        communication_style="Protective and growth-focused. Helps you see what you have to lose.",
    ),
    BoardRoleType.opportunity_scout: Persona(
        name="Priya Sharma",
        background=(
            "Serial career changer who has found success in adjacent opportunities. "
            "Always curious about what is next."
        ),
        communication_style="Exploratory and curious. Sees connections you might miss.",
    ),
}


def default_anchoring(roles: Sequence[BoardRoleType]) -> list[RoleAnchoring]:
    """Leave every role unanchored with its signature question as demand.

    The engine ties unanchored core roles to the first problem and growth
    roles to the highest-allocation appreciating problem.
    """
    return [
        RoleAnchoring(problem_index=None, demand=role.profile.signature_question)
        for role in roles
    ]


def parse_anchoring(
    content: str, roles: Sequence[BoardRoleType], problem_count: int
) -> list[RoleAnchoring]:
    """Match the model's anchoring entries to roles, defaulting the gaps."""
    try:
        entries = load_reply_json(content)
        if not isinstance(entries, list):
            raise ValueError("anchoring reply is not a JSON array")
    except ValueError as e:
        logger.warning("anchoring_reply_unparseable", error=str(e))
        return default_anchoring(roles)

    by_role: dict[str, AnchoringEntry] = {}
    for raw in entries:
        try:
            entry = AnchoringEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning("anchoring_entry_invalid", errors=e.error_count())
            continue
        by_role[entry.role_type] = entry

    anchoring = []
    for role in roles:
        entry = by_role.get(role.value)
        index = entry.problem_index if entry else None
        if index is not None and not 0 <= index < problem_count:
            index = None
        demand = (entry.demand if entry else None) or role.profile.signature_question
        anchoring.append(RoleAnchoring(problem_index=index, demand=demand))
    return anchoring


def parse_persona(content: str, role: BoardRoleType) -> Persona:
    """Build a persona from the model's JSON, filling gaps from the role default."""
    fallback = DEFAULT_PERSONAS[role]
    try:
        reply = parse_reply(content, PersonaReply)
    except (ValidationError, ValueError) as e:
        logger.warning("persona_reply_unparseable", role=role.value, error=str(e))
        return fallback
    return Persona(
        name=reply.name or fallback.name,
        background=reply.background or fallback.background,
        communication_style=reply.communication_style or fallback.communication_style,
        signature_phrase=reply.signature_phrase,
    )


class SetupAIService:
    """Setup collaborators backed by Claude.

    Implements the anchoring, persona and health statement generators the
    Setup engine depends on. API failures propagate as retryable client
    errors; malformed anchoring and persona replies fall back to defaults.
    """

    def __init__(self, client: ClaudeClient) -> None:
        self.client = client
        self.logger = logger.bind(component="setup_ai")

    async def generate_health_statements(
        self,
        problems: Sequence[DraftProblem],
        appreciating_percent: int,
        depreciating_percent: int,
        stable_percent: int,
    ) -> HealthStatements:
        reply = await self.client.send_message(
            HEALTH_STATEMENTS_SYSTEM,
            render(
                "prompts/health_statements.j2",
                problems=problems,
                appreciating_percent=appreciating_percent,
                depreciating_percent=depreciating_percent,
                stable_percent=stable_percent,
            ),
            max_tokens=HEALTH_MAX_TOKENS,
        )
        try:
            parsed = parse_reply(reply.content, HealthStatementsReply)
        except (ValidationError, ValueError) as e:
            self.logger.warning("health_statements_unparseable", error=str(e))
            raise GenerationError(f"Failed to parse health statements: {e}") from e
        return HealthStatements(
            risk_statement=parsed.risk_statement,
            opportunity_statement=parsed.opportunity_statement,
        )

    async def generate_anchoring(
        self,
        problems: Sequence[DraftProblem],
        roles: Sequence[BoardRoleType],
        focus_on_appreciating: bool = False,
    ) -> list[RoleAnchoring]:
        reply = await self.client.send_message(
            ANCHORING_SYSTEM,
            render(
                "prompts/anchoring.j2",
                problems=problems,
                roles=roles,
                focus_on_appreciating=focus_on_appreciating,
            ),
        )
        anchoring = parse_anchoring(reply.content, roles, len(problems))
        self.logger.info(
            "anchoring_generated", roles=len(roles), growth=focus_on_appreciating
        )
        return anchoring

    async def generate_persona(
        self,
        role: BoardRoleType,
        anchored_problem: DraftProblem | None = None,
        demand: str | None = None,
    ) -> Persona:
        reply = await self.client.send_message(
            PERSONA_SYSTEM,
            render(
                "prompts/persona.j2",
                role=role,
                anchored_problem=anchored_problem,
                demand=demand,
            ),
            max_tokens=PERSONA_MAX_TOKENS,
        )
        return parse_persona(reply.content, role)
