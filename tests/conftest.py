"""Shared fixtures: scripted collaborators and draft builders.

The fakes stand in for the LLM-backed classifiers and generators so engine
and service tests are deterministic. An answer is vague when it starts with
"vague"; every other answer is concrete.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from typing import Any

import pytest

from quorum.governance.collaborators import (
    DirectionEvaluation,
    HealthStatements,
    RoleAnchoring,
    VaguenessResult,
)
from quorum.governance.enums import BoardRoleType, ProblemDirection
from quorum.governance.quarterly_data import QuarterlySessionData
from quorum.governance.quarterly_engine import QuarterlyEngine
from quorum.governance.quick_data import QuickOutput, QuickProblem, QuickSessionData
from quorum.governance.quick_engine import QuickEngine
from quorum.governance.setup_data import DraftProblem, Persona
from quorum.governance.setup_engine import SetupEngine
from quorum.governance.vagueness import VaguenessGate
from quorum.intelligence.claude_client import ClaudeResponse


class _Scripted:
    """Records calls and raises ``fail`` when it is set."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.fail: Exception | None = None

    def _record(self, *args: Any) -> None:
        self.calls.append(args)
        if self.fail is not None:
            raise self.fail


class FakeClassifier(_Scripted):
    async def classify(self, question: str, answer: str) -> VaguenessResult:
        self._record(question, answer)
        if answer.lower().startswith("vague"):
            return VaguenessResult(
                is_vague=True,
                reason="No concrete example",
                missing_elements=("specific example",),
            )
        return VaguenessResult(is_vague=False)


class FakeAnchoring(_Scripted):
    def __init__(self) -> None:
        super().__init__()
        self.problem_index: int | None = 0

    async def generate_anchoring(
        self,
        problems: Sequence[DraftProblem],
        roles: Sequence[BoardRoleType],
        focus_on_appreciating: bool = False,
    ) -> list[RoleAnchoring]:
        self._record(tuple(roles), focus_on_appreciating)
        return [
            RoleAnchoring(problem_index=self.problem_index, demand=f"Demand from {role.value}")
            for role in roles
        ]


class FakePersonas(_Scripted):
    async def generate_persona(
        self,
        role: BoardRoleType,
        anchored_problem: DraftProblem | None = None,
        demand: str | None = None,
    ) -> Persona:
        self._record(role, anchored_problem, demand)
        return Persona(
            name=f"{role.profile.display_name} Persona",
            background=f"Background for {role.value}",
            communication_style=role.profile.interaction_style,
            signature_phrase=role.profile.signature_question,
        )


class FakeHealthStatements(_Scripted):
    async def generate_health_statements(
        self,
        problems: Sequence[DraftProblem],
        appreciating_percent: int,
        depreciating_percent: int,
        stable_percent: int,
    ) -> HealthStatements:
        self._record(appreciating_percent, depreciating_percent, stable_percent)
        return HealthStatements(
            risk_statement="Depreciating work crowds out the rest.",
            opportunity_statement="Double down on the appreciating problem.",
        )


class FakeBoardQuestions(_Scripted):
    async def generate_board_question(
        self,
        role: BoardRoleType,
        persona_name: str,
        anchored_problem_id: uuid.UUID | None,
        anchored_demand: str | None,
        session_context: str,
    ) -> str:
        self._record(role, persona_name, anchored_problem_id, anchored_demand, session_context)
        return f"{persona_name} asks: what did you ship for {role.value}?"


class FakeReports(_Scripted):
    async def generate_report(self, session_data: QuarterlySessionData) -> str:
        self._record(session_data)
        bet = session_data.new_bet
        return f"# Quarterly Report\n\nNext bet: {bet.prediction if bet else 'none'}\n"


class FakeTrends(_Scripted):
    async def generate_trend_description(
        self,
        previous_appreciating: int,
        current_appreciating: int,
        previous_depreciating: int,
        current_depreciating: int,
    ) -> str:
        self._record(
            previous_appreciating,
            current_appreciating,
            previous_depreciating,
            current_depreciating,
        )
        return "Portfolio is holding steady."


class FakeProblemExtractor(_Scripted):
    """Splits on commas, keeping at most three names."""

    async def extract_problems(self, answer: str) -> list[str]:
        self._record(answer)
        return [part.strip() for part in answer.split(",") if part.strip()][:3]


class FakeDirections(_Scripted):
    """Appreciating when trust is required, depreciating otherwise."""

    async def evaluate_direction(self, problem: QuickProblem) -> DirectionEvaluation:
        self._record(problem)
        trust = problem.trust_required
        if trust is not None and "trust" in trust.best_answer.lower():
            return DirectionEvaluation(ProblemDirection.appreciating, "Needs trust", "high")
        return DirectionEvaluation(ProblemDirection.depreciating, "AI can do it", "medium")


class FakeQuickOutputs(_Scripted):
    async def generate_quick_output(self, session_data: QuickSessionData) -> QuickOutput:
        self._record(session_data)
        return QuickOutput(
            assessment="You are spread thin. Pick one problem.",
            avoided_decision=session_data.avoided_decision_text or "",
            avoided_decision_cost=session_data.avoided_decision_cost or "",
            bet_prediction="In 90 days I will own incident reviews",
            bet_wrong_if="Wrong if nobody asks me to run one",
            markdown="# 15-Minute Audit Results\n",
        )


class FakeClaudeClient(_Scripted):
    """Stands in for an open ClaudeClient; replies with ``content``."""

    def __init__(self, content: str = "") -> None:
        super().__init__()
        self.content = content

    async def send_message(
        self, system_prompt: str, user_message: str, **kwargs: Any
    ) -> ClaudeResponse:
        self._record(system_prompt, user_message, kwargs)
        return ClaudeResponse(content=self.content, model="test")


class Collaborators:
    """One fake of every collaborator the engines take."""

    def __init__(self) -> None:
        self.classifier = FakeClassifier()
        self.anchoring = FakeAnchoring()
        self.personas = FakePersonas()
        self.health_statements = FakeHealthStatements()
        self.board_questions = FakeBoardQuestions()
        self.reports = FakeReports()
        self.trends = FakeTrends()
        self.problem_extractor = FakeProblemExtractor()
        self.directions = FakeDirections()
        self.quick_outputs = FakeQuickOutputs()


@pytest.fixture
def collaborators() -> Collaborators:
    return Collaborators()


@pytest.fixture
def gate(collaborators: Collaborators) -> VaguenessGate:
    return VaguenessGate(collaborators.classifier)


@pytest.fixture
def setup_engine(collaborators: Collaborators) -> SetupEngine:
    return SetupEngine(
        anchoring=collaborators.anchoring,
        personas=collaborators.personas,
        health_statements=collaborators.health_statements,
    )


@pytest.fixture
def quarterly_engine(collaborators: Collaborators, gate: VaguenessGate) -> QuarterlyEngine:
    return QuarterlyEngine(
        gate=gate,
        board_questions=collaborators.board_questions,
        reports=collaborators.reports,
        trends=collaborators.trends,
    )


@pytest.fixture
def quick_engine(collaborators: Collaborators, gate: VaguenessGate) -> QuickEngine:
    return QuickEngine(
        gate=gate,
        problems=collaborators.problem_extractor,
        directions=collaborators.directions,
        outputs=collaborators.quick_outputs,
    )


@pytest.fixture
def make_problem() -> Callable[..., DraftProblem]:
    """Build a complete draft problem; keyword arguments override fields."""

    def _make(
        name: str = "Incident triage",
        direction: ProblemDirection = ProblemDirection.stable,
        percent: int = 0,
        **overrides: Any,
    ) -> DraftProblem:
        fields: dict[str, Any] = {
            "name": name,
            "what_breaks": "Outages drag on for hours",
            "scarcity_signals": ("Only two people can do it", "Recruiters ask about it"),
            "evidence_ai_cheaper": "Summaries help but diagnosis does not",
            "evidence_error_cost": "A wrong call costs a day of downtime",
            "evidence_trust_required": "Leadership must trust the call",
            "direction": direction,
            "direction_rationale": "Demand keeps growing",
            "time_allocation_percent": percent,
        }
        fields.update(overrides)
        return DraftProblem(**fields)

    return _make


@pytest.fixture
def three_problems(make_problem: Callable[..., DraftProblem]) -> list[DraftProblem]:
    """Problems at 40/35/25 with one of each direction."""
    return [
        make_problem("Incident triage", ProblemDirection.appreciating, 40),
        make_problem("Report formatting", ProblemDirection.depreciating, 35),
        make_problem("Vendor negotiation", ProblemDirection.stable, 25),
    ]


@pytest.fixture
def claude() -> FakeClaudeClient:
    return FakeClaudeClient()
