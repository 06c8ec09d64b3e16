"""Session data for the Quick Version audit."""

from __future__ import annotations

import uuid
from typing import ClassVar

from pydantic import Field

from quorum.governance.enums import ProblemDirection
from quorum.governance.session_data import BaseSessionData, FrozenModel, ReflectionAnswer
from quorum.governance.states import (
    DIRECTION_SUB_QUESTIONS,
    QUICK_PROGRESS,
    QuickState,
)

QUICK_BET_DURATION_DAYS = 90


class QuickProblem(FrozenModel):
    """A problem named in Q2 and the direction loop's answers about it.

    Attributes:
        name: Short problem name.
        answers: One answer per direction sub-question, in asking order.
        direction: Evaluated direction, once all sub-questions are answered.
        direction_rationale: Why the problem was given its direction.
    """

    name: str
    answers: tuple[ReflectionAnswer, ...] = ()
    direction: ProblemDirection | None = None
    direction_rationale: str | None = None

    @property
    def ai_cheaper(self) -> ReflectionAnswer | None:
        return self.answers[0] if len(self.answers) > 0 else None

    @property
    def error_cost(self) -> ReflectionAnswer | None:
        return self.answers[1] if len(self.answers) > 1 else None

    @property
    def trust_required(self) -> ReflectionAnswer | None:
        return self.answers[2] if len(self.answers) > 2 else None


class QuickOutput(FrozenModel):
    """The audit's verdict and the bet it proposes."""

    assessment: str
    avoided_decision: str
    avoided_decision_cost: str
    bet_prediction: str
    bet_wrong_if: str
    markdown: str


class QuickSessionData(BaseSessionData):
    """Accumulated state of a Quick Version session.

    ``current_problem_index`` and ``direction_sub_question`` locate the
    direction loop; they point past the end once every problem is answered.
    """

    progress_table: ClassVar[dict[QuickState, int]] = QUICK_PROGRESS

    current_state: QuickState = QuickState.sensitivity_gate

    role_context: ReflectionAnswer | None = None
    paid_problems: ReflectionAnswer | None = None
    problems: tuple[QuickProblem, ...] = ()

    # Direction loop
    current_problem_index: int = Field(default=0, ge=0)
    direction_sub_question: int = Field(default=0, ge=0, lt=len(DIRECTION_SUB_QUESTIONS))

    avoided_decision: ReflectionAnswer | None = None
    avoided_decision_text: str | None = None
    avoided_decision_cost: str | None = None
    comfort_work: ReflectionAnswer | None = None

    # Finalize
    output: QuickOutput | None = None
    created_bet_id: uuid.UUID | None = None

    @property
    def current_problem(self) -> QuickProblem | None:
        if self.current_problem_index >= len(self.problems):
            return None
        return self.problems[self.current_problem_index]

    @property
    def direction_question(self) -> str | None:
        """The direction sub-question for the current problem, if the loop is open."""
        problem = self.current_problem
        if problem is None:
            return None
        return DIRECTION_SUB_QUESTIONS[self.direction_sub_question].format(name=problem.name)
