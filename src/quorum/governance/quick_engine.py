"""Quick Version workflow engine.

A fifteen-minute audit: role context, the problems the user is paid to solve,
three direction questions per problem, the decision being avoided and the
comfort work being done. Every answer passes the shared vagueness gate. The
audit ends with an assessment and a 90-day bet, which QuickService stores.
"""

from __future__ import annotations

import re

import structlog

from quorum.governance.collaborators import (
    DirectionEvaluator,
    ProblemExtractor,
    QuickOutputGenerator,
    invoke,
)
from quorum.governance.errors import SessionValidationError
from quorum.governance.quick_data import QuickProblem, QuickSessionData
from quorum.governance.session_data import ReflectionAnswer, TranscriptEntry
from quorum.governance.states import (
    CLARIFY_PROMPT,
    DIRECTION_SUB_QUESTIONS,
    MAX_QUICK_PROBLEMS,
    QUICK_CLARIFY_PARENT,
    QUICK_QUESTIONS,
    QUICK_TRANSITIONS,
    QuickEvent,
    QuickState,
    require_event,
    resolve_transition,
)
from quorum.governance.vagueness import VaguenessGate

logger = structlog.get_logger(__name__)

# Session fields holding the answer to each single-shot question.
_ANSWER_FIELDS: dict[QuickState, str] = {
    QuickState.q1_role_context: "role_context",
    QuickState.q2_paid_problems: "paid_problems",
    QuickState.q4_avoided_decision: "avoided_decision",
    QuickState.q5_comfort_work: "comfort_work",
}

_COST_PATTERN = re.compile(
    r"\b(?:costs?|consequences?|impact|risk)\b[:\s]+(.+)", re.IGNORECASE | re.DOTALL
)
_SENTENCE_BREAK = re.compile(r"[.!?]\s+")


def split_avoided_decision(answer: str) -> tuple[str, str | None]:
    """Split a Q4 answer into the decision and the cost of waiting.

    A cost marker ("cost", "consequence", "impact", "risk") splits the answer
    where it appears. Otherwise the first sentence is the decision and the
    rest is the cost.

    Returns:
        The decision and the cost, which is None when none was stated.
    """
    text = answer.strip()
    match = _COST_PATTERN.search(text)
    if match is not None and text[: match.start()].strip(" -:;,"):
        return text[: match.start()].strip().rstrip(" -:;,"), match.group(1).strip()

    sentences = [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip()]
    if len(sentences) >= 2:
        return sentences[0], ". ".join(sentences[1:])
    return text, None


class QuickEngine:
    """Pure transitions of the Quick Version audit.

    Attributes:
        gate: Shared vagueness gate.
        problems: Pulls problem names out of the Q2 answer.
        directions: Classifies a problem once its loop answers are in.
        outputs: Writes the assessment and bet.
    """

    def __init__(
        self,
        gate: VaguenessGate,
        problems: ProblemExtractor,
        directions: DirectionEvaluator,
        outputs: QuickOutputGenerator,
    ) -> None:
        self.gate = gate
        self.problems = problems
        self.directions = directions
        self.outputs = outputs
        self.logger = logger.bind(component="QuickEngine")

    def _move(
        self,
        data: QuickSessionData,
        event: QuickEvent,
        target: QuickState | None = None,
    ) -> QuickState:
        next_state = resolve_transition(QUICK_TRANSITIONS, data.current_state, event, target)
        self.logger.debug(
            "quick_transition",
            transition_event=event.value,
            from_state=data.current_state.value,
            to_state=next_state.value,
        )
        return next_state

    def current_question(self, data: QuickSessionData) -> str | None:
        """Prompt the user should be answering in the current state, if any."""
        state = data.current_state
        if state is QuickState.q3_direction_loop:
            return data.direction_question
        if state in QUICK_QUESTIONS:
            return QUICK_QUESTIONS[state].text
        if state in QUICK_CLARIFY_PARENT:
            return CLARIFY_PROMPT
        return None

    def set_sensitivity_gate(
        self, data: QuickSessionData, abstraction_mode: bool
    ) -> QuickSessionData:
        next_state = self._move(data, QuickEvent.set_sensitivity_gate)
        return data.model_copy(
            update={"abstraction_mode": abstraction_mode, "current_state": next_state}
        )

    # Questions

    async def answer(self, data: QuickSessionData, answer: str) -> QuickSessionData:
        """Answer the current question or its clarification.

        A vague first answer diverts to the clarify state and a vague
        clarification stays there. A concrete answer moves on; in the
        direction loop that means the next sub-question or problem.

        Raises:
            SessionValidationError: If the answer is blank, or a Q2 answer
                names no problems.
        """
        state = data.current_state
        require_event(QUICK_TRANSITIONS, state, QuickEvent.answer)
        if not answer.strip():
            raise SessionValidationError("Answer is required")

        in_clarify = state in QUICK_CLARIFY_PARENT
        question_state = QUICK_CLARIFY_PARENT[state] if in_clarify else state
        prompt = CLARIFY_PROMPT if in_clarify else self.current_question(data)
        if prompt is None:
            raise SessionValidationError("No question is waiting for an answer")

        verdict = await self.gate.classify(prompt, answer)
        entry = TranscriptEntry(
            state=state.value, question=prompt, answer=answer, was_vague=verdict.is_vague
        )

        if in_clarify:
            updated = data
            target = state
            if not verdict.is_vague:
                updated = self._amend(data, question_state, concrete_example=answer)
                updated, target = await self._advance(updated, question_state)
        else:
            record = ReflectionAnswer(answer=answer, was_vague=verdict.is_vague)
            updated = await self._record(data, question_state, record)
            target = QUICK_QUESTIONS[question_state].clarify_state
            if not verdict.is_vague:
                updated, target = await self._advance(updated, question_state)

        next_state = self._move(data, QuickEvent.answer, target)
        self.logger.info(
            "quick_answer_recorded",
            state=state.value,
            was_vague=verdict.is_vague,
            next_state=next_state.value,
        )
        return updated.with_entry(entry, current_state=next_state)

    async def skip(self, data: QuickSessionData) -> QuickSessionData:
        """Skip a clarification, consuming one of the session's skips.

        Raises:
            SkipQuotaExceededError: If both skips are already used.
        """
        state = data.current_state
        require_event(QUICK_TRANSITIONS, state, QuickEvent.skip)
        question_state = QUICK_CLARIFY_PARENT[state]

        skipped = self.gate.attempt_skip(data, question=CLARIFY_PROMPT)
        updated = self._amend(skipped, question_state, skipped=True)
        updated, target = await self._advance(updated, question_state)
        next_state = self._move(data, QuickEvent.skip, target)
        return updated.model_copy(update={"current_state": next_state})

    async def _record(
        self, data: QuickSessionData, question_state: QuickState, record: ReflectionAnswer
    ) -> QuickSessionData:
        """Store a first answer under its question."""
        if question_state is QuickState.q3_direction_loop:
            problem = data.current_problem
            if problem is None:
                raise SessionValidationError("No problem is waiting for direction answers")
            updated = problem.model_copy(update={"answers": (*problem.answers, record)})
            return data.model_copy(update={"problems": self._replace(data, updated)})

        changes: dict[str, object] = {_ANSWER_FIELDS[question_state]: record}
        if question_state is QuickState.q2_paid_problems:
            names = await invoke(
                "problem_extractor", self.problems.extract_problems(record.answer)
            )
            names = [name.strip() for name in names if name.strip()][:MAX_QUICK_PROBLEMS]
            if not names:
                raise SessionValidationError("Name at least one problem you are paid to solve")
            changes.update(
                problems=tuple(QuickProblem(name=name) for name in names),
                current_problem_index=0,
                direction_sub_question=0,
            )
        elif question_state is QuickState.q4_avoided_decision:
            decision, cost = split_avoided_decision(record.answer)
            changes.update(avoided_decision_text=decision, avoided_decision_cost=cost)
        return data.model_copy(update=changes)

    def _amend(
        self, data: QuickSessionData, question_state: QuickState, **update: object
    ) -> QuickSessionData:
        """Mark the answer being clarified as clarified or skipped."""
        if question_state is QuickState.q3_direction_loop:
            problem = data.current_problem
            if problem is None or not problem.answers:
                raise SessionValidationError("No direction answer is waiting for clarification")
            last = problem.answers[-1].model_copy(update=update)
            updated = problem.model_copy(update={"answers": (*problem.answers[:-1], last)})
            return data.model_copy(update={"problems": self._replace(data, updated)})

        field = _ANSWER_FIELDS[question_state]
        current: ReflectionAnswer | None = getattr(data, field)
        if current is None:
            raise SessionValidationError("No answer is waiting for clarification")
        return data.model_copy(update={field: current.model_copy(update=update)})

    async def _advance(
        self, data: QuickSessionData, question_state: QuickState
    ) -> tuple[QuickSessionData, QuickState]:
        """Move past a settled answer; the direction loop steps through its problems."""
        if question_state is not QuickState.q3_direction_loop:
            return data, QUICK_QUESTIONS[question_state].next_state

        if data.direction_sub_question < len(DIRECTION_SUB_QUESTIONS) - 1:
            advanced = data.model_copy(
                update={"direction_sub_question": data.direction_sub_question + 1}
            )
            return advanced, QuickState.q3_direction_loop

        problem = data.current_problem
        if problem is None:
            raise SessionValidationError("No problem is waiting for direction answers")
        evaluation = await invoke(
            "direction_evaluator", self.directions.evaluate_direction(problem)
        )
        evaluated = problem.model_copy(
            update={
                "direction": evaluation.direction,
                "direction_rationale": evaluation.rationale,
            }
        )
        self.logger.info(
            "quick_direction_evaluated",
            problem_index=data.current_problem_index,
            direction=evaluation.direction.value,
            confidence=evaluation.confidence,
        )
        next_index = data.current_problem_index + 1
        advanced = data.model_copy(
            update={
                "problems": self._replace(data, evaluated),
                "current_problem_index": next_index,
                "direction_sub_question": 0,
            }
        )
        if next_index < len(data.problems):
            return advanced, QuickState.q3_direction_loop
        return advanced, QuickState.q4_avoided_decision

    @staticmethod
    def _replace(data: QuickSessionData, problem: QuickProblem) -> tuple[QuickProblem, ...]:
        problems = list(data.problems)
        problems[data.current_problem_index] = problem
        return tuple(problems)

    # Output

    async def generate_output(self, data: QuickSessionData) -> QuickSessionData:
        """Write the audit output and return the finalized session data.

        The caller stores the bet and completes the session in one unit of
        work before storing the returned value.
        """
        require_event(QUICK_TRANSITIONS, data.current_state, QuickEvent.generate_output)
        output = await invoke(
            "quick_output_generator", self.outputs.generate_quick_output(data)
        )
        next_state = self._move(data, QuickEvent.generate_output)
        return data.model_copy(update={"output": output, "current_state": next_state})
