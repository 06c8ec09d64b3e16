"""Vagueness gate shared by the governance engines.

Gated answers are classified as vague or concrete. A vague answer diverts the
session into a clarify state that re-presents CLARIFY_PROMPT until a concrete
example arrives or the user skips. Skips draw on one per-session quota and
every skip goes through ``VaguenessGate.attempt_skip``, which is the only code
that increments ``vagueness_skip_count``.
"""

from __future__ import annotations

from typing import Any, TypeVar

import structlog

from quorum.governance.collaborators import (
    VaguenessClassifier,
    VaguenessResult,
    invoke,
)
from quorum.governance.enums import BoardRoleType
from quorum.governance.errors import SkipQuotaExceededError
from quorum.governance.session_data import (
    MAX_VAGUENESS_SKIPS,
    BaseSessionData,
    TranscriptEntry,
)
from quorum.governance.states import CLARIFY_PROMPT

logger = structlog.get_logger(__name__)

SKIPPED_ANSWER = "[example refused]"

DataT = TypeVar("DataT", bound=BaseSessionData)

__all__ = [
    "CLARIFY_PROMPT",
    "SKIPPED_ANSWER",
    "VaguenessGate",
]


class VaguenessGate:
    """Classifies answers and enforces the shared skip quota."""

    def __init__(self, classifier: VaguenessClassifier) -> None:
        self._classifier = classifier

    async def classify(self, question: str, answer: str) -> VaguenessResult:
        """Classify an answer.

        Raises:
            CollaboratorError: If the classifier fails.
        """
        result = await invoke(
            "vagueness_classifier", self._classifier.classify(question, answer)
        )
        logger.debug(
            "vagueness_classified",
            is_vague=result.is_vague,
            reason=result.reason,
            answer_length=len(answer),
        )
        return result

    @staticmethod
    def attempt_skip(
        data: DataT,
        *,
        question: str,
        role: BoardRoleType | None = None,
        persona_name: str | None = None,
        **changes: Any,
    ) -> DataT:
        """Consume one skip, recording the sentinel answer in the transcript.

        Args:
            data: Session data in a clarify state.
            question: The clarification prompt being skipped.
            role: Board role, when skipping a board clarification.
            persona_name: Board persona, when skipping a board clarification.
            **changes: Further field updates applied in the same copy
                (typically the next state).

        Returns:
            A copy with the counter incremented and the entry appended.

        Raises:
            SkipQuotaExceededError: If the quota is exhausted. ``data`` is
                left as it was.
        """
        if not data.can_skip:
            logger.info(
                "vagueness_skip_refused",
                skip_count=data.vagueness_skip_count,
                max_skips=MAX_VAGUENESS_SKIPS,
            )
            raise SkipQuotaExceededError(data.vagueness_skip_count, MAX_VAGUENESS_SKIPS)

        state = getattr(data, "current_state")
        entry = TranscriptEntry(
            state=state.value,
            question=question,
            answer=SKIPPED_ANSWER,
            was_vague=True,
            skipped=True,
            role=role,
            persona_name=persona_name,
        )
        skip_count = data.vagueness_skip_count + 1
        logger.info("vagueness_skip_used", skip_count=skip_count, state=state.value)
        return data.with_entry(entry, vagueness_skip_count=skip_count, **changes)
