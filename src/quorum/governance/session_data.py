"""Shared shape of governance session data.

Session data is an immutable pydantic value. Transitions never mutate it;
they return a copy built with ``model_copy(update=...)``. Three fields live
in dedicated columns of the session record (state tag, abstraction flag and
skip counter); every other field is serialized into one JSON document.
Reload merges the three columns over the document, so a persisted value and
its reloaded twin compare equal.
"""

from __future__ import annotations

from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

from quorum.governance.enums import BoardRoleType

MAX_VAGUENESS_SKIPS = 2

# Fields stored as discrete columns rather than inside the JSON document.
DISCRETE_FIELDS: frozenset[str] = frozenset(
    {"current_state", "abstraction_mode", "vagueness_skip_count"}
)


class FrozenModel(BaseModel):
    """Base for immutable value types inside session data."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class TranscriptEntry(FrozenModel):
    """One question/answer exchange recorded during a session.

    Attributes:
        state: Tag of the state the answer was collected under.
        question: Prompt shown to the user.
        answer: Answer as given, or a sentinel for skips.
        was_vague: Whether the vagueness gate judged the answer vague.
        skipped: Whether the answer is a skip sentinel.
        role: Board role asking, for board interrogation entries.
        persona_name: Persona asking, for board interrogation entries.
    """

    state: str
    question: str
    answer: str
    was_vague: bool = False
    skipped: bool = False
    role: BoardRoleType | None = None
    persona_name: str | None = None


class ReflectionAnswer(FrozenModel):
    """Answer to one gated question, including any clarification."""

    answer: str
    was_vague: bool = False
    concrete_example: str | None = None
    skipped: bool = False

    @property
    def best_answer(self) -> str:
        return self.concrete_example or self.answer


class BaseSessionData(FrozenModel):
    """Fields common to every workflow's session data."""

    abstraction_mode: bool = False
    vagueness_skip_count: int = Field(default=0, ge=0, le=MAX_VAGUENESS_SKIPS)
    transcript: tuple[TranscriptEntry, ...] = ()

    progress_table: ClassVar[dict[Any, int]] = {}

    @property
    def can_skip(self) -> bool:
        return self.vagueness_skip_count < MAX_VAGUENESS_SKIPS

    @property
    def progress_percent(self) -> int:
        return self.progress_table.get(getattr(self, "current_state"), 0)

    def with_entry(self, entry: TranscriptEntry, **changes: Any) -> Self:
        """Return a copy with entry appended to the transcript and changes applied."""
        return self.model_copy(
            update={"transcript": (*self.transcript, entry), **changes}
        )

    def to_document(self) -> dict[str, Any]:
        """Serialize every non-column field into a JSON-compatible dict."""
        return self.model_dump(mode="json", exclude=set(DISCRETE_FIELDS))

    @classmethod
    def from_record(
        cls,
        *,
        current_state: str,
        abstraction_mode: bool,
        vagueness_skip_count: int,
        document: dict[str, Any] | None,
    ) -> Self:
        """Rebuild session data from the three column values and the document.

        Column values win over anything with the same key in the document.
        """
        payload = {
            key: value
            for key, value in (document or {}).items()
            if key not in DISCRETE_FIELDS
        }
        payload.update(
            current_state=current_state,
            abstraction_mode=abstraction_mode,
            vagueness_skip_count=vagueness_skip_count,
        )
        return cls.model_validate(payload)
