"""Pydantic models for the JSON replies the prompts ask the model for.

Field names follow the camelCase keys in the prompts. Unknown keys are
ignored so a chatty reply still validates.
"""

from __future__ import annotations

import json
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator
from pydantic.alias_generators import to_camel

from quorum.governance.enums import ProblemDirection
from quorum.intelligence.claude_client import strip_code_fence

ReplyT = TypeVar("ReplyT", bound=BaseModel)


class ModelReply(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AnchoringEntry(ModelReply):
    """One role's anchoring; ``problem_index`` is zero-based."""

    role_type: str
    problem_index: int | None = Field(default=None, strict=True)
    demand: str | None = None


class PersonaReply(ModelReply):
    name: str | None = None
    background: str | None = None
    communication_style: str | None = None
    signature_phrase: str | None = None


class VaguenessReply(ModelReply):
    is_vague: bool = False
    reason: str | None = None
    missing_elements: list[str] = Field(default_factory=list)


class HealthStatementsReply(ModelReply):
    risk_statement: str
    opportunity_statement: str


class ProblemListReply(RootModel[list[str]]):
    """Problem names pulled out of a free-text answer."""


class DirectionReply(ModelReply):
    """A problem's direction; anything unrecognized reads as stable."""

    direction: ProblemDirection = ProblemDirection.stable
    rationale: str = ""
    confidence: str = "medium"

    @field_validator("direction", mode="before")
    @classmethod
    def unknown_direction_is_stable(cls, value: object) -> object:
        if isinstance(value, ProblemDirection):
            return value
        if isinstance(value, str):
            value = value.strip().lower()
            if value in {direction.value for direction in ProblemDirection}:
                return value
        return ProblemDirection.stable


class QuickOutputReply(ModelReply):
    assessment: str = Field(min_length=1)
    avoided_decision: str = ""
    avoided_decision_cost: str = ""
    bet_prediction: str = Field(min_length=1)
    bet_wrong_if: str = Field(min_length=1)
    full_output_markdown: str = ""


def load_reply_json(content: str) -> object:
    """Decode a reply body, tolerating a Markdown code fence.

    Raises:
        ValueError: If the body is not valid JSON
    """
    try:
        return json.loads(strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in model reply: {e}") from e


def parse_reply(content: str, model: type[ReplyT]) -> ReplyT:
    """Decode ``content`` and validate it against ``model``.

    Raises:
        ValueError: If the body is not valid JSON
        ValidationError: If the JSON does not match ``model``
    """
    return model.model_validate(load_reply_json(content))
