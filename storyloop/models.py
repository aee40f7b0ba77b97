"""Core domain models.

Every component passes these types around. Pydantic validates the model's
structured output at the network boundary and keeps state snapshots immutable.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

MAX_HEALTH = 100


class StoryTurn(BaseModel):
    """Structured output the model must return (absolute-health mode).

    `health` is the character's total remaining health, not a delta.
    """

    model_config = ConfigDict(extra="ignore")

    story: StrictStr
    health: StrictInt
    options: list[StrictStr]


class GenerationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    story: str
    health: int
    options: tuple[str, ...] = ()

    @classmethod
    def from_turn(cls, turn: StoryTurn) -> GenerationSuccess:
        return cls(story=turn.story, health=turn.health, options=tuple(turn.options))


class GenerationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    reason: str


GenerationResult = Annotated[
    Union[GenerationSuccess, GenerationFailure],
    Field(discriminator="kind"),
]


class NarrativeState(BaseModel):
    """A consistent view of the story log, health and pending options."""

    model_config = ConfigDict(frozen=True)

    story: tuple[str, ...] = ()
    health: int = MAX_HEALTH
    options: tuple[str, ...] = ()

    @property
    def story_text(self) -> str:
        return "\n".join(self.story)

    @property
    def is_dead(self) -> bool:
        return self.health <= 0
