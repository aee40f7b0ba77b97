"""Narrative store — the single shared record of story, health and options.

One lock guards the whole record so a reader never sees a new story segment
paired with stale options. The control loop is the only writer.
"""

from __future__ import annotations

import logging
import threading

from storyloop.models import (
    MAX_HEALTH,
    GenerationFailure,
    GenerationResult,
    NarrativeState,
)

logger = logging.getLogger(__name__)

INVALID_OPTION_MARKER = "Invalid option selected."
GENERATION_ERROR_MARKER = "[ERROR: Failed to generate response]"
GAME_OVER_MARKER = "[GAME OVER: your character has died]"


class InvalidSelection(ValueError):
    """Raised when an option number is out of range or nothing is pending."""

    def __init__(self, index: int, available: int) -> None:
        super().__init__(f"Option {index} is not available ({available} pending)")
        self.index = index
        self.available = available


def clamp_health(value: int) -> int:
    return max(0, min(MAX_HEALTH, value))


class NarrativeStore:
    def __init__(self, initial: NarrativeState | None = None) -> None:
        initial = initial or NarrativeState()
        self._lock = threading.Lock()
        self._story: list[str] = list(initial.story)
        self._health = clamp_health(initial.health)
        self._options: list[str] = list(initial.options)

    def snapshot(self) -> NarrativeState:
        with self._lock:
            return NarrativeState(
                story=tuple(self._story),
                health=self._health,
                options=tuple(self._options),
            )

    @property
    def is_dead(self) -> bool:
        with self._lock:
            return self._health <= 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply_selection(self, index: int) -> str:
        """Echo option `index` (1-based) into the story and clear the options.

        Returns the chosen option's text. An out-of-range index appends the
        invalid-option marker and raises InvalidSelection instead.
        """
        with self._lock:
            available = len(self._options)
            if not 1 <= index <= available:
                self._story.append(INVALID_OPTION_MARKER)
                raise InvalidSelection(index, available)
            choice = self._options[index - 1]
            self._story.append(f"You chose option {index}: {choice}")
            self._options = []
        return choice

    def apply_generation_result(self, result: GenerationResult) -> None:
        with self._lock:
            if isinstance(result, GenerationFailure):
                self._story.append(GENERATION_ERROR_MARKER)
                return

            health = clamp_health(result.health)
            if health != result.health:
                logger.info("health %d out of range, clamped to %d", result.health, health)
            self._story.append(result.story)
            self._health = health
            if health == 0:
                self._options = []
                self._story.append(GAME_OVER_MARKER)
            else:
                self._options = list(result.options)
