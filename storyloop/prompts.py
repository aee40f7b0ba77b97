"""Handlebars prompt templates for opening and continuing the story."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from storyloop.models import MAX_HEALTH, NarrativeState

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Templates ────────────────────────────────────────────
# Triple-stash keeps story text unescaped; the model sees it verbatim.

OPENING_TEMPLATE = """\
You are an interactive story generator for an AI game.
Theme: {{{theme}}}
Generate a story that follows this structure:

1. Story & Setting:
- Create a vivid, immersive narrative based on the theme.
- Introduce the main character and the world they're in.
- The story at the beginning should be a minimum of 3 and a maximum of 6 sentences long.

2. Health Bar Mechanic:
- The main character starts with a full health bar ({{max_health}}).
- Throughout the story, include events that either damage or heal them.
- Clearly indicate all health changes.

3. Decision Point:
- End the story with a moment where the player must choose between at least two actions.
- List each option clearly, and briefly explain the outcome and health impact.
- If the health bar drops to 0, the character dies and the game ends.

Output format:
- story: The full narrative leading up to the decision.
- health: The character's total remaining health after this segment.
- options: The available decisions, one short sentence each.
"""

CONTINUATION_TEMPLATE = """\
You are an interactive story generator for an AI game that continues from previous decisions.
Generate the next part of the story based on the player's last choice and previous events.
Follow this structure:

1. Continue the Story:
- Use the previous story, the current health of {{health}} and the player's selected option.
- Write a new story segment (3 to 6 sentences long) that logically follows from the decision.
- Include the direct consequences of the player's decision in this segment (e.g., gained an item, took damage, found something hidden).

2. Health Bar Mechanic:
- The character's health should only be influenced by the player's choices.
- Reflect any health gain or loss that resulted from the previous decision.
- Report the new total health, never only the change.

3. Decision Point:
- Present at least two new choices for the player.
- List each option clearly and explain the expected outcome and its impact on the character's health.
- Do not continue the story after presenting the choices. Stop and wait for the player to select an option.
- If the health bar reaches 0, the character dies and the game ends.

Output format:
- story: A 3-6 sentence narrative that reflects the last decision and sets up the next choice.
- health: The character's total remaining health (0 to {{max_health}}).
- options: The new available decisions.

This is what happened previously with the player's choices:

{{{story}}}
{{#if choice}}

The player chose: {{{choice}}}
{{/if}}
"""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_context(
    state: NarrativeState,
    chosen_option: str | None = None,
    theme: str = "",
) -> dict[str, Any]:
    """Assemble template variables from a state snapshot."""
    return {
        "theme": theme,
        "story": state.story_text,
        "health": str(state.health),
        "max_health": str(MAX_HEALTH),
        "choice": chosen_option or "",
    }


def build_prompt(
    state: NarrativeState,
    chosen_option: str | None = None,
    *,
    theme: str,
) -> str:
    """Return the request text for the next generation.

    A fresh game (no story yet, nothing chosen) gets the opening template;
    everything after that continues from the story log.
    """
    ctx = build_context(state, chosen_option, theme)
    if not state.story and chosen_option is None:
        return render_prompt(OPENING_TEMPLATE, ctx)
    return render_prompt(CONTINUATION_TEMPLATE, ctx)
