"""Render model — turns a state snapshot into a frame, and a frame into a
rich panel.

build_frame() is pure and holds every number the screen shows (glyph counts,
option colours), so it can be tested without a terminal. render_frame() only
maps that model onto rich primitives.
"""

from __future__ import annotations

from dataclasses import dataclass

from rich import box
from rich.console import Group
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

from storyloop.models import MAX_HEALTH, NarrativeState
from storyloop.state import clamp_health

BAR_WIDTH = MAX_HEALTH // 2
FILLED_GLYPH = "■"
EMPTY_GLYPH = "□"
NO_OPTIONS_NOTICE = "No options available."
START_HINT = "Press g to begin, q to quit."


@dataclass(frozen=True)
class HealthBar:
    filled: int
    empty: int


@dataclass(frozen=True)
class OptionLine:
    number: int
    text: str
    rgb: tuple[int, int, int]


@dataclass(frozen=True)
class Frame:
    title: str
    health_bar: HealthBar
    story: str
    options: tuple[OptionLine, ...]
    notice: str | None = None


def health_bar(health: int) -> HealthBar:
    filled = clamp_health(health) // 2
    return HealthBar(filled=filled, empty=BAR_WIDTH - filled)


def option_color(index: int, count: int) -> tuple[int, int, int]:
    """Green ramp: later options are brighter. `index` is 0-based."""
    green = min(255, 255 // (count + 1) * (index + 2))
    return (0, green, 0)


def build_frame(state: NarrativeState, *, title: str = "Story") -> Frame:
    options = tuple(
        OptionLine(number=i + 1, text=text, rgb=option_color(i, len(state.options)))
        for i, text in enumerate(state.options)
    )
    notice = None
    if not state.story:
        notice = START_HINT
    elif not options and not state.is_dead:
        notice = NO_OPTIONS_NOTICE
    return Frame(
        title=title,
        health_bar=health_bar(state.health),
        story=state.story_text,
        options=options,
        notice=notice,
    )


def render_frame(frame: Frame, height: int | None = None) -> Panel:
    bar = Text(" ")
    bar.append(FILLED_GLYPH * frame.health_bar.filled, style="red")
    bar.append(EMPTY_GLYPH * frame.health_bar.empty)
    bar.append(" ")

    body = [Text(frame.story, justify="center")]
    if frame.options:
        lines = Text("\nOptions:\n", justify="center")
        for line in frame.options:
            lines.append(
                f"{line.number}: {line.text}\n",
                style=Style(color=f"rgb({line.rgb[0]},{line.rgb[1]},{line.rgb[2]})"),
            )
        body.append(lines)
    if frame.notice:
        body.append(Text(f"\n{frame.notice}", justify="center", style="dim"))

    return Panel(
        Group(*body),
        title=Text(f" {frame.title} ", style="bold"),
        title_align="center",
        subtitle=bar,
        subtitle_align="center",
        box=box.HEAVY,
        height=height,
    )
