"""Control loop — one iteration per key press.

State machine:

    Idle ──g──────────────► AwaitingGeneration ──result applied──► Idle
    Idle ──digit (valid)──► AwaitingGeneration
    Idle ──digit (invalid)► Idle   (marker appended, no request)
    Idle ──q──────────────► loop ends

While AwaitingGeneration the loop blocks on the synchronizer; it neither
redraws nor reads keys until the result has been applied to the store.
"""

from __future__ import annotations

import enum
import logging
import sys
from collections.abc import Callable, Iterable

from rich.console import Console

from storyloop.config import Settings
from storyloop.keys import (
    Command,
    KeyReader,
    Quit,
    RequestGeneration,
    SelectOption,
    dispatch_key,
)
from storyloop.llm import OllamaClient
from storyloop.prompts import build_prompt
from storyloop.render import Frame, build_frame, render_frame
from storyloop.state import InvalidSelection, NarrativeStore
from storyloop.sync import CompletionSynchronizer, GenerationInFlight, PendingGeneration

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    IDLE = "idle"
    AWAITING_GENERATION = "awaiting_generation"


class Game:
    def __init__(
        self,
        store: NarrativeStore,
        synchronizer: CompletionSynchronizer,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._sync = synchronizer
        self._pending: PendingGeneration | None = None
        self.running = True

    @property
    def phase(self) -> Phase:
        if self._pending is None:
            return Phase.IDLE
        return Phase.AWAITING_GENERATION

    def frame(self) -> Frame:
        return build_frame(self.store.snapshot(), title=self.settings.title)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def handle(self, command: Command) -> None:
        """Apply one command from the Idle phase."""
        if self.phase is not Phase.IDLE:
            raise GenerationInFlight("Cannot accept commands while a generation is outstanding")

        if isinstance(command, Quit):
            self.running = False
            return

        if self.store.is_dead:
            logger.info("ignoring %s, the character is dead", type(command).__name__)
            return

        if isinstance(command, RequestGeneration):
            prompt = build_prompt(self.store.snapshot(), theme=self.settings.theme)
            self._dispatch(prompt)
        elif isinstance(command, SelectOption):
            try:
                choice = self.store.apply_selection(command.number)
            except InvalidSelection as e:
                logger.warning("%s", e)
                return
            prompt = build_prompt(self.store.snapshot(), choice, theme=self.settings.theme)
            self._dispatch(prompt)

    def complete(self) -> None:
        """Block on the outstanding generation, if any, and apply its result."""
        if self._pending is None:
            return
        result = self._sync.await_result(self._pending)
        self.store.apply_generation_result(result)
        self._pending = None

    def _dispatch(self, prompt: str) -> None:
        self._pending = self._sync.dispatch(prompt)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self, keys: Iterable[str], display: Callable[[Frame], None]) -> None:
        """Render, read a key, act, and wait for any generation; until quit."""
        display(self.frame())
        for key in keys:
            command = dispatch_key(key)
            if command is None:
                continue
            self.handle(command)
            if not self.running:
                break
            self.complete()
            display(self.frame())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def configure_logging(level: str) -> None:
    """Send storyloop diagnostics to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("storyloop")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    console = Console()
    store = NarrativeStore()
    client = OllamaClient.from_settings(settings)

    try:
        with CompletionSynchronizer(client) as sync, KeyReader() as reader, console.screen() as screen:
            game = Game(store, sync, settings)

            def display(frame: Frame) -> None:
                screen.update(render_frame(frame, height=console.height))

            game.run(reader, display)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
