"""Keyboard input: raw key capture and the key → command mapping."""

from __future__ import annotations

import sys
import termios
import tty
from dataclasses import dataclass
from typing import TextIO, Union


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class RequestGeneration:
    pass


@dataclass(frozen=True)
class SelectOption:
    number: int  # 1-based, as shown on screen; 0 is always out of range


Command = Union[Quit, RequestGeneration, SelectOption]

QUIT_KEY = "q"
GENERATE_KEY = "g"


def dispatch_key(key: str) -> Command | None:
    """Map one key press to a command. Unmapped keys return None."""
    if key == QUIT_KEY:
        return Quit()
    if key == GENERATE_KEY:
        return RequestGeneration()
    if len(key) == 1 and key in "0123456789":
        return SelectOption(int(key))
    return None


class KeyReader:
    """Reads single key presses from a terminal in cbreak mode.

    Use as a context manager so the terminal attributes are always restored.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._saved: list | None = None

    def __enter__(self) -> KeyReader:
        fd = self._stream.fileno()
        self._saved = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        return self

    def __exit__(self, *exc) -> None:
        if self._saved is not None:
            termios.tcsetattr(self._stream.fileno(), termios.TCSADRAIN, self._saved)
            self._saved = None

    def read_key(self) -> str:
        return self._stream.read(1)

    def __iter__(self):
        while True:
            key = self.read_key()
            if not key:
                return
            yield key
