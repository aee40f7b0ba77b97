"""Completion synchronizer — runs one generation in the background and lets
the blocking foreground loop wait for it.

Each dispatch starts one daemon worker thread that drives the async client to
completion with its own event loop and settles a Future. The handle returned
by dispatch() is consumed by await_result(), and no new dispatch is accepted
until that happens, so at most one request is ever outstanding. Workers are
daemon threads, so a hung request never keeps the process alive after quit or
Ctrl-C.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future

from storyloop.llm import Generator
from storyloop.models import GenerationFailure, GenerationResult

logger = logging.getLogger(__name__)


class GenerationInFlight(RuntimeError):
    """Raised when dispatching while a previous result has not been awaited."""


class HandleConsumed(RuntimeError):
    """Raised when awaiting a handle whose result was already returned."""


class SynchronizerClosed(RuntimeError):
    """Raised when dispatching after close()."""


class PendingGeneration:
    """Handle for one dispatched generation. Awaitable exactly once."""

    def __init__(self, future: Future, worker: threading.Thread) -> None:
        self._future = future
        self.worker = worker
        self.consumed = False

    @property
    def done(self) -> bool:
        return self._future.done()


class CompletionSynchronizer:
    def __init__(self, generator: Generator) -> None:
        self._generator = generator
        self._lock = threading.Lock()
        self._pending: PendingGeneration | None = None
        self._closed = False

    def __enter__(self) -> CompletionSynchronizer:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def busy(self) -> bool:
        return self._pending is not None

    def dispatch(self, prompt: str) -> PendingGeneration:
        """Start one background generation and return its handle immediately."""
        with self._lock:
            if self._closed:
                raise SynchronizerClosed("Synchronizer is closed")
            if self._pending is not None:
                raise GenerationInFlight("A generation is already outstanding")
            future: Future = Future()
            worker = threading.Thread(
                target=self._run, args=(prompt, future), name="generation", daemon=True
            )
            handle = PendingGeneration(future, worker)
            self._pending = handle
            worker.start()
        logger.debug("dispatched generation prompt_len=%d", len(prompt))
        return handle

    def await_result(self, handle: PendingGeneration) -> GenerationResult:
        """Block until the handle's task has finished and return its result."""
        with self._lock:
            if handle.consumed:
                raise HandleConsumed("Generation result was already returned")
            handle.consumed = True

        try:
            result = handle._future.result()
        except Exception as e:
            logger.exception("generation task crashed")
            result = GenerationFailure(reason=f"Generation task crashed: {e}")

        with self._lock:
            if self._pending is handle:
                self._pending = None
        return result

    def close(self) -> None:
        """Stop accepting work. Never waits on an outstanding request."""
        with self._lock:
            self._closed = True
            pending = self._pending
        if pending is not None and not pending.done:
            logger.warning("abandoning an outstanding generation")

    def _run(self, prompt: str, future: Future) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = asyncio.run(self._generator.generate(prompt))
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
