from collections.abc import Iterator

import pytest

from storyloop.models import GenerationResult, GenerationSuccess
from storyloop.state import NarrativeStore
from storyloop.sync import CompletionSynchronizer


class StubGenerator:
    """Deterministic generator stand-in for tests.

    Provide results in call order. Raises if called more times than results
    were provided.
    """

    def __init__(self, results: list[GenerationResult]) -> None:
        self._queue = list(results)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> GenerationResult:
        self.prompts.append(prompt)
        if not self._queue:
            raise AssertionError(
                f"StubGenerator: unexpected call (no results queued). "
                f"calls so far: {len(self.prompts)}"
            )
        return self._queue.pop(0)

    def assert_exhausted(self) -> None:
        """Assert every queued result was consumed — catches missing calls."""
        if self._queue:
            raise AssertionError(f"StubGenerator: unused results remain: {self._queue}")


DESERT = GenerationSuccess(
    story="You wake in a desert.",
    health=90,
    options=("Walk north", "Dig"),
)


@pytest.fixture
def store() -> NarrativeStore:
    return NarrativeStore()


@pytest.fixture
def desert() -> GenerationSuccess:
    return DESERT


@pytest.fixture
def make_stub() -> type[StubGenerator]:
    return StubGenerator


@pytest.fixture
def stub() -> StubGenerator:
    return StubGenerator([DESERT])


@pytest.fixture
def synchronizer(stub: StubGenerator) -> Iterator[CompletionSynchronizer]:
    with CompletionSynchronizer(stub) as sync:
        yield sync
