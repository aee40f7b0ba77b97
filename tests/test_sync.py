"""Tests for storyloop.sync — background dispatch and blocking wait."""

import asyncio
import threading

import pytest

from storyloop.models import GenerationFailure, GenerationSuccess
from storyloop.sync import (
    CompletionSynchronizer,
    GenerationInFlight,
    HandleConsumed,
    SynchronizerClosed,
)


class GatedGenerator:
    """Blocks inside generate() until the test opens the gate."""

    def __init__(self, result: GenerationSuccess) -> None:
        self.gate = threading.Event()
        self.started = threading.Event()
        self.result = result

    async def generate(self, prompt: str) -> GenerationSuccess:
        self.started.set()
        await asyncio.to_thread(self.gate.wait)
        return self.result


class CrashingGenerator:
    async def generate(self, prompt: str) -> GenerationSuccess:
        raise KeyError("boom")


def test_dispatch_then_await_returns_result(synchronizer, stub, desert) -> None:
    handle = synchronizer.dispatch("prompt")
    assert synchronizer.await_result(handle) == desert
    assert stub.prompts == ["prompt"]
    stub.assert_exhausted()


def test_dispatch_returns_before_task_finishes(desert) -> None:
    gen = GatedGenerator(desert)
    with CompletionSynchronizer(gen) as sync:
        handle = sync.dispatch("prompt")
        assert gen.started.wait(timeout=5)
        assert not handle.done
        assert sync.busy
        gen.gate.set()
        assert sync.await_result(handle) == desert
        assert not sync.busy


def test_second_dispatch_rejected_while_outstanding(desert) -> None:
    gen = GatedGenerator(desert)
    with CompletionSynchronizer(gen) as sync:
        handle = sync.dispatch("first")
        with pytest.raises(GenerationInFlight):
            sync.dispatch("second")
        gen.gate.set()
        sync.await_result(handle)


def test_finished_but_unawaited_still_blocks_dispatch(synchronizer, stub) -> None:
    handle = synchronizer.dispatch("first")
    handle._future.result(timeout=5)
    with pytest.raises(GenerationInFlight):
        synchronizer.dispatch("second")
    synchronizer.await_result(handle)


def test_handle_is_consumed_once(synchronizer) -> None:
    handle = synchronizer.dispatch("prompt")
    synchronizer.await_result(handle)
    assert handle.consumed
    with pytest.raises(HandleConsumed):
        synchronizer.await_result(handle)


def test_dispatch_allowed_again_after_await(make_stub, desert) -> None:
    follow_up = GenerationFailure(reason="second")
    stub = make_stub([desert, follow_up])
    with CompletionSynchronizer(stub) as sync:
        assert sync.await_result(sync.dispatch("one")) == desert
        assert sync.await_result(sync.dispatch("two")) == follow_up
    assert stub.prompts == ["one", "two"]


def test_task_crash_becomes_failure(caplog) -> None:
    with CompletionSynchronizer(CrashingGenerator()) as sync:
        result = sync.await_result(sync.dispatch("prompt"))
    assert isinstance(result, GenerationFailure)
    assert "crashed" in result.reason
    assert any(r.levelname == "ERROR" for r in caplog.records)


def test_result_produced_on_worker_thread(desert) -> None:
    seen: list[str] = []

    class RecordingGenerator:
        async def generate(self, prompt: str) -> GenerationSuccess:
            seen.append(threading.current_thread().name)
            return desert

    with CompletionSynchronizer(RecordingGenerator()) as sync:
        sync.await_result(sync.dispatch("prompt"))
    assert seen and seen[0] != threading.current_thread().name


def test_close_does_not_wait_for_hung_request(desert) -> None:
    gen = GatedGenerator(desert)
    sync = CompletionSynchronizer(gen)
    handle = sync.dispatch("prompt")
    assert gen.started.wait(timeout=5)

    closer = threading.Thread(target=sync.close)
    closer.start()
    closer.join(timeout=2)

    assert not closer.is_alive()
    assert handle.worker.daemon
    assert not handle.done
    gen.gate.set()


def test_dispatch_after_close_rejected(synchronizer) -> None:
    synchronizer.close()
    with pytest.raises(SynchronizerClosed):
        synchronizer.dispatch("prompt")
