"""Tests for create_resource and next_tick."""

import asyncio
import logging

import pytest

from msig import create_effect, create_resource, create_root, create_signal, next_tick


class Deferred:
    """Fetcher whose every call returns a fresh future resolved by the test."""

    def __init__(self):
        self.calls = []
        self.futures = []

    def __call__(self, *args):
        self.calls.append(args)
        future = asyncio.get_running_loop().create_future()
        self.futures.append(future)
        return future

    def resolve(self, value, index=-1):
        self.futures[index].set_result(value)

    def reject(self, error, index=-1):
        self.futures[index].set_exception(error)


async def settle():
    """Let pending tasks run to completion."""
    for _ in range(5):
        await asyncio.sleep(0)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_happy_path(self):
        fetch = Deferred()
        value, actions = create_resource(fetch)
        assert value.state == "unresolved"
        assert fetch.calls == []

        await next_tick()
        assert value.loading is True
        assert value.state == "pending"

        fetch.resolve("Foo")
        await settle()
        assert value.state == "ready"
        assert value() == "Foo"
        assert value.latest == "Foo"
        assert value.error is None
        assert value.loading is False
        assert fetch.calls == [()]

        assert actions.mutate("Bar") == "Bar"
        assert value() == "Bar"
        assert value.latest == "Bar"
        assert value.state == "ready"
        assert fetch.calls == [()]

    @pytest.mark.asyncio
    async def test_error(self):
        fetch = Deferred()
        value, _ = create_resource(fetch)
        assert value.state == "unresolved"
        await next_tick()
        assert value.loading is True
        assert value.state == "pending"

        err = RuntimeError("Whoops!")
        fetch.reject(err)
        await settle()
        assert value.state == "errored"
        assert value() is None
        assert value.latest is None
        assert value.loading is False
        assert value.error is err

    @pytest.mark.asyncio
    async def test_latest_survives_error(self):
        fetch = Deferred()
        value, actions = create_resource(fetch)
        await next_tick()
        fetch.resolve("good")
        await settle()

        task = actions.refetch()
        assert value.state == "pending"
        fetch.reject(ValueError("bad"))
        assert await task is None
        assert value.state == "errored"
        assert value() is None
        assert value.latest == "good"

    @pytest.mark.asyncio
    async def test_success_clears_error(self):
        fetch = Deferred()
        value, actions = create_resource(fetch)
        await next_tick()
        fetch.reject(ValueError("bad"))
        await settle()
        assert value.error is not None

        task = actions.refetch()
        fetch.resolve("ok")
        assert await task == "ok"
        assert value.state == "ready"
        assert value.error is None

    @pytest.mark.asyncio
    async def test_mutate_before_fetch_keeps_state(self):
        fetch = Deferred()
        value, actions = create_resource(fetch)
        actions.mutate(5)
        assert value() == 5
        assert value.latest == 5
        assert value.state == "unresolved"

    @pytest.mark.asyncio
    async def test_fetcher_raising_synchronously(self):
        def fetch():
            raise LookupError("nope")

        value, _ = create_resource(fetch)
        await settle()
        assert value.state == "errored"
        assert isinstance(value.error, LookupError)
        assert value.loading is False

    @pytest.mark.asyncio
    async def test_coroutine_fetcher(self):
        async def fetch():
            await asyncio.sleep(0)
            return 42

        value, _ = create_resource(fetch)
        await settle()
        assert value() == 42


class TestSource:
    @pytest.mark.asyncio
    async def test_source_change_refetches(self):
        fetch = Deferred()
        source, set_source = create_signal(1)
        value, _ = create_resource(source, fetch)

        await next_tick()
        fetch.resolve("item1")
        await settle()
        assert value() == "item1"
        assert fetch.calls[-1] == (1,)

        set_source(2)
        assert fetch.calls[-1] == (2,)
        assert value.state == "pending"
        fetch.resolve("item2")
        await settle()
        assert value() == "item2"

    @pytest.mark.asyncio
    async def test_stale_response_is_dropped(self):
        fetch = Deferred()
        source, set_source = create_signal(1)
        value, _ = create_resource(source, fetch)
        await next_tick()
        set_source(2)
        assert fetch.calls == [(1,), (2,)]

        fetch.resolve("two", index=1)
        await settle()
        assert value() == "two"

        fetch.resolve("one", index=0)
        await settle()
        assert value() == "two"
        assert value.latest == "two"
        assert value.state == "ready"

    @pytest.mark.asyncio
    async def test_stale_failure_is_dropped(self):
        fetch = Deferred()
        source, set_source = create_signal(1)
        value, _ = create_resource(source, fetch)
        await next_tick()
        set_source(2)
        fetch.reject(RuntimeError("late"), index=0)
        await settle()
        assert value.state == "pending"
        fetch.resolve("two")
        await settle()
        assert value.state == "ready"

    @pytest.mark.asyncio
    async def test_refetch_uses_current_source(self):
        fetch = Deferred()
        source, set_source = create_signal("a")
        _, actions = create_resource(source, fetch)
        await next_tick()
        actions.refetch()
        assert fetch.calls == [("a",), ("a",)]

    @pytest.mark.asyncio
    async def test_fetcher_reads_are_not_tracked(self):
        source, _ = create_signal(1)
        other, set_other = create_signal("x")
        calls = []

        def fetch(v):
            calls.append((v, other()))
            return asyncio.sleep(0, result=v)

        create_resource(source, fetch)
        await next_tick()
        set_other("y")
        assert calls == [(1, "x")]


class TestReactivity:
    @pytest.mark.asyncio
    async def test_effects_see_transitions(self):
        fetch = Deferred()
        value, _ = create_resource(fetch)
        states = []
        create_effect(lambda: states.append(value.state))
        await next_tick()
        fetch.resolve(1)
        await settle()
        assert states == ["unresolved", "pending", "ready"]

    @pytest.mark.asyncio
    async def test_dispose_before_tick_skips_fetch(self):
        fetch = Deferred()

        def setup(dispose):
            return create_resource(fetch)[0], dispose

        value, dispose = create_root(setup)
        dispose()
        await settle()
        assert fetch.calls == []
        assert value.state == "unresolved"

    @pytest.mark.asyncio
    async def test_dispose_stops_source_tracking(self):
        fetch = Deferred()
        source, set_source = create_signal(1)

        def setup(dispose):
            create_resource(source, fetch)
            return dispose

        dispose = create_root(setup)
        await next_tick()
        assert fetch.calls == [(1,)]
        dispose()
        set_source(2)
        assert fetch.calls == [(1,)]


class TestSettlement:
    @pytest.mark.asyncio
    async def test_failing_reader_does_not_split_value_and_state(self, caplog):
        fetch = Deferred()
        value, _ = create_resource(fetch)

        def watch():
            if value.state == "ready":
                raise RuntimeError("boom")

        create_effect(watch)
        await next_tick()
        with caplog.at_level(logging.ERROR, logger="msig.resource"):
            fetch.resolve("Foo")
            await settle()
        assert value.state == "ready"
        assert value() == "Foo"
        assert value.latest == "Foo"
        assert value.loading is False
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_refetch_task_carries_reader_failure(self):
        fetch = Deferred()
        value, actions = create_resource(fetch)
        await next_tick()
        fetch.resolve("Foo")
        await settle()

        def watch():
            if value.latest == "Bar":
                raise RuntimeError("boom")

        create_effect(watch)
        task = actions.refetch()
        fetch.resolve("Bar")
        with pytest.raises(RuntimeError, match="boom"):
            await task
        assert value() == "Bar"
        assert value.state == "ready"

    @pytest.mark.asyncio
    async def test_cancelled_fetch_ends_errored(self):
        fetch = Deferred()
        value, _ = create_resource(fetch)
        await next_tick()
        assert value.state == "pending"
        fetch.futures[-1].cancel()
        await settle()
        assert value.state == "errored"
        assert value.loading is False
        assert isinstance(value.error, asyncio.CancelledError)
        assert value() is None


class TestLogging:
    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog):
        fetch = Deferred()
        create_resource(fetch)
        await next_tick()
        with caplog.at_level(logging.DEBUG, logger="msig.resource"):
            fetch.reject(RuntimeError("Whoops!"))
            await settle()
        assert "failed" in caplog.text
        assert "Whoops!" in caplog.text


class TestNextTick:
    @pytest.mark.asyncio
    async def test_calls_fn(self):
        log = []
        await next_tick(lambda: log.append("ran"))
        assert log == ["ran"]

    @pytest.mark.asyncio
    async def test_without_fn(self):
        assert await next_tick() is None
