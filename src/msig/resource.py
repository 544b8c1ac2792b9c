"""Resources: async values bound to the signal graph.

A resource wraps a fetcher returning an awaitable. Its value and its
metadata (state, loading, error, latest) live in signals, so effects that
read them re-run on every transition.

    unresolved --tick--> pending --resolve--> ready
                            ^    \\--reject--> errored
                            |                   |
                            +------refetch------+

The first fetch waits one event-loop tick so consumers can be attached
first. With a source accessor, the fetch is driven by an effect that reads
the source: every change to it starts a new fetch.

Each fetch takes a request number. Only the most recent request may settle
the resource; an older response arriving late is dropped.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Generic, Literal, NamedTuple, TypeVar, overload

from msig._tracking import Scope, current_scope, scoped, untrack, untracked
from msig.effect import create_effect
from msig.signal import Accessor, Setter, create_signal

logger = logging.getLogger("msig.resource")

T = TypeVar("T")
U = TypeVar("U")

State = Literal["unresolved", "pending", "ready", "errored"]


@dataclass(frozen=True)
class ResourceInfo(Generic[T]):
    """Metadata snapshot. Replaced wholesale on every transition."""

    state: State = "unresolved"
    loading: bool = False
    error: BaseException | None = None
    latest: T | None = None


class Resource(Generic[T]):
    """Read side of a resource. Call it for the current value."""

    __slots__ = ("_value", "_info")

    def __init__(self, value: Accessor[T | None], info: Accessor[ResourceInfo[T]]) -> None:
        self._value = value
        self._info = info

    def __call__(self) -> T | None:
        return self._value()

    @property
    def state(self) -> State:
        return self._info().state

    @property
    def loading(self) -> bool:
        return self._info().loading

    @property
    def error(self) -> BaseException | None:
        return self._info().error

    @property
    def latest(self) -> T | None:
        return self._info().latest

    def __repr__(self) -> str:
        info = untrack(self._info)
        return f"Resource({info.state}, latest={info.latest!r})"


class ResourceActions(NamedTuple):
    mutate: Callable[[Any], Any]
    refetch: Callable[[], asyncio.Task[Any]]


class _Loader(Generic[T, U]):
    """Write side: runs fetches and settles them into the signals."""

    def __init__(
        self,
        source: Callable[[], U] | None,
        fetcher: Callable[..., Awaitable[T]],
        set_value: Setter[T | None],
        info: Accessor[ResourceInfo[T]],
        set_info: Setter[ResourceInfo[T]],
    ) -> None:
        self._source = source
        self._fetcher = fetcher
        self._set_value = set_value
        self._info = info
        self._set_info = set_info
        self._request = 0
        self._tasks: set[asyncio.Task[T | None]] = set()
        self._loop = asyncio.get_running_loop()

    def _current(self) -> ResourceInfo[T]:
        return untrack(self._info)

    def defer_start(self, scope: Scope) -> None:
        """Create the driving effect under scope after one tick."""

        def start() -> None:
            if scope.disposed:
                logger.debug("Skipping first fetch: %r was disposed", scope)
                return
            with scoped(scope):
                create_effect(self._drive)

        self._loop.call_soon(start, context=contextvars.Context())

    def _drive(self) -> None:
        if self._source is None:
            self.load()
        else:
            self.load(self._source())

    def load(self, *args: Any) -> asyncio.Task[T | None]:
        """Call the fetcher now and settle its result in a task."""
        self._request += 1
        request = self._request
        try:
            with untracked():
                pending = self._fetcher(*args)
        except Exception as err:
            pending = self._loop.create_future()
            pending.set_exception(err)
        logger.debug("Fetch %d started with %r", request, args)
        # A fresh context keeps the tracking context from leaking into the task.
        task = self._loop.create_task(self._settle(request, pending), context=contextvars.Context())
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        self._set_info(replace(self._current(), state="pending", loading=True))
        return task

    def _finished(self, task: asyncio.Task[T | None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.error("Effect failed while settling a fetch", exc_info=err)

    def _publish(self, info: ResourceInfo[T], value: T | None) -> None:
        """Write metadata then value. The value lands even if a reader raises."""
        try:
            self._set_info(info)
        finally:
            self._set_value(value)

    async def _settle(self, request: int, pending: Awaitable[T]) -> T | None:
        try:
            result = await pending
        except (Exception, asyncio.CancelledError) as err:
            if request != self._request:
                logger.debug("Dropping failure of stale fetch %d (latest is %d)", request, self._request)
            else:
                logger.debug("Fetch %d failed: %r", request, err)
                self._publish(replace(self._current(), state="errored", loading=False, error=err), None)
            if isinstance(err, asyncio.CancelledError):
                raise
            return None

        if request != self._request:
            logger.debug("Dropping result of stale fetch %d (latest is %d)", request, self._request)
            return result
        logger.debug("Fetch %d resolved", request)
        self._publish(ResourceInfo(state="ready", loading=False, error=None, latest=result), result)
        return result

    def refetch(self) -> asyncio.Task[T | None]:
        if self._source is None:
            return self.load()
        return self.load(untrack(self._source))

    def mutate(self, value: T | None) -> T | None:
        self._set_info(replace(self._current(), latest=value))
        self._set_value(value)
        return value


@overload
def create_resource(fetcher: Callable[[], Awaitable[T]]) -> tuple[Resource[T], ResourceActions]: ...


@overload
def create_resource(
    source: Callable[[], U], fetcher: Callable[[U], Awaitable[T]]
) -> tuple[Resource[T], ResourceActions]: ...


def create_resource(source_or_fetcher, fetcher=None):
    """Create a resource from fetcher, optionally driven by a source accessor.

    Must be called with a running event loop. Returns (resource, actions):
    actions.mutate(v) overwrites value and latest without touching state,
    actions.refetch() starts a new fetch and returns its task.

    Fetch errors never propagate. They land in resource.error and move the
    resource to "errored".

    Usage:
        user_id, set_user_id = create_signal(1)
        user, actions = create_resource(user_id, fetch_user)

        await next_tick()
        user.state      # "pending"
        ...
        user()          # the fetched user once ready
        set_user_id(2)  # fetch_user(2) starts immediately
    """
    if fetcher is None:
        source, fetcher = None, source_or_fetcher
    else:
        source = source_or_fetcher

    value, set_value = create_signal(None)
    info, set_info = create_signal(ResourceInfo())
    loader = _Loader(source, fetcher, set_value, info, set_info)
    loader.defer_start(current_scope.get())
    return Resource(value, info), ResourceActions(loader.mutate, loader.refetch)


async def next_tick(fn: Callable[[], None] | None = None) -> None:
    """Yield to the event loop once, then call fn if given.

    One tick is enough for a resource's first fetch to start.
    """
    await asyncio.sleep(0)
    if fn is not None:
        fn()
