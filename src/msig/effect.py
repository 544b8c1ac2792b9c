"""Effects: side effects re-run when the signals they read change.

An effect runs once as soon as it is created, recording every signal read
during the run. A write to any of those signals re-runs it. Before each
re-run the previous run's dependencies are dropped, so a branch that stops
reading a signal also stops listening to it.

With an initial accumulator, fn receives the value it returned last time:

    create_effect(lambda total: total + count(), 0)
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from msig._registry import registry
from msig._tracking import Scope, current_scope, running

T = TypeVar("T")

_UNSET: Any = object()


class Effect:
    """A tracked computation owned by a scope."""

    __slots__ = ("_fn", "_value", "_scope", "_disposed")

    def __init__(self, fn: Callable[..., Any], value: Any = _UNSET, scope: Scope | None = None) -> None:
        self._fn = fn
        self._value = value
        self._scope = scope if scope is not None else current_scope.get()
        # An effect born under a disposed scope never runs or subscribes.
        self._disposed = self._scope.disposed
        if not self._disposed:
            registry.adopt(self._scope, self)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _run(self) -> None:
        """Re-evaluate the function, re-tracking dependencies."""
        if self._disposed:
            return

        registry.clear_sources(self)

        with running(self, self._scope):
            if self._value is _UNSET:
                self._fn()
            else:
                self._value = self._fn(self._value)

    def dispose(self) -> None:
        """Stop this effect. Disconnects from all dependencies."""
        self._disposed = True
        registry.clear_sources(self)
        registry.disown(self._scope, self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        name = getattr(self._fn, "__name__", repr(self._fn))
        return f"Effect({name}, {state})"


def create_effect(fn: Callable[..., Any], value: Any = _UNSET) -> None:
    """Run fn now, then again whenever a signal it read changes.

    Without value, fn is called with no arguments. With value, fn is called
    with the accumulator and its return value becomes the next accumulator.

    The effect belongs to the active root. Dispose the root to stop it.

    Usage:
        count, set_count = create_signal(0)
        log = []

        create_effect(lambda: log.append(count()))
        # log == [0]

        set_count(1)
        # log == [0, 1]
    """
    Effect(fn, value)._run()
