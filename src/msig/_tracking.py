"""Dependency tracking engine: the heart of msig.

Uses contextvars to hold the tracking context: the effect currently
executing, the scope new effects are adopted by, and whether reads are
tracked at all. Every piece of it is set on entry and reset on exit of a
context manager, so nothing stays installed across an await and each
asyncio task sees its own context.

Writes notify synchronously and depth-first. The nesting depth of that
cascade is bounded by set_max_depth().
"""

from __future__ import annotations

import contextvars
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, TypeVar

from msig._registry import registry
from msig.errors import CascadeDepthError

if TYPE_CHECKING:
    from msig.effect import Effect
    from msig.signal import Cell

R = TypeVar("R")


class Scope:
    """Lifetime token. Effects created while a scope is active belong to it."""

    __slots__ = ("name", "disposed")

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self.disposed = False

    def __repr__(self) -> str:
        label = self.name or hex(id(self))
        state = "disposed" if self.disposed else "active"
        return f"Scope({label}, {state})"


GLOBAL_SCOPE = Scope("global")

# The effect whose run is on the stack. Reads register against it.
current_effect: contextvars.ContextVar[Effect | None] = contextvars.ContextVar(
    "current_effect", default=None
)

# Scope that adopts effects created right now.
current_scope: contextvars.ContextVar[Scope] = contextvars.ContextVar(
    "current_scope", default=GLOBAL_SCOPE
)

tracking_enabled: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "tracking_enabled", default=True
)

# How many triggers are nested on the current stack.
_depth: contextvars.ContextVar[int] = contextvars.ContextVar("cascade_depth", default=0)

# ─── Config ──────────────────────────────────────────────────────────────────
_max_depth: int = 100


def set_max_depth(depth: int) -> None:
    """Bound how deeply writes inside effects may cascade.

    Exceeding the bound raises CascadeDepthError from the offending write.
    """
    global _max_depth
    if depth < 1:
        raise ValueError(f"max depth must be positive, got {depth}")
    _max_depth = depth


def get_max_depth() -> int:
    return _max_depth


if "MSIG_MAX_DEPTH" in os.environ:
    set_max_depth(int(os.environ["MSIG_MAX_DEPTH"]))


# ─── Context windows ─────────────────────────────────────────────────────────


@contextmanager
def running(effect: Effect, scope: Scope) -> Iterator[None]:
    """Install effect as the current effect for the duration of one run."""
    effect_token = current_effect.set(effect)
    scope_token = current_scope.set(scope)
    tracking_token = tracking_enabled.set(True)
    try:
        yield
    finally:
        tracking_enabled.reset(tracking_token)
        current_scope.reset(scope_token)
        current_effect.reset(effect_token)


@contextmanager
def scoped(scope: Scope) -> Iterator[None]:
    """Make scope the adopting scope for effects created inside the block."""
    token = current_scope.set(scope)
    try:
        yield
    finally:
        current_scope.reset(token)


@contextmanager
def untracked() -> Iterator[None]:
    """Reads inside the block register no dependencies.

    Usage:
        def log_total():
            total = count()              # tracked
            with untracked():
                label = name()           # not tracked
            print(label, total)
    """
    token = tracking_enabled.set(False)
    try:
        yield
    finally:
        tracking_enabled.reset(token)


def untrack(fn: Callable[[], R]) -> R:
    """Call fn without registering the dependencies it reads."""
    with untracked():
        return fn()


# ─── Edges ───────────────────────────────────────────────────────────────────


def track(cell: Cell) -> None:
    """Register the executing effect as a listener of cell, if tracking."""
    effect = current_effect.get()
    if effect is not None and tracking_enabled.get():
        registry.subscribe(cell, effect)


def trigger(cell: Cell) -> None:
    """Run every listener of cell, synchronously and in subscription order."""
    effects = registry.listeners_of(cell)
    if not effects:
        return
    depth = _depth.get() + 1
    if depth > _max_depth:
        raise CascadeDepthError(_max_depth)
    token = _depth.set(depth)
    try:
        for effect in effects:
            effect._run()
    finally:
        _depth.reset(token)


def reset() -> None:
    """Forget every edge in the default registry. Useful for testing."""
    registry.clear()
