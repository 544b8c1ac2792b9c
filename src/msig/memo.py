"""Memos: read-only signals derived from other signals.

A memo is an output signal kept up to date by an internal effect. Unlike a
lazy computed value it recomputes eagerly, as soon as a dependency changes.
The output signal's change detection means a recomputation that produces
the same value does not wake the memo's own readers.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from msig.effect import _UNSET, create_effect
from msig.signal import Accessor, Equals, create_signal

T = TypeVar("T")


def create_memo(fn: Callable[..., T], value: Any = _UNSET, *, equals: Equals = None) -> Accessor[T]:
    """Derive a signal from fn. Returns only the accessor.

    Without value, fn is called with no arguments. With value, fn receives
    the previous result (value on the first run).

    Usage:
        a, set_a = create_signal(10)
        b, set_b = create_signal(10)

        product = create_memo(lambda: a() * b())
        product()       # 100
        set_a(5)
        product()       # 50
    """
    out, set_out = create_signal(None if value is _UNSET else value, equals=equals)

    if value is _UNSET:

        def recompute() -> None:
            set_out(fn())

        create_effect(recompute)
    else:

        def accumulate(prev: T) -> T:
            result = fn(prev)
            set_out(result)
            return result

        create_effect(accumulate, value)

    return out
