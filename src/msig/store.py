"""External-store view of a signal.

UI frameworks that render from an external store want two things: a way to
subscribe to changes and a way to read the current snapshot. Any accessor
can provide both:

    dispose = subscribe(count, rerender)
    get_snapshot(count)

shallow() is the comparator used to skip redundant re-renders.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, TypeVar

from msig._tracking import untrack
from msig.effect import create_effect
from msig.root import Dispose, create_root
from msig.signal import strict_equal

T = TypeVar("T")


def subscribe(accessor: Callable[[], Any], callback: Callable[[], None]) -> Dispose:
    """Call callback after every change of accessor's value.

    The listening effect lives in its own root. The returned dispose stops it.
    callback runs untracked, so what it reads does not widen the subscription.
    """

    def setup(dispose: Dispose) -> Dispose:
        first = True

        def listen() -> None:
            nonlocal first
            accessor()
            if first:
                first = False
                return
            untrack(callback)

        create_effect(listen)
        return dispose

    return create_root(setup)


def get_snapshot(accessor: Callable[[], T]) -> T:
    """Current value, read without subscribing."""
    return untrack(accessor)


def _fields(value: object) -> dict | None:
    if value is None or isinstance(value, (str, bytes, int, float, complex)):
        return None
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return dict(enumerate(value))
    if hasattr(value, "__dict__"):
        return vars(value)
    return None


def shallow(a: object, b: object) -> bool:
    """True if a and b are strictly equal or have pairwise identical fields.

    Mappings compare by key, lists and tuples by index, plain objects by
    their instance attributes. Both sides must be the same type. Field
    values compare with strict_equal, never recursively.
    """
    if strict_equal(a, b):
        return True
    if type(a) is not type(b):
        return False
    left, right = _fields(a), _fields(b)
    if left is None or right is None:
        return False
    if left.keys() != right.keys():
        return False
    return all(strict_equal(value, right[key]) for key, value in left.items())
