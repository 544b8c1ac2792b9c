"""Signals: state cells that track their readers.

create_signal() returns an accessor/setter pair sharing one Cell. Calling
the accessor inside an effect registers the effect as a listener of the
cell. Writing a value that differs from the current one runs every listener
before the write returns.

There is no guessing whether a write argument is a value or an updater:
setter(value) always stores value, setter.update(fn) always calls fn.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar, Union

from msig._tracking import track, trigger

T = TypeVar("T")

Equals = Union[Callable[[Any, Any], bool], bool, None]

_SCALARS = (int, float, complex, str, bytes, bool, type(None))


def strict_equal(a: object, b: object) -> bool:
    """Identity, or equal scalars of the same type.

    Containers and arbitrary objects are only equal to themselves, so a new
    list with the same items still counts as a change. NaN is unequal even
    to itself.
    """
    if isinstance(a, float) and a != a:
        return False
    if a is b:
        return True
    return type(a) is type(b) and isinstance(a, _SCALARS) and a == b


class Cell(Generic[T]):
    """Identity-compared holder of a signal's value."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Cell({self.value!r})"


class Accessor(Generic[T]):
    """Read half of a signal. Call it to get the value."""

    __slots__ = ("_cell",)

    def __init__(self, cell: Cell[T]) -> None:
        self._cell = cell

    def __call__(self) -> T:
        track(self._cell)
        return self._cell.value

    def __repr__(self) -> str:
        return f"Accessor({self._cell.value!r})"


class Setter(Generic[T]):
    """Write half of a signal."""

    __slots__ = ("_cell", "_equals")

    def __init__(self, cell: Cell[T], equals: Equals = None) -> None:
        self._cell = cell
        self._equals = equals

    def __call__(self, value: T) -> T:
        return self.set(value)

    def set(self, value: T) -> T:
        """Store value as-is. Returns the value held afterwards."""
        cell = self._cell
        if self._unchanged(cell.value, value):
            return cell.value
        cell.value = value
        trigger(cell)
        return value

    def update(self, fn: Callable[[T], T]) -> T:
        """Store fn(current value). Returns the value held afterwards."""
        return self.set(fn(self._cell.value))

    def _unchanged(self, old: T, new: T) -> bool:
        if self._equals is False:
            return False
        if self._equals is None or self._equals is True:
            return strict_equal(old, new)
        return bool(self._equals(old, new))

    def __repr__(self) -> str:
        return f"Setter({self._cell.value!r})"


def create_signal(value: T, *, equals: Equals = None) -> tuple[Accessor[T], Setter[T]]:
    """Create a signal holding value.

    equals=False makes every write notify; a callable equals(old, new)
    replaces the default strict comparison.

    Usage:
        count, set_count = create_signal(0)
        count()                          # 0
        set_count(5)
        set_count.update(lambda n: n + 1)
        count()                          # 6
    """
    cell = Cell(value)
    return Accessor(cell), Setter(cell, equals)
