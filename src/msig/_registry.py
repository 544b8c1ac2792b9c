"""Effect registry: the edges of the reactive graph.

Three relations, all keyed by object identity:

    listeners: cell   -> ordered set of effects that read it
    sources:   effect -> ordered set of cells it read on its last run
    owned:     scope  -> ordered set of effects created under it

Dicts with None values stand in for ordered sets so notification order is
subscription order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from msig.signal import Cell
    from msig.effect import Effect
    from msig._tracking import Scope


class EffectRegistry:
    """Bipartite cell/effect relation plus scope ownership."""

    __slots__ = ("listeners", "sources", "owned")

    def __init__(self) -> None:
        self.listeners: dict[Cell, dict[Effect, None]] = {}
        self.sources: dict[Effect, dict[Cell, None]] = {}
        self.owned: dict[Scope, dict[Effect, None]] = {}

    def adopt(self, scope: Scope, effect: Effect) -> None:
        """Record that effect was created under scope."""
        self.owned.setdefault(scope, {})[effect] = None

    def disown(self, scope: Scope, effect: Effect) -> None:
        effects = self.owned.get(scope)
        if effects is None:
            return
        effects.pop(effect, None)
        if not effects:
            del self.owned[scope]

    def subscribe(self, cell: Cell, effect: Effect) -> None:
        self.listeners.setdefault(cell, {})[effect] = None
        self.sources.setdefault(effect, {})[cell] = None

    def listeners_of(self, cell: Cell) -> list[Effect]:
        """Snapshot of the effects to notify, in subscription order."""
        return list(self.listeners.get(cell, ()))

    def clear_sources(self, effect: Effect) -> None:
        """Drop every cell -> effect edge recorded on the effect's last run."""
        for cell in self.sources.pop(effect, ()):
            effects = self.listeners.get(cell)
            if effects is None:
                continue
            effects.pop(effect, None)
            if not effects:
                del self.listeners[cell]

    def release(self, scope: Scope) -> list[Effect]:
        """Unsubscribe and forget every effect owned by scope.

        Returns the released effects. A second call returns [].
        """
        effects = list(self.owned.pop(scope, ()))
        for effect in effects:
            self.clear_sources(effect)
        return effects

    # --- Introspection ---

    def listener_count(self, cell: Cell) -> int:
        return len(self.listeners.get(cell, ()))

    def source_count(self, effect: Effect) -> int:
        return len(self.sources.get(effect, ()))

    def owned_count(self, scope: Scope) -> int:
        return len(self.owned.get(scope, ()))

    def clear(self) -> None:
        self.listeners.clear()
        self.sources.clear()
        self.owned.clear()


# Process-wide registry. Cells are identity keys, so independent graphs
# never share entries even though they share the registry.
registry = EffectRegistry()
