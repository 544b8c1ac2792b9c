"""Roots: disposable lifetimes for groups of effects.

Every effect is adopted by the scope that is active when it is created.
Outside any root that is GLOBAL_SCOPE, which is never disposed.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from msig._registry import registry
from msig._tracking import Scope, scoped

logger = logging.getLogger("msig.root")

R = TypeVar("R")

Dispose = Callable[[], None]


def _disposer(scope: Scope) -> Dispose:
    def dispose() -> None:
        if scope.disposed:
            return
        scope.disposed = True
        effects = registry.release(scope)
        for effect in effects:
            effect.dispose()
        logger.debug("Disposed %r: released %d effects", scope, len(effects))

    return dispose


def create_root(fn: Callable[[Dispose], R], name: str | None = None) -> R:
    """Run fn under a fresh scope and return its result.

    fn receives dispose, which unsubscribes every effect created under the
    scope. Effects created later by those effects' re-runs belong to the
    same scope. Calling dispose more than once does nothing.

    Usage:
        count, set_count = create_signal(0)
        log = []

        def setup(dispose):
            create_effect(lambda: log.append(count()))
            return dispose

        dispose = create_root(setup)

        set_count(1)    # log == [0, 1]
        dispose()
        set_count(2)    # log == [0, 1]
    """
    scope = Scope(name)
    with scoped(scope):
        return fn(_disposer(scope))
