"""Textual integration for msig. Opt-in: requires textual.

Binds signals to widgets through the external-store contract in
msig.store. The guard, the NoMatches handling and the thread marshal live
here so callsites stay plain.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from msig import store
from msig.effect import create_effect
from msig.root import create_root

logger = logging.getLogger("msig.textual")

# Apps whose bind() and effect() deliveries are on hold, keyed by id(app).
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Hold back bind() and effect() deliveries for app while widgets are replaced.

    Deliveries skipped here are not replayed. bind() hands over the latest
    slice on the next change after the block exits.
    """
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn):
    """Wrap fn so it only runs when app is safe, on the app's thread."""
    main = threading.get_ident()

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches as err:
            logger.debug("Ignoring missing widget: %s", err)

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    return _guarded


def bind(app, accessor, on_change, *, selector=None, equality=store.shallow, fire_immediately=False):
    """Call on_change(selected) when the selected slice of accessor changes.

    selector narrows the signal's value before comparison; equality decides
    whether the new slice differs from the last delivered one. Returns the
    dispose callable.

    Usage:
        dispose = stx.bind(
            app,
            todos,
            lambda n: app.query_one("#count").update(str(n)),
            selector=len,
        )
    """
    select = selector or (lambda value: value)
    last = [select(store.get_snapshot(accessor))]

    def _deliver():
        selected = select(store.get_snapshot(accessor))
        if equality(last[0], selected):
            return
        last[0] = selected
        on_change(selected)

    guarded = _guard(app, _deliver)
    if fire_immediately:
        _guard(app, on_change)(last[0])
    return store.subscribe(accessor, guarded)


def effect(app, fn):
    """create_effect() that safely bridges to Textual widgets.

    The effect gets its own root. Returns the root's dispose. A run that is
    skipped or marshaled to the app thread reads nothing, so prefer bind()
    when the trigger can come from another thread or during pause().
    """
    guarded = _guard(app, fn)

    def setup(dispose):
        create_effect(guarded)
        return dispose

    return create_root(setup)
