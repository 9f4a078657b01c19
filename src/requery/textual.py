"""Textual integration for requery. Opt-in — requires textual.

StatusActivity is a progress sink that writes batch throughput into a Textual
widget. Query jobs finish on worker threads, so updates are marshaled onto
the app thread; a widget that is not mounted yet is silently skipped.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Keyed by id(app) so several apps can coexist in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Hold back status updates while the widget tree is being rebuilt."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class StatusActivity:
    """Progress sink: set_status(text) updates app.query_one(selector)."""

    def __init__(self, app, selector: str) -> None:
        self.app = app
        self.selector = selector
        self._ui_thread = threading.get_ident()

    def set_status(self, status: str) -> None:
        if not is_safe(self.app):
            return
        if threading.get_ident() != self._ui_thread:
            self.app.call_from_thread(self._update, status)
        else:
            self._update(status)

    def _update(self, status: str) -> None:
        try:
            self.app.query_one(self.selector).update(status)
        except NoMatches:
            pass
