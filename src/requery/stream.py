"""Event transport — a push-based stream plus a named-event emitter.

EventStream carries plain values to subscribers and composes with
filter/debounce. Emitter multiplexes named event kinds (CREATE_NODE,
API_RUNNING_QUEUE_EMPTY, ...) over a single stream so independent concerns
can register their own listeners on one transport.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, NamedTuple, TypeVar

T = TypeVar("T")

Disposer = Callable[[], None]


class EventStream(Generic[T]):
    """Push-based event stream with operator chaining."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []
        self._children: list[EventStream] = []
        self._disposed = False
        self._parent_disposer: Disposer | None = None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def emit(self, value: T) -> None:
        """Deliver value to every subscriber, in subscription order."""
        if self._disposed:
            return
        # Snapshot: a callback may unsubscribe itself while we iterate.
        for cb in list(self._subscribers):
            cb(value)

    def subscribe(self, callback: Callable[[T], None]) -> Disposer:
        """Register a callback. Returns a function that removes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def filter(self, predicate: Callable[[T], bool]) -> EventStream[T]:
        """Only pass values for which predicate returns True."""
        child: EventStream[T] = self._spawn()
        self.subscribe(lambda v: child.emit(v) if predicate(v) else None)
        return child

    def debounce(self, seconds: float) -> EventStream[T]:
        """Emit only the last value of a burst, after `seconds` of quiet.

        Timers are daemon threads; the downstream emit happens on the
        timer thread.
        """
        child: EventStream[T] = self._spawn()
        lock = threading.Lock()
        pending: list[threading.Timer] = []

        def _on_value(value: T) -> None:
            with lock:
                for timer in pending:
                    timer.cancel()
                pending.clear()
                timer = threading.Timer(seconds, child.emit, args=[value])
                timer.daemon = True
                pending.append(timer)
                timer.start()

        self.subscribe(_on_value)
        return child

    def dispose(self) -> None:
        """Tear down this stream and everything derived from it."""
        self._disposed = True
        self._subscribers.clear()
        for child in list(self._children):
            child.dispose()
        self._children.clear()
        if self._parent_disposer is not None:
            self._parent_disposer()
            self._parent_disposer = None

    def _spawn(self) -> EventStream:
        child: EventStream = EventStream()
        self._children.append(child)

        def _detach() -> None:
            if child in self._children:
                self._children.remove(child)

        child._parent_disposer = _detach
        return child


class Event(NamedTuple):
    kind: str
    payload: Any = None


class Emitter:
    """Named events over one EventStream.

    Usage:
        emitter = Emitter()
        off = emitter.on("DELETE_PAGE", lambda payload: print(payload["path"]))
        emitter.emit("DELETE_PAGE", {"path": "/about/"})
        off()
    """

    def __init__(self) -> None:
        self._stream: EventStream[Event] = EventStream()

    @property
    def stream(self) -> EventStream[Event]:
        return self._stream

    def emit(self, kind: str, payload: Any = None) -> None:
        self._stream.emit(Event(kind, payload))

    def on(self, kind: str, handler: Callable[[Any], None]) -> Disposer:
        """Call handler(payload) for every event of the given kind."""
        return self._stream.subscribe(
            lambda event: handler(event.payload) if event.kind == kind else None
        )

    def events(self, *kinds: str) -> EventStream[Event]:
        """A derived stream carrying only events of the given kinds."""
        wanted = frozenset(kinds)
        return self._stream.filter(lambda event: event.kind in wanted)

    def dispose(self) -> None:
        self._stream.dispose()
