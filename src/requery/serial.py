"""SerialQueue — process submitted items one at a time, in order, on a daemon thread.

The worker is started lazily on the first push. A failing item is handed to
on_error and the worker moves on to the next one.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("requery.serial")


def _log_error(item: object, error: BaseException) -> None:
    logger.error("Serial queue item failed", exc_info=error)


class SerialQueue(Generic[T]):
    """Single-worker FIFO channel."""

    def __init__(
        self,
        worker: Callable[[T], None],
        *,
        on_error: Callable[[T, BaseException], None] | None = None,
        name: str = "requery-serial",
    ) -> None:
        self._worker = worker
        self._on_error = on_error or _log_error
        self._name = name
        self._items: deque[T] = deque()
        self._cond = threading.Condition()
        self._busy = False
        self._disposed = False
        self._thread: threading.Thread | None = None
        self._on_drained: Callable[[], None] | None = None

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def busy(self) -> bool:
        """True while an item is being processed."""
        return self._busy

    def push(self, item: T) -> None:
        with self._cond:
            if self._disposed:
                raise RuntimeError("push() on a disposed SerialQueue")
            self._items.append(item)
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._loop, name=self._name, daemon=True
                )
                self._thread.start()
            self._cond.notify_all()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is queued or running. False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._items and not self._busy, timeout=timeout
            )

    def dispose(self, on_drained: Callable[[], None] | None = None) -> None:
        """Stop taking new items; the worker exits once the backlog is done.

        on_drained runs after the last item, on the worker thread (or right
        away when nothing was ever pushed).
        """
        with self._cond:
            if self._disposed:
                return
            self._disposed = True
            self._on_drained = on_drained
            started = self._thread is not None
            self._cond.notify_all()
        if not started and on_drained is not None:
            on_drained()

    def _loop(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._items or self._disposed)
                if not self._items:
                    on_drained = self._on_drained
                    break
                item = self._items.popleft()
                self._busy = True
            try:
                self._worker(item)
            except Exception as exc:
                self._on_error(item, exc)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()
        if on_drained is not None:
            on_drained()
