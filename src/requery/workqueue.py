"""Work queue — bounded-concurrency execution of query jobs.

A WorkQueue runs each pushed job through a handler on a thread pool, retries
failures up to max_retries, and announces every outcome on its event stream
("task_finish" / "task_failed"). Listeners run on the worker thread that
finished the task.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, NamedTuple

from requery.errors import QueryExecutionError
from requery.jobs import QueryJob
from requery.stream import Disposer, Emitter

logger = logging.getLogger("requery.workqueue")

TASK_FINISH = "task_finish"
TASK_FAILED = "task_failed"

Runner = Callable[[QueryJob], Any]
RunnerFactory = Callable[[Any], Runner]


class QueueStats(NamedTuple):
    total: int
    """Tasks finished successfully."""
    peak: int
    """Highest number of tasks pending at once."""
    pending: int
    failed: int


class TaskOutcome(NamedTuple):
    job: QueryJob
    result: Any = None
    error: BaseException | None = None


class WorkQueue:
    """Run jobs through handler with at most `concurrency` in flight."""

    def __init__(
        self,
        handler: Runner,
        *,
        concurrency: int = 4,
        max_retries: int = 0,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._handler = handler
        self._max_retries = max_retries
        self._executor = ThreadPoolExecutor(
            max_workers=concurrency, thread_name_prefix="requery-query"
        )
        self._events = Emitter()
        self._lock = threading.Lock()
        self._total = 0
        self._failed = 0
        self._pending = 0
        self._peak = 0
        self._closed = False

    def on(self, kind: str, callback: Callable[[TaskOutcome], None]) -> Disposer:
        """Listen for task outcomes. A failing listener is logged, never the task's failure."""

        def _guarded(outcome: TaskOutcome) -> None:
            try:
                callback(outcome)
            except Exception:
                logger.exception("Listener for %s failed on %s", kind, outcome.job.id)

        return self._events.on(kind, _guarded)

    def get_stats(self) -> QueueStats:
        with self._lock:
            return QueueStats(self._total, self._peak, self._pending, self._failed)

    def reset_peak(self) -> None:
        """Restart peak tracking from the current pending count."""
        with self._lock:
            self._peak = self._pending

    def push(self, job: QueryJob) -> Future:
        with self._lock:
            self._pending += 1
            self._peak = max(self._peak, self._pending)
        return self._executor.submit(self._run, job)

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)
        self._events.dispose()

    def _run(self, job: QueryJob) -> Any:
        attempt = 0
        while True:
            try:
                result = self._handler(job)
            except Exception as exc:
                if attempt < self._max_retries:
                    attempt += 1
                    logger.debug("Retrying %s (attempt %d): %s", job.id, attempt, exc)
                    continue
                with self._lock:
                    self._pending -= 1
                    self._failed += 1
                self._events.emit(TASK_FAILED, TaskOutcome(job, error=exc))
                raise
            with self._lock:
                self._pending -= 1
                self._total += 1
            self._events.emit(TASK_FINISH, TaskOutcome(job, result=result))
            return result


def create_build_queue(
    store: Any,
    runner_factory: RunnerFactory,
    *,
    concurrency: int = 4,
    max_retries: int = 0,
) -> WorkQueue:
    """A queue with its own runner, built once from the store."""
    runner = runner_factory(store)
    return WorkQueue(runner, concurrency=concurrency, max_retries=max_retries)


def create_develop_queue(
    get_runner: Callable[[], Runner],
    *,
    concurrency: int = 4,
    max_retries: int = 0,
) -> WorkQueue:
    """A long-lived queue that asks get_runner() for the current runner per job."""
    return WorkQueue(
        lambda job: get_runner()(job),
        concurrency=concurrency,
        max_retries=max_retries,
    )


def process_batch(queue: WorkQueue, jobs: Iterable[QueryJob]) -> list[Any]:
    """Run every job, wait for all of them, then raise the first failure.

    Returns results in submission order.
    """
    submitted = [(job, queue.push(job)) for job in jobs]
    if not submitted:
        return []
    wait([future for _, future in submitted])

    results = []
    for job, future in submitted:
        error = future.exception()
        if error is not None:
            raise QueryExecutionError(job.id) from error
        results.append(future.result())
    return results
