"""QueryScheduler — decides which queries are stale and gets them rerun.

Build mode: the caller asks for the initial dirty set, then hands ids to
process_static_queries / process_page_queries, which block until done.

Develop mode: after start_listening(), every "upstream API queue drained"
signal turns whatever changed since the last cycle into one batch of jobs.
Batches go through a serial listener queue, so two cycles never overlap, and
each batch fans out over a bounded develop queue. The query runner used by
that queue is built lazily and thrown away on any structural change to the
graph or schema.

    store = Store()
    scheduler = QueryScheduler(store, make_runner)
    scheduler.start_listening()
    store.create_node({"id": "n1", "internal": {"type": "Post"}})
    store.emitter.emit(API_RUNNING_QUEUE_EMPTY)   # dirty queries rerun
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from requery import events
from requery.batch import Activity, process_queries
from requery.dirty import DirtyTracker
from requery.ids import group_query_ids
from requery.jobs import QueryJob, build_page_query_jobs, build_query_jobs, build_static_query_jobs
from requery.lazy import LazyValue
from requery.serial import SerialQueue
from requery.state import Page, State
from requery.stream import Disposer, Emitter
from requery.workqueue import Runner, RunnerFactory, WorkQueue, create_build_queue, create_develop_queue

logger = logging.getLogger("requery.scheduler")

IDLE = "idle"
LISTENING = "listening"
RUNNING = "running"

BatchErrorHandler = Callable[[list[QueryJob], BaseException], None]


def _log_batch_error(jobs: list[QueryJob], error: BaseException) -> None:
    logger.error("Query batch of %d jobs failed", len(jobs), exc_info=error)


class QueryScheduler:
    """Owns the dirty-tracking buffers and the develop-mode execution pipeline.

    Args:
        store: anything with get_state(), delete_components_dependencies(ids)
            and (unless emitter is given) an `emitter` attribute.
        runner_factory: runner_factory(store) -> callable running one QueryJob.
        emitter: event source; defaults to store.emitter.
        concurrency: jobs in flight per batch.
        max_retries: extra attempts per failing job.
        idle_debounce: seconds of quiet required after an idle signal before a
            develop cycle starts; 0 runs a cycle per signal.
        on_error: on_error(jobs, error) for a failed develop batch.
        activity: progress sink for develop batches.
    """

    def __init__(
        self,
        store: Any,
        runner_factory: RunnerFactory,
        *,
        emitter: Emitter | None = None,
        concurrency: int = 4,
        max_retries: int = 0,
        idle_debounce: float = 0.0,
        on_error: BatchErrorHandler | None = None,
        activity: Activity | None = None,
    ) -> None:
        self.store = store
        self.emitter = emitter if emitter is not None else store.emitter
        self.tracker = DirtyTracker()
        self._runner_factory = runner_factory
        self._concurrency = concurrency
        self._max_retries = max_retries
        self._idle_debounce = idle_debounce
        self._on_error = on_error or _log_batch_error
        self._activity = activity
        self._cycle_lock = threading.Lock()

        self._runner: LazyValue[Runner] | None = None
        self._develop_queue: WorkQueue | None = None
        self._listener_queue: SerialQueue[list[QueryJob]] | None = None

        # Buffering is live from construction on, listening or not.
        self._disposers: list[Disposer] = [
            self.emitter.on(events.DELETE_PAGE, self._on_delete_page),
            self.emitter.on(events.CREATE_NODE, self.tracker.queue_mutation),
            self.emitter.on(events.DELETE_NODE, self.tracker.queue_mutation),
        ]

    @property
    def status(self) -> str:
        if self._listener_queue is None or self._listener_queue.disposed:
            return IDLE
        return RUNNING if self._listener_queue.busy else LISTENING

    @property
    def runner(self) -> LazyValue[Runner] | None:
        """The develop-mode runner handle (None until listening)."""
        return self._runner

    def _state(self, state: State | None) -> State:
        return state if state is not None else self.store.get_state()

    def _on_delete_page(self, payload: dict) -> None:
        self.tracker.forget_page(payload["path"])

    # --- Build mode ---

    def calc_initial_dirty_query_ids(self, state: State | None = None) -> list[str]:
        return self.tracker.calc_initial_dirty_query_ids(self._state(state))

    def process_static_queries(
        self,
        query_ids: Iterable[str],
        state: State | None = None,
        activity: Activity | None = None,
    ) -> list[Any]:
        jobs = build_static_query_jobs(self._state(state), query_ids)
        return self._process_build_jobs(jobs, activity)

    def process_page_queries(
        self,
        query_ids: Iterable[str],
        state: State | None = None,
        activity: Activity | None = None,
    ) -> list[Any]:
        # Ids without a live page (e.g. a page removed mid-build) are dropped.
        jobs = build_page_query_jobs(self._state(state), query_ids)
        return self._process_build_jobs(jobs, activity)

    def _process_build_jobs(
        self, jobs: list[QueryJob], activity: Activity | None
    ) -> list[Any]:
        queue = create_build_queue(
            self.store,
            self._runner_factory,
            concurrency=self._concurrency,
            max_retries=self._max_retries,
        )
        try:
            return process_queries(jobs, queue, activity)
        finally:
            queue.shutdown()

    # --- Develop mode ---

    def start_listening(self) -> None:
        """Start rerunning dirty queries whenever the graph settles."""
        if self._listener_queue is not None:
            logger.debug("Already listening")
            return

        self._runner = LazyValue(lambda: self._runner_factory(self.store))
        self._develop_queue = create_develop_queue(
            self._runner.get,
            concurrency=self._concurrency,
            max_retries=self._max_retries,
        )
        self._listener_queue = SerialQueue(
            self._run_batch, on_error=self._on_error, name="requery-listener"
        )

        if self._idle_debounce > 0:
            idle_events = self.emitter.events(events.API_RUNNING_QUEUE_EMPTY)
            idle_events.debounce(self._idle_debounce).subscribe(
                lambda _event: self.run_queued_queries()
            )
            self._disposers.append(idle_events.dispose)
        else:
            self._disposers.append(
                self.emitter.on(
                    events.API_RUNNING_QUEUE_EMPTY,
                    lambda _payload: self.run_queued_queries(),
                )
            )

        for kind in events.RUNNER_INVALIDATING:
            self._disposers.append(self.emitter.on(kind, self._invalidate_runner))

        logger.info("Listening for dirty queries")

    def _invalidate_runner(self, _payload: Any) -> None:
        if self._runner is not None:
            self._runner.invalidate()

    def _run_batch(self, jobs: list[QueryJob]) -> None:
        process_queries(jobs, self._develop_queue, self._activity)

    def run_queued_queries(self) -> list[QueryJob]:
        """Turn everything dirty right now into one batch on the listener queue.

        Returns the jobs pushed (empty when not listening or nothing is dirty).
        """
        if self._listener_queue is None or self._listener_queue.disposed:
            return []
        with self._cycle_lock:
            state = self.store.get_state()
            grouped = group_query_ids(self.tracker.calc_dirty_query_ids(state))
            jobs = build_query_jobs(state, grouped)
            if jobs:
                logger.debug(
                    "Queueing %d static and %d page queries",
                    len(grouped.static_query_ids),
                    len(grouped.page_query_ids),
                )
                self._listener_queue.push(jobs)
        return jobs

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until no develop batch is queued or running."""
        if self._listener_queue is None:
            return True
        return self._listener_queue.wait_until_idle(timeout)

    # --- Extraction ---

    def enqueue_extracted_query_id(self, query_id: str) -> None:
        self.tracker.enqueue_extracted(query_id)

    def pages_for_component(self, component_path: str) -> list[Page]:
        state = self.store.get_state()
        return [p for p in state.pages.values() if p.component_path == component_path]

    def enqueue_extracted_page_component(self, component_path: str) -> None:
        """A page component's query changed: rerun every page built from it now."""
        pages = self.pages_for_component(component_path)
        # The new query may read different data; its run records fresh edges.
        self.store.delete_components_dependencies([p.path for p in pages])
        for page in pages:
            self.enqueue_extracted_query_id(page.path)
        self.run_queued_queries()

    def dispose(self) -> None:
        """Detach every event listener and wind down the develop pipeline.

        Batches already queued still finish; the develop queue's threads are
        released once the last one is done.
        """
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()
        if self._listener_queue is not None:
            develop_queue = self._develop_queue
            self._listener_queue.dispose(
                on_drained=lambda: develop_queue.shutdown(wait=False)
            )
