"""Batch runner — push a batch of query jobs and report throughput while it drains."""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol, Sequence

from requery.jobs import QueryJob
from requery.stream import Disposer
from requery.workqueue import TASK_FINISH, WorkQueue, process_batch

logger = logging.getLogger("requery.batch")


class Activity(Protocol):
    """Progress sink (a CLI spinner, a TUI footer, ...)."""

    def set_status(self, status: str) -> None: ...


def format_status(total: int, peak: int, elapsed: float) -> str:
    rate = total / elapsed if elapsed > 0 else 0.0
    return f"{total}/{peak} {rate:.2f} queries/second"


def report_stats(queue: WorkQueue, activity: Activity) -> Disposer:
    """Update activity with "<done>/<peak> <rate> queries/second" on every completion.

    Counts start from zero at subscription, so a long-lived queue reports
    the current batch only.
    """
    queue.reset_peak()
    baseline = queue.get_stats().total
    started = time.perf_counter()

    def _on_finish(_outcome: Any) -> None:
        stats = queue.get_stats()
        activity.set_status(
            format_status(
                stats.total - baseline, stats.peak, time.perf_counter() - started
            )
        )

    return queue.on(TASK_FINISH, _on_finish)


def process_queries(
    jobs: Sequence[QueryJob],
    queue: WorkQueue,
    activity: Activity | None = None,
) -> list[Any]:
    """Run jobs on queue and block until the whole batch has drained."""
    unsubscribe = report_stats(queue, activity) if activity is not None else None
    logger.debug("Processing %d queries", len(jobs))
    try:
        return process_batch(queue, jobs)
    finally:
        if unsubscribe is not None:
            unsubscribe()
