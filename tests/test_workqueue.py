"""Tests for WorkQueue and the queue factories."""

import threading

import pytest

from requery import QueryJob, QueryExecutionError, WorkQueue, process_batch
from requery.workqueue import TASK_FAILED, TASK_FINISH, create_build_queue, create_develop_queue


def job(job_id):
    return QueryJob(job_id, "{ q }", "src/c.js", {})


class TestWorkQueue:
    def test_runs_all_jobs(self):
        queue = WorkQueue(lambda j: j.id.upper(), concurrency=2)
        try:
            assert process_batch(queue, [job("a"), job("b"), job("c")]) == ["A", "B", "C"]
            stats = queue.get_stats()
            assert stats.total == 3
            assert stats.pending == 0
            assert stats.failed == 0
            assert 1 <= stats.peak <= 3
        finally:
            queue.shutdown()

    def test_concurrency_is_bounded(self):
        lock = threading.Lock()
        running = [0]
        seen_max = [0]
        release = threading.Event()

        def handler(j):
            with lock:
                running[0] += 1
                seen_max[0] = max(seen_max[0], running[0])
            release.wait(timeout=0.05)
            with lock:
                running[0] -= 1

        queue = WorkQueue(handler, concurrency=2)
        try:
            process_batch(queue, [job(str(i)) for i in range(6)])
        finally:
            queue.shutdown()
        assert seen_max[0] <= 2

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            WorkQueue(lambda j: None, concurrency=0)

    def test_task_events(self):
        finished, failed = [], []

        def handler(j):
            if j.id == "bad":
                raise RuntimeError("boom")
            return j.id

        queue = WorkQueue(handler, concurrency=1)
        queue.on(TASK_FINISH, lambda outcome: finished.append(outcome.result))
        queue.on(TASK_FAILED, lambda outcome: failed.append(str(outcome.error)))
        try:
            with pytest.raises(QueryExecutionError):
                process_batch(queue, [job("ok"), job("bad")])
        finally:
            queue.shutdown()
        assert finished == ["ok"]
        assert failed == ["boom"]

    def test_retries_before_failing(self):
        attempts = []

        def flaky(j):
            attempts.append(j.id)
            if len(attempts) < 3:
                raise RuntimeError("flaky")
            return "done"

        queue = WorkQueue(flaky, concurrency=1, max_retries=2)
        try:
            assert process_batch(queue, [job("a")]) == ["done"]
        finally:
            queue.shutdown()
        assert attempts == ["a", "a", "a"]

    def test_raising_listener_leaves_task_finished(self):
        seen = []

        def broken(outcome):
            raise RuntimeError("listener broke")

        queue = WorkQueue(lambda j: j.id, concurrency=1)
        queue.on(TASK_FINISH, broken)
        queue.on(TASK_FINISH, lambda outcome: seen.append(outcome.result))
        try:
            assert process_batch(queue, [job("a")]) == ["a"]
        finally:
            queue.shutdown()
        assert queue.get_stats().total == 1
        assert seen == ["a"]

    def test_reset_peak_starts_from_pending(self):
        queue = WorkQueue(lambda j: j.id, concurrency=2)
        try:
            process_batch(queue, [job(str(i)) for i in range(6)])
            assert queue.get_stats().peak >= 1
            queue.reset_peak()
            assert queue.get_stats().peak == 0
            process_batch(queue, [job("x")])
        finally:
            queue.shutdown()
        assert queue.get_stats().peak == 1


class TestProcessBatch:
    def test_empty_batch(self):
        queue = WorkQueue(lambda j: None)
        try:
            assert process_batch(queue, []) == []
        finally:
            queue.shutdown()

    def test_failure_waits_for_whole_batch(self):
        done = []

        def handler(j):
            if j.id == "bad":
                raise ValueError("nope")
            done.append(j.id)

        queue = WorkQueue(handler, concurrency=1)
        try:
            with pytest.raises(QueryExecutionError) as info:
                process_batch(queue, [job("bad"), job("x"), job("y")])
        finally:
            queue.shutdown()
        assert info.value.job_id == "bad"
        assert isinstance(info.value.__cause__, ValueError)
        assert sorted(done) == ["x", "y"]


class TestFactories:
    def test_build_queue_builds_runner_once(self):
        built = []

        def factory(store):
            built.append(store)
            return lambda j: (store, j.id)

        queue = create_build_queue("STORE", factory, concurrency=2)
        try:
            assert process_batch(queue, [job("a"), job("b")]) == [("STORE", "a"), ("STORE", "b")]
        finally:
            queue.shutdown()
        assert built == ["STORE"]

    def test_develop_queue_asks_for_runner_per_job(self):
        runners = iter([lambda j: "first", lambda j: "second"])
        queue = create_develop_queue(lambda: next(runners), concurrency=1)
        try:
            assert process_batch(queue, [job("a")]) == ["first"]
            assert process_batch(queue, [job("b")]) == ["second"]
        finally:
            queue.shutdown()
