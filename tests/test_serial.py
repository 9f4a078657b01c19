"""Tests for SerialQueue — one item at a time, in order."""

import logging
import threading
import time

import pytest

from requery import SerialQueue


class TestOrdering:
    def test_items_run_in_submission_order(self):
        seen = []
        queue = SerialQueue(seen.append)
        for i in range(20):
            queue.push(i)
        assert queue.wait_until_idle(timeout=2)
        assert seen == list(range(20))

    def test_never_overlaps(self):
        lock = threading.Lock()
        active = [0]
        overlaps = []

        def work(item):
            with lock:
                active[0] += 1
                if active[0] > 1:
                    overlaps.append(item)
            time.sleep(0.01)
            with lock:
                active[0] -= 1

        queue = SerialQueue(work)
        for i in range(5):
            queue.push(i)
        assert queue.wait_until_idle(timeout=2)
        assert overlaps == []


class TestErrors:
    def test_failure_goes_to_on_error_and_queue_continues(self):
        errors, seen = [], []

        def work(item):
            if item == "bad":
                raise RuntimeError("boom")
            seen.append(item)

        queue = SerialQueue(work, on_error=lambda item, err: errors.append((item, str(err))))
        queue.push("bad")
        queue.push("good")
        assert queue.wait_until_idle(timeout=2)
        assert errors == [("bad", "boom")]
        assert seen == ["good"]

    def test_default_on_error_logs(self, caplog):
        def work(item):
            raise ValueError("kaput")

        queue = SerialQueue(work)
        with caplog.at_level(logging.ERROR, logger="requery.serial"):
            queue.push(1)
            assert queue.wait_until_idle(timeout=2)
        assert "Serial queue item failed" in caplog.text


class TestLifecycle:
    def test_idle_before_first_push(self):
        queue = SerialQueue(lambda item: None)
        assert queue.wait_until_idle(timeout=0.1)
        assert not queue.busy

    def test_push_after_dispose_raises(self):
        queue = SerialQueue(lambda item: None)
        queue.dispose()
        assert queue.disposed
        with pytest.raises(RuntimeError):
            queue.push(1)

    def test_dispose_finishes_backlog(self):
        seen = []
        started = threading.Event()
        release = threading.Event()

        def work(item):
            started.set()
            release.wait(timeout=2)
            seen.append(item)

        queue = SerialQueue(work)
        queue.push(1)
        queue.push(2)
        started.wait(timeout=2)
        queue.dispose()
        release.set()
        assert queue.wait_until_idle(timeout=2)
        assert seen == [1, 2]

    def test_on_drained_runs_after_backlog(self):
        seen = []
        drained = threading.Event()
        release = threading.Event()

        def work(item):
            release.wait(timeout=2)
            seen.append(item)

        queue = SerialQueue(work)
        queue.push(1)
        queue.push(2)
        queue.dispose(on_drained=lambda: (seen.append("drained"), drained.set()))
        release.set()
        assert drained.wait(timeout=2)
        assert seen == [1, 2, "drained"]

    def test_on_drained_runs_at_once_when_never_started(self):
        calls = []
        queue = SerialQueue(lambda item: None)
        queue.dispose(on_drained=lambda: calls.append(1))
        assert calls == [1]
        queue.dispose(on_drained=lambda: calls.append(2))
        assert calls == [1]
