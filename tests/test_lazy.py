"""Tests for LazyValue."""

import threading

from requery import LazyValue


class TestLazyValue:
    def test_not_built_until_read(self):
        calls = []
        lazy = LazyValue(lambda: calls.append(1) or "runner")
        assert not lazy.is_set
        assert calls == []
        assert lazy.get() == "runner"
        assert lazy.is_set

    def test_cached_between_reads(self):
        lazy = LazyValue(object)
        assert lazy.get() is lazy.get()
        assert lazy.builds == 1

    def test_invalidate_rebuilds_on_next_read(self):
        lazy = LazyValue(object)
        first = lazy.get()
        lazy.invalidate()
        assert not lazy.is_set
        assert lazy.get() is not first
        assert lazy.builds == 2

    def test_invalidate_when_absent_is_noop(self):
        lazy = LazyValue(object)
        lazy.invalidate()
        assert lazy.builds == 0

    def test_concurrent_reads_build_once(self):
        lazy = LazyValue(object)
        barrier = threading.Barrier(8)
        results = []

        def read():
            barrier.wait()
            results.append(lazy.get())

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert lazy.builds == 1
        assert len({id(r) for r in results}) == 1

    def test_repr(self):
        lazy = LazyValue(lambda: 7)
        assert repr(lazy) == "LazyValue(absent)"
        lazy.get()
        assert repr(lazy) == "LazyValue(value=7)"
