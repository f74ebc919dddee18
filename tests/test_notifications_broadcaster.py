"""Tests for change broadcasting."""

import threading
import time

import pytest

from src.notifications import Broadcaster, Observer


@pytest.fixture
def broadcaster():
    b = Broadcaster()
    yield b
    b.close()


class Counter:
    """Observer that counts change signals."""

    def __init__(self):
        self.count = 0

    def on_changed(self):
        self.count += 1


class TestSubscribe:
    """Subscription lifecycle."""

    def test_observer_protocol(self):
        assert isinstance(Counter(), Observer)

    def test_callable_observer(self, broadcaster):
        calls = []
        broadcaster.subscribe(lambda: calls.append(1))
        broadcaster.notify()
        assert broadcaster.flush()
        assert calls == [1]

    def test_non_callable_rejected(self, broadcaster):
        with pytest.raises(TypeError):
            broadcaster.subscribe(42)

    def test_unsubscribe_stops_signals(self, broadcaster):
        counter = Counter()
        unsubscribe = broadcaster.subscribe(counter)
        broadcaster.notify()
        broadcaster.flush()
        unsubscribe()
        unsubscribe()
        broadcaster.notify()
        broadcaster.flush()
        assert counter.count == 1
        assert broadcaster.observer_count == 0


class TestNotify:
    """Signal delivery."""

    def test_every_observer_sees_every_signal(self, broadcaster):
        counters = [Counter() for _ in range(3)]
        for c in counters:
            broadcaster.subscribe(c)
        for _ in range(5):
            broadcaster.notify()
        assert broadcaster.flush()
        assert [c.count for c in counters] == [5, 5, 5]
        assert broadcaster.notify_count == 5

    def test_signals_delivered_in_order(self, broadcaster):
        seen = []
        state = {"version": 0}

        def observer():
            seen.append(state["version"])

        broadcaster.subscribe(observer)
        for version in range(1, 4):
            state["version"] = version
            broadcaster.notify()
            broadcaster.flush()
        assert seen == [1, 2, 3]

    def test_slow_observer_does_not_block_notify(self, broadcaster):
        release = threading.Event()
        broadcaster.subscribe(lambda: release.wait(2.0))
        fast = Counter()
        broadcaster.subscribe(fast)

        started = time.monotonic()
        broadcaster.notify()
        broadcaster.notify()
        assert time.monotonic() - started < 0.5

        release.set()
        assert broadcaster.flush()
        assert fast.count == 2

    def test_failing_observer_is_isolated(self, broadcaster):
        def boom():
            raise RuntimeError("observer crashed")

        broadcaster.subscribe(boom)
        counter = Counter()
        broadcaster.subscribe(counter)
        broadcaster.notify()
        broadcaster.notify()
        assert broadcaster.flush()
        assert counter.count == 2

    def test_notify_after_close_is_ignored(self):
        b = Broadcaster()
        counter = Counter()
        b.subscribe(counter)
        b.close()
        b.notify()
        assert b.notify_count == 0
        assert counter.count == 0
