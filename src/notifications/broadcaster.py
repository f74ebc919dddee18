"""Pub/sub "the feed changed" broadcaster.

Observers receive no payload; they re-query the store or the statistics
aggregator when signalled. Each observer is served by its own worker
thread through a FIFO queue so that a slow observer cannot stall writers
and every observer sees signals in mutation order.
"""

import logging
import queue
import threading
import time
import uuid
from typing import Callable, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

_STOP = object()


@runtime_checkable
class Observer(Protocol):
    """Anything interested in feed changes."""

    def on_changed(self) -> None:
        ...


ObserverLike = Union[Observer, Callable[[], None]]


class _ObserverWorker:
    """Drains one observer's signal queue on a daemon thread."""

    def __init__(self, observer: ObserverLike, name: str) -> None:
        self.observer = observer
        self.signals_handled = 0
        self.signals_failed = 0
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread = threading.Thread(target=self._run, daemon=True, name=name)
        self._thread.start()

    def signal(self) -> None:
        self._queue.put(None)

    def stop(self) -> None:
        self._queue.put(_STOP)

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout=timeout)

    @property
    def pending(self) -> int:
        return self._queue.unfinished_tasks

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._invoke()
            finally:
                self._queue.task_done()

    def _invoke(self) -> None:
        try:
            if isinstance(self.observer, Observer):
                self.observer.on_changed()
            else:
                self.observer()
            self.signals_handled += 1
        except Exception:
            self.signals_failed += 1
            logger.exception("Observer %r failed handling change signal", self.observer)


class Broadcaster:
    """Fan-out of change signals to any number of observers.

    Example:
        broadcaster = Broadcaster()
        unsubscribe = broadcaster.subscribe(lambda: print("changed"))
        broadcaster.notify()
        broadcaster.flush()
        unsubscribe()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._workers: dict[str, _ObserverWorker] = {}
        self._notify_count = 0
        self._closed = False

    @property
    def notify_count(self) -> int:
        """Number of notify() calls issued so far."""
        return self._notify_count

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._workers)

    def subscribe(self, observer: ObserverLike) -> Callable[[], None]:
        """Register an observer.

        Args:
            observer: Object with ``on_changed()`` or a zero-arg callable.

        Returns:
            Function that removes the subscription (idempotent).
        """
        if not isinstance(observer, Observer) and not callable(observer):
            raise TypeError("observer must define on_changed() or be callable")

        subscription_id = uuid.uuid4().hex[:16]
        worker = _ObserverWorker(observer, name=f"observer-{subscription_id[:8]}")
        with self._lock:
            self._workers[subscription_id] = worker
        logger.debug("Observer subscribed: %s", subscription_id)

        def unsubscribe() -> None:
            with self._lock:
                removed = self._workers.pop(subscription_id, None)
            if removed is not None:
                removed.stop()
                logger.debug("Observer unsubscribed: %s", subscription_id)

        return unsubscribe

    def notify(self) -> None:
        """Signal every observer that the feed changed. Never blocks."""
        with self._lock:
            if self._closed:
                return
            self._notify_count += 1
            workers = list(self._workers.values())
        for worker in workers:
            worker.signal()

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until every queued signal has been handled.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            True if all observers drained in time.
        """
        deadline = time.monotonic() + timeout
        with self._lock:
            workers = list(self._workers.values())
        for worker in workers:
            while worker.pending:
                if time.monotonic() >= deadline:
                    return False
                time.sleep(0.005)
        return True

    def close(self, timeout: float = 1.0) -> None:
        """Stop all observer workers; later notify() calls are ignored."""
        with self._lock:
            self._closed = True
            workers = list(self._workers.values())
            self._workers.clear()
        for worker in workers:
            worker.stop()
        for worker in workers:
            worker.join(timeout=timeout)
