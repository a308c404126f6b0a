"""Deferred callback scheduling.

The cache only needs one capability from a scheduler: run a zero-argument
callback once, no earlier than a delay from now, and hand back a cancel
handle. :class:`DefaultScheduler` provides it on top of a thread pool, with a
single dispatcher thread keeping pending callbacks in a heap ordered by due
time. :class:`NullScheduler` accepts callbacks and never runs them.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

Callback = Callable[[], None]
CancelHandle = Callable[[], None]

# Compact the heap once this many cancelled tasks are sitting in it.
_COMPACT_THRESHOLD = 256


@runtime_checkable
class Scheduler(Protocol):
    """Capability for running a callback once after a delay."""

    def run_once_after(self, func: Callback, delay_ms: float) -> CancelHandle:
        """Schedule ``func`` and return a handle that prevents it from firing.

        The handle is idempotent and calling it after ``func`` has fired is a
        no-op.
        """
        ...


def _noop() -> None:
    return None


class NullScheduler:
    """Scheduler that never fires anything."""

    def run_once_after(self, func: Callback, delay_ms: float) -> CancelHandle:
        return _noop


class _Task:
    """A pending callback plus its cancellation state."""

    __slots__ = ("func", "_lock", "cancelled", "started", "future", "_on_cancel")

    def __init__(self, func: Callback, on_cancel: Callable[[], None]) -> None:
        self.func = func
        self._lock = threading.Lock()
        self.cancelled = False
        self.started = False
        self.future: Optional[Future] = None
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        with self._lock:
            if self.cancelled or self.started:
                return
            self.cancelled = True
            future = self.future
        if future is not None:
            future.cancel()
        else:
            self._on_cancel()

    def fire(self) -> None:
        with self._lock:
            if self.cancelled:
                return
            self.started = True
        try:
            self.func()
        except Exception:  # pylint: disable=broad-except
            logger.exception(
                "scheduler.callback_failed",
                extra={"callback": getattr(self.func, "__qualname__", repr(self.func))},
            )


class DefaultScheduler:  # pylint: disable=too-many-instance-attributes
    """Thread-pool backed scheduler.

    Parameters
    ----------
    max_workers : int
        Number of worker threads running due callbacks. Defaults to 10.
    clock : callable, optional
        Monotonic time source in seconds; defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        max_workers: int = 10,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._clock = clock or time.monotonic
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="onecache-scheduler"
        )
        self._cond = threading.Condition()
        self._queue: List[Tuple[float, int, _Task]] = []
        self._seq = itertools.count()
        self._cancelled_pending = 0
        self._shutdown = False
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop,
            name="onecache-scheduler-dispatch",
            daemon=True,
        )
        self._dispatcher.start()
        logger.debug("scheduler.started", extra={"max_workers": max_workers})

    def run_once_after(self, func: Callback, delay_ms: float) -> CancelHandle:
        """Run ``func`` once on a worker thread after ``delay_ms`` milliseconds.

        Raises
        ------
        ValueError
            If ``delay_ms`` is negative or not finite.
        RuntimeError
            If the scheduler has been shut down.
        """
        if not math.isfinite(delay_ms) or delay_ms < 0:
            raise ValueError(
                f"delay_ms must be a finite number >= 0, got {delay_ms}"
            )
        task = _Task(func, self._note_cancelled)
        due = self._clock() + delay_ms / 1000.0
        with self._cond:
            if self._shutdown:
                raise RuntimeError("Scheduler has been shut down")
            heapq.heappush(self._queue, (due, next(self._seq), task))
            self._cond.notify()
        return task.cancel

    def pending(self) -> int:
        """Number of callbacks waiting in the heap, cancelled ones excluded."""
        with self._cond:
            return sum(1 for _, _, task in self._queue if not task.cancelled)

    def shutdown(self, wait: bool = True) -> None:
        """Stop dispatching, drop pending callbacks, and stop the worker pool."""
        with self._cond:
            if self._shutdown:
                return
            self._shutdown = True
            dropped = len(self._queue)
            self._queue.clear()
            self._cond.notify_all()
        if threading.current_thread() is not self._dispatcher:
            self._dispatcher.join()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("scheduler.shutdown", extra={"dropped": dropped})

    def _note_cancelled(self) -> None:
        with self._cond:
            self._cancelled_pending += 1
            if self._cancelled_pending >= _COMPACT_THRESHOLD:
                self._queue = [item for item in self._queue if not item[2].cancelled]
                heapq.heapify(self._queue)
                self._cancelled_pending = 0

    def _dispatch_loop(self) -> None:
        with self._cond:
            while not self._shutdown:
                if not self._queue:
                    self._cond.wait()
                    continue
                due, _, task = self._queue[0]
                delay = due - self._clock()
                if delay > 0:
                    self._cond.wait(delay)
                    continue
                heapq.heappop(self._queue)
                if task.cancelled:
                    continue
                task.future = self._executor.submit(task.fire)
