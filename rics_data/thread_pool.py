"""Worker threads that run one task on demand or on a fixed interval."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

Task = Callable[[], object]


class TaskThread:
    """Runs a single task in its own thread, queueing at most one run.

    The task is queued once on construction; ``trigger`` queues another run
    unless one is already waiting.
    """

    def __init__(self, task: Task) -> None:
        self._task = task
        self._cond = threading.Condition()
        self._pending = False
        self._running = True
        self._stop = threading.Event()
        self._timer: threading.Thread | None = None
        self._worker = threading.Thread(target=self._run, daemon=True)
        self._worker.start()
        self.trigger()

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending or not self._running)
                if not self._running:
                    return
                self._pending = False
            try:
                self._task()
            except Exception:
                logger.exception("task failed")

    def trigger(self) -> bool:
        """Queue one run of the task; return False if a run is already queued."""
        with self._cond:
            if self._pending or not self._running:
                return False
            self._pending = True
            self._cond.notify()
            return True

    def start_timer(self, interval_ns: int) -> None:
        """Queue a run of the task every ``interval_ns`` nanoseconds."""
        interval = interval_ns / 1e9

        def tick() -> None:
            while not self._stop.wait(interval):
                self.trigger()

        self._timer = threading.Thread(target=tick, daemon=True)
        self._timer.start()

    def finish(self) -> None:
        """Stop the timer and the worker and wait for them to end."""
        with self._cond:
            self._running = False
            self._cond.notify_all()
        self._stop.set()
        current = threading.current_thread()
        for thread in (self._timer, self._worker):
            if thread is not None and thread is not current and thread.is_alive():
                thread.join()


class ThreadPool:
    """A set of task threads stopped together."""

    def __init__(self) -> None:
        self._threads: list[TaskThread] = []

    def add_task(self, task: Task, interval_ns: int = 100_000_000,
                 loop: bool = False) -> TaskThread:
        """Start a thread for ``task``, repeating every ``interval_ns`` if ``loop``."""
        thread = TaskThread(task)
        if loop:
            thread.start_timer(interval_ns)
        self._threads.append(thread)
        return thread

    def finish_all(self) -> None:
        """Stop every thread in the pool."""
        for thread in self._threads:
            thread.finish()

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.finish_all()