"""Task runners for off-request work and periodic background jobs."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


@runtime_checkable
class TaskRunner(Protocol):
    def submit(self, name: str, func: Callable[[], object]) -> None: ...

    def shutdown(self, *, wait: bool = True) -> None: ...


class InlineTaskRunner:
    """Run tasks immediately on the caller's thread; failures are logged, not raised."""

    def submit(self, name: str, func: Callable[[], object]) -> None:
        try:
            func()
        except Exception:
            log.exception("Task %s failed", name)

    def shutdown(self, *, wait: bool = True) -> None:
        _ = wait


class ThreadPoolTaskRunner:
    """Bounded worker pool; a failing task is logged and never reaches the submitter."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="review")

    def submit(self, name: str, func: Callable[[], object]) -> None:
        future = self._executor.submit(func)
        future.add_done_callback(lambda done: _log_failure(name, done))

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def _log_failure(name: str, future: Future[object]) -> None:
    exc = future.exception()
    if exc is not None:
        log.error("Task %s failed", name, exc_info=exc)


class PeriodicTask:
    """Run ``func`` every ``interval`` seconds on a daemon thread until stopped.

    ``wake()`` triggers an early run, e.g. right after new outbox rows were written.
    """

    def __init__(self, name: str, func: Callable[[], object], interval: float) -> None:
        self.name = name
        self._func = func
        self._interval = interval
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None
        self.runs = 0

    def start(self) -> None:
        if self._thread is not None:
            log.warning("Periodic task %s already started", self.name)
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None

    def wake(self) -> None:
        self._wake.set()

    def run_once(self) -> None:
        self.runs += 1
        try:
            self._func()
        except Exception:
            log.exception("Periodic task %s failed", self.name)

    def _loop(self) -> None:
        log.info(f"Periodic task {self.name} started (interval={self._interval}s)")
        while not self._stop.is_set():
            self.run_once()
            self._wake.wait(self._interval)
            self._wake.clear()
        log.info(f"Periodic task {self.name} stopped")
