"""Default fixed-delay scheduler for hosts without one of their own.

Each scheduled task gets its own daemon thread. The next run starts
`interval` seconds after the previous one finished, so runs of the same
task never overlap.
"""
from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a running schedule."""

    def __init__(self, task: Callable[[], None], first_delay: float, interval: float,
                 name: str) -> None:
        self._task = task
        self._first_delay = first_delay
        self._interval = interval
        self._cancel = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        """Stop future runs. A run already in progress finishes normally."""
        self._cancel.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        delay = self._first_delay
        while not self._cancel.wait(delay):
            try:
                self._task()
            except Exception:
                logger.exception("Scheduled task %s failed, stopping schedule", self._thread.name)
                return
            delay = self._interval


class IntervalScheduler:
    """Callable scheduler: ``scheduler(task)`` starts running ``task``.

    Args:
        initial_delay: Seconds before the first run.
        interval: Seconds between the end of one run and the next.
        jitter: Up to this many extra seconds are added to the first delay,
            so hosts started at the same time do not submit in lockstep.
    """

    def __init__(self, initial_delay: float, interval: float, jitter: float = 0.0) -> None:
        if initial_delay < 0 or jitter < 0:
            raise ValueError("initial_delay and jitter must not be negative")
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.initial_delay = initial_delay
        self.interval = interval
        self.jitter = jitter
        self._count = 0

    def __call__(self, task: Callable[[], None]) -> ScheduledTask:
        return self.schedule(task)

    def schedule(self, task: Callable[[], None]) -> ScheduledTask:
        first_delay = self.initial_delay
        if self.jitter:
            first_delay += random.uniform(0, self.jitter)
        self._count += 1
        handle = ScheduledTask(task, first_delay, self.interval,
                               name=f"plugstats-scheduler-{self._count}")
        handle.start()
        logger.debug("Scheduled task, first run in %.1fs then every %.1fs",
                     first_delay, self.interval)
        return handle
