"""
Cancellable repeating tasks for sustained ("shake") triggers.

Live sessions use ``ThreadScheduler``: each task runs on its own daemon
thread and waits on a stop event between runs, so ``cancel()`` takes effect
immediately instead of after the next interval. Replays use
``ReplayScheduler``, which fires due repeats as recorded time advances.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTask:
    """Calls ``callback()`` every ``interval`` seconds until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "repeating-task"):
        self.interval = interval
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> 'RepeatingTask':
        self._thread.start()
        return self

    @property
    def active(self) -> bool:
        return not self._stop.is_set()

    def cancel(self):
        """Stop the task; joins the thread unless called from the task itself."""
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=2.0)

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Repeating task callback error: {e}")


class ThreadScheduler:
    """Default scheduler: one ``RepeatingTask`` thread per schedule."""

    def schedule_repeating(
        self,
        interval: float,
        callback: Callable[[], None],
        name: Optional[str] = None,
    ) -> RepeatingTask:
        return RepeatingTask(interval, callback, name=name or "repeating-task").start()


class _ReplayTask:
    """A repeating task owned by ``ReplayScheduler``."""

    def __init__(self, interval: float, callback: Callable[[], None], due: float, name: str):
        self.interval = interval
        self.callback = callback
        self.due = due
        self.name = name
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not self.cancelled

    def cancel(self):
        self.cancelled = True


class ReplayScheduler:
    """
    Scheduler and clock for recorded input: time only moves on ``advance``.

    ``advance(t)`` runs every repeat due at or before ``t`` in due order, with
    the clock set to each repeat's due time while its callback runs. Pass the
    scheduler itself as the session clock so repeat events carry those times.
    """

    def __init__(self, start: float = 0.0):
        self.now = start
        self._tasks = []

    def __call__(self) -> float:
        return self.now

    def schedule_repeating(
        self,
        interval: float,
        callback: Callable[[], None],
        name: Optional[str] = None,
    ) -> _ReplayTask:
        if interval <= 0:
            raise ValueError(f"Repeat interval must be positive, got {interval}")
        task = _ReplayTask(interval, callback, self.now + interval, name or "repeating-task")
        self._tasks.append(task)
        return task

    @property
    def active_tasks(self):
        return [t for t in self._tasks if t.active]

    def advance(self, until: float) -> int:
        """Move the clock to ``until``; returns how many repeats ran."""
        runs = 0
        while True:
            self._tasks = self.active_tasks
            due = [t for t in self._tasks if t.due <= until]
            if not due:
                break
            task = min(due, key=lambda t: t.due)
            self.now = task.due
            task.due += task.interval
            try:
                task.callback()
            except Exception as e:
                logger.error(f"Repeating task callback error: {e}")
            runs += 1
        self.now = max(self.now, until)
        return runs
