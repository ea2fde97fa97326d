"""Interval task scheduler driven by an injectable clock."""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None] | None]


@dataclass
class ScheduledTask:
    """A named action repeated at a fixed interval.

    Attributes:
        name: Unique task name
        interval: Seconds between runs
        action: Sync or async callable
        next_due: Clock reading at which the task is next due
    """

    name: str
    interval: float
    action: Action
    next_due: float


class TaskScheduler:
    """Runs named actions at fixed intervals.

    The scheduler never reads wall time directly: ``clock`` is injected, so
    tests drive it by advancing a fake clock and calling ``run_due``. A
    failing action is logged and stays scheduled.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the scheduler.

        Args:
            clock: Monotonic clock returning seconds
        """
        self.clock = clock
        self._tasks: dict[str, ScheduledTask] = {}
        self._runner: asyncio.Task[None] | None = None

    @property
    def task_names(self) -> list[str]:
        return list(self._tasks)

    def every(self, name: str, interval: float, action: Action, run_immediately: bool = False) -> ScheduledTask:
        """Schedule an action every ``interval`` seconds.

        Args:
            name: Unique task name; an existing task with the same name is replaced
            interval: Seconds between runs, must be positive
            action: Sync or async callable taking no arguments
            run_immediately: Make the first run due now instead of after one interval

        Returns:
            The scheduled task

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError("Interval must be positive")

        now = self.clock()
        task = ScheduledTask(
            name=name,
            interval=interval,
            action=action,
            next_due=now if run_immediately else now + interval,
        )
        self._tasks[name] = task
        return task

    def remove(self, name: str) -> bool:
        return self._tasks.pop(name, None) is not None

    async def run_due(self) -> list[str]:
        """Run every task whose due time has passed.

        Each due task runs once, however many intervals were missed, and is
        rescheduled one interval after the current clock reading.

        Returns:
            Names of the tasks that ran, in scheduling order
        """
        now = self.clock()
        due = [task for task in self._tasks.values() if task.next_due <= now]

        for task in due:
            task.next_due = now + task.interval

        ran = []
        for task in due:
            try:
                result = task.action()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Scheduled task {task.name} failed: {e}")
            ran.append(task.name)
        return ran

    async def run_forever(self, tick: float = 1.0) -> None:
        """Call ``run_due`` every ``tick`` seconds until cancelled."""
        while True:
            await self.run_due()
            await asyncio.sleep(tick)

    def start(self, tick: float = 1.0) -> asyncio.Task[None]:
        """Start ``run_forever`` as a background task on the running loop."""
        if self._runner is None or self._runner.done():
            self._runner = asyncio.create_task(self.run_forever(tick))
        return self._runner

    def cancel(self) -> None:
        """Stop the background runner and drop every task."""
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
        self._runner = None
        self._tasks.clear()
