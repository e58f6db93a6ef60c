"""
Task scheduler for periodic chat-side jobs (vote rounds, reminders,
announcements, cooldown cleanup).
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """A named job and when it is next due, on the scheduler's clock."""

    name: str
    func: Callable[[], Any]
    interval_seconds: float
    next_run: float
    run_count: int = 0
    failures: int = 0
    is_running: bool = False

    def due(self, now: float) -> bool:
        return not self.is_running and self.next_run <= now


class TaskScheduler:
    """
    Interval scheduler for background coroutines.

    Adding a task under an existing name replaces it, which is how the vote
    cycle and its reminder get rescheduled. Due tasks run one after another
    on each tick so a vote cycle never overlaps its own reminder.
    """

    def __init__(self, tick_seconds: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.tick_seconds = tick_seconds
        self.clock = clock
        self._tasks: Dict[str, ScheduledTask] = {}
        self._loop_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def add_task(
        self,
        name: str,
        func: Callable[[], Any],
        interval_seconds: float,
        run_immediately: bool = False,
    ) -> None:
        """
        Add or replace a scheduled task.

        Args:
            name: Unique task name
            func: Coroutine function or plain callable, called without arguments
            interval_seconds: Run interval in seconds
            run_immediately: Due on the next tick instead of after one interval
        """
        now = self.clock()
        replaced = name in self._tasks
        self._tasks[name] = ScheduledTask(
            name=name,
            func=func,
            interval_seconds=interval_seconds,
            next_run=now if run_immediately else now + interval_seconds,
        )
        logger.info(f"Scheduled task {'replaced' if replaced else 'added'}: {name} (every {interval_seconds}s)")

    def remove_task(self, name: str) -> bool:
        if self._tasks.pop(name, None) is None:
            return False
        logger.info(f"Scheduled task removed: {name}")
        return True

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    def snapshot(self) -> List[Dict[str, Any]]:
        """Task names, intervals and seconds until each is next due."""
        now = self.clock()
        return [
            {
                "name": task.name,
                "interval_seconds": task.interval_seconds,
                "due_in_seconds": round(max(task.next_run - now, 0.0), 1),
                "run_count": task.run_count,
                "failures": task.failures,
            }
            for task in self._tasks.values()
        ]

    async def start(self) -> None:
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._run_loop())
        logger.info("Task scheduler started")

    async def stop(self) -> None:
        if self._loop_task is None:
            return
        self._loop_task.cancel()
        try:
            await self._loop_task
        except asyncio.CancelledError:
            pass
        self._loop_task = None
        logger.info("Task scheduler stopped")

    async def run_due(self) -> int:
        """
        Run every task that is due now.

        Returns:
            How many tasks were run.
        """
        now = self.clock()
        due = [task for task in self._tasks.values() if task.due(now)]
        ran = 0
        for task in due:
            # An earlier task in this batch may have removed or replaced it
            if self._tasks.get(task.name) is not task:
                continue
            await self._execute(task)
            ran += 1
        return ran

    async def _run_loop(self) -> None:
        while True:
            await self.run_due()
            await asyncio.sleep(self.tick_seconds)

    async def _execute(self, task: ScheduledTask) -> None:
        task.is_running = True
        logger.debug(f"Running scheduled task: {task.name}")
        try:
            result = task.func()
            if inspect.isawaitable(result):
                await result
            task.run_count += 1
        except Exception as e:
            task.failures += 1
            logger.error(f"Scheduled task failed: {task.name}: {e}", exc_info=True)
        finally:
            task.is_running = False
            task.next_run = self.clock() + task.interval_seconds
