"""Background task scheduling."""

from rotatv.tasks.scheduler import ScheduledTask, TaskScheduler

__all__ = [
    "ScheduledTask",
    "TaskScheduler",
]
