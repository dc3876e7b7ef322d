# tasks/timer.py

"""
Single-slot task stopwatch.

At most one task runs a timer at a time. States:
- idle: session.active_timer_task_id is None
- running: a task id plus the session start timestamp

Session time is committed to the task's total only on stop (or when another
task's timer is started). A crash while running loses the in-flight session;
there is no periodic checkpoint.

The 1-second tick only refreshes session.current_session_seconds for
observers; it never writes to storage.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from ..core.ports import NotificationScheduler
from ..core.state import SessionState
from .task_models import Task

logger = logging.getLogger(__name__)

REMINDER_ID = "timer.reminder"
DEFAULT_REMINDER_SECONDS = 2 * 60 * 60
DEFAULT_TICK_SECONDS = 1.0
DEFAULT_REMINDER_TITLE = "Timer"


def default_reminder_body(threshold_seconds: float) -> str:
    hours = threshold_seconds / 3600.0
    span = f"{hours:g} hours" if hours >= 1 else f"{int(threshold_seconds // 60)} minutes"
    return f"The timer has been running for more than {span}. Maybe it is time for a break."


class TaskTimer:
    """
    Stopwatch state machine bound to a SessionState.

    commit(task_id, seconds) is called exactly once per finished session; the
    owner (TaskService) adds the seconds to the persisted total.
    """

    def __init__(
        self,
        session: SessionState,
        *,
        commit: Callable[[str, float], None],
        clock: Callable[[], float] = time.time,
        notifier: NotificationScheduler | None = None,
        reminder_after_seconds: float = DEFAULT_REMINDER_SECONDS,
        reminder_title: str = DEFAULT_REMINDER_TITLE,
        reminder_body: str | None = None,
        tick_interval_seconds: float = DEFAULT_TICK_SECONDS,
    ) -> None:
        self._session = session
        self._commit = commit
        self._clock = clock
        self._notifier = notifier
        self._reminder_after = max(1.0, float(reminder_after_seconds))
        self._reminder_title = reminder_title
        self._reminder_body = reminder_body or default_reminder_body(self._reminder_after)
        self._tick_interval = max(0.001, float(tick_interval_seconds))

        self._session_start: float | None = None
        self._tick_task: asyncio.Task[None] | None = None

    # ---- read side ----

    @property
    def active_task_id(self) -> str | None:
        return self._session.active_timer_task_id

    @property
    def session_seconds(self) -> float:
        return self._session.current_session_seconds

    @property
    def is_running(self) -> bool:
        return self.active_task_id is not None

    def is_active(self, task_id: str) -> bool:
        return task_id is not None and self.active_task_id == task_id

    def total_time(self, task: Task) -> float:
        """Persisted total plus the live session if this task is the active one."""
        if self.is_active(task.id):
            return task.total_time_spent + self.session_seconds
        return task.total_time_spent

    # ---- state machine ----

    def start(self, task_id: str) -> None:
        if self.active_task_id == task_id:
            return

        # Single-timer invariant: flush whoever is running first.
        self.stop()

        self._session_start = self._clock()
        self._session.update(active_timer_task_id=task_id, current_session_seconds=0.0)
        self._schedule_reminder()
        self._start_ticker()
        logger.info("Timer started task_id=%s", task_id)

    def stop(self) -> float:
        """
        Stop the running timer and commit its session.

        Returns the committed seconds (0.0 when already idle).
        """
        task_id = self.active_task_id
        if task_id is None:
            return 0.0

        self._cancel_ticker()
        elapsed = self.tick()
        self._session_start = None
        try:
            self._commit(task_id, elapsed)
        finally:
            self._session.update(active_timer_task_id=None, current_session_seconds=0.0)
            self._cancel_reminder()
        logger.info("Timer stopped task_id=%s elapsed=%.1fs", task_id, elapsed)
        return elapsed

    def tick(self) -> float:
        """Recompute the session elapsed time for observers; never persists."""
        if self._session_start is None:
            return 0.0
        elapsed = max(0.0, self._clock() - self._session_start)
        self._session.update(current_session_seconds=elapsed)
        return elapsed

    # ---- tick loop ----

    def _start_ticker(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; timer tick disabled (elapsed computed on stop).")
            return
        self._tick_task = loop.create_task(self._tick_loop())

    def _cancel_ticker(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self.tick()

    # ---- reminder ----

    def _schedule_reminder(self) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.request_permission()
            self._notifier.schedule(
                REMINDER_ID,
                self._reminder_after,
                self._reminder_title,
                self._reminder_body,
            )
        except Exception:
            logger.exception("Failed to schedule timer reminder")

    def _cancel_reminder(self) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.cancel(REMINDER_ID)
        except Exception:
            logger.exception("Failed to cancel timer reminder")
