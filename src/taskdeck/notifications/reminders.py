# src/taskdeck/notifications/reminders.py

"""
In-process one-shot reminders.

Stands in for the platform's local-notification center: a reminder is a
(title, body) pair delivered once after a delay. Each pending reminder is a
daemon threading.Timer keyed by id, so:
- scheduling an id that is already pending replaces it,
- cancelling an unknown or already-fired id is a no-op.

Delivery runs on the timer thread and must not touch the task store.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Reminder:
    id: str
    title: str
    body: str
    due_at: float


ReminderSink = Callable[[Reminder], None]


def log_reminder(reminder: Reminder) -> None:
    logger.warning("Reminder %s: %s - %s", reminder.id, reminder.title, reminder.body)


class ReminderScheduler:
    def __init__(self, deliver: ReminderSink | None = None, *, enabled: bool = True) -> None:
        self._deliver = deliver or log_reminder
        self._enabled = enabled
        self._lock = threading.Lock()
        self._pending: dict[str, tuple[threading.Timer, Reminder]] = {}

    def request_permission(self) -> bool:
        """Local delivery needs no user grant; reports whether reminders are enabled."""
        return self._enabled

    def schedule(self, reminder_id: str, delay_seconds: float, title: str, body: str) -> None:
        if not self._enabled:
            logger.debug("Reminders disabled; not scheduling %s", reminder_id)
            return
        delay = max(0.0, float(delay_seconds))
        reminder = Reminder(id=reminder_id, title=title, body=body, due_at=time.time() + delay)
        timer = threading.Timer(delay, self._fire, args=(reminder,))
        timer.daemon = True

        with self._lock:
            previous = self._pending.pop(reminder_id, None)
            if previous is not None:
                previous[0].cancel()
            self._pending[reminder_id] = (timer, reminder)
        timer.start()
        logger.debug("Reminder scheduled id=%s delay=%.1fs", reminder_id, delay)

    def cancel(self, reminder_id: str) -> None:
        with self._lock:
            entry = self._pending.pop(reminder_id, None)
        if entry is not None:
            entry[0].cancel()
            logger.debug("Reminder cancelled id=%s", reminder_id)

    def pending(self) -> list[Reminder]:
        with self._lock:
            return [r for _, r in self._pending.values()]

    def shutdown(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for timer, _ in entries:
            timer.cancel()

    def _fire(self, reminder: Reminder) -> None:
        with self._lock:
            entry = self._pending.get(reminder.id)
            # A replaced reminder may still fire if cancel() lost the race.
            if entry is None or entry[1] is not reminder:
                return
            del self._pending[reminder.id]
        try:
            self._deliver(reminder)
        except Exception:
            logger.exception("Reminder delivery failed id=%s", reminder.id)
