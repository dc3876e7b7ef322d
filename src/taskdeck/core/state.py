# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .events import EventBus

if TYPE_CHECKING:
    from ..notifications.reminders import ReminderScheduler
    from ..tasks.task_service import TaskService
    from ..tasks.task_store import TaskStore


_SESSION_FIELDS = ("active_timer_task_id", "current_session_seconds", "detail_dismissed_counter")


@dataclass
class SessionState:
    """
    Published, process-wide session fields observed by front ends.

    Every change goes through update() so subscribers of "session.changed"
    see it. Lives until the process exits.
    """

    events: EventBus
    active_timer_task_id: str | None = None
    current_session_seconds: float = 0.0
    # Bumped when a task detail view closes so lists recompute derived data.
    detail_dismissed_counter: int = 0

    def update(self, **fields: Any) -> None:
        changed: dict[str, Any] = {}
        for name, value in fields.items():
            if name not in _SESSION_FIELDS:
                raise AttributeError(f"unknown session field: {name}")
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed[name] = value
        if changed:
            self.events.publish("session.changed", None, **changed)

    def notify_detail_dismissed(self) -> int:
        self.update(detail_dismissed_counter=self.detail_dismissed_counter + 1)
        return self.detail_dismissed_counter


@dataclass
class AppState:
    # Settings object (taskdeck.config.Settings or a test namespace).
    settings: object

    task_store: TaskStore
    service: TaskService
    reminders: ReminderScheduler
    events: EventBus

    @property
    def session(self) -> SessionState:
        return self.service.session
