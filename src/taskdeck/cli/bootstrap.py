# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite store, reminder scheduler and event bus into TaskService,
- returns an AppState holding all of them.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.events import EventBus
from ..core.state import AppState, SessionState
from ..notifications.reminders import ReminderScheduler, ReminderSink
from ..tasks.task_service import TaskService
from ..tasks.task_store import StorageError, TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, deliver: ReminderSink | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    Raises StorageError if the database cannot be opened.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    events = EventBus()
    reminders = ReminderScheduler(deliver, enabled=bool(getattr(settings, "reminders_enabled", True)))
    store = TaskStore(settings.tasks_db_path)

    service = TaskService(
        store,
        events=events,
        session=SessionState(events),
        notifier=reminders,
        strict_storage=bool(getattr(settings, "strict_storage", False)),
        reminder_after_seconds=settings.timer_reminder_seconds,
        reminder_title=getattr(settings, "reminder_title", "Timer") or "Timer",
        reminder_body=getattr(settings, "reminder_body", "") or None,
        tick_interval_seconds=settings.timer_tick_seconds,
    )
    logger.debug("AppState wired db=%s strict_storage=%s", store.db_path, settings.strict_storage)

    return AppState(
        settings=settings,
        task_store=store,
        service=service,
        reminders=reminders,
        events=events,
    )


def shutdown_state(state: AppState) -> None:
    """Commit a running timer session and drop pending reminders."""
    try:
        committed = state.service.stop_timer()
        if committed:
            logger.info("Running timer stopped on exit (%.0fs committed).", committed)
    except Exception:
        logger.exception("Failed to stop the running timer on exit.")
    state.reminders.shutdown()
    try:
        state.task_store.close()
    except StorageError:
        logger.exception("Failed to close the task store cleanly.")
