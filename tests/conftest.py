# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.cli.bootstrap import create_initial_state
from taskdeck.core.events import EventBus
from taskdeck.core.state import AppState
from taskdeck.tasks.task_service import TaskService
from taskdeck.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_initial_state.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskdeck-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
        strict_storage=False,
        timer_reminder_seconds=2 * 60 * 60,
        timer_tick_seconds=1.0,
        reminders_enabled=False,
        reminder_title="Timer",
        reminder_body="",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def events() -> EventBus:
    return EventBus()


@pytest.fixture()
def service(store: TaskStore, events: EventBus, clock: FakeClock, notifier: FakeNotifier) -> TaskService:
    """
    TaskService wired with a real SQLite store and deterministic fakes.

    The store is real because cascade/nullify behavior is part of what we test.
    """
    return TaskService(store, events=events, notifier=notifier, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    return create_initial_state(settings=settings)
