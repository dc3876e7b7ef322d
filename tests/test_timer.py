# tests/test_timer.py

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from taskdeck.core.events import Event, EventBus
from taskdeck.tasks.task_service import TaskService
from taskdeck.tasks.task_store import TaskStore
from taskdeck.tasks.timer import REMINDER_ID, default_reminder_body

from .fakes import FakeClock, FakeNotifier


def test_start_advance_stop_commits_elapsed(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("focus")

    assert service.start_timer(task) is True
    assert service.timer.active_task_id == task.id
    clock.advance(125)

    committed = service.stop_timer()

    assert committed == pytest.approx(125.0)
    assert service.get_task(task.id).total_time_spent == pytest.approx(125.0)
    assert service.timer.active_task_id is None
    assert service.timer.session_seconds == 0.0


def test_sessions_accumulate(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("focus")
    for seconds in (10, 20, 30):
        service.start_timer(task)
        clock.advance(seconds)
        service.stop_timer()

    assert service.get_task(task.id).total_time_spent == pytest.approx(60.0)


def test_starting_another_task_commits_the_first(service: TaskService, clock: FakeClock) -> None:
    a = service.create_task("a")
    b = service.create_task("b")

    service.start_timer(a)
    clock.advance(40)
    service.start_timer(b)
    clock.advance(15)

    assert service.get_task(a.id).total_time_spent == pytest.approx(40.0)
    assert service.timer.active_task_id == b.id

    service.stop_timer()
    assert service.get_task(b.id).total_time_spent == pytest.approx(15.0)


def test_restarting_same_task_keeps_session(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("a")
    service.start_timer(task)
    clock.advance(30)
    service.start_timer(task)
    clock.advance(30)

    assert service.stop_timer() == pytest.approx(60.0)
    assert service.get_task(task.id).total_time_spent == pytest.approx(60.0)


def test_stop_when_idle_is_noop(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("a")
    service.start_timer(task)
    clock.advance(5)
    service.stop_timer()

    clock.advance(100)
    assert service.stop_timer() == 0.0
    assert service.get_task(task.id).total_time_spent == pytest.approx(5.0)


def test_total_time_includes_live_session(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("a")
    service.start_timer(task)
    service.stop_timer()
    service.start_timer(task)
    clock.advance(12)
    service.timer.tick()

    current = service.get_task(task.id)
    assert service.total_time(current) == pytest.approx(12.0)
    # Nothing is written while running.
    assert current.total_time_spent == 0.0


def test_reminder_scheduled_and_cancelled(service: TaskService, notifier: FakeNotifier) -> None:
    task = service.create_task("a")

    service.start_timer(task)
    assert notifier.permission_requests == 1
    assert list(notifier.pending) == [REMINDER_ID]
    scheduled = notifier.pending[REMINDER_ID]
    assert scheduled.delay_seconds == 2 * 60 * 60
    assert scheduled.title == "Timer"
    assert scheduled.body == default_reminder_body(7200)

    service.stop_timer()
    assert notifier.pending == {}
    assert notifier.cancelled == [REMINDER_ID]


def test_switching_tasks_reschedules_single_reminder(service: TaskService, notifier: FakeNotifier) -> None:
    a = service.create_task("a")
    b = service.create_task("b")

    service.start_timer(a)
    service.start_timer(b)

    assert len(notifier.scheduled) == 2
    assert list(notifier.pending) == [REMINDER_ID]


def test_completing_running_task_flushes_time(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("a")
    service.start_timer(task)
    clock.advance(90)

    done = service.mark_completed(task)

    assert done.is_completed is True
    assert done.total_time_spent == pytest.approx(90.0)
    assert service.timer.is_running is False


def test_deleting_running_task_stops_timer(service: TaskService, clock: FakeClock, notifier: FakeNotifier) -> None:
    task = service.create_task("a")
    service.start_timer(task)
    clock.advance(10)

    assert service.delete_task(task) is True
    assert service.timer.is_running is False
    assert notifier.pending == {}


def test_cannot_time_completed_or_missing_task(service: TaskService) -> None:
    task = service.create_task("a")
    service.mark_completed(task)

    assert service.start_timer(task) is False
    assert service.start_timer("missing") is False
    assert service.timer.is_running is False


def test_session_changes_are_published(service: TaskService, clock: FakeClock) -> None:
    task = service.create_task("a")
    changes: list[Event] = []
    service.events.subscribe(changes.append, event_type="session.changed")

    service.start_timer(task)
    clock.advance(3)
    service.timer.tick()
    service.stop_timer()

    assert changes[0].payload == {"active_timer_task_id": task.id}
    assert changes[1].payload == {"current_session_seconds": pytest.approx(3.0)}
    assert changes[-1].payload["active_timer_task_id"] is None


def test_custom_reminder_settings(tmp_path: Path) -> None:
    notifier = FakeNotifier()
    service = TaskService(
        TaskStore(tmp_path / "t.sqlite3"),
        notifier=notifier,
        clock=FakeClock(),
        reminder_after_seconds=600,
        reminder_title="Break",
        reminder_body="Stand up.",
    )
    service.start_timer(service.create_task("a"))

    scheduled = notifier.pending[REMINDER_ID]
    assert (scheduled.delay_seconds, scheduled.title, scheduled.body) == (600, "Break", "Stand up.")


@pytest.mark.asyncio
async def test_tick_loop_refreshes_session_seconds(tmp_path: Path) -> None:
    clock = FakeClock()
    service = TaskService(
        TaskStore(tmp_path / "t.sqlite3"),
        events=EventBus(),
        clock=clock,
        tick_interval_seconds=0.01,
    )
    task = service.create_task("a")

    service.start_timer(task)
    clock.advance(7)
    await asyncio.sleep(0.05)

    assert service.timer.session_seconds == pytest.approx(7.0)
    # Ticks never persist.
    assert service.get_task(task.id).total_time_spent == 0.0

    assert service.stop_timer() == pytest.approx(7.0)
    await asyncio.sleep(0.03)
    assert service.timer.session_seconds == 0.0


def test_report_scenario_end_to_end(service: TaskService, clock: FakeClock, notifier: FakeNotifier) -> None:
    tag = service.create_tag("writing")
    epic = service.create_epic("Q3")
    report = service.create_task("Write report")
    other = service.create_task("Other")
    service.add_tag(tag, report)
    service.set_task_epic(report, epic)

    service.start_timer(report)
    clock.advance(125)
    service.stop_timer()

    assert service.get_task(report.id).total_time_spent == pytest.approx(125.0)
    assert service.timer.is_running is False

    service.start_timer(report)
    clock.advance(10)
    service.delete_task(report)

    assert service.timer.is_running is False
    assert notifier.pending == {}
    assert service.get_task(report.id) is None
    assert [t.id for t in service.active_tasks()] == [other.id]
    assert [t.id for t in service.list_tags()] == [tag.id]
    assert [e.id for e in service.list_epics()] == [epic.id]
