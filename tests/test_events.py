# tests/test_events.py

from __future__ import annotations

import pytest

from taskdeck.core.events import Event, EventBus
from taskdeck.core.state import SessionState


def test_subscribe_filters_by_type_and_subject() -> None:
    bus = EventBus()
    exact: list[str] = []
    wildcard: list[str] = []
    keyed: list[str] = []
    bus.subscribe(lambda e: exact.append(e.type), event_type="task.created")
    bus.subscribe(lambda e: wildcard.append(e.type), event_type="task.*")
    bus.subscribe(lambda e: keyed.append(e.type), subject_id="t1")

    bus.publish("task.created", "t1")
    bus.publish("task.deleted", "t2")
    bus.publish("tag.created", "t1")

    assert exact == ["task.created"]
    assert wildcard == ["task.created", "task.deleted"]
    assert keyed == ["task.created", "tag.created"]
    assert bus.events_published == 3


def test_unsubscribe() -> None:
    bus = EventBus()
    seen: list[Event] = []
    unsubscribe = bus.subscribe(seen.append)

    bus.publish("a")
    unsubscribe()
    unsubscribe()
    bus.publish("b")

    assert [e.type for e in seen] == ["a"]


def test_failing_handler_does_not_break_others(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    seen: list[str] = []

    def boom(event: Event) -> None:
        raise RuntimeError("boom")

    bus.subscribe(boom)
    bus.subscribe(lambda e: seen.append(e.type))

    event = bus.publish("task.updated", "t1", title="x")

    assert seen == ["task.updated"]
    assert event.payload == {"title": "x"}
    assert "Event handler failed" in caplog.text


def test_session_update_publishes_only_changes() -> None:
    bus = EventBus()
    seen: list[dict] = []
    bus.subscribe(lambda e: seen.append(e.payload), event_type="session.changed")
    session = SessionState(bus)

    session.update(active_timer_task_id="t1", current_session_seconds=0.0)
    session.update(active_timer_task_id="t1")

    assert seen == [{"active_timer_task_id": "t1"}]
    assert session.active_timer_task_id == "t1"


def test_session_rejects_unknown_fields() -> None:
    session = SessionState(EventBus())
    with pytest.raises(AttributeError):
        session.update(events=None)


def test_detail_dismissed_counter() -> None:
    session = SessionState(EventBus())
    assert session.notify_detail_dismissed() == 1
    assert session.notify_detail_dismissed() == 2
    assert session.detail_dismissed_counter == 2
