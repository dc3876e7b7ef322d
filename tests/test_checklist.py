# tests/test_checklist.py

from __future__ import annotations

from pathlib import Path

from taskdeck.core.events import Event
from taskdeck.tasks.task_service import TaskService

from .fakes import FakeClock, FlakyTaskStore


def _titles(service: TaskService, task) -> list[tuple[str, int]]:
    return [(i.title, i.order) for i in service.checklist_items(task)]


def test_add_trims_and_appends(service: TaskService) -> None:
    task = service.create_task("shopping")

    first = service.add_checklist_item(task, " Buy milk ")
    second = service.add_checklist_item(task, "Buy bread")

    assert first.title == "Buy milk"
    assert first.is_completed is False
    assert first.task_id == task.id
    assert second.order == 1
    assert _titles(service, task) == [("Buy milk", 0), ("Buy bread", 1)]


def test_blank_item_is_noop(service: TaskService) -> None:
    task = service.create_task("t")
    assert service.add_checklist_item(task, "  ") is None
    assert service.checklist_items(task) == []


def test_delete_reindexes_siblings(service: TaskService) -> None:
    task = service.create_task("t")
    items = [service.add_checklist_item(task, name) for name in ("a", "b", "c", "d")]

    assert service.delete_checklist_item(items[1].id, task) is True

    assert _titles(service, task) == [("a", 0), ("c", 1), ("d", 2)]


def test_delete_item_of_another_task_is_noop(service: TaskService) -> None:
    mine = service.create_task("mine")
    other = service.create_task("other")
    foreign = service.add_checklist_item(other, "x")
    service.add_checklist_item(mine, "y")

    assert service.delete_checklist_item(foreign.id, mine) is False
    assert service.delete_checklist_item("missing", mine) is False
    assert _titles(service, other) == [("x", 0)]


def test_toggle_publishes_change_for_parent_task(service: TaskService) -> None:
    task = service.create_task("t")
    item = service.add_checklist_item(task, "x")
    seen: list[Event] = []
    service.events.subscribe(seen.append, subject_id=task.id)

    toggled = service.toggle_checklist_item(item)
    assert toggled.is_completed is True
    assert service.toggle_checklist_item(item.id).is_completed is False

    assert [e.type for e in seen] == ["task.changed", "task.changed"]
    assert seen[0].payload == {"item_id": item.id, "is_completed": True}


def test_reorder_and_move_items(service: TaskService) -> None:
    task = service.create_task("t")
    a, b, c = (service.add_checklist_item(task, name) for name in "abc")

    service.reorder_checklist_items(task, [c, a, b])
    assert _titles(service, task) == [("c", 0), ("a", 1), ("b", 2)]

    service.move_checklist_items(task, [0], 3)
    assert _titles(service, task) == [("a", 0), ("b", 1), ("c", 2)]


def test_items_of_stale_task(service: TaskService) -> None:
    task = service.create_task("t")
    service.add_checklist_item(task, "x")
    service.delete_task(task)

    assert service.checklist_items(task) == []
    assert service.reorder_checklist_items(task, []) == []
    assert service.toggle_checklist_item("missing") is None


def test_failed_delete_keeps_stored_order_dense(tmp_path: Path) -> None:
    store = FlakyTaskStore(tmp_path / "tasks.sqlite3")
    service = TaskService(store, clock=FakeClock())
    task = service.create_task("t")
    x, _, _ = (service.add_checklist_item(task, name) for name in "xyz")
    store.fail_writes = True
    seen: list[Event] = []
    service.events.subscribe(seen.append, event_type="task.changed")

    assert service.delete_checklist_item(x.id, task) is False

    store.fail_writes = False
    assert _titles(service, task) == [("x", 0), ("y", 1), ("z", 2)]
    assert seen == []
