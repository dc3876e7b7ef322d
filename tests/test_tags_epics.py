# tests/test_tags_epics.py

from __future__ import annotations

from taskdeck.tasks.task_models import TAG_PALETTE_SIZE, TagColor, clamp_color_index
from taskdeck.tasks.task_service import TaskService


def test_clamp_color_index() -> None:
    assert clamp_color_index(-3) == 0
    assert clamp_color_index(4) == 4
    assert clamp_color_index(99) == TAG_PALETTE_SIZE - 1
    assert clamp_color_index(None) == 0


def test_create_tag_trims_and_clamps(service: TaskService) -> None:
    tag = service.create_tag("  errands ", 42)

    assert tag is not None
    assert tag.name == "errands"
    assert tag.color_index == TAG_PALETTE_SIZE - 1
    assert tag.color is TagColor.BLACK
    assert service.create_tag("   ") is None


def test_tags_are_densely_ordered_and_renumbered_on_delete(service: TaskService) -> None:
    a = service.create_tag("a")
    b = service.create_tag("b")
    c = service.create_tag("c")
    assert [(t.name, t.order) for t in service.list_tags()] == [("a", 0), ("b", 1), ("c", 2)]

    assert service.delete_tag(b) is True
    assert [(t.name, t.order) for t in service.list_tags()] == [("a", 0), ("c", 1)]
    assert [t.id for t in service.list_tags(descending=True)] == [c.id, a.id]
    assert service.delete_tag(b) is False


def test_update_tag(service: TaskService) -> None:
    tag = service.create_tag("home", 2)

    updated = service.update_tag(tag, name=" ", color_index=-1)
    assert updated.name == "home"
    assert updated.color_index == 0

    updated = service.update_tag(tag.id, name="house")
    assert updated.name == "house"
    assert updated.color_index == 0


def test_toggle_tag_twice_is_identity(service: TaskService) -> None:
    task = service.create_task("t")
    tag = service.create_tag("x")

    on = service.toggle_tag(tag, task)
    assert on.tag_ids == {tag.id}

    off = service.toggle_tag(tag, task)
    assert off.tag_ids == set()
    assert service.get_task(task.id).tag_ids == set()


def test_add_tag_is_idempotent(service: TaskService) -> None:
    task = service.create_task("t")
    tag = service.create_tag("x")

    service.add_tag(tag, task)
    service.add_tag(tag, task)

    assert service.get_task(task.id).tag_ids == {tag.id}
    assert service.remove_tag(tag, task).tag_ids == set()
    assert service.remove_tag(tag, task).tag_ids == set()


def test_tags_for_task_sorted_case_insensitively(service: TaskService) -> None:
    task = service.create_task("t")
    for name in ("beta", "Alpha", "gamma"):
        service.add_tag(service.create_tag(name), task)
    service.create_tag("unused")

    assert [t.name for t in service.tags_for_task(task)] == ["Alpha", "beta", "gamma"]


def test_deleting_tag_removes_it_from_tasks(service: TaskService) -> None:
    task = service.create_task("t")
    tag = service.create_tag("x")
    keep = service.create_tag("y")
    service.add_tag(tag, task)
    service.add_tag(keep, task)

    service.delete_tag(tag)

    assert service.get_task(task.id).tag_ids == {keep.id}


def test_epics_crud_and_ordering(service: TaskService) -> None:
    a = service.create_epic(" Work ")
    b = service.create_epic("Home")
    assert service.create_epic("") is None
    assert a.name == "Work"
    assert [(e.name, e.order) for e in service.list_epics()] == [("Work", 0), ("Home", 1)]

    assert service.update_epic(b, "  ").name == "Home"
    assert service.update_epic(b, "House").name == "House"

    service.delete_epic(a)
    assert [(e.name, e.order) for e in service.list_epics()] == [("House", 0)]


def test_deleting_epic_clears_membership(service: TaskService) -> None:
    epic = service.create_epic("e")
    task = service.create_task("t")
    service.set_task_epic(task, epic)
    assert [t.id for t in service.tasks_for_epic(epic)] == [task.id]

    service.delete_epic(epic)

    assert service.get_task(task.id).epic_id is None
    assert service.get_task(task.id) is not None


def test_set_task_epic(service: TaskService) -> None:
    first = service.create_epic("first")
    second = service.create_epic("second")
    task = service.create_task("t")

    assert service.set_task_epic(task, first).epic_id == first.id
    assert service.set_task_epic(task, second).epic_id == second.id
    assert service.set_task_epic(task, None).epic_id is None


def test_set_task_epic_with_deleted_epic_is_noop(service: TaskService) -> None:
    keep = service.create_epic("keep")
    gone = service.create_epic("gone")
    task = service.create_task("t")
    service.set_task_epic(task, keep)
    service.delete_epic(gone)

    assert service.set_task_epic(task, gone).epic_id == keep.id


def test_tasks_for_epic_includes_completed(service: TaskService) -> None:
    epic = service.create_epic("e")
    a = service.create_task("a")
    b = service.create_task("b")
    service.set_task_epic(a, epic)
    service.set_task_epic(b, epic)
    service.mark_completed(b)

    assert {t.id for t in service.tasks_for_epic(epic)} == {a.id, b.id}


def test_apply_epic_membership_only_touches_this_epic(service: TaskService) -> None:
    target = service.create_epic("target")
    other = service.create_epic("other")
    joins = service.create_task("joins")
    leaves = service.create_task("leaves")
    stays_other = service.create_task("stays in other")
    stolen = service.create_task("moves from other")
    untouched = service.create_task("untouched")
    service.set_task_epic(leaves, target)
    service.set_task_epic(stays_other, other)
    service.set_task_epic(stolen, other)

    changed = service.apply_epic_membership(target, {joins.id, stolen.id})

    assert changed == 3
    assert service.get_task(joins.id).epic_id == target.id
    assert service.get_task(stolen.id).epic_id == target.id
    assert service.get_task(leaves.id).epic_id is None
    assert service.get_task(stays_other.id).epic_id == other.id
    assert service.get_task(untouched.id).epic_id is None


def test_apply_epic_membership_unknown_epic(service: TaskService) -> None:
    task = service.create_task("t")
    assert service.apply_epic_membership("missing", {task.id}) == 0
    assert service.get_task(task.id).epic_id is None


def test_deleting_tag_notifies_tagged_tasks(service: TaskService) -> None:
    tagged = service.create_task("tagged")
    plain = service.create_task("plain")
    tag = service.create_tag("x")
    service.add_tag(tag, tagged)
    seen: list[tuple[str, str | None, dict]] = []
    service.events.subscribe(lambda e: seen.append((e.type, e.subject_id, e.payload)))

    service.delete_tag(tag)

    assert ("tag.deleted", tag.id, {"task_ids": [tagged.id]}) in seen
    assert ("task.updated", tagged.id, {"tag_removed": tag.id}) in seen
    assert all(subject != plain.id for _, subject, _ in seen)
