# tasks/task_service.py

"""
Domain layer: the only place that mutates tasks, tags, epics and checklists.

Every operation:
- re-reads the entity it was given (stale references are tolerated: a miss is a no-op),
- validates required text (blank -> silent no-op),
- persists the change through the EntityRepo,
- re-establishes dense ordering for the affected scope,
- publishes an event on the bus.

Storage failures are logged and swallowed by default (in-memory objects may
then diverge from disk). With strict_storage=True they propagate as StorageError.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from ..core.events import EventBus
from ..core.ports import EntityRepo, NotificationScheduler
from ..core.state import SessionState
from .ordering import apply_sequence, changed_pairs, dense_pairs, merge_visible_order, move_offsets, next_order
from .task_models import ChecklistItem, Epic, Tag, Task, clamp_color_index, new_id
from .task_store import StorageError
from .timer import DEFAULT_REMINDER_SECONDS, DEFAULT_REMINDER_TITLE, DEFAULT_TICK_SECONDS, TaskTimer

logger = logging.getLogger(__name__)

R = TypeVar("R")

TaskRef = Task | str
TagRef = Tag | str
EpicRef = Epic | str
ItemRef = ChecklistItem | str


def _ref_id(ref: Task | Tag | Epic | ChecklistItem | str) -> str:
    return ref if isinstance(ref, str) else ref.id


def _clean_text(raw: str | None) -> str:
    return (raw or "").strip()


def _clean_description(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    return raw


class TaskService:
    def __init__(
        self,
        store: EntityRepo,
        *,
        events: EventBus | None = None,
        session: SessionState | None = None,
        notifier: NotificationScheduler | None = None,
        clock: Callable[[], float] = time.time,
        strict_storage: bool = False,
        reminder_after_seconds: float = DEFAULT_REMINDER_SECONDS,
        reminder_title: str = DEFAULT_REMINDER_TITLE,
        reminder_body: str | None = None,
        tick_interval_seconds: float = DEFAULT_TICK_SECONDS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._strict = strict_storage
        self.events = events if events is not None else EventBus()
        self.session = session if session is not None else SessionState(self.events)
        self.timer = TaskTimer(
            self.session,
            commit=self._commit_time,
            clock=clock,
            notifier=notifier,
            reminder_after_seconds=reminder_after_seconds,
            reminder_title=reminder_title,
            reminder_body=reminder_body,
            tick_interval_seconds=tick_interval_seconds,
        )

    # ---- persistence helpers ----

    def _save(self, what: str, fn: Callable[..., R], *args: object) -> R | None:
        try:
            return fn(*args)
        except StorageError:
            if self._strict:
                raise
            logger.exception("Storage failure during %s; in-memory state may diverge from disk", what)
            return None

    def _task(self, ref: TaskRef) -> Task | None:
        return self._save("get_task", self._store.get_task, _ref_id(ref))

    def _tag(self, ref: TagRef) -> Tag | None:
        return self._save("get_tag", self._store.get_tag, _ref_id(ref))

    def _epic(self, ref: EpicRef) -> Epic | None:
        return self._save("get_epic", self._store.get_epic, _ref_id(ref))

    def _item(self, ref: ItemRef) -> ChecklistItem | None:
        return self._save("get_checklist_item", self._store.get_checklist_item, _ref_id(ref))

    def _renumber(self, kind: str, entities: Sequence[Task | Tag | Epic | ChecklistItem]) -> None:
        current = {e.id: e.order for e in entities}
        pairs = changed_pairs(current, [e.id for e in entities])
        if pairs:
            self._save(f"renumber {kind}", self._store.set_orders, kind, pairs)

    # ---- task queries ----

    def get_task(self, task_id: str) -> Task | None:
        return self._task(task_id)

    def all_tasks(self) -> list[Task]:
        return self._save("list_tasks", self._store.list_tasks) or []

    def active_tasks(self) -> list[Task]:
        return self._save("list_tasks", lambda: self._store.list_tasks(completed=False)) or []

    def completed_tasks(self) -> list[Task]:
        """Completed tasks, most recently completed first."""
        done = self._save("list_tasks", lambda: self._store.list_tasks(completed=True)) or []
        return sorted(done, key=lambda t: t.completed_at or 0.0, reverse=True)

    # ---- task lifecycle ----

    def create_task(self, title: str, description: str | None = None) -> Task | None:
        clean = _clean_text(title)
        if not clean:
            logger.debug("create_task skipped: blank title")
            return None

        task = Task(
            id=new_id(),
            title=clean,
            description=_clean_description(description),
            is_completed=False,
            order=next_order(t.order for t in self.active_tasks()),
            total_time_spent=0.0,
            created_at=self._clock(),
            completed_at=None,
        )
        self._save("create_task", self._store.insert_task, task)
        logger.info("Task created id=%s order=%s", task.id, task.order)
        self.events.publish("task.created", task.id)
        return task

    def update_task(
        self,
        task: TaskRef,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> Task | None:
        """
        Partial update.

        A missing or blank title keeps the current one. The description is
        always written: leaving it out clears it.
        """
        current = self._task(task)
        if current is None:
            return None

        clean = _clean_text(title)
        if clean:
            current.title = clean
        current.description = _clean_description(description)
        self._save("update_task", self._store.update_task, current)
        self.events.publish("task.updated", current.id)
        return current

    def mark_completed(self, task: TaskRef) -> Task | None:
        current = self._task(task)
        if current is None or current.is_completed:
            return current

        if self.timer.is_active(current.id):
            # Flush the running session into the total before archiving.
            self.timer.stop()
            current = self._task(current.id) or current

        current.is_completed = True
        current.completed_at = self._clock()
        self._save("mark_completed", self._store.update_task, current)
        self._renumber("task", self.active_tasks())
        logger.info("Task completed id=%s", current.id)
        self.events.publish("task.completed", current.id)
        return current

    def restore_task(self, task: TaskRef) -> Task | None:
        current = self._task(task)
        if current is None or not current.is_completed:
            return current

        current.order = next_order(t.order for t in self.active_tasks())
        current.is_completed = False
        current.completed_at = None
        self._save("restore_task", self._store.update_task, current)
        logger.info("Task restored id=%s order=%s", current.id, current.order)
        self.events.publish("task.restored", current.id)
        return current

    def delete_task(self, task: TaskRef) -> bool:
        task_id = _ref_id(task)
        if self.timer.is_active(task_id):
            self.timer.stop()

        if self._task(task_id) is None:
            return False

        deleted = bool(self._save("delete_task", self._store.delete_task, task_id))
        self._renumber("task", self.active_tasks())
        logger.info("Task deleted id=%s", task_id)
        self.events.publish("task.deleted", task_id)
        return deleted

    def reorder_active_tasks(self, ordered: Iterable[TaskRef]) -> list[Task]:
        """
        Apply a reordered sequence of the displayed active tasks.

        The sequence may be a filtered subset. Its tasks are written back into
        the slots they hold in the full active order, hidden tasks stay put,
        and the whole active set is renumbered 0..N-1.
        """
        active = self.active_tasks()
        merged = merge_visible_order([t.id for t in active], [_ref_id(r) for r in ordered])
        pairs = changed_pairs({t.id: t.order for t in active}, merged)
        if pairs:
            self._save("reorder_active_tasks", self._store.set_orders, "task", pairs)
            self.events.publish("task.reordered", None, count=len(pairs))
        return self.active_tasks()

    def move_active_tasks(
        self,
        sources: Iterable[int],
        destination: int,
        visible: Sequence[TaskRef] | None = None,
    ) -> list[Task]:
        """Drag-and-drop style move inside the displayed list (all active tasks by default)."""
        shown = [_ref_id(t) for t in (visible if visible is not None else self.active_tasks())]
        return self.reorder_active_tasks(move_offsets(shown, sources, destination))

    # ---- timer ----

    def start_timer(self, task: TaskRef) -> bool:
        current = self._task(task)
        if current is None:
            return False
        if current.is_completed:
            logger.debug("start_timer skipped: task %s is completed", current.id)
            return False
        self.timer.start(current.id)
        return True

    def stop_timer(self) -> float:
        return self.timer.stop()

    def total_time(self, task: Task) -> float:
        return self.timer.total_time(task)

    def _commit_time(self, task_id: str, seconds: float) -> None:
        current = self._task(task_id)
        if current is None:
            logger.warning("Timer session dropped: task %s no longer exists (%.1fs)", task_id, seconds)
            return
        current.total_time_spent = max(0.0, current.total_time_spent) + max(0.0, seconds)
        self._save("commit timer session", self._store.update_task, current)
        self.events.publish("task.updated", task_id, total_time_spent=current.total_time_spent)

    # ---- tags ----

    def list_tags(self, *, descending: bool = False) -> list[Tag]:
        tags = self._save("list_tags", self._store.list_tags) or []
        return list(reversed(tags)) if descending else tags

    def create_tag(self, name: str, color_index: int = 0) -> Tag | None:
        clean = _clean_text(name)
        if not clean:
            logger.debug("create_tag skipped: blank name")
            return None
        tag = Tag(
            id=new_id(),
            name=clean,
            color_index=clamp_color_index(color_index),
            order=next_order(t.order for t in self.list_tags()),
        )
        self._save("create_tag", self._store.insert_tag, tag)
        self.events.publish("tag.created", tag.id)
        return tag

    def update_tag(
        self,
        tag: TagRef,
        *,
        name: str | None = None,
        color_index: int | None = None,
    ) -> Tag | None:
        current = self._tag(tag)
        if current is None:
            return None
        clean = _clean_text(name)
        if clean:
            current.name = clean
        if color_index is not None:
            current.color_index = clamp_color_index(color_index)
        self._save("update_tag", self._store.update_tag, current)
        self.events.publish("tag.updated", current.id)
        return current

    def delete_tag(self, tag: TagRef) -> bool:
        tag_id = _ref_id(tag)
        # Tagged tasks lose the link with the tag; their views need a refresh.
        tagged = self._save("list_task_ids_for_tag", self._store.list_task_ids_for_tag, tag_id) or []
        deleted = bool(self._save("delete_tag", self._store.delete_tag, tag_id))
        if not deleted:
            return False
        self._renumber("tag", self.list_tags())
        self.events.publish("tag.deleted", tag_id, task_ids=list(tagged))
        for task_id in tagged:
            self.events.publish("task.updated", task_id, tag_removed=tag_id)
        return True

    def add_tag(self, tag: TagRef, task: TaskRef) -> Task | None:
        current = self._task(task)
        current_tag = self._tag(tag)
        if current is None or current_tag is None:
            return current
        if current_tag.id not in current.tag_ids:
            self._save("add_tag", self._store.add_task_tag, current.id, current_tag.id)
            current.tag_ids.add(current_tag.id)
            self.events.publish("task.updated", current.id, tag_added=current_tag.id)
        return current

    def remove_tag(self, tag: TagRef, task: TaskRef) -> Task | None:
        current = self._task(task)
        if current is None:
            return None
        tag_id = _ref_id(tag)
        if tag_id in current.tag_ids:
            self._save("remove_tag", self._store.remove_task_tag, current.id, tag_id)
            current.tag_ids.discard(tag_id)
            self.events.publish("task.updated", current.id, tag_removed=tag_id)
        return current

    def toggle_tag(self, tag: TagRef, task: TaskRef) -> Task | None:
        current = self._task(task)
        if current is None:
            return None
        if _ref_id(tag) in current.tag_ids:
            return self.remove_tag(tag, current)
        return self.add_tag(tag, current)

    def tags_for_task(self, task: TaskRef) -> list[Tag]:
        """The task's tags for display: alphabetical, case-insensitive."""
        current = self._task(task)
        if current is None:
            return []
        tags = [t for t in self.list_tags() if t.id in current.tag_ids]
        return sorted(tags, key=lambda t: t.name.casefold())

    # ---- epics ----

    def list_epics(self, *, descending: bool = False) -> list[Epic]:
        epics = self._save("list_epics", self._store.list_epics) or []
        return list(reversed(epics)) if descending else epics

    def create_epic(self, name: str) -> Epic | None:
        clean = _clean_text(name)
        if not clean:
            logger.debug("create_epic skipped: blank name")
            return None
        epic = Epic(id=new_id(), name=clean, order=next_order(e.order for e in self.list_epics()))
        self._save("create_epic", self._store.insert_epic, epic)
        self.events.publish("epic.created", epic.id)
        return epic

    def update_epic(self, epic: EpicRef, name: str) -> Epic | None:
        current = self._epic(epic)
        if current is None:
            return None
        clean = _clean_text(name)
        if not clean:
            return current
        current.name = clean
        self._save("update_epic", self._store.update_epic, current)
        self.events.publish("epic.updated", current.id)
        return current

    def delete_epic(self, epic: EpicRef) -> bool:
        epic_id = _ref_id(epic)
        deleted = bool(self._save("delete_epic", self._store.delete_epic, epic_id))
        if not deleted:
            return False
        self._renumber("epic", self.list_epics())
        self.events.publish("epic.deleted", epic_id)
        return True

    def set_task_epic(self, task: TaskRef, epic: EpicRef | None) -> Task | None:
        current = self._task(task)
        if current is None:
            return None
        epic_id: str | None = None
        if epic is not None:
            current_epic = self._epic(epic)
            if current_epic is None:
                return current
            epic_id = current_epic.id
        if current.epic_id != epic_id:
            current.epic_id = epic_id
            self._save("set_task_epic", self._store.update_task, current)
            self.events.publish("task.updated", current.id, epic_id=epic_id)
        return current

    def apply_epic_membership(
        self,
        epic: EpicRef,
        selected_task_ids: Iterable[str],
        tasks: Iterable[TaskRef] | None = None,
    ) -> int:
        """
        Bulk-edit which tasks belong to `epic`.

        Only tasks moving into this epic or leaving it are touched; a task
        that belongs to another epic and is not selected keeps its epic.
        Works over the active tasks unless `tasks` is given.
        Returns the number of tasks changed.
        """
        current_epic = self._epic(epic)
        if current_epic is None:
            return 0
        selected = set(selected_task_ids)
        candidates = [self._task(t) for t in tasks] if tasks is not None else self.active_tasks()

        changed = 0
        for task in candidates:
            if task is None:
                continue
            in_this_epic = task.epic_id == current_epic.id
            if task.id in selected and not in_this_epic:
                self.set_task_epic(task, current_epic)
                changed += 1
            elif task.id not in selected and in_this_epic:
                self.set_task_epic(task, None)
                changed += 1
        logger.debug("Epic membership applied epic=%s changed=%s", current_epic.id, changed)
        return changed

    def tasks_for_epic(self, epic: EpicRef) -> list[Task]:
        """Active and completed tasks of an epic."""
        epic_id = _ref_id(epic)
        return self._save("list_tasks", lambda: self._store.list_tasks(epic_id=epic_id)) or []

    # ---- checklist ----

    def checklist_items(self, task: TaskRef) -> list[ChecklistItem]:
        return self._save("list_checklist_items", self._store.list_checklist_items, _ref_id(task)) or []

    def add_checklist_item(self, task: TaskRef, title: str) -> ChecklistItem | None:
        clean = _clean_text(title)
        if not clean:
            return None
        current = self._task(task)
        if current is None:
            return None
        item = ChecklistItem(
            id=new_id(),
            task_id=current.id,
            title=clean,
            is_completed=False,
            order=len(self.checklist_items(current.id)),
        )
        self._save("add_checklist_item", self._store.insert_checklist_item, item)
        self.events.publish("task.changed", current.id, item_added=item.id)
        return item

    def toggle_checklist_item(self, item: ItemRef) -> ChecklistItem | None:
        current = self._item(item)
        if current is None:
            return None
        current.is_completed = not current.is_completed
        self._save("toggle_checklist_item", self._store.update_checklist_item, current)
        # Observers of the parent task need to see the child change.
        self.events.publish(
            "task.changed", current.task_id, item_id=current.id, is_completed=current.is_completed
        )
        return current

    def delete_checklist_item(self, item_id: str, task: TaskRef) -> bool:
        """
        Delete one item of `task` and re-index its siblings.

        The item is looked up by id and must belong to `task`. The remaining
        order is computed before the delete.
        """
        current = self._task(task)
        if current is None:
            return False
        item = self._item(item_id)
        if item is None or item.task_id != current.id:
            return False

        remaining = dense_pairs(i.id for i in self.checklist_items(current.id) if i.id != item.id)
        deleted = bool(self._save("delete_checklist_item", self._store.delete_checklist_item, item.id))
        if not deleted:
            # The item is still on disk at its old rank; renumbering would collide with it.
            return False
        if remaining:
            self._save("renumber checklist", self._store.set_orders, "checklist_item", remaining)
        self.events.publish("task.changed", current.id, item_deleted=item.id)
        return True

    def reorder_checklist_items(self, task: TaskRef, ordered: Iterable[ItemRef]) -> list[ChecklistItem]:
        current = self._task(task)
        if current is None:
            return []
        items = self.checklist_items(current.id)
        sequence = apply_sequence([i.id for i in items], [_ref_id(r) for r in ordered])
        pairs = changed_pairs({i.id: i.order for i in items}, sequence)
        if pairs:
            self._save("reorder_checklist_items", self._store.set_orders, "checklist_item", pairs)
            self.events.publish("task.changed", current.id, reordered=len(pairs))
        return self.checklist_items(current.id)

    def move_checklist_items(
        self,
        task: TaskRef,
        sources: Iterable[int],
        destination: int,
    ) -> list[ChecklistItem]:
        items = self.checklist_items(task)
        return self.reorder_checklist_items(task, move_offsets([i.id for i in items], sources, destination))

    # ---- presentation plumbing ----

    def notify_detail_dismissed(self) -> int:
        return self.session.notify_detail_dismissed()
