# src/taskdeck/core/ports.py

"""
Ports (interfaces) used by the domain layer.

The domain depends on Protocols instead of concrete implementations.
This keeps storage and notification delivery swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from ..tasks.task_models import ChecklistItem, Epic, Tag, Task


class EntityRepo(Protocol):
    """
    Persistence of the four entity kinds.

    Implementations raise StorageError on I/O problems and apply the
    referential actions themselves on delete (cascade checklist items,
    drop tag links, clear epic links).
    """

    # Tasks
    def insert_task(self, task: Task) -> None: ...
    def update_task(self, task: Task) -> None: ...
    def get_task(self, task_id: str) -> Task | None: ...
    def list_tasks(self, *, completed: bool | None = None, epic_id: str | None = None) -> list[Task]: ...
    def delete_task(self, task_id: str) -> bool: ...

    # Task <-> tag links
    def add_task_tag(self, task_id: str, tag_id: str) -> None: ...
    def remove_task_tag(self, task_id: str, tag_id: str) -> None: ...
    def list_task_ids_for_tag(self, tag_id: str) -> list[str]: ...

    # Tags
    def insert_tag(self, tag: Tag) -> None: ...
    def update_tag(self, tag: Tag) -> None: ...
    def get_tag(self, tag_id: str) -> Tag | None: ...
    def list_tags(self) -> list[Tag]: ...
    def delete_tag(self, tag_id: str) -> bool: ...

    # Epics
    def insert_epic(self, epic: Epic) -> None: ...
    def update_epic(self, epic: Epic) -> None: ...
    def get_epic(self, epic_id: str) -> Epic | None: ...
    def list_epics(self) -> list[Epic]: ...
    def delete_epic(self, epic_id: str) -> bool: ...

    # Checklist items
    def insert_checklist_item(self, item: ChecklistItem) -> None: ...
    def update_checklist_item(self, item: ChecklistItem) -> None: ...
    def get_checklist_item(self, item_id: str) -> ChecklistItem | None: ...
    def list_checklist_items(self, task_id: str) -> list[ChecklistItem]: ...
    def delete_checklist_item(self, item_id: str) -> bool: ...

    # Bulk rank rewrite: kind is "task" | "tag" | "epic" | "checklist_item"
    def set_orders(self, kind: str, pairs: Iterable[tuple[str, int]]) -> int: ...


class NotificationScheduler(Protocol):
    """
    Local notification delivery (external collaborator).

    schedule() with an id that is already pending replaces it;
    cancel() of an unknown id is a no-op.
    """

    def request_permission(self) -> bool: ...
    def schedule(self, reminder_id: str, delay_seconds: float, title: str, body: str) -> None: ...
    def cancel(self, reminder_id: str) -> None: ...
