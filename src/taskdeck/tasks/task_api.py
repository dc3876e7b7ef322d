# tasks/task_api.py

"""
Read-side helpers for front ends: list filters, checklist progress,
per-epic time statistics and duration formatting. Nothing here writes.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .task_models import ChecklistItem, Epic, Tag, Task
from .task_service import TaskService


def filter_tasks(
    tasks: Iterable[Task],
    *,
    epic_id: str | None = None,
    without_epic: bool = False,
    tag_ids: Iterable[str] = (),
) -> list[Task]:
    """
    Filter a task list the way the list screens do.

    Epic filter: all (default), only tasks without an epic, or one epic.
    Tag filter: a task must carry every selected tag.
    """
    wanted = set(tag_ids)
    out: list[Task] = []
    for task in tasks:
        if without_epic and task.epic_id is not None:
            continue
        if epic_id is not None and task.epic_id != epic_id:
            continue
        if wanted and not wanted.issubset(task.tag_ids):
            continue
        out.append(task)
    return out


def checklist_progress(items: Iterable[ChecklistItem]) -> tuple[int, int]:
    """(completed, total)"""
    done = total = 0
    for item in items:
        total += 1
        if item.is_completed:
            done += 1
    return done, total


@dataclass(slots=True, frozen=True)
class EpicTimeSummary:
    epic: Epic
    total_seconds: float
    # Time over the tasks carrying all selected tags (== total when none selected).
    filtered_seconds: float
    task_count: int
    tags: list[Tag]


def epic_time_summary(
    service: TaskService,
    epic: Epic,
    *,
    tag_ids: Iterable[str] = (),
) -> EpicTimeSummary:
    """
    Time spent on an epic, active and completed tasks together.

    The live session counts when the running task belongs to the epic.
    `tags` lists the distinct tags found on the epic's tasks, by name.
    """
    tasks = service.tasks_for_epic(epic)
    filtered = filter_tasks(tasks, tag_ids=tag_ids)

    total = sum(service.total_time(t) for t in tasks)
    filtered_total = sum(service.total_time(t) for t in filtered)

    used = set().union(*(t.tag_ids for t in tasks)) if tasks else set()
    tags = sorted(
        (t for t in service.list_tags() if t.id in used),
        key=lambda t: t.name.casefold(),
    )
    return EpicTimeSummary(
        epic=epic,
        total_seconds=total,
        filtered_seconds=filtered_total,
        task_count=len(tasks),
        tags=tags,
    )


def format_duration(seconds: float) -> str:
    """Stopwatch style: "M:SS" below an hour, "H:MM:SS" above."""
    whole = max(0, int(seconds))
    h, rem = divmod(whole, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def format_duration_short(seconds: float) -> str:
    """List-row style: "2 h 5 min", "5 min" or "42 s"."""
    whole = max(0, int(seconds))
    h = whole // 3600
    m = (whole % 3600) // 60
    if h > 0:
        return f"{h} h {m} min"
    if m > 0:
        return f"{m} min"
    return f"{whole} s"
