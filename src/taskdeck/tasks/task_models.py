# tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import IntEnum


class TagColor(IntEnum):
    """
    Fixed tag palette.

    Tags store only the index; rendering picks the actual color.
    """

    GREEN = 0
    YELLOW = 1
    ORANGE = 2
    RED = 3
    PURPLE = 4
    BLUE = 5
    SKY = 6
    LIME = 7
    PINK = 8
    BLACK = 9


TAG_PALETTE_SIZE = len(TagColor)


def clamp_color_index(raw: int | None, palette_size: int = TAG_PALETTE_SIZE) -> int:
    if raw is None:
        return 0
    return max(0, min(palette_size - 1, int(raw)))


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str | None
    is_completed: bool
    order: int
    total_time_spent: float
    created_at: float
    completed_at: float | None = None

    epic_id: str | None = None
    tag_ids: set[str] = field(default_factory=set)


@dataclass(slots=True)
class Tag:
    id: str
    name: str
    color_index: int
    order: int

    @property
    def color(self) -> TagColor:
        return TagColor(clamp_color_index(self.color_index))


@dataclass(slots=True)
class Epic:
    id: str
    name: str
    order: int


@dataclass(slots=True)
class ChecklistItem:
    id: str
    task_id: str
    title: str
    is_completed: bool
    order: int
