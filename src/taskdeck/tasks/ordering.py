# tasks/ordering.py

"""
Dense ordering helpers.

An "order" field is a manually maintained rank: within its scope (active
tasks, all tags, all epics, one task's checklist) the values must be exactly
0..N-1. These helpers compute the new ranks; callers persist them.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")


def next_order(orders: Iterable[int]) -> int:
    """Order for an item appended at the end of a scope."""
    current = list(orders)
    return max(current) + 1 if current else 0


def dense_pairs(ids: Iterable[str]) -> list[tuple[str, int]]:
    """(id, index) pairs for the given sequence."""
    return [(entity_id, index) for index, entity_id in enumerate(ids)]


def changed_pairs(current: dict[str, int], ids: Iterable[str]) -> list[tuple[str, int]]:
    """Like dense_pairs, but only the rows whose rank actually changes."""
    return [(eid, idx) for eid, idx in dense_pairs(ids) if current.get(eid) != idx]


def move_offsets(items: Sequence[T], sources: Iterable[int], destination: int) -> list[T]:
    """
    Move the items at `sources` so they land before `destination`.

    `destination` is an index into the list *before* the move, the way
    list-editing widgets report drag-and-drop (0 = top, len(items) = bottom).
    Out-of-range source offsets are ignored.
    """
    src = sorted({i for i in sources if 0 <= i < len(items)})
    if not src:
        return list(items)
    destination = max(0, min(len(items), destination))
    moving = [items[i] for i in src]
    src_set = set(src)
    rest = [item for i, item in enumerate(items) if i not in src_set]
    insert_at = destination - sum(1 for i in src if i < destination)
    return rest[:insert_at] + moving + rest[insert_at:]


def merge_visible_order(full: Sequence[str], visible: Iterable[str]) -> list[str]:
    """
    Apply a reordered visible subset to the full sequence.

    The visible ids are written back into the slots they already occupy in
    `full`; ids hidden from the subset keep their slots. Unknown or duplicate
    ids in `visible` are ignored.
    """
    full_set = set(full)
    seen: set[str] = set()
    reordered: list[str] = []
    for eid in visible:
        if eid in full_set and eid not in seen:
            reordered.append(eid)
            seen.add(eid)

    slots = [i for i, eid in enumerate(full) if eid in seen]
    out = list(full)
    for slot, eid in zip(slots, reordered):
        out[slot] = eid
    return out


def apply_sequence(full: Sequence[str], ordered: Iterable[str]) -> list[str]:
    """
    Put `ordered` first (known ids only, no duplicates), then every
    remaining id of `full` in its existing relative order.
    """
    full_set = set(full)
    head: list[str] = []
    for eid in ordered:
        if eid in full_set and eid not in head:
            head.append(eid)
    head_set = set(head)
    return head + [eid for eid in full if eid not in head_set]
