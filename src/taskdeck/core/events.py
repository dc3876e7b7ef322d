# src/taskdeck/core/events.py

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Event:
    """
    Something changed in the domain.

    subject_id is the id observers key on: for child mutations (a checklist
    item toggled) it is the owning task's id, so views of the task refresh.
    """

    type: str
    subject_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    ts: float = field(default_factory=time.time)


EventHandler = Callable[[Event], Any]


@dataclass(slots=True)
class _Subscription:
    handler: EventHandler
    event_type: str | None
    subject_id: str | None

    def matches(self, event: Event) -> bool:
        if self.event_type is not None:
            # "task.*" matches every task event.
            if self.event_type.endswith(".*"):
                if not event.type.startswith(self.event_type[:-1]):
                    return False
            elif event.type != self.event_type:
                return False
        if self.subject_id is not None and event.subject_id != self.subject_id:
            return False
        return True


class EventBus:
    """In-memory synchronous pub/sub bus."""

    def __init__(self) -> None:
        self._subs: list[_Subscription] = []
        self.events_published = 0

    def subscribe(
        self,
        handler: EventHandler,
        *,
        event_type: str | None = None,
        subject_id: str | None = None,
    ) -> Callable[[], None]:
        sub = _Subscription(handler=handler, event_type=event_type, subject_id=subject_id)
        self._subs.append(sub)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subs.remove(sub)

        return _unsubscribe

    def publish(self, event_type: str, subject_id: str | None = None, **payload: Any) -> Event:
        event = Event(type=event_type, subject_id=subject_id, payload=payload)
        self.events_published += 1
        self._dispatch(event)
        return event

    def _dispatch(self, event: Event) -> None:
        for sub in list(self._subs):
            if not sub.matches(event):
                continue
            try:
                sub.handler(event)
            except Exception:
                logger.exception("Event handler failed type=%s subject=%s", event.type, event.subject_id)
