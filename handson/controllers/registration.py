"""
Registration bookkeeping for the dashboard's event collections.

Registering or canceling moves an event between the in-memory ``upcoming``
and ``past`` lists without refetching them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from handson.schemas.events import Event

logger = logging.getLogger(__name__)

HOURS_PER_EVENT = 2
POINTS_PER_HOUR = 5


@dataclass(frozen=True)
class VolunteerStats:
    hours: int
    points: int

    @classmethod
    def from_past_count(cls, past_count: int) -> "VolunteerStats":
        hours = past_count * HOURS_PER_EVENT
        return cls(hours=hours, points=hours * POINTS_PER_HOUR)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


Slot = Optional[Tuple[int, Event]]
EntrySnapshot = Tuple[Slot, Slot, Slot]


def _locate(items: List[Event], entity_id: str) -> Slot:
    for index, event in enumerate(items):
        if event.id == entity_id:
            return index, event
    return None


def _put_back(items: List[Event], entity_id: str, slot: Slot) -> List[Event]:
    current = _locate(items, entity_id)
    if slot is None:
        return [e for e in items if e.id != entity_id]
    index, event = slot
    if current is not None:
        return [event if e.id == entity_id else e for e in items]
    restored = list(items)
    restored.insert(min(index, len(restored)), event)
    return restored


class RegistrationLedger:
    """The ``upcoming``/``past``/``all`` collections and their reconciliation.

    Invariant: a registered event id is in at most one of ``upcoming`` and
    ``past``; a canceled one is in neither. ``all`` is never modified here.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self.upcoming: List[Event] = []
        self.past: List[Event] = []
        self.all: List[Event] = []

    def replace(
        self,
        *,
        upcoming: Optional[Iterable[Event]] = None,
        past: Optional[Iterable[Event]] = None,
        all_events: Optional[Iterable[Event]] = None,
    ) -> None:
        if upcoming is not None:
            self.upcoming = list(upcoming)
        if past is not None:
            self.past = list(past)
        if all_events is not None:
            self.all = list(all_events)

    def snapshot(self, entity_id: str) -> EntrySnapshot:
        """Capture where ``entity_id`` sits in each collection, and its value there."""
        return tuple(
            _locate(collection, entity_id)
            for collection in (self.upcoming, self.past, self.all)
        )

    def restore(self, entity_id: str, snapshot: EntrySnapshot) -> None:
        """Put ``entity_id`` back as captured, leaving every other entry alone."""
        upcoming, past, all_events = snapshot
        self.upcoming = _put_back(self.upcoming, entity_id, upcoming)
        self.past = _put_back(self.past, entity_id, past)
        self.all = _put_back(self.all, entity_id, all_events)

    def clear(self) -> None:
        self.upcoming, self.past, self.all = [], [], []

    def find(self, entity_id: str) -> Optional[Event]:
        for collection in (self.upcoming, self.past, self.all):
            for event in collection:
                if event.id == entity_id:
                    return event
        return None

    def apply(
        self, entity_id: str, is_registered: bool, *, now: Optional[datetime] = None
    ) -> None:
        """Reconcile the collections with one registration change. Idempotent."""
        if not is_registered:
            self.upcoming = [e for e in self.upcoming if e.id != entity_id]
            self.past = [e for e in self.past if e.id != entity_id]
            return

        event = self.find(entity_id)
        if event is None:
            logger.warning("Registration change for unknown event %s ignored", entity_id)
            return

        if event.starts_after(now or self._clock()):
            self.past = [e for e in self.past if e.id != entity_id]
            if not any(e.id == entity_id for e in self.upcoming):
                self.upcoming = [*self.upcoming, event]
        else:
            self.upcoming = [e for e in self.upcoming if e.id != entity_id]
            if not any(e.id == entity_id for e in self.past):
                self.past = [*self.past, event]

    @property
    def stats(self) -> VolunteerStats:
        return VolunteerStats.from_past_count(len(self.past))


__all__ = [
    "EntrySnapshot",
    "HOURS_PER_EVENT",
    "POINTS_PER_HOUR",
    "RegistrationLedger",
    "VolunteerStats",
    "utcnow",
]
