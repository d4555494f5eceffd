"""
Event list and event detail view state.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from handson.clients.errors import ApiError, NoSessionError, NotFoundError
from handson.models.session import Identity
from handson.schemas.events import Event, EventFilters, ParticipationStatus
from handson.services.events import EventService
from handson.services.session_store import SessionStore
from handson.utils.http import RetryConfig

from .base import ViewController

logger = logging.getLogger(__name__)


class _IdentityAware(ViewController):
    def __init__(self, session_store: SessionStore) -> None:
        super().__init__()
        self.identity: Optional[Identity] = None
        self._unsubscribe: Callable[[], None] = session_store.subscribe(self._set_identity)

    def _set_identity(self, identity: Optional[Identity]) -> None:
        self.identity = identity

    def _require_identity(self, action: str) -> Identity:
        if self.identity is None:
            raise NoSessionError(f"Sign in to {action}.")
        return self.identity

    def close(self) -> None:
        self._unsubscribe()
        super().close()


class EventListController(_IdentityAware):
    """Filterable list of events with in-place participation updates."""

    def __init__(self, events: EventService, session_store: SessionStore) -> None:
        super().__init__(session_store)
        self._events = events
        self.events: List[Event] = []
        self.filters = EventFilters()

    async def load(self, *, retry_config: Optional[RetryConfig] = None) -> bool:
        filters = self.filters
        return await self._load(
            lambda: self._events.list_events(filters),
            lambda events: setattr(self, "events", events),
            retry_config=retry_config,
        )

    async def set_filters(self, filters: EventFilters) -> bool:
        self.filters = filters
        return await self.load()

    async def reset_filters(self) -> bool:
        return await self.set_filters(EventFilters())

    def handle_registration_change(self, event_id: str, is_registered: bool) -> None:
        """Mirror a registration or cancellation into the listed event's participants."""
        if self.identity is None:
            logger.warning("Ignoring registration change for %s while signed out", event_id)
            return
        status = (
            ParticipationStatus.REGISTERED if is_registered else ParticipationStatus.CANCELED
        )
        user_id = self.identity.id
        self.events = [
            e.with_participation(user_id, status) if e.id == event_id else e
            for e in self.events
        ]

    async def register(self, event_id: str) -> None:
        self._require_identity("register for events")
        await self._events.register(event_id)
        self.handle_registration_change(event_id, True)

    async def cancel(self, event_id: str) -> None:
        self._require_identity("manage your registrations")
        await self._events.cancel_registration(event_id)
        self.handle_registration_change(event_id, False)


class EventDetailController(_IdentityAware):
    """A single event, the viewer's registration and ownership."""

    def __init__(
        self, events: EventService, session_store: SessionStore, event_id: str
    ) -> None:
        super().__init__(session_store)
        self._events = events
        self.event_id = event_id
        self.event: Optional[Event] = None
        self.not_found = False
        self.deleted = False

    @property
    def registered(self) -> bool:
        if self.event is None or self.identity is None:
            return False
        return self.event.is_registered(self.identity.id)

    @property
    def is_creator(self) -> bool:
        if self.event is None or self.identity is None:
            return False
        return bool(self.event.creator_id) and self.event.creator_id == self.identity.id

    @property
    def is_help_post(self) -> bool:
        return bool(self.event and self.event.is_ongoing)

    async def load(self, *, retry_config: Optional[RetryConfig] = None) -> bool:
        self.not_found = False
        loaded = await self._load(
            lambda: self._events.get_event(self.event_id),
            self._apply_event,
            retry_config=retry_config,
        )
        if not loaded and isinstance(self.error, NotFoundError):
            self.event = None
            self.not_found = True
        return loaded

    async def register(self) -> None:
        identity = self._require_identity("register for this event")
        await self._events.register(self.event_id)
        if self.event is not None:
            self.event = self.event.with_participation(
                identity.id, ParticipationStatus.REGISTERED
            )

    async def cancel(self) -> None:
        identity = self._require_identity("manage your registration")
        await self._events.cancel_registration(self.event_id)
        if self.event is not None:
            self.event = self.event.with_participation(identity.id, ParticipationStatus.CANCELED)

    async def delete(self) -> None:
        if not self.is_creator:
            raise PermissionError("Only the creator can delete this event.")
        try:
            await self._events.delete_event(self.event_id)
        except ApiError as exc:
            logger.error("Error deleting event %s: %s", self.event_id, exc)
            self.error = exc
            raise
        self.deleted = True
        self.event = None

    def _apply_event(self, event: Event) -> None:
        self.event = event


__all__ = ["EventDetailController", "EventListController"]
