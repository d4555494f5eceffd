"""
Dashboard view state: tabs, the signed-in user's events and volunteer stats.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode

from handson.clients.errors import ApiError
from handson.models.session import Identity
from handson.schemas.events import Event, EventFilters, ParticipationStatus
from handson.schemas.profile import Profile
from handson.services.events import EventService
from handson.services.profiles import ProfileService
from handson.services.session_store import SessionStore
from handson.utils.http import RetryConfig

from .base import ViewController
from .registration import RegistrationLedger, VolunteerStats, utcnow

logger = logging.getLogger(__name__)


class DashboardTab(str, Enum):
    PROFILE = "profile"
    EVENTS = "events"
    EXPLORE = "explore"


class DashboardController(ViewController):
    """Multi-tab dashboard with optimistic registration updates."""

    def __init__(
        self,
        events: EventService,
        session_store: SessionStore,
        *,
        profiles: Optional[ProfileService] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__()
        self._events = events
        self._profiles = profiles
        self.ledger = RegistrationLedger(clock=clock)
        self.tab = DashboardTab.PROFILE
        self.filters = EventFilters()
        self.selected_event_id: Optional[str] = None
        self.profile: Optional[Profile] = None
        self.identity: Optional[Identity] = None
        self._unsubscribe = session_store.subscribe(self._on_identity_change)

    @property
    def stats(self) -> VolunteerStats:
        return self.ledger.stats

    @property
    def selected_event(self) -> Optional[Event]:
        if self.selected_event_id is None:
            return None
        return self.ledger.find(self.selected_event_id)

    def close(self) -> None:
        self._unsubscribe()
        super().close()

    def open_from_query(self, query: str) -> DashboardTab:
        """Apply ``?tab=...&event=...``; unknown tabs fall back to the profile tab."""
        values = parse_qs(query.lstrip("?"))
        requested = (values.get("tab") or [""])[0]
        try:
            self.tab = DashboardTab(requested)
        except ValueError:
            self.tab = DashboardTab.PROFILE
        event_ids = values.get("event")
        self.selected_event_id = event_ids[0] if event_ids else None
        return self.tab

    def to_query(self) -> str:
        params = {"tab": self.tab.value}
        if self.selected_event_id:
            params["event"] = self.selected_event_id
        return urlencode(params)

    def select_tab(self, tab: DashboardTab) -> None:
        self.tab = tab

    def select_event(self, event_id: Optional[str]) -> Optional[Event]:
        self.selected_event_id = event_id
        return self.selected_event

    async def load(self, *, retry_config: Optional[RetryConfig] = None) -> bool:
        """Fetch upcoming, past and explorable events in one round."""
        if self.identity is None:
            return False

        async def fetch() -> Tuple[List[Event], List[Event], List[Event]]:
            upcoming, past, explore = await asyncio.gather(
                self._events.list_user_events("upcoming"),
                self._events.list_user_events("past"),
                self._events.list_events(self.filters),
            )
            return upcoming, past, explore

        def apply(result: Tuple[List[Event], List[Event], List[Event]]) -> None:
            upcoming, past, explore = result
            self.ledger.replace(upcoming=upcoming, past=past, all_events=explore)

        return await self._load(fetch, apply, retry_config=retry_config)

    async def set_filters(self, filters: EventFilters) -> bool:
        self.filters = filters
        return await self._load(
            lambda: self._events.list_events(filters),
            lambda events: self.ledger.replace(all_events=events),
        )

    async def load_profile(self) -> Optional[Profile]:
        if self._profiles is None or self.identity is None:
            return None
        user_id = self.identity.id
        loaded = await self._load(
            lambda: self._profiles.get_profile(user_id),
            lambda profile: setattr(self, "profile", profile),
        )
        return self.profile if loaded else None

    def apply_registration_change(
        self, event_id: str, is_registered: bool, *, now: Optional[datetime] = None
    ) -> None:
        self.ledger.apply(event_id, is_registered, now=now)
        if self.identity is None:
            return
        status = (
            ParticipationStatus.REGISTERED if is_registered else ParticipationStatus.CANCELED
        )
        user_id = self.identity.id
        self.ledger.all = [
            e.with_participation(user_id, status) if e.id == event_id else e
            for e in self.ledger.all
        ]

    async def register(self, event_id: str) -> None:
        snapshot = self.ledger.snapshot(event_id)
        self.apply_registration_change(event_id, True)
        try:
            await self._events.register(event_id)
        except ApiError as exc:
            logger.error("Error registering for event %s: %s", event_id, exc)
            self.ledger.restore(event_id, snapshot)
            self.error = exc
            raise

    async def cancel(self, event_id: str) -> None:
        snapshot = self.ledger.snapshot(event_id)
        self.apply_registration_change(event_id, False)
        try:
            await self._events.cancel_registration(event_id)
        except ApiError as exc:
            logger.error("Error canceling registration for event %s: %s", event_id, exc)
            self.ledger.restore(event_id, snapshot)
            self.error = exc
            raise

    def _on_identity_change(self, identity: Optional[Identity]) -> None:
        previous = self.identity
        self.identity = identity
        if identity is None or (previous is not None and previous.id != identity.id):
            self._invalidate_pending()
            self.ledger.clear()
            self.selected_event_id = None
            self.profile = None


__all__ = ["DashboardController", "DashboardTab"]
