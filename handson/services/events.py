"""
Typed request builders for the events endpoints.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from handson.clients.api import ApiClient
from handson.clients.errors import ApiError, AuthExpiredError, NotFoundError
from handson.schemas.events import (
    ActionResult,
    Event,
    EventCreate,
    EventEnvelope,
    EventFilters,
    EventListEnvelope,
    EventUpdate,
    RegistrationStatus,
)

logger = logging.getLogger(__name__)


class EventService:
    """One HTTP call per operation; no state of its own."""

    _BASE = "/api/events"

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def list_events(self, filters: Optional[EventFilters] = None) -> List[Event]:
        params = (filters or EventFilters()).to_params()
        envelope = await self._api.get(self._BASE, EventListEnvelope, params=params)
        return envelope.events

    async def get_event(self, event_id: str) -> Event:
        envelope = await self._api.get(f"{self._BASE}/{event_id}", EventEnvelope)
        if envelope.event is None:
            raise NotFoundError(f"Event {event_id} not found", status_code=404)
        return envelope.event

    async def create_event(self, event: EventCreate) -> Event:
        logger.info("Creating event %r", event.title)
        envelope = await self._api.post(self._BASE, EventEnvelope, json=event.to_payload())
        if envelope.event is None:
            raise ApiError("Event creation returned no event")
        return envelope.event

    async def update_event(self, event_id: str, update: EventUpdate) -> Event:
        envelope = await self._api.put(
            f"{self._BASE}/{event_id}", EventEnvelope, json=update.to_payload()
        )
        if envelope.event is None:
            raise ApiError(f"Update of event {event_id} returned no event")
        return envelope.event

    async def delete_event(self, event_id: str) -> ActionResult:
        return await self._api.delete(f"{self._BASE}/{event_id}", ActionResult)

    async def register(self, event_id: str) -> ActionResult:
        return await self._api.post(f"{self._BASE}/{event_id}/register", ActionResult)

    async def cancel_registration(self, event_id: str) -> ActionResult:
        return await self._api.post(f"{self._BASE}/{event_id}/cancel", ActionResult)

    async def registration_status(self, event_id: str) -> bool:
        """Whether the current user is registered; lookup failures read as ``False``."""
        try:
            status = await self._api.get(
                f"{self._BASE}/{event_id}/registration-status", RegistrationStatus
            )
        except AuthExpiredError:
            raise
        except ApiError as exc:
            logger.error("Error checking registration status for event %s: %s", event_id, exc)
            return False
        return status.registered

    async def list_user_events(self, status: Optional[str] = None) -> List[Event]:
        params = {"status": status} if status else None
        envelope = await self._api.get(
            f"{self._BASE}/user/registered", EventListEnvelope, params=params
        )
        return envelope.events


__all__ = ["EventService"]
