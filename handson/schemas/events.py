"""
Pydantic models for volunteer events and their registrations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ParticipationStatus(str, Enum):
    REGISTERED = "registered"
    CANCELED = "canceled"


def check_schedule(
    is_ongoing: bool, start: Optional[datetime], end: Optional[datetime]
) -> None:
    """Raise ``ValueError`` when scheduling fields contradict each other."""
    if is_ongoing and (start is not None or end is not None):
        raise ValueError("An ongoing entry cannot carry start or end timestamps.")
    if start is not None and end is not None and end < start:
        raise ValueError("End timestamp must not precede the start timestamp.")


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Participant(BaseModel):
    """A user's participation record on an event."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    status: ParticipationStatus = ParticipationStatus.REGISTERED
    created_at: Optional[datetime] = None


class Event(BaseModel):
    """Event as returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_ongoing: bool = False
    capacity: Optional[int] = Field(None, ge=0)
    creator_id: Optional[str] = None
    participants: List[Participant] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _validate_schedule(self) -> "Event":
        check_schedule(self.is_ongoing, self.start_date, self.end_date)
        return self

    @property
    def registered_count(self) -> int:
        return sum(
            1 for p in self.participants if p.status is ParticipationStatus.REGISTERED
        )

    @property
    def spots_left(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return max(self.capacity - self.registered_count, 0)

    def is_registered(self, user_id: str) -> bool:
        return any(
            p.user_id == user_id and p.status is ParticipationStatus.REGISTERED
            for p in self.participants
        )

    def starts_after(self, moment: datetime) -> bool:
        """True only for scheduled events whose start is strictly after ``moment``."""
        if self.is_ongoing or self.start_date is None:
            return False
        return as_utc(self.start_date) > as_utc(moment)

    def with_participation(
        self, user_id: str, status: ParticipationStatus
    ) -> "Event":
        """Return a copy with ``user_id``'s participation set to ``status``."""
        participants = list(self.participants)
        for index, participant in enumerate(participants):
            if participant.user_id == user_id:
                participants[index] = participant.model_copy(update={"status": status})
                break
        else:
            if status is ParticipationStatus.REGISTERED:
                participants.append(Participant(user_id=user_id, status=status))
        return self.model_copy(update={"participants": participants})


class EventCreate(BaseModel):
    """Payload for creating an event; the API expects camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    location: Optional[str] = None
    category: Optional[str] = None
    is_ongoing: bool = Field(False, alias="isOngoing")
    capacity: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")

    @model_validator(mode="after")
    def _validate_schedule(self) -> "EventCreate":
        check_schedule(self.is_ongoing, self.start_date, self.end_date)
        return self

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload.setdefault("capacity", None)
        return payload


class EventUpdate(BaseModel):
    """Partial update; only explicitly set fields are sent, in snake_case."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    is_ongoing: Optional[bool] = None
    capacity: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _validate_schedule(self) -> "EventUpdate":
        check_schedule(bool(self.is_ongoing), self.start_date, self.end_date)
        return self

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class EventFilters(BaseModel):
    """Query filters for the event listing."""

    type: Literal["all", "event", "help"] = "all"
    category: str = ""
    location: str = ""
    start_date: str = ""

    def to_params(self) -> Dict[str, str]:
        """Drop empty values; ``type=all`` is the server default and is omitted."""
        params = {
            "type": "" if self.type == "all" else self.type,
            "category": self.category,
            "location": self.location,
            "startDate": self.start_date,
        }
        return {key: value for key, value in params.items() if value}


class EventListEnvelope(BaseModel):
    events: List[Event] = Field(default_factory=list)


class EventEnvelope(BaseModel):
    event: Optional[Event] = None


class RegistrationStatus(BaseModel):
    registered: bool = False


class ActionResult(BaseModel):
    """Acknowledgement bodies returned by mutating endpoints."""

    model_config = ConfigDict(extra="allow")

    message: Optional[str] = None


__all__ = [
    "ActionResult",
    "Event",
    "EventCreate",
    "EventEnvelope",
    "EventFilters",
    "EventListEnvelope",
    "EventUpdate",
    "Participant",
    "ParticipationStatus",
    "RegistrationStatus",
    "as_utc",
    "check_schedule",
]
