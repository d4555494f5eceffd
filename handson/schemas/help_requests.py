"""
Pydantic models for community help requests, their helpers and comments.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .events import check_schedule


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class HelpRequestStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProfileSummary(BaseModel):
    """Embedded author/helper profile fragment."""

    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    full_name: Optional[str] = None


class Helper(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None


class Comment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: Optional[str] = None
    content: str
    created_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None

    @property
    def author_name(self) -> str:
        if self.profile and self.profile.username:
            return self.profile.username
        return "Anonymous"


class HelpRequest(BaseModel):
    """Help request as returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    urgency: Urgency = Urgency.MEDIUM
    status: HelpRequestStatus = HelpRequestStatus.OPEN
    creator_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_ongoing: bool = False
    capacity: Optional[int] = Field(None, ge=0)
    helpers: List[Helper] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _validate_schedule(self) -> "HelpRequest":
        check_schedule(self.is_ongoing, self.start_date, self.end_date)
        return self


class HelpRequestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    location: Optional[str] = None
    category: Optional[str] = None
    urgency: Urgency = Urgency.MEDIUM

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class HelpRequestUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    urgency: Optional[Urgency] = None
    status: Optional[HelpRequestStatus] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class HelpRequestFilters(BaseModel):
    urgency: str = ""
    category: str = ""
    status: str = ""

    def to_params(self) -> Dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value}


class HelpRequestListEnvelope(BaseModel):
    help_requests: List[HelpRequest] = Field(default_factory=list, alias="helpRequests")


class HelpRequestEnvelope(BaseModel):
    help_request: Optional[HelpRequest] = Field(None, alias="helpRequest")


class HelperListEnvelope(BaseModel):
    helpers: List[Helper] = Field(default_factory=list)


class CommentListEnvelope(BaseModel):
    comments: List[Comment] = Field(default_factory=list)


class CommentEnvelope(BaseModel):
    comment: Optional[Comment] = None


__all__ = [
    "Comment",
    "CommentEnvelope",
    "CommentListEnvelope",
    "Helper",
    "HelperListEnvelope",
    "HelpRequest",
    "HelpRequestCreate",
    "HelpRequestEnvelope",
    "HelpRequestFilters",
    "HelpRequestListEnvelope",
    "HelpRequestStatus",
    "HelpRequestUpdate",
    "ProfileSummary",
    "Urgency",
]
