"""Public schema exports."""

from .events import (
    ActionResult,
    Event,
    EventCreate,
    EventEnvelope,
    EventFilters,
    EventListEnvelope,
    EventUpdate,
    Participant,
    ParticipationStatus,
    RegistrationStatus,
)
from .help_requests import (
    Comment,
    CommentEnvelope,
    CommentListEnvelope,
    Helper,
    HelperListEnvelope,
    HelpRequest,
    HelpRequestCreate,
    HelpRequestEnvelope,
    HelpRequestFilters,
    HelpRequestListEnvelope,
    HelpRequestStatus,
    HelpRequestUpdate,
    Urgency,
)
from .profile import Profile, ProfileCreate, ProfileEnvelope, ProfileUpdate

__all__ = [
    "ActionResult",
    "Comment",
    "CommentEnvelope",
    "CommentListEnvelope",
    "Event",
    "EventCreate",
    "EventEnvelope",
    "EventFilters",
    "EventListEnvelope",
    "EventUpdate",
    "Helper",
    "HelperListEnvelope",
    "HelpRequest",
    "HelpRequestCreate",
    "HelpRequestEnvelope",
    "HelpRequestFilters",
    "HelpRequestListEnvelope",
    "HelpRequestStatus",
    "HelpRequestUpdate",
    "Participant",
    "ParticipationStatus",
    "Profile",
    "ProfileCreate",
    "ProfileEnvelope",
    "ProfileUpdate",
    "RegistrationStatus",
    "Urgency",
]
