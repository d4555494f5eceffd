"""Service layer exports."""

from .auth import AuthService
from .credentials import CredentialProvider
from .events import EventService
from .help_requests import HelpRequestService
from .profiles import ProfileService
from .session_persistence import SessionPersistence
from .session_store import SessionStore
from .token_cipher import TokenCipherService

__all__ = [
    "AuthService",
    "CredentialProvider",
    "EventService",
    "HelpRequestService",
    "ProfileService",
    "SessionPersistence",
    "SessionStore",
    "TokenCipherService",
]
