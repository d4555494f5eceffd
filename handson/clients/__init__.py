"""Expose constructed client wrappers."""

from .api import ApiClient
from .auth_backend import AuthBackendClient, ProfileTableClient
from .sqlite_store import SQLiteKeyValueStore

__all__ = [
    "ApiClient",
    "AuthBackendClient",
    "ProfileTableClient",
    "SQLiteKeyValueStore",
]
