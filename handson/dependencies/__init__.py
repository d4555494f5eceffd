"""Expose factory helpers for the shared clients and services."""

from .clients import (
    get_api_client,
    get_auth_backend_client,
    get_auth_service,
    get_credential_provider,
    get_event_service,
    get_help_request_service,
    get_profile_service,
    get_profile_table_client,
    get_session_persistence,
    get_session_store,
    get_sqlite_store,
    get_token_cipher_service,
)
from .config import get_app_settings

__all__ = [
    "get_api_client",
    "get_app_settings",
    "get_auth_backend_client",
    "get_auth_service",
    "get_credential_provider",
    "get_event_service",
    "get_help_request_service",
    "get_profile_service",
    "get_profile_table_client",
    "get_session_persistence",
    "get_session_store",
    "get_sqlite_store",
    "get_token_cipher_service",
]
