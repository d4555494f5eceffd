"""
Factory functions providing the shared clients and services.
"""

import logging
from datetime import timedelta
from functools import lru_cache

from handson.clients import (
    ApiClient,
    AuthBackendClient,
    ProfileTableClient,
    SQLiteKeyValueStore,
)
from handson.services import (
    AuthService,
    CredentialProvider,
    EventService,
    HelpRequestService,
    ProfileService,
    SessionPersistence,
    SessionStore,
    TokenCipherService,
)

from .config import get_app_settings

logger = logging.getLogger(__name__)

_FALLBACK_SECRET = "handson-local-session"


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for the stored session."""
    settings = get_app_settings()
    secret = settings.security.token_encryption_secret
    if not secret:
        logger.warning(
            "HANDSON_TOKEN_ENCRYPTION_SECRET is not set; the stored session is "
            "encrypted with a non-secret key"
        )
        secret = settings.auth_backend.anon_key or _FALLBACK_SECRET
    return TokenCipherService(secret=secret)


@lru_cache()
def get_sqlite_store() -> SQLiteKeyValueStore:
    """Provide the durable key/value store backing the session."""
    settings = get_app_settings()
    return SQLiteKeyValueStore(settings.auth_backend.session_db_path)


@lru_cache()
def get_session_persistence() -> SessionPersistence:
    settings = get_app_settings()
    return SessionPersistence(
        get_sqlite_store(),
        get_token_cipher_service(),
        storage_key=settings.auth_backend.storage_key,
    )


@lru_cache()
def get_auth_backend_client() -> AuthBackendClient:
    """Create a singleton auth backend client."""
    return AuthBackendClient(get_app_settings().auth_backend)


@lru_cache()
def get_profile_table_client() -> ProfileTableClient:
    return ProfileTableClient(get_app_settings().auth_backend)


@lru_cache()
def get_credential_provider() -> CredentialProvider:
    """Provide the process-wide credential provider."""
    settings = get_app_settings()
    return CredentialProvider(
        get_auth_backend_client(),
        get_session_persistence(),
        refresh_margin=timedelta(seconds=settings.auth_backend.refresh_margin_seconds),
    )


@lru_cache()
def get_session_store() -> SessionStore:
    """Provide the process-wide identity store."""
    return SessionStore()


@lru_cache()
def get_api_client() -> ApiClient:
    """Provide the authenticated API client."""
    settings = get_app_settings()
    return ApiClient(settings.api, get_credential_provider(), get_session_store())


def get_event_service() -> EventService:
    return EventService(get_api_client())


def get_help_request_service() -> HelpRequestService:
    return HelpRequestService(get_api_client())


def get_profile_service() -> ProfileService:
    """Build a profile service over the API and the profiles table."""
    return ProfileService(
        get_api_client(),
        get_profile_table_client(),
        get_auth_backend_client(),
        get_credential_provider(),
    )


@lru_cache()
def get_auth_service() -> AuthService:
    """Provide the auth service; call ``initialize()`` once before use."""
    return AuthService(
        get_credential_provider(),
        get_api_client(),
        get_session_store(),
        get_profile_service(),
        get_profile_table_client(),
    )


__all__ = [
    "get_api_client",
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
