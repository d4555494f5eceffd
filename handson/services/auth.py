"""
Sign-up, sign-in and sign-out flows spanning the auth backend, the HandsOn
API and the session store.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from handson.clients.api import ApiClient
from handson.clients.auth_backend import ProfileTableClient
from handson.clients.errors import (
    ApiError,
    AuthBackendError,
    SignInError,
    SignOutError,
)
from handson.models.session import AuthChangeEvent, AuthSession, Identity
from handson.schemas.profile import ProfileCreate
from handson.services.credentials import CredentialProvider
from handson.services.profiles import ProfileService
from handson.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class AuthService:
    """Keeps the session store in step with the credential provider."""

    def __init__(
        self,
        credentials: CredentialProvider,
        api: ApiClient,
        session_store: SessionStore,
        profiles: ProfileService,
        profile_table: ProfileTableClient,
    ) -> None:
        self._credentials = credentials
        self._api = api
        self._store = session_store
        self._profiles = profiles
        self._profile_table = profile_table
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.initialized = False

    async def initialize(self) -> Optional[Identity]:
        """Subscribe to auth changes and recover any existing session."""
        if self._unsubscribe is None:
            self._unsubscribe = self._credentials.on_change(self._handle_auth_change)
        await self._credentials.start()
        self.initialized = True
        return self._store.get_current_identity()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def sign_up(
        self, email: str, password: str, full_name: Optional[str] = None
    ) -> Identity:
        """Create the account, seed its profile row and sign straight in.

        A failed profile insert is logged and does not fail the sign-up.
        """
        metadata = {"full_name": full_name} if full_name else None
        user = await self._credentials.sign_up(email, password, metadata=metadata)
        logger.info("User %s signed up", user.id)

        row = ProfileCreate.for_new_user(
            user_id=user.id,
            email=email,
            full_name=full_name,
            created_at=datetime.now(timezone.utc),
        )
        current = self._credentials.current_session
        try:
            await self._profile_table.insert_profile(
                current.access_token if current else None, row
            )
        except AuthBackendError as exc:
            logger.error("Error saving profile for %s: %s", user.id, exc)

        session = await self._credentials.sign_in_with_password(email, password)
        return self._identity_for(session)

    async def sign_in(self, email: str, password: str) -> Identity:
        """Backend sign-in followed by the API login that sets the cookie session."""
        try:
            session = await self._credentials.sign_in_with_password(email, password)
        except AuthBackendError as exc:
            logger.error("Auth backend sign-in error: %s", exc)
            raise SignInError(exc.message) from exc

        try:
            await self._api.request(
                "POST",
                "/api/users/login",
                json={"email": email, "password": password},
                headers={"Authorization": session.credential.authorization_header},
            )
        except ApiError as exc:
            logger.error("Login error: %s", exc)
            await self._credentials.discard_session()
            raise SignInError(exc.message) from exc
        return self._identity_for(session)

    def oauth_url(self, redirect_to: str, provider: str = "google") -> str:
        return self._credentials.build_oauth_url(provider, redirect_to)

    async def complete_oauth_sign_in(self, redirect_url: str) -> Identity:
        """Adopt the session from an OAuth redirect and hand it to the API."""
        try:
            session = await self._credentials.set_session_from_url(redirect_url)
        except AuthBackendError as exc:
            raise SignInError(exc.message) from exc

        try:
            await self._api.request(
                "POST", "/api/users/google-login", json={"session": session.to_wire()}
            )
        except ApiError as exc:
            logger.error("Server error during OAuth sign-in: %s", exc)
            await self._credentials.discard_session()
            raise SignInError(exc.message) from exc
        return self._identity_for(session)

    async def sign_out(self) -> None:
        """Invalidate both sessions independently; local identity is always cleared."""
        failures: list[Exception] = []
        try:
            await self._api.request("POST", "/api/users/logout")
        except ApiError as exc:
            logger.error("API logout error: %s", exc)
            failures.append(exc)
        try:
            await self._credentials.sign_out()
        except AuthBackendError as exc:
            failures.append(exc)

        if self._store.get_current_identity() is not None:
            self._store.set_identity(None)
        if failures:
            raise SignOutError(failures)

    async def refresh_session(self) -> Identity:
        session = await self._credentials.refresh()
        return self._identity_for(session)

    async def _handle_auth_change(
        self, event: AuthChangeEvent, session: Optional[AuthSession]
    ) -> None:
        if event is AuthChangeEvent.SIGNED_OUT:
            if self._store.get_current_identity() is not None:
                self._store.set_identity(None)
            return
        if session is None:
            # INITIAL_SESSION without a stored session: nobody was signed in.
            return
        await self._adopt(session)

    async def _adopt(self, session: AuthSession) -> None:
        identity = Identity.from_auth_user(session.user)
        self._store.set_identity(identity)
        try:
            profile = await self._profiles.get_api_profile(access_token=session.access_token)
        except ApiError as exc:
            logger.error("Error fetching user profile: %s", exc)
            return
        if profile is not None:
            self._store.set_identity(identity.merge_profile(profile))

    def _identity_for(self, session: AuthSession) -> Identity:
        current = self._store.get_current_identity()
        if current is not None and current.id == session.user.id:
            return current
        return Identity.from_auth_user(session.user)


__all__ = ["AuthService"]
