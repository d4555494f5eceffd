"""
Credential provider bridging the hosted auth backend.

Owns the backend session (persisted through :class:`SessionPersistence`),
keeps the bearer credential fresh and notifies listeners about sign-in,
token refresh and sign-out.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sqlite3
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlsplit

from handson.clients.auth_backend import AuthBackendClient
from handson.clients.errors import AuthBackendError, NoSessionError
from handson.models.session import AuthChangeEvent, AuthSession, AuthUser
from handson.services.session_persistence import SessionPersistence

logger = logging.getLogger(__name__)

AuthChangeListener = Callable[
    [AuthChangeEvent, Optional[AuthSession]], Union[None, Awaitable[None]]
]


class CredentialProvider:
    """Obtain, renew and invalidate the auth backend session."""

    def __init__(
        self,
        backend: AuthBackendClient,
        persistence: Optional[SessionPersistence] = None,
        *,
        refresh_margin: timedelta = timedelta(seconds=60),
    ) -> None:
        self._backend = backend
        self._persistence = persistence
        self._refresh_margin = refresh_margin
        self._session: Optional[AuthSession] = None
        self._loaded = False
        self._started = False
        self._listeners: List[AuthChangeListener] = []
        self._refresh_task: Optional[asyncio.Task[AuthSession]] = None

    @property
    def current_session(self) -> Optional[AuthSession]:
        """Cached session without touching storage or the network."""
        return self._session

    async def start(self) -> Optional[AuthSession]:
        """Recover any stored session and emit ``INITIAL_SESSION`` once."""
        if self._started:
            return self._session
        self._started = True
        session = await self.get_session()
        await self._emit(AuthChangeEvent.INITIAL_SESSION, session)
        return session

    async def get_session(self) -> Optional[AuthSession]:
        """Return the usable session, or ``None`` when the user is not authenticated."""
        try:
            session = self._load()
        except sqlite3.Error:
            logger.exception("Error reading the stored auth session")
            return None
        if session is None:
            return None
        if session.credential.is_expired(self._refresh_margin):
            try:
                session = await self.refresh()
            except (AuthBackendError, NoSessionError) as exc:
                logger.error("Error getting auth session: %s", exc)
                return None
        return session

    async def get_access_token(self) -> Optional[str]:
        session = await self.get_session()
        return session.access_token if session else None

    async def sign_up(
        self, email: str, password: str, *, metadata: Optional[Dict[str, Any]] = None
    ) -> AuthUser:
        return await self._backend.sign_up(email, password, data=metadata)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = await self._backend.sign_in_with_password(email, password)
        self._store(session)
        await self._emit(AuthChangeEvent.SIGNED_IN, session)
        return session

    def build_oauth_url(self, provider: str, redirect_to: str) -> str:
        return self._backend.build_authorization_url(provider, redirect_to)

    async def set_session_from_url(self, url: str) -> AuthSession:
        """Adopt the session carried by an OAuth redirect URL."""
        parts = urlsplit(url)
        values = parse_qs(parts.fragment) or parse_qs(parts.query)
        params = {key: items[0] for key, items in values.items() if items}
        if params.get("error"):
            raise AuthBackendError(params.get("error_description") or params["error"])
        access_token = params.get("access_token")
        if not access_token:
            raise NoSessionError("Redirect URL does not carry a session.")

        user = await self._backend.get_user(access_token)
        session = AuthSession.from_token_payload({**params, "user": user.model_dump()})
        self._store(session)
        await self._emit(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        """Revoke the backend session; the local session is cleared regardless."""
        session = self._session if self._loaded else self._load()
        failure: Optional[AuthBackendError] = None
        if session is not None:
            try:
                await self._backend.sign_out(session.access_token)
            except AuthBackendError as exc:
                logger.error("Auth backend sign-out error: %s", exc)
                failure = exc
        await self.discard_session()
        if failure is not None:
            raise failure

    async def discard_session(self) -> None:
        """Forget the session locally without contacting the backend."""
        self._clear()
        await self._emit(AuthChangeEvent.SIGNED_OUT, None)

    async def refresh(self) -> AuthSession:
        """Renew the credential; concurrent callers share one backend round trip."""
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._refresh())
            task.add_done_callback(self._forget_refresh)
            self._refresh_task = task
        return await asyncio.shield(task)

    def on_change(self, listener: AuthChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _refresh(self) -> AuthSession:
        session = self._session if self._loaded else self._load()
        if session is None or not session.credential.refresh_token:
            raise NoSessionError("There is no session to refresh.")
        try:
            refreshed = await self._backend.refresh_session(session.credential.refresh_token)
        except AuthBackendError as exc:
            if exc.is_rejection:
                logger.warning("Refresh token rejected; dropping the stored session")
                await self.discard_session()
            raise
        self._store(refreshed)
        await self._emit(AuthChangeEvent.TOKEN_REFRESHED, refreshed)
        return refreshed

    def _forget_refresh(self, task: "asyncio.Task[AuthSession]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    def _load(self) -> Optional[AuthSession]:
        if not self._loaded:
            self._session = self._persistence.load() if self._persistence else None
            self._loaded = True
        return self._session

    def _store(self, session: AuthSession) -> None:
        self._session = session
        self._loaded = True
        if self._persistence is not None:
            self._persistence.save(session)

    def _clear(self) -> None:
        self._session = None
        self._loaded = True
        if self._persistence is not None:
            self._persistence.clear()

    async def _emit(
        self, event: AuthChangeEvent, session: Optional[AuthSession]
    ) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # pylint: disable=broad-except
                logger.exception("Auth change listener failed for %s", event.value)


__all__ = ["AuthChangeListener", "CredentialProvider"]
