"""Pytest configuration shared across the suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from handson.clients.errors import AuthBackendError
from handson.models.session import AuthSession, AuthUser, Credential

SessionFactory = Callable[..., AuthSession]


def build_session(
    user_id: str = "user-1",
    *,
    access_token: str = "access-1",
    refresh_token: Optional[str] = "refresh-1",
    expires_in: int = 3600,
    email: str = "ada@example.com",
    metadata: Optional[Dict[str, Any]] = None,
) -> AuthSession:
    return AuthSession(
        credential=Credential(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        ),
        user=AuthUser(id=user_id, email=email, user_metadata=metadata or {}),
    )


class FakeAuthBackend:
    """In-memory stand-in for ``AuthBackendClient``."""

    def __init__(self) -> None:
        self.sign_in_session = build_session()
        self.refreshed_session = build_session(
            access_token="access-2", refresh_token="refresh-2"
        )
        self.sign_in_error: Optional[AuthBackendError] = None
        self.refresh_error: Optional[AuthBackendError] = None
        self.sign_out_error: Optional[AuthBackendError] = None
        self.refresh_calls: List[str] = []
        self.sign_out_calls: List[str] = []
        self.signed_up: List[Dict[str, Any]] = []
        self.user_metadata_updates: List[Dict[str, Any]] = []
        self.refresh_gate: Optional[asyncio.Event] = None

    async def sign_up(
        self, email: str, password: str, *, data: Optional[Dict[str, Any]] = None
    ) -> AuthUser:
        self.signed_up.append({"email": email, "data": data})
        return AuthUser(id=self.sign_in_session.user.id, email=email, user_metadata=data or {})

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if self.sign_in_error is not None:
            raise self.sign_in_error
        return self.sign_in_session

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        self.refresh_calls.append(refresh_token)
        if self.refresh_gate is not None:
            await self.refresh_gate.wait()
        else:
            await asyncio.sleep(0)
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.refreshed_session

    async def sign_out(self, access_token: str) -> None:
        self.sign_out_calls.append(access_token)
        if self.sign_out_error is not None:
            raise self.sign_out_error

    async def get_user(self, access_token: str) -> AuthUser:
        return self.sign_in_session.user

    async def update_user(self, access_token: str, data: Dict[str, Any]) -> AuthUser:
        self.user_metadata_updates.append(data)
        return self.sign_in_session.user

    def build_authorization_url(self, provider: str, redirect_to: str) -> str:
        return f"https://backend.example.test/auth/v1/authorize?provider={provider}"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def session_factory() -> SessionFactory:
    return build_session


@pytest.fixture
def fake_backend() -> FakeAuthBackend:
    return FakeAuthBackend()
