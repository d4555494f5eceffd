"""
Domain models for the authenticated session and the signed-in identity.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from handson.schemas.profile import Profile


class AuthChangeEvent(str, Enum):
    """Notifications emitted by the credential provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    SIGNED_OUT = "SIGNED_OUT"


class Credential(BaseModel):
    """Bearer token issued by the auth backend."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: datetime

    def is_expired(self, margin: timedelta = timedelta(0)) -> bool:
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= datetime.now(timezone.utc) + margin

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


class AuthUser(BaseModel):
    """User record as returned by the auth backend."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """A credential together with the user it was issued for."""

    credential: Credential
    user: AuthUser

    @classmethod
    def from_token_payload(
        cls, payload: Dict[str, Any], *, issued_at: Optional[datetime] = None
    ) -> "AuthSession":
        """Build a session from a ``/token`` style response body.

        ``expires_at`` (epoch seconds) wins over ``expires_in`` when both are present.
        """
        issued_at = issued_at or datetime.now(timezone.utc)
        if payload.get("expires_at") is not None:
            expires_at = datetime.fromtimestamp(int(payload["expires_at"]), tz=timezone.utc)
        else:
            expires_at = issued_at + timedelta(seconds=int(payload.get("expires_in") or 0))
        credential = Credential(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type") or "bearer",
            expires_at=expires_at,
        )
        return cls(credential=credential, user=AuthUser.model_validate(payload["user"]))

    @property
    def access_token(self) -> str:
        return self.credential.access_token

    def to_wire(self) -> Dict[str, Any]:
        """Serialize in the backend's own session shape, as the API expects it."""
        return {
            "access_token": self.credential.access_token,
            "refresh_token": self.credential.refresh_token,
            "token_type": self.credential.token_type,
            "expires_at": int(self.credential.expires_at.timestamp()),
            "user": self.user.model_dump(),
        }


class Identity(BaseModel):
    """The signed-in user as seen by the rest of the client.

    ``id`` is the only identifier used for ownership and participation checks.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)

    @classmethod
    def from_auth_user(cls, user: AuthUser) -> "Identity":
        metadata = user.user_metadata or {}
        return cls(
            id=user.id,
            email=user.email,
            full_name=metadata.get("full_name"),
            username=metadata.get("username"),
        )

    def merge_profile(self, profile: Profile) -> "Identity":
        """Overlay non-empty profile fields; the id never changes."""
        updates: Dict[str, Any] = {}
        for field_name in ("full_name", "username", "bio"):
            value = getattr(profile, field_name)
            if value:
                updates[field_name] = value
        if profile.skills:
            updates["skills"] = list(profile.skills)
        if profile.email and not self.email:
            updates["email"] = profile.email
        return self.model_copy(update=updates)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or (self.email or "").split("@")[0]


__all__ = [
    "AuthChangeEvent",
    "AuthSession",
    "AuthUser",
    "Credential",
    "Identity",
]
