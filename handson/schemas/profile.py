"""Schemas for volunteer profiles."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """Profile row as stored by the backend ``profiles`` table or returned by the API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: str = Field(..., validation_alias=AliasChoices("user_id", "id"))
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    causes: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileCreate(BaseModel):
    """Initial profile row written right after sign-up."""

    user_id: str
    full_name: Optional[str] = None
    username: str
    created_at: datetime

    @classmethod
    def for_new_user(
        cls, *, user_id: str, email: str, full_name: Optional[str], created_at: datetime
    ) -> "ProfileCreate":
        """Default the username to the local part of the email address."""
        return cls(
            user_id=user_id,
            full_name=full_name,
            username=email.split("@")[0],
            created_at=created_at,
        )


class ProfileUpdate(BaseModel):
    """Editable profile fields submitted from the profile form."""

    full_name: Optional[str] = Field(None, max_length=120)
    username: Optional[str] = Field(None, min_length=1, max_length=40)
    bio: Optional[str] = Field(None, max_length=2000)
    skills: List[str] = Field(default_factory=list)
    causes: List[str] = Field(default_factory=list)


class ProfileEnvelope(BaseModel):
    """``GET /api/users/profile`` response body."""

    user: Optional[Profile] = None


__all__ = ["Profile", "ProfileCreate", "ProfileEnvelope", "ProfileUpdate"]
