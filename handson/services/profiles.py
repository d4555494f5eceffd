"""
Profile reads and writes.

The HandsOn API serves the merged profile for the signed-in user; edits go
straight to the backend ``profiles`` table and the auth user's metadata, the
way the profile form has always saved them.
"""

from __future__ import annotations

import logging
from typing import Optional

from handson.clients.api import ApiClient
from handson.clients.auth_backend import AuthBackendClient, ProfileTableClient
from handson.clients.errors import AuthBackendError, NoSessionError
from handson.schemas.profile import Profile, ProfileEnvelope, ProfileUpdate
from handson.services.credentials import CredentialProvider

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(
        self,
        api: ApiClient,
        table: ProfileTableClient,
        backend: AuthBackendClient,
        credentials: CredentialProvider,
    ) -> None:
        self._api = api
        self._table = table
        self._backend = backend
        self._credentials = credentials

    async def get_api_profile(self, *, access_token: Optional[str] = None) -> Optional[Profile]:
        """``GET /api/users/profile``.

        An explicit token bypasses the provider lookup and disables the 401
        refresh, so this is safe to call from an auth change listener.
        """
        if access_token:
            envelope = await self._api.get(
                "/api/users/profile",
                ProfileEnvelope,
                headers={"Authorization": f"Bearer {access_token}"},
                allow_refresh=False,
            )
        else:
            envelope = await self._api.get("/api/users/profile", ProfileEnvelope)
        return envelope.user

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Profile row for ``user_id``; a missing row is ``None``, not an error."""
        token = await self._require_token()
        return await self._table.get_profile(token, user_id)

    async def save_profile(self, user_id: str, update: ProfileUpdate) -> Profile:
        token = await self._require_token()
        profile = await self._table.upsert_profile(token, user_id, update)
        try:
            await self._backend.update_user(
                token, {"full_name": update.full_name, "username": update.username}
            )
        except AuthBackendError as exc:
            # The profiles row is the source of truth; metadata is a convenience copy.
            logger.warning("Could not mirror profile into auth metadata: %s", exc)
        return profile

    async def _require_token(self) -> str:
        token = await self._credentials.get_access_token()
        if not token:
            raise NoSessionError("Sign in to manage your profile.")
        return token


__all__ = ["ProfileService"]
