"""
Hosted auth backend client.

These helpers speak the backend's REST dialect: the GoTrue endpoints for
sign-up, password sign-in, token refresh and sign-out, and the PostgREST
endpoint for the ``profiles`` table.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from handson.core.config import AuthBackendSettings
from handson.models.session import AuthSession, AuthUser
from handson.schemas.profile import Profile, ProfileCreate, ProfileUpdate

from .errors import AuthBackendError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or HTTPStatus(response.status_code).phrase
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.text


class _BackendClient:
    """Shared request plumbing; one short-lived ``httpx.AsyncClient`` per call."""

    def __init__(
        self,
        settings: AuthBackendSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        if self._settings.url is None or not self._settings.anon_key:
            raise AuthBackendError("Auth backend URL or public key is not configured.")
        return str(self._settings.url).rstrip("/")

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        anon_key = self._settings.anon_key or ""
        return {
            "apikey": anon_key,
            "Authorization": f"Bearer {access_token or anon_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        headers = self._headers(access_token)
        if extra_headers:
            headers.update(extra_headers)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, url, params=params, json=json, headers=headers
                )
        except httpx.HTTPError as exc:
            raise AuthBackendError(f"Auth backend unreachable: {exc}") from exc

        if response.is_error:
            raise AuthBackendError(
                _error_message(response), status_code=response.status_code
            )
        return response


class AuthBackendClient(_BackendClient):
    """Password, OAuth and token endpoints of the auth backend."""

    async def sign_up(
        self, email: str, password: str, *, data: Optional[Dict[str, Any]] = None
    ) -> AuthUser:
        response = await self._send(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": data or {}},
        )
        payload = response.json()
        # With email confirmation enabled the body is the bare user record.
        return AuthUser.model_validate(payload.get("user") or payload)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._parse_session(response)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        response = await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return self._parse_session(response)

    async def sign_out(self, access_token: str) -> None:
        await self._send("POST", "/auth/v1/logout", access_token=access_token)

    async def get_user(self, access_token: str) -> AuthUser:
        response = await self._send("GET", "/auth/v1/user", access_token=access_token)
        return AuthUser.model_validate(response.json())

    async def update_user(self, access_token: str, data: Dict[str, Any]) -> AuthUser:
        response = await self._send(
            "PUT", "/auth/v1/user", access_token=access_token, json={"data": data}
        )
        return AuthUser.model_validate(response.json())

    def build_authorization_url(self, provider: str, redirect_to: str) -> str:
        """Construct the third-party consent URL for an OAuth sign-in."""
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"{self.base_url}/auth/v1/authorize?{query}"

    @staticmethod
    def _parse_session(response: httpx.Response) -> AuthSession:
        payload = response.json()
        if not payload.get("access_token") or not payload.get("user"):
            raise AuthBackendError(
                "Incomplete session payload returned from the auth backend.",
                status_code=response.status_code,
            )
        return AuthSession.from_token_payload(payload)


class ProfileTableClient(_BackendClient):
    """Row access to the backend ``profiles`` table."""

    _PATH = "/rest/v1/profiles"

    async def insert_profile(self, access_token: Optional[str], row: ProfileCreate) -> None:
        await self._send(
            "POST",
            self._PATH,
            access_token=access_token,
            json=[row.model_dump(mode="json")],
            extra_headers={"Prefer": "return=minimal"},
        )

    async def get_profile(self, access_token: str, user_id: str) -> Optional[Profile]:
        response = await self._send(
            "GET",
            self._PATH,
            access_token=access_token,
            params={"user_id": f"eq.{user_id}", "select": "*"},
        )
        rows: List[Dict[str, Any]] = response.json()
        if not rows:
            return None
        return Profile.model_validate(rows[0])

    async def upsert_profile(
        self, access_token: str, user_id: str, update: ProfileUpdate
    ) -> Profile:
        row = {"user_id": user_id, **update.model_dump(mode="json")}
        response = await self._send(
            "POST",
            self._PATH,
            access_token=access_token,
            params={"on_conflict": "user_id"},
            json=[row],
            extra_headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        rows = response.json()
        return Profile.model_validate(rows[0] if rows else row)


__all__ = ["AuthBackendClient", "ProfileTableClient"]
