"""
Authenticated request pipeline for the HandsOn REST API.

Every call goes through :meth:`ApiClient.request`, which attaches the bearer
credential, recovers once from an expired credential and maps failures onto
the exception taxonomy in :mod:`handson.clients.errors`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from handson.core.config import ApiSettings

from .errors import (
    ApiError,
    AuthBackendError,
    AuthExpiredError,
    ForbiddenError,
    NetworkError,
    NoSessionError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
    ValidationError,
)

if TYPE_CHECKING:
    from handson.services.credentials import CredentialProvider
    from handson.services.session_store import SessionStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Sign-in and sign-up must never carry an automatically attached credential.
IDENTITY_ENDPOINTS = ("/api/users/login", "/api/users/register")

_SESSION_EXPIRED = "Your session has expired. Please sign in again."


def is_identity_endpoint(path: str) -> bool:
    return any(marker in path for marker in IDENTITY_ENDPOINTS)


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase


class ApiClient:
    """Dispatch JSON requests with credential attachment and a single 401 recovery."""

    def __init__(
        self,
        settings: ApiSettings,
        credentials: CredentialProvider,
        session_store: SessionStore,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credentials = credentials
        self._session_store = session_store
        # Long-lived client: the cookie jar carries the server-side session.
        self._client = httpx.AsyncClient(
            base_url=str(settings.base_url),
            timeout=settings.timeout_seconds,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        allow_refresh: bool = True,
    ) -> httpx.Response:
        """Send a request and return the 2xx response; raise :class:`ApiError` otherwise.

        ``allow_refresh=False`` turns a 401 into :class:`AuthExpiredError` without
        touching the credential provider. Auth change listeners must use it, since
        they may run while a refresh is in flight.
        """
        request = self._client.build_request(
            method, path, params=params, json=json, headers=headers
        )
        identity_endpoint = is_identity_endpoint(path)
        if not identity_endpoint and "Authorization" not in request.headers:
            token = await self._current_token()
            if token:
                request.headers["Authorization"] = f"Bearer {token}"

        response = await self._dispatch(request)
        if response.status_code == httpx.codes.UNAUTHORIZED and not identity_endpoint:
            if not allow_refresh:
                raise AuthExpiredError(_SESSION_EXPIRED, status_code=401)
            response = await self._retry_with_fresh_credential(request)
        return self._raise_for_status(response)

    async def request_model(
        self,
        method: str,
        path: str,
        model: Type[ModelT],
        **kwargs: Any,
    ) -> ModelT:
        """Send a request and validate the JSON body against ``model``."""
        response = await self.request(method, path, **kwargs)
        try:
            payload = response.json() if response.content else {}
            return model.model_validate(payload)
        except (ValueError, PydanticValidationError) as exc:
            raise ResponseFormatError(
                f"Unexpected response body from {method} {path}",
                status_code=response.status_code,
                payload=response.text,
            ) from exc

    async def get(self, path: str, model: Type[ModelT], **kwargs: Any) -> ModelT:
        return await self.request_model("GET", path, model, **kwargs)

    async def post(self, path: str, model: Type[ModelT], **kwargs: Any) -> ModelT:
        return await self.request_model("POST", path, model, **kwargs)

    async def put(self, path: str, model: Type[ModelT], **kwargs: Any) -> ModelT:
        return await self.request_model("PUT", path, model, **kwargs)

    async def delete(self, path: str, model: Type[ModelT], **kwargs: Any) -> ModelT:
        return await self.request_model("DELETE", path, model, **kwargs)

    async def _current_token(self) -> Optional[str]:
        try:
            return await self._credentials.get_access_token()
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Could not read the current credential: %s", exc)
            return None

    async def _retry_with_fresh_credential(self, original: httpx.Request) -> httpx.Response:
        logger.info(
            "API %s %s returned 401; refreshing credential", original.method, original.url.path
        )
        try:
            session = await self._credentials.refresh()
        except (AuthBackendError, NoSessionError) as exc:
            logger.warning("Credential refresh failed: %s", exc)
            self._session_store.set_identity(None)
            raise AuthExpiredError(_SESSION_EXPIRED, status_code=401) from exc

        headers = {
            key: value
            for key, value in original.headers.items()
            if key.lower() not in ("authorization", "cookie", "content-length")
        }
        headers["Authorization"] = f"Bearer {session.access_token}"
        retry = self._client.build_request(
            original.method, original.url, content=original.content, headers=headers
        )
        response = await self._dispatch(retry)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthExpiredError(_SESSION_EXPIRED, status_code=401)
        return response

    async def _dispatch(self, request: httpx.Request) -> httpx.Response:
        logger.debug("API request: %s %s", request.method, request.url)
        try:
            response = await self._client.send(request)
        except httpx.TransportError as exc:
            logger.error("API request %s %s failed: %s", request.method, request.url, exc)
            raise NetworkError(f"Could not reach the API: {exc}") from exc
        logger.debug(
            "API response: %s for %s %s",
            response.status_code,
            request.method,
            request.url.path,
        )
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> httpx.Response:
        if response.is_success:
            return response

        status_code = response.status_code
        message = _server_message(response)
        payload: Any
        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        error_type: Type[ApiError]
        if status_code == httpx.codes.FORBIDDEN:
            error_type = ForbiddenError
        elif status_code == httpx.codes.NOT_FOUND:
            error_type = NotFoundError
        elif status_code >= 500:
            error_type = ServerError
        else:
            error_type = ValidationError
        raise error_type(message, status_code=status_code, payload=payload)


__all__ = ["ApiClient", "IDENTITY_ENDPOINTS", "is_identity_endpoint"]
