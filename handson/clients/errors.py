"""Exception taxonomy shared by the API pipeline and the auth backend bridge."""

from __future__ import annotations

from typing import Any, Optional


class ApiError(Exception):
    """Base class for failures surfaced by the HandsOn API pipeline."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class AuthExpiredError(ApiError):
    """The credential could not be renewed; the user has to sign in again."""


class ForbiddenError(ApiError):
    """The caller is authenticated but not allowed to perform the operation."""


class NotFoundError(ApiError):
    """The requested resource does not exist."""


class ValidationError(ApiError):
    """The server rejected the request; ``message`` is the server's own text."""


class ServerError(ApiError):
    """The server failed with a 5xx response."""


class NetworkError(ApiError):
    """The request never produced an HTTP response."""


class ResponseFormatError(ApiError):
    """A 2xx response body did not match the expected shape."""


class AuthBackendError(Exception):
    """Raised when the hosted auth backend rejects a call or cannot be reached."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_rejection(self) -> bool:
        """True for 4xx answers, as opposed to outages."""
        return self.status_code is not None and 400 <= self.status_code < 500


class NoSessionError(Exception):
    """Raised when an operation requires a stored session and there is none."""


class SignInError(Exception):
    """Raised when either half of the two-step sign-in fails."""


class SignOutError(Exception):
    """Raised after sign-out when one of the invalidation calls failed.

    Local state has already been cleared when this is raised.
    """

    def __init__(self, failures: list[Exception]) -> None:
        super().__init__("; ".join(str(failure) for failure in failures))
        self.failures = failures


__all__ = [
    "ApiError",
    "AuthBackendError",
    "AuthExpiredError",
    "ForbiddenError",
    "NetworkError",
    "NoSessionError",
    "NotFoundError",
    "ResponseFormatError",
    "ServerError",
    "SignInError",
    "SignOutError",
    "ValidationError",
]
