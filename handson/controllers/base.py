"""Shared plumbing for view-state controllers."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar, Union

from handson.clients.errors import (
    ApiError,
    AuthBackendError,
    AuthExpiredError,
    NoSessionError,
)
from handson.utils.http import RetryConfig, call_with_retry

T = TypeVar("T")

logger = logging.getLogger(__name__)

_SINGLE_ATTEMPT = RetryConfig(attempts=1)

LoadError = Union[ApiError, AuthBackendError]


class ViewController:
    """Tracks loading/error state and discards responses that arrive too late.

    Each load starts a new generation. A response is applied only if no newer
    load started in the meantime and the controller has not been closed.
    """

    def __init__(self) -> None:
        self.loading = False
        self.error: Optional[LoadError] = None
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        self._generation += 1

    def _invalidate_pending(self) -> None:
        self._generation += 1
        self.loading = False

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def _load(
        self,
        call: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
        *,
        retry_config: Optional[RetryConfig] = None,
    ) -> bool:
        """Run ``call`` and hand its result to ``apply`` if it is still wanted.

        Returns True when the result was applied. API and auth backend failures
        end up in ``self.error``; an expired or missing session is re-raised so
        the caller can send the user to sign-in.
        """
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None
        try:
            result = await call_with_retry(call, retry_config=retry_config or _SINGLE_ATTEMPT)
        except (AuthExpiredError, NoSessionError):
            if self._is_current(generation):
                self.loading = False
            raise
        except (ApiError, AuthBackendError) as exc:
            if not self._is_current(generation):
                return False
            logger.error("%s failed to load: %s", type(self).__name__, exc)
            self.error = exc
            self.loading = False
            return False

        if not self._is_current(generation):
            logger.debug("%s discarded a stale response", type(self).__name__)
            return False
        apply(result)
        self.loading = False
        return True


__all__ = ["LoadError", "ViewController"]
