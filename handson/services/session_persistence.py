"""
Durable storage for the credential provider's session.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from handson.models.session import AuthSession
from handson.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SessionPersistence:
    """Keeps one encrypted session document under a fixed storage key."""

    def __init__(
        self,
        store: KeyValueStore,
        cipher: TokenCipherService,
        *,
        storage_key: str,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._key = storage_key

    def load(self) -> Optional[AuthSession]:
        sealed = self._store.get(self._key)
        if sealed is None:
            return None
        try:
            return AuthSession.model_validate(self._cipher.open(sealed))
        except (ValueError, ValidationError):
            logger.warning("Discarding unreadable stored session under %s", self._key)
            self._store.delete(self._key)
            return None

    def save(self, session: AuthSession) -> None:
        self._store.set(self._key, self._cipher.seal(session.model_dump(mode="json")))

    def clear(self) -> None:
        self._store.delete(self._key)


__all__ = ["KeyValueStore", "SessionPersistence"]
