"""
Single source of truth for the signed-in identity.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from handson.models.session import Identity

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]


class SessionStore:
    """Holds the current identity and fans every change out to subscribers.

    Delivery is synchronous and in subscription order. Every ``set_identity``
    call produces one notification per listener, even when the value is
    unchanged, and sign-out is delivered as ``None``. A ``set_identity`` made
    from inside a listener is queued until the current fan-out has finished.
    """

    def __init__(self, identity: Optional[Identity] = None) -> None:
        self._identity = identity
        self._listeners: List[IdentityListener] = []
        self._pending: Deque[Optional[Identity]] = deque()
        self._notifying = False

    def get_current_identity(self) -> Optional[Identity]:
        return self._identity

    def set_identity(self, identity: Optional[Identity]) -> None:
        self._pending.append(identity)
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending:
                current = self._pending.popleft()
                self._identity = current
                for listener in list(self._listeners):
                    self._deliver(listener, current)
        finally:
            self._notifying = False
            self._pending.clear()

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener`` and immediately deliver the current identity to it."""
        self._listeners.append(listener)
        self._deliver(listener, self._identity)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_listeners(self) -> None:
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @staticmethod
    def _deliver(listener: IdentityListener, identity: Optional[Identity]) -> None:
        try:
            listener(identity)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Identity listener %r failed", listener)


__all__ = ["IdentityListener", "SessionStore"]
