"""
Help-request list and detail view state.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from handson.clients.errors import NotFoundError
from handson.schemas.help_requests import (
    Comment,
    Helper,
    HelpRequest,
    HelpRequestFilters,
    HelpRequestStatus,
    HelpRequestUpdate,
)
from handson.services.help_requests import HelpRequestService
from handson.services.session_store import SessionStore
from handson.utils.http import RetryConfig

from .base import ViewController
from .events import _IdentityAware

logger = logging.getLogger(__name__)


class HelpRequestListController(ViewController):
    def __init__(self, help_requests: HelpRequestService) -> None:
        super().__init__()
        self._help_requests = help_requests
        self.help_requests: List[HelpRequest] = []
        self.filters = HelpRequestFilters()

    async def load(self, *, retry_config: Optional[RetryConfig] = None) -> bool:
        filters = self.filters
        return await self._load(
            lambda: self._help_requests.list_help_requests(filters),
            lambda items: setattr(self, "help_requests", items),
            retry_config=retry_config,
        )

    async def set_filters(self, filters: HelpRequestFilters) -> bool:
        self.filters = filters
        return await self.load()

    async def reset_filters(self) -> bool:
        return await self.set_filters(HelpRequestFilters())


class HelpRequestDetailController(_IdentityAware):
    """A help request with its helpers and comment thread."""

    def __init__(
        self,
        help_requests: HelpRequestService,
        session_store: SessionStore,
        request_id: str,
    ) -> None:
        super().__init__(session_store)
        self._help_requests = help_requests
        self.request_id = request_id
        self.help_request: Optional[HelpRequest] = None
        self.helpers: List[Helper] = []
        self.comments: List[Comment] = []
        self.not_found = False
        self.success_message: Optional[str] = None

    @property
    def is_creator(self) -> bool:
        if self.help_request is None or self.identity is None:
            return False
        creator_id = self.help_request.creator_id
        return bool(creator_id) and creator_id == self.identity.id

    @property
    def has_offered_help(self) -> bool:
        if self.identity is None:
            return False
        return any(helper.user_id == self.identity.id for helper in self.helpers)

    async def load(self, *, retry_config: Optional[RetryConfig] = None) -> bool:
        self.not_found = False

        async def fetch() -> Tuple[HelpRequest, List[Helper], List[Comment]]:
            help_request = await self._help_requests.get_help_request(self.request_id)
            helpers = await self._help_requests.list_helpers(self.request_id)
            comments = await self._help_requests.list_comments(self.request_id)
            return help_request, helpers, comments

        def apply(result: Tuple[HelpRequest, List[Helper], List[Comment]]) -> None:
            self.help_request, self.helpers, self.comments = result

        loaded = await self._load(fetch, apply, retry_config=retry_config)
        if not loaded and isinstance(self.error, NotFoundError):
            self.help_request = None
            self.not_found = True
        return loaded

    async def offer_help(self) -> None:
        self._require_identity("offer help")
        if self.is_creator:
            raise PermissionError("You cannot offer help on your own request.")
        await self._help_requests.offer_help(self.request_id)
        self.helpers = await self._help_requests.list_helpers(self.request_id)
        self.success_message = "Thank you for offering your help!"

    async def add_comment(self, content: str) -> None:
        self._require_identity("post a comment")
        await self._help_requests.add_comment(self.request_id, content)
        self.comments = await self._help_requests.list_comments(self.request_id)

    async def mark_completed(self) -> None:
        if not self.is_creator:
            raise PermissionError("Only the creator can close this help request.")
        self.help_request = await self._help_requests.update_help_request(
            self.request_id, HelpRequestUpdate(status=HelpRequestStatus.COMPLETED)
        )


__all__ = ["HelpRequestDetailController", "HelpRequestListController"]
