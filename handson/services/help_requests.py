"""
Typed request builders for the help-request endpoints.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from handson.clients.api import ApiClient
from handson.clients.errors import ApiError, NotFoundError
from handson.schemas.events import ActionResult
from handson.schemas.help_requests import (
    Comment,
    CommentEnvelope,
    CommentListEnvelope,
    Helper,
    HelperListEnvelope,
    HelpRequest,
    HelpRequestCreate,
    HelpRequestEnvelope,
    HelpRequestFilters,
    HelpRequestListEnvelope,
    HelpRequestUpdate,
)

logger = logging.getLogger(__name__)


class HelpRequestService:
    """Service for handling help request operations."""

    _BASE = "/api/help-requests"

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def list_help_requests(
        self, filters: Optional[HelpRequestFilters] = None
    ) -> List[HelpRequest]:
        params = (filters or HelpRequestFilters()).to_params()
        envelope = await self._api.get(self._BASE, HelpRequestListEnvelope, params=params)
        return envelope.help_requests

    async def get_help_request(self, request_id: str) -> HelpRequest:
        envelope = await self._api.get(f"{self._BASE}/{request_id}", HelpRequestEnvelope)
        if envelope.help_request is None:
            raise NotFoundError(f"Help request {request_id} not found", status_code=404)
        return envelope.help_request

    async def create_help_request(self, data: HelpRequestCreate) -> HelpRequest:
        logger.info("Creating help request %r", data.title)
        envelope = await self._api.post(
            self._BASE, HelpRequestEnvelope, json=data.to_payload()
        )
        if envelope.help_request is None:
            raise ApiError("Help request creation returned no help request")
        return envelope.help_request

    async def update_help_request(
        self, request_id: str, update: HelpRequestUpdate
    ) -> HelpRequest:
        envelope = await self._api.put(
            f"{self._BASE}/{request_id}", HelpRequestEnvelope, json=update.to_payload()
        )
        if envelope.help_request is None:
            raise ApiError(f"Update of help request {request_id} returned no help request")
        return envelope.help_request

    async def delete_help_request(self, request_id: str) -> ActionResult:
        return await self._api.delete(f"{self._BASE}/{request_id}", ActionResult)

    async def offer_help(self, request_id: str) -> ActionResult:
        return await self._api.post(f"{self._BASE}/{request_id}/offer", ActionResult)

    async def list_helpers(self, request_id: str) -> List[Helper]:
        envelope = await self._api.get(f"{self._BASE}/{request_id}/helpers", HelperListEnvelope)
        return envelope.helpers

    async def list_comments(self, request_id: str) -> List[Comment]:
        envelope = await self._api.get(
            f"{self._BASE}/{request_id}/comments", CommentListEnvelope
        )
        return envelope.comments

    async def add_comment(self, request_id: str, content: str) -> Optional[Comment]:
        if not content.strip():
            raise ValueError("Comment content must not be empty.")
        envelope = await self._api.post(
            f"{self._BASE}/{request_id}/comments",
            CommentEnvelope,
            json={"content": content},
        )
        return envelope.comment


__all__ = ["HelpRequestService"]
