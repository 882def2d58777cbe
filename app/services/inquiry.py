"""
Inquiry service for sending inquiries and managing the agent inbox.
"""

from typing import List, Optional, Tuple
import logging

from app.schemas.common import Page, parse_list, parse_page
from app.schemas.inquiry import (
    Inquiry,
    InquiryCreate,
    InquiryReply,
    InquiryReplyCreate,
    InquiryStatus,
)
from app.schemas.search import InquiryFilters
from app.services.api_client import MarketplaceAPIClient
from app.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class InquiryService:
    """Inquiry service wrapping the `/api/inquiries` endpoints."""

    def __init__(self, api: MarketplaceAPIClient):
        self.api = api

    async def create_inquiry(self, inquiry: InquiryCreate, token: Optional[str] = None) -> Inquiry:
        """
        Send an inquiry to an agent.

        Anonymous visitors may send inquiries; a signed-in user's token links
        the inquiry to their account.

        Args:
            inquiry: Inquiry payload
            token: Optional user bearer token

        Returns:
            Created inquiry
        """
        payload = await self.api.post(
            "/api/inquiries",
            token=token,
            json=inquiry.model_dump(exclude_none=True)
        )
        created = Inquiry.model_validate(payload)
        logger.info(
            f"Inquiry sent: {created.inquiry_id}",
            extra={"property_id": inquiry.property_id, "agent_id": inquiry.agent_id}
        )
        return created

    async def get_my_inquiries(
        self,
        token: str,
        status: Optional[List[str]] = None,
        property_id: Optional[str] = None,
        limit: int = 100
    ) -> Page[Inquiry]:
        """Inquiries sent by the signed-in user, newest first."""
        params = {
            "limit": limit,
            "offset": 0,
            "sort_by": "created_at",
            "sort_order": "desc",
        }
        if status:
            params["status"] = ",".join(status)
        if property_id:
            params["property_id"] = property_id
        payload = await self.api.get("/api/inquiries/my-inquiries", token=token, params=params)
        return parse_page(payload, Inquiry)

    async def get_inquiry(self, inquiry_id: str, token: str) -> Tuple[Inquiry, List[InquiryReply]]:
        """
        Get one inquiry with its replies.

        The API answers either `{inquiry, replies}` or the inquiry itself with
        embedded replies.

        Raises:
            NotFoundError: If the inquiry doesn't exist
        """
        try:
            payload = await self.api.get(f"/api/inquiries/{inquiry_id}", token=token)
        except NotFoundError:
            raise NotFoundError("Inquiry", inquiry_id)

        if isinstance(payload, dict) and "inquiry" in payload:
            inquiry = Inquiry.model_validate(payload["inquiry"])
            replies = parse_list(payload.get("replies") or [], InquiryReply)
        else:
            inquiry = Inquiry.model_validate(payload)
            replies = list(inquiry.replies)
        return inquiry, replies

    async def get_agent_inquiries(
        self,
        token: str,
        filters: InquiryFilters,
        limit: int = 100
    ) -> Page[Inquiry]:
        params = {"limit": limit, "offset": 0, "sort_by": "created_at", "sort_order": "desc"}
        params.update(filters.to_api_params())
        payload = await self.api.get("/api/inquiries/agent/my-inquiries", token=token, params=params)
        return parse_page(payload, Inquiry)

    async def get_recent_agent_inquiries(self, token: str, limit: int = 5) -> List[Inquiry]:
        page = await self.get_agent_inquiries(token, InquiryFilters(), limit=limit)
        return page.data

    async def mark_read(self, inquiry_id: str, token: str) -> None:
        await self.api.put(f"/api/inquiries/{inquiry_id}/mark-read", token=token, json={})

    async def reply(self, inquiry_id: str, reply: InquiryReplyCreate, token: str) -> Optional[InquiryReply]:
        """
        Reply to an inquiry as the agent.

        Returns:
            The stored reply, when the API returns one
        """
        payload = await self.api.post(
            f"/api/inquiries/{inquiry_id}/reply",
            token=token,
            json=reply.model_dump()
        )
        logger.info(f"Inquiry replied: {inquiry_id}")
        if isinstance(payload, dict) and payload.get("message"):
            return InquiryReply.model_validate(payload)
        return None

    async def update_status(self, inquiry_id: str, status: InquiryStatus, token: str) -> None:
        await self.api.put(
            f"/api/inquiries/{inquiry_id}/status",
            token=token,
            json={"status": status.value}
        )
        logger.info(f"Inquiry {inquiry_id} status changed to {status.value}")
