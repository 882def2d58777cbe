"""
Admin service for agent approvals, listing reports and featured listings.
"""

from typing import List, Optional
import logging

from app.schemas.admin import (
    AdminDashboardStats,
    AgentApproval,
    AgentRejection,
    FeaturedListingCreate,
    FeaturedReorder,
)
from app.schemas.agent import Agent
from app.schemas.common import Page, parse_list, parse_page
from app.schemas.property import Property
from app.schemas.report import PropertyReport, ReportResolution, ReportWithProperty
from app.schemas.search import AgentApprovalFilters, ReportFilters
from app.services.api_client import MarketplaceAPIClient
from app.services.bulk import settle_all
from app.utils.exceptions import APIException, NotFoundError

logger = logging.getLogger(__name__)


def _total(payload) -> int:
    if isinstance(payload, dict):
        pagination = payload.get("pagination") or {}
        if "total" in pagination:
            return int(pagination["total"] or 0)
        return len(payload.get("data") or [])
    if isinstance(payload, list):
        return len(payload)
    return 0


class AdminService:
    """
    Admin service wrapping the `/api/admin` endpoints.
    Every call needs the admin bearer token.
    """

    def __init__(self, api: MarketplaceAPIClient, token: str):
        self.api = api
        self.token = token

    # ========== Dashboard ==========

    async def get_dashboard_stats(self) -> AdminDashboardStats:
        """
        Platform counters.

        Falls back to aggregating the list endpoint totals concurrently when
        the stats endpoint is unavailable; counts that cannot be derived are 0.
        """
        try:
            payload = await self.api.get("/api/admin/dashboard/stats", token=self.token)
            return AdminDashboardStats.model_validate(payload or {})
        except APIException as e:
            logger.warning(f"Admin stats endpoint failed, aggregating from lists: {e.message}")

        results = await settle_all({
            "total_agents": self.api.get(
                "/api/admin/agents", token=self.token, params={"limit": 1, "offset": 0}
            ),
            "pending_approvals": self.api.get(
                "/api/admin/agents/pending", token=self.token,
                params={"approval_status": "pending", "limit": 1, "offset": 0}
            ),
            "total_properties": self.api.get(
                "/api/properties", token=self.token, params={"limit": 1, "offset": 0}
            ),
            "reports_pending": self.api.get(
                "/api/admin/property-reports", token=self.token,
                params={"status": "pending", "limit": 1, "offset": 0}
            ),
            "featured_listings_count": self.api.get("/api/admin/featured-listings", token=self.token),
        })
        return AdminDashboardStats(**{
            key: _total(outcome.value)
            for key, outcome in results.outcomes.items()
            if outcome.ok
        })

    async def get_recent_pending_agents(self, limit: int = 5) -> List[Agent]:
        payload = await self.api.get("/api/admin/agents/pending", token=self.token, params={
            "approval_status": "pending",
            "limit": limit,
            "offset": 0,
            "sort_by": "created_at",
            "sort_order": "desc",
        })
        return parse_list(payload, Agent)

    async def get_recent_reports(self, limit: int = 5) -> List[PropertyReport]:
        payload = await self.api.get("/api/admin/property-reports", token=self.token, params={
            "status": "pending",
            "limit": limit,
            "offset": 0,
        })
        return parse_list(payload, PropertyReport)

    # ========== Agent approvals ==========

    async def get_agents(self, filters: AgentApprovalFilters) -> List[Agent]:
        payload = await self.api.get(
            "/api/admin/agents/pending",
            token=self.token,
            params=filters.to_api_params()
        )
        return parse_list(payload, Agent)

    async def approve_agent(self, agent_id: str, welcome_message: Optional[str] = None) -> None:
        """Approve an agent application, optionally with a welcome message."""
        body = AgentApproval(welcome_message=(welcome_message or "").strip() or None)
        await self.api.put(
            f"/api/admin/agents/{agent_id}/approve",
            token=self.token,
            json=body.model_dump()
        )
        logger.info(f"Agent approved: {agent_id}")

    async def reject_agent(self, agent_id: str, rejection_reason: str) -> None:
        """
        Reject an agent application.

        Raises:
            pydantic.ValidationError: If the reason is blank
        """
        body = AgentRejection(rejection_reason=rejection_reason)
        await self.api.put(
            f"/api/admin/agents/{agent_id}/reject",
            token=self.token,
            json=body.model_dump()
        )
        logger.info(f"Agent rejected: {agent_id}")

    # ========== Reports ==========

    async def get_reports(self, filters: ReportFilters, offset: int = 0) -> Page[PropertyReport]:
        payload = await self.api.get(
            "/api/admin/property-reports",
            token=self.token,
            params=filters.to_api_params(offset=offset)
        )
        return parse_page(payload, PropertyReport)

    async def get_report_detail(self, report: PropertyReport) -> ReportWithProperty:
        """Pair a report with its listing; a deleted listing yields no listing."""
        if report.listing is not None:
            return ReportWithProperty(report=report, listing=report.listing)
        try:
            payload = await self.api.get(f"/api/properties/{report.property_id}", token=self.token)
            listing = Property.model_validate(payload)
        except NotFoundError:
            listing = None
        return ReportWithProperty(report=report, listing=listing)

    async def resolve_report(self, report_id: str, action: str, admin_notes: str = "") -> None:
        """
        Resolve or dismiss a report.

        Args:
            report_id: Report ID
            action: "resolve" or "dismiss"
            admin_notes: Moderator notes

        Raises:
            ValueError: For an unknown action
        """
        resolution = ReportResolution.for_action(action, admin_notes)
        await self.api.put(
            f"/api/admin/property-reports/{report_id}",
            token=self.token,
            json=resolution.model_dump(mode="json", exclude_none=True)
        )
        logger.info(f"Report {report_id} {resolution.status.value}")

    # ========== Featured listings ==========

    async def get_featured(self) -> List[Property]:
        payload = await self.api.get("/api/admin/featured-listings", token=self.token)
        listings = parse_list(payload, Property)
        return sorted(listings, key=lambda p: p.featured_order if p.featured_order is not None else 1 << 30)

    async def search_featurable(self, query: Optional[str] = None, limit: int = 10) -> List[Property]:
        """Active, non-featured listings matching a search query."""
        params = {
            "status": "active",
            "is_featured": "false",
            "limit": limit,
            "sort_by": "created_at",
            "sort_order": "desc",
        }
        if query:
            params["query"] = query
        payload = await self.api.get("/api/properties", token=self.token, params=params)
        return [p for p in parse_list(payload, Property) if not p.is_featured]

    async def add_featured(self, property_id: str, current_count: int) -> None:
        """Feature a listing at the end of the current order."""
        body = FeaturedListingCreate(property_id=property_id, featured_order=current_count + 1)
        await self.api.post("/api/admin/featured-listings", token=self.token, json=body.model_dump())
        logger.info(f"Listing featured: {property_id}")

    async def remove_featured(self, property_id: str) -> None:
        await self.api.delete(f"/api/admin/featured-listings/{property_id}", token=self.token)
        logger.info(f"Listing unfeatured: {property_id}")

    async def reorder_featured(self, property_ids: List[str]) -> None:
        """Send the full featured order, positions starting at 1."""
        body = FeaturedReorder.from_ids(property_ids)
        await self.api.put("/api/admin/featured-listings/reorder", token=self.token, json=body.model_dump())
