"""
Report service for flagging listings for moderation.
"""

from typing import Optional
import logging

from app.schemas.report import PropertyReport, ReportCreate
from app.services.api_client import MarketplaceAPIClient

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, api: MarketplaceAPIClient):
        self.api = api

    async def create_report(self, report: ReportCreate, token: Optional[str] = None) -> Optional[PropertyReport]:
        """
        Report a listing.

        Args:
            report: Report payload
            token: Optional user bearer token

        Returns:
            Stored report, when the API returns one
        """
        payload = await self.api.post(
            "/api/property-reports",
            token=token,
            json=report.model_dump(exclude_none=True)
        )
        logger.info(f"Listing reported: {report.property_id}", extra={"reason": report.reason})
        if isinstance(payload, dict) and payload.get("report_id"):
            return PropertyReport.model_validate(payload)
        return None
