"""
Pydantic schemas for listing reports and their moderation.
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.common import APIModel
from app.schemas.property import Property


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


REPORT_REASONS = {
    "incorrect_information": "Incorrect information",
    "already_sold": "Property already sold or rented",
    "fraudulent": "Suspected fraud or scam",
    "inappropriate_content": "Inappropriate content",
    "duplicate": "Duplicate listing",
    "other": "Other",
}


class PropertyReport(APIModel):
    """Report as listed on the moderation page."""

    report_id: str
    property_id: str
    reporter_user_id: Optional[str] = None
    reporter_email: Optional[str] = None
    reason: str
    details: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    admin_notes: Optional[str] = None
    action_taken: Optional[str] = None
    property_title: Optional[str] = None
    created_at: Optional[str] = None
    resolved_at: Optional[str] = None
    resolved_by_admin_id: Optional[str] = None
    agent_name: Optional[str] = None
    listing: Optional[Property] = Field(None, alias="property")

    @property
    def reason_label(self) -> str:
        return REPORT_REASONS.get(self.reason, self.reason.replace("_", " ").capitalize())


class ReportCreate(BaseModel):
    property_id: str
    reporter_user_id: Optional[str] = None
    reporter_email: Optional[str] = None
    reason: str = Field(..., min_length=1)
    details: Optional[str] = Field(None, max_length=2000)


class ReportResolution(BaseModel):
    """Payload of `PUT /api/admin/property-reports/{id}`."""

    status: ReportStatus
    admin_notes: str = ""
    action_taken: Optional[str] = None

    @classmethod
    def for_action(cls, action: str, admin_notes: str = "") -> "ReportResolution":
        """
        Build the resolution for a moderator decision.

        Args:
            action: "resolve" or "dismiss"
            admin_notes: Free text notes

        Returns:
            Resolution payload

        Raises:
            ValueError: For an unknown action
        """
        if action == "resolve":
            return cls(status=ReportStatus.RESOLVED, admin_notes=admin_notes, action_taken="no_action")
        if action == "dismiss":
            return cls(status=ReportStatus.DISMISSED, admin_notes=admin_notes)
        raise ValueError(f"Unknown report action: {action}")


class ReportWithProperty(BaseModel):
    """Report detail paired with the reported listing."""

    report: PropertyReport
    listing: Optional[Property] = None
