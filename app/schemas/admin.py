"""
Pydantic schemas for the admin moderation pages.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from app.schemas.common import APIModel, coerce_int

REJECTION_REASON_MAX_LENGTH = 2000


class AdminDashboardStats(APIModel):
    """Platform counters shown on the admin dashboard."""

    total_agents: int = 0
    pending_approvals: int = 0
    total_properties: int = 0
    total_users: int = 0
    total_inquiries: int = 0
    reports_pending: int = 0
    featured_listings_count: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def validate_counts(cls, v):
        return coerce_int(v)


class AgentApproval(BaseModel):
    """Payload of `PUT /api/admin/agents/{id}/approve`."""
    welcome_message: Optional[str] = None


class AgentRejection(BaseModel):
    """Payload of `PUT /api/admin/agents/{id}/reject`."""
    rejection_reason: str = Field(..., min_length=1, max_length=REJECTION_REASON_MAX_LENGTH)
    message: Optional[str] = None

    @field_validator("rejection_reason")
    @classmethod
    def strip_reason(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Rejection reason is required")
        return v


class FeaturedListingCreate(BaseModel):
    property_id: str
    featured_until: Optional[str] = None
    featured_order: int = Field(..., ge=1)


class FeaturedOrderEntry(BaseModel):
    property_id: str
    featured_order: int


class FeaturedReorder(BaseModel):
    """Payload of `PUT /api/admin/featured-listings/reorder`."""
    listing_order: List[FeaturedOrderEntry]

    @classmethod
    def from_ids(cls, property_ids: List[str]) -> "FeaturedReorder":
        return cls(listing_order=[
            FeaturedOrderEntry(property_id=pid, featured_order=index)
            for index, pid in enumerate(property_ids, start=1)
        ])
