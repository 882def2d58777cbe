"""
Pydantic schemas for agent accounts.
"""

from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional

from app.schemas.common import APIModel, coerce_int, coerce_list


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Agent(APIModel):
    """Agent profile as returned by `/api/agents/{id}` and `/api/agents/me`."""

    agent_id: str
    email: str
    full_name: str
    phone_number: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    agency_name: Optional[str] = None
    office_address_street: Optional[str] = None
    office_address_city: Optional[str] = None
    office_address_state: Optional[str] = None
    office_address_zip: Optional[str] = None
    years_experience: Optional[str] = None
    profile_photo_url: Optional[str] = None
    professional_title: Optional[str] = None
    bio: Optional[str] = None
    specializations: List[str] = Field(default_factory=list)
    service_areas: List[str] = Field(default_factory=list)
    languages_spoken: List[str] = Field(default_factory=list)
    social_media_links: Dict[str, str] = Field(default_factory=dict)
    certifications: List[str] = Field(default_factory=list)
    email_signature: Optional[str] = None
    approved: bool = False
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    account_status: AccountStatus = AccountStatus.ACTIVE
    rejection_reason: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator(
        "specializations", "service_areas", "languages_spoken", "certifications",
        mode="before"
    )
    @classmethod
    def validate_lists(cls, v):
        return coerce_list(v)

    @field_validator("social_media_links", mode="before")
    @classmethod
    def validate_links(cls, v):
        return v or {}

    @property
    def is_approved(self) -> bool:
        """An agent may sign in only once an admin approved the application."""
        return self.approved and self.approval_status == ApprovalStatus.APPROVED

    @property
    def office_address(self) -> str:
        parts = [
            self.office_address_street,
            self.office_address_city,
            " ".join(p for p in (self.office_address_state, self.office_address_zip) if p),
        ]
        return ", ".join(p for p in parts if p)


class AgentUpdate(BaseModel):
    """Profile fields an agent may change from the settings page."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=30)
    professional_title: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, max_length=5000)
    agency_name: Optional[str] = Field(None, max_length=255)
    specializations: Optional[List[str]] = None
    service_areas: Optional[List[str]] = None
    languages_spoken: Optional[List[str]] = None
    email_signature: Optional[str] = Field(None, max_length=2000)
    profile_photo_url: Optional[str] = None


class AgentDashboardStats(APIModel):
    """Counters shown on the agent dashboard."""

    total_active_listings: int = 0
    total_listings: int = 0
    unread_inquiry_count: int = 0
    total_inquiries: int = 0
    total_views: int = 0
    total_favorites: int = 0

    @field_validator(
        "total_active_listings", "total_listings", "unread_inquiry_count",
        "total_inquiries", "total_views", "total_favorites",
        mode="before"
    )
    @classmethod
    def validate_counts(cls, v):
        return coerce_int(v)
