"""
Pydantic schemas for property seekers, admins and their notification preferences.
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.common import APIModel


class UserType(str, Enum):
    """Actor type of the current browser session."""
    GUEST = "guest"
    PROPERTY_SEEKER = "property_seeker"
    AGENT = "agent"
    ADMIN = "admin"


class AdminRole(str, Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"


class User(APIModel):
    """Property seeker account as returned by `/api/users/me`."""

    user_id: str
    email: str
    full_name: str
    phone_number: Optional[str] = None
    email_verified: bool = False
    profile_photo_url: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Admin(APIModel):
    """Admin account returned by the admin login endpoint."""

    admin_id: str
    email: str
    full_name: str
    role: AdminRole = AdminRole.ADMIN


class UserUpdate(BaseModel):
    """Profile fields a property seeker may change."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=30)
    location: Optional[str] = Field(None, max_length=255)
    profile_photo_url: Optional[str] = None


class UserNotificationPreferences(APIModel):
    """Email notification switches of a property seeker."""

    preference_id: Optional[str] = None
    user_id: Optional[str] = None
    saved_property_price_change: bool = True
    saved_property_status_change: bool = True
    new_matching_properties: bool = False
    agent_reply_received: bool = True
    platform_updates: bool = False


class NotificationFrequency(str, Enum):
    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"


class AgentNotificationPreferences(APIModel):
    """Email notification switches of an agent."""

    preference_id: Optional[str] = None
    agent_id: Optional[str] = None
    new_inquiry_received: bool = True
    inquirer_replied: bool = True
    property_view_milestones: bool = False
    monthly_report: bool = True
    platform_updates: bool = False
    notification_frequency: NotificationFrequency = NotificationFrequency.INSTANT
    browser_notifications_enabled: bool = False


USER_PREFERENCE_FIELDS = (
    "saved_property_price_change",
    "saved_property_status_change",
    "new_matching_properties",
    "agent_reply_received",
    "platform_updates",
)

AGENT_PREFERENCE_FLAGS = (
    "new_inquiry_received",
    "inquirer_replied",
    "property_view_milestones",
    "monthly_report",
    "platform_updates",
    "browser_notifications_enabled",
)
