"""
Pydantic schemas for marketplace API payloads and page filters.
"""

# Shared building blocks
from .common import (
    APIModel,
    Pagination,
    Page,
    MessageResponse
)

# Account schemas
from .user import (
    UserType,
    AdminRole,
    User,
    Admin,
    UserUpdate,
    UserNotificationPreferences,
    AgentNotificationPreferences,
    NotificationFrequency
)

from .agent import (
    ApprovalStatus,
    AccountStatus,
    Agent,
    AgentUpdate,
    AgentDashboardStats
)

# Authentication schemas
from .auth import (
    LoginRequest,
    RegisterUserRequest,
    RegisterAgentRequest,
    AuthResponse,
    ChangePasswordRequest,
    ResetPasswordRequest,
    VerifyEmailRequest
)

# Listing schemas
from .property import (
    ListingType,
    PropertyStatus,
    Property,
    PropertyPhoto,
    PriceHistoryEntry,
    StatusHistoryEntry,
    PropertyForm
)

from .inquiry import (
    InquiryStatus,
    Inquiry,
    InquiryCreate,
    InquiryReplyCreate
)

from .report import (
    ReportStatus,
    PropertyReport,
    ReportCreate,
    ReportResolution,
    ReportWithProperty
)

# Filter codecs
from .search import (
    SearchFilters,
    AgentListingFilters,
    ReportFilters,
    InquiryFilters,
    AgentApprovalFilters
)

__all__ = [
    # Shared
    "APIModel",
    "Pagination",
    "Page",
    "MessageResponse",

    # Accounts
    "UserType",
    "AdminRole",
    "User",
    "Admin",
    "UserUpdate",
    "UserNotificationPreferences",
    "AgentNotificationPreferences",
    "NotificationFrequency",
    "ApprovalStatus",
    "AccountStatus",
    "Agent",
    "AgentUpdate",
    "AgentDashboardStats",

    # Authentication
    "LoginRequest",
    "RegisterUserRequest",
    "RegisterAgentRequest",
    "AuthResponse",
    "ChangePasswordRequest",
    "ResetPasswordRequest",
    "VerifyEmailRequest",

    # Listings
    "ListingType",
    "PropertyStatus",
    "Property",
    "PropertyPhoto",
    "PriceHistoryEntry",
    "StatusHistoryEntry",
    "PropertyForm",
    "InquiryStatus",
    "Inquiry",
    "InquiryCreate",
    "InquiryReplyCreate",
    "ReportStatus",
    "PropertyReport",
    "ReportCreate",
    "ReportResolution",
    "ReportWithProperty",

    # Filters
    "SearchFilters",
    "AgentListingFilters",
    "ReportFilters",
    "InquiryFilters",
    "AgentApprovalFilters"
]
