"""
Session state models.

The state is serialized into the signed session cookie, so identities are
kept compact: full profiles are fetched by the pages that show them. Saved
property ids can grow without bound and are kept server side instead
(see app.store.registry).
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from app.schemas.agent import Agent, ApprovalStatus
from app.schemas.user import (
    Admin,
    AgentNotificationPreferences,
    User,
    UserNotificationPreferences,
    UserType,
)


class SessionUser(BaseModel):
    """Signed-in property seeker."""
    user_id: str
    email: str
    full_name: str
    email_verified: bool = False
    profile_photo_url: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(**user.model_dump(include=set(cls.model_fields)))


class SessionAgent(BaseModel):
    """Signed-in agent."""
    agent_id: str
    email: str
    full_name: str
    agency_name: Optional[str] = None
    profile_photo_url: Optional[str] = None
    approved: bool = False
    approval_status: ApprovalStatus = ApprovalStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.approved and self.approval_status == ApprovalStatus.APPROVED

    @classmethod
    def from_agent(cls, agent: Agent) -> "SessionAgent":
        return cls(**agent.model_dump(include=set(cls.model_fields)))


class AuthenticationStatus(BaseModel):
    is_authenticated: bool = False
    is_agent_authenticated: bool = False
    is_admin_authenticated: bool = False
    is_loading: bool = True
    user_type: UserType = UserType.GUEST


class AuthenticationState(BaseModel):
    current_user: Optional[SessionUser] = None
    user_auth_token: Optional[str] = None
    current_agent: Optional[SessionAgent] = None
    agent_auth_token: Optional[str] = None
    current_admin: Optional[Admin] = None
    admin_auth_token: Optional[str] = None
    authentication_status: AuthenticationStatus = Field(default_factory=AuthenticationStatus)
    error_message: Optional[str] = None
    verified_at: Optional[float] = None

    @property
    def has_tokens(self) -> bool:
        return bool(self.user_auth_token or self.agent_auth_token or self.admin_auth_token)


class FavoritesState(BaseModel):
    saved_properties: List[str] = Field(default_factory=list)
    is_loading: bool = False
    last_updated: Optional[str] = None


class AgentDashboardState(BaseModel):
    unread_inquiry_count: int = 0
    total_active_listings: int = 0
    is_loading: bool = False


class Toast(BaseModel):
    """Notification shown once on the next rendered page."""
    id: str
    message: str
    type: str = "info"
    duration: int = 3000
    created_at: str


class UIState(BaseModel):
    active_modal: Optional[str] = None
    modal_data: Optional[Dict[str, Any]] = None
    toast_messages: List[Toast] = Field(default_factory=list)


class StoreState(BaseModel):
    """Everything the session store keeps for one browser session."""

    authentication_state: AuthenticationState = Field(default_factory=AuthenticationState)
    user_favorites: FavoritesState = Field(default_factory=FavoritesState)
    user_notification_preferences: Optional[UserNotificationPreferences] = None
    agent_notification_preferences: Optional[AgentNotificationPreferences] = None
    agent_dashboard_state: AgentDashboardState = Field(default_factory=AgentDashboardState)
    ui_state: UIState = Field(default_factory=UIState)

    def to_session(self) -> Dict[str, Any]:
        """Serialize for the session cookie. Saved ids and transient fields are left out."""
        data = self.model_dump(mode="json", exclude_none=True)
        auth = data["authentication_state"]
        auth["authentication_status"]["is_loading"] = False
        auth.pop("error_message", None)
        data["user_favorites"].pop("is_loading", None)
        data["user_favorites"].pop("saved_properties", None)
        data["agent_dashboard_state"].pop("is_loading", None)
        return data
