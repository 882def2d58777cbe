"""
Session store holding authentication, favorites, preferences and UI state
for one browser session.

Actions wrap marketplace API calls and mutate the state; every mutation is
written back into the signed session cookie. Saved property ids live in a
server-side registry keyed by the session ID and are reloaded from the API
when the registry no longer holds them.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, MutableMapping, Optional

from app.config import settings
from app.schemas.agent import Agent, AgentDashboardStats
from app.schemas.auth import AuthResponse
from app.schemas.user import (
    Admin,
    AgentNotificationPreferences,
    User,
    UserNotificationPreferences,
    UserType,
)
from app.services.api_client import MarketplaceAPIClient
from app.store.registry import SessionRegistry, saved_properties_registry
from app.store.state import (
    AgentDashboardState,
    AuthenticationState,
    AuthenticationStatus,
    FavoritesState,
    SessionAgent,
    SessionUser,
    StoreState,
    Toast,
)
from app.utils.auth import is_token_expired
from app.utils.exceptions import (
    AgentNotApprovedError,
    APIException,
    LoginRequiredError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

SESSION_KEY = "store"
SESSION_ID_KEY = "sid"
TOAST_TYPES = ("success", "error", "info", "warning")


def session_id(session: MutableMapping[str, Any]) -> str:
    """Stable anonymous ID of a browser session, created on first use."""
    value = session.get(SESSION_ID_KEY)
    if not value:
        value = uuid.uuid4().hex
        session[SESSION_ID_KEY] = value
    return value


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(error: Exception, fallback: str) -> str:
    if isinstance(error, APIException):
        return error.message or fallback
    return str(error) or fallback


class SessionStore:
    """
    Per-session state container.

    Args:
        session: The request session mapping (Starlette `request.session`)
        api: Marketplace API client
        registry: Saved property ids by session ID; defaults to the process-wide registry
    """

    def __init__(
        self,
        session: MutableMapping[str, Any],
        api: MarketplaceAPIClient,
        registry: Optional[SessionRegistry] = None
    ):
        self.session = session
        self.api = api
        self.registry = registry if registry is not None else saved_properties_registry
        raw = session.get(SESSION_KEY)
        self.state = StoreState.model_validate(raw) if raw else StoreState()

        # Saved ids of a signed-in user are unknown until read from the registry or the API
        self._favorites_known = self.current_user is None
        if self.current_user:
            saved = self.registry.get(session_id(session))
            if saved is not None:
                self.state.user_favorites.saved_properties = list(saved)
                self._favorites_known = True

    # ========== Persistence ==========

    def save(self) -> None:
        """Write the state back into the session and the saved ids into the registry."""
        self.session[SESSION_KEY] = self.state.to_session()
        sid = session_id(self.session)
        if not self.current_user:
            self.registry.discard(sid)
        elif self._favorites_known:
            self.registry.set(sid, list(self.state.user_favorites.saved_properties))

    # ========== Read helpers ==========

    @property
    def auth(self) -> AuthenticationState:
        return self.state.authentication_state

    @property
    def status(self) -> AuthenticationStatus:
        return self.state.authentication_state.authentication_status

    @property
    def current_user(self) -> Optional[SessionUser]:
        return self.auth.current_user

    @property
    def current_agent(self) -> Optional[SessionAgent]:
        return self.auth.current_agent

    @property
    def current_admin(self) -> Optional[Admin]:
        return self.auth.current_admin

    @property
    def user_token(self) -> Optional[str]:
        return self.auth.user_auth_token

    @property
    def agent_token(self) -> Optional[str]:
        return self.auth.agent_auth_token

    @property
    def admin_token(self) -> Optional[str]:
        return self.auth.admin_auth_token

    @property
    def user_type(self) -> UserType:
        return self.status.user_type

    @property
    def is_user(self) -> bool:
        return self.status.is_authenticated and self.user_type == UserType.PROPERTY_SEEKER

    @property
    def is_agent(self) -> bool:
        return self.status.is_agent_authenticated

    @property
    def is_admin(self) -> bool:
        return self.status.is_admin_authenticated

    @property
    def saved_properties(self) -> List[str]:
        return self.state.user_favorites.saved_properties

    @property
    def unread_inquiry_count(self) -> int:
        return self.state.agent_dashboard_state.unread_inquiry_count

    # ========== Auth state transitions ==========

    def _start_loading(self) -> None:
        self.status.is_loading = True
        self.auth.error_message = None

    def _set_user(self, user: User, token: str) -> None:
        self.state.authentication_state = AuthenticationState(
            current_user=SessionUser.from_user(user),
            user_auth_token=token,
            authentication_status=AuthenticationStatus(
                is_authenticated=True,
                is_loading=False,
                user_type=UserType.PROPERTY_SEEKER,
            ),
            verified_at=time.time(),
        )

    def _set_agent(self, agent: Agent, token: str) -> None:
        self.state.authentication_state = AuthenticationState(
            current_agent=SessionAgent.from_agent(agent),
            agent_auth_token=token,
            authentication_status=AuthenticationStatus(
                is_authenticated=True,
                is_agent_authenticated=True,
                is_loading=False,
                user_type=UserType.AGENT,
            ),
            verified_at=time.time(),
        )

    def _set_admin(self, admin: Admin, token: str) -> None:
        self.state.authentication_state = AuthenticationState(
            current_admin=Admin(**admin.model_dump(include={"admin_id", "email", "full_name", "role"})),
            admin_auth_token=token,
            authentication_status=AuthenticationStatus(
                is_authenticated=True,
                is_admin_authenticated=True,
                is_loading=False,
                user_type=UserType.ADMIN,
            ),
            verified_at=time.time(),
        )

    def _fail_auth(self, message: Optional[str]) -> None:
        self.state.authentication_state = AuthenticationState(
            authentication_status=AuthenticationStatus(is_loading=False),
            error_message=message,
        )

    def _clear_account_data(self) -> None:
        self.state.user_favorites = FavoritesState()
        self._favorites_known = True
        self.state.user_notification_preferences = None
        self.state.agent_notification_preferences = None
        self.state.agent_dashboard_state = AgentDashboardState()

    # ========== Authentication actions ==========

    async def login_user(self, email: str, password: str) -> SessionUser:
        """
        Sign in a property seeker.

        Loads favorites and notification preferences after a successful login.

        Raises:
            APIException: If the API rejects the credentials
        """
        self._start_loading()
        try:
            payload = await self.api.post("/api/auth/login", json={"email": email, "password": password})
            response = AuthResponse.model_validate(payload)
            if not response.user or not response.token:
                raise UnauthorizedError("Login failed", error_code="LOGIN_FAILED")
        except APIException as e:
            self._fail_auth(_error_message(e, "Login failed"))
            self.save()
            raise

        self._clear_account_data()
        self._set_user(response.user, response.token)
        logger.info(f"User signed in: {response.user.email}")

        await self.load_favorites()
        await self.load_user_notification_preferences()
        self.save()
        return self.auth.current_user

    async def login_agent(self, email: str, password: str) -> SessionAgent:
        """
        Sign in an agent.

        Agents still waiting for approval are rejected even when the API
        returns a token for them.

        Raises:
            AgentNotApprovedError: If the agent is not approved
            APIException: If the API rejects the credentials
        """
        self._start_loading()
        try:
            payload = await self.api.post("/api/auth/agent/login", json={"email": email, "password": password})
            response = AuthResponse.model_validate(payload)
            if not response.agent or not response.token:
                raise UnauthorizedError("Agent login failed", error_code="LOGIN_FAILED")
            if not response.agent.is_approved:
                logger.info(f"Rejected sign in of unapproved agent: {response.agent.email}")
                raise AgentNotApprovedError()
        except APIException as e:
            self._fail_auth(_error_message(e, "Agent login failed"))
            self.save()
            raise

        self._clear_account_data()
        self._set_agent(response.agent, response.token)
        logger.info(f"Agent signed in: {response.agent.email}")

        await self.load_agent_notification_preferences()
        await self.load_agent_dashboard_stats()
        self.save()
        return self.auth.current_agent

    async def login_admin(self, email: str, password: str) -> Admin:
        """
        Sign in an admin.

        Raises:
            APIException: If the API rejects the credentials
        """
        self._start_loading()
        try:
            payload = await self.api.post("/api/auth/admin/login", json={"email": email, "password": password})
            response = AuthResponse.model_validate(payload)
            if not response.admin or not response.token:
                raise UnauthorizedError("Admin login failed", error_code="LOGIN_FAILED")
        except APIException as e:
            self._fail_auth(_error_message(e, "Admin login failed"))
            self.save()
            raise

        self._clear_account_data()
        self._set_admin(response.admin, response.token)
        logger.info(f"Admin signed in: {response.admin.email}")
        self.save()
        return self.auth.current_admin

    async def register_user(self, data: Dict[str, Any]) -> SessionUser:
        """
        Register a property seeker and sign them in with the returned token.

        Raises:
            APIException: If registration fails (e.g. ConflictError for a taken email)
        """
        self._start_loading()
        try:
            payload = await self.api.post("/api/auth/register", json=data)
            response = AuthResponse.model_validate(payload)
            if not response.user or not response.token:
                raise UnauthorizedError("Registration failed", error_code="REGISTRATION_FAILED")
        except APIException as e:
            self._fail_auth(_error_message(e, "Registration failed"))
            self.save()
            raise

        self._clear_account_data()
        self._set_user(response.user, response.token)
        logger.info(f"User registered: {response.user.email}")

        await self.load_user_notification_preferences()
        self.save()
        return self.auth.current_user

    async def register_agent(self, data: Dict[str, Any]) -> None:
        """
        Submit an agent application.

        The agent is not signed in: the account waits for admin approval.

        Raises:
            APIException: If the application is rejected by the API
        """
        self._start_loading()
        try:
            await self.api.post("/api/auth/agent/register", json=data)
        except APIException as e:
            self._fail_auth(_error_message(e, "Agent registration failed"))
            self.save()
            raise

        self.status.is_loading = False
        self.auth.error_message = None
        logger.info(f"Agent application submitted: {data.get('email')}")
        self.show_toast(
            f"Application submitted! Check {data.get('email')} for approval notification.",
            "success",
            5000
        )

    async def logout(self) -> None:
        """Clear all authentication and account data; the API call is best effort."""
        token = self.user_token or self.agent_token or self.admin_token
        if token:
            try:
                await self.api.post("/api/auth/logout", token=token, json={})
            except APIException as e:
                logger.warning(f"Logout request failed: {e.message}")

        self.state.authentication_state = AuthenticationState(
            authentication_status=AuthenticationStatus(is_loading=False)
        )
        self._clear_account_data()
        self.close_modal()
        self.show_toast("Logged out successfully", "success")

    def _discard_expired_tokens(self) -> None:
        for attr in ("user_auth_token", "agent_auth_token", "admin_auth_token"):
            token = getattr(self.auth, attr)
            if token and is_token_expired(token):
                logger.info(f"Discarding expired session token: {attr}")
                setattr(self.auth, attr, None)

    async def initialize_auth(self, force: bool = False) -> None:
        """
        Re-validate the stored tokens.

        Tokens whose `exp` claim has passed are dropped without a network
        call. The remaining token is verified against the API, user first,
        then agent; the admin token has no verification endpoint and is kept
        while it is unexpired. Any failure signs the session out. Sessions
        verified less than `auth_recheck_seconds` ago are skipped unless
        `force` is set.
        """
        self._discard_expired_tokens()

        if not self.auth.has_tokens:
            if self.status.is_authenticated:
                self._fail_auth(None)
                self._clear_account_data()
            self.status.is_loading = False
            self.save()
            return

        verified_at = self.auth.verified_at or 0
        if not force and time.time() - verified_at < settings.auth_recheck_seconds:
            self.status.is_loading = False
            if self.is_user and not self._favorites_known:
                await self.load_favorites()
            return

        try:
            if self.user_token:
                user = User.model_validate(await self.api.get("/api/users/me", token=self.user_token))
                self._set_user(user, self.user_token)
                await self.load_favorites()
                await self.load_user_notification_preferences()
            elif self.agent_token:
                agent = Agent.model_validate(await self.api.get("/api/agents/me", token=self.agent_token))
                self._set_agent(agent, self.agent_token)
                await self.load_agent_notification_preferences()
                await self.load_agent_dashboard_stats()
            elif self.admin_token and self.current_admin:
                self._set_admin(self.current_admin, self.admin_token)
            else:
                raise UnauthorizedError("Session is missing its account")
        except APIException as e:
            logger.info(f"Stored session could not be verified: {e.message}")
            self._fail_auth(None)
            self._clear_account_data()

        self.save()

    def update_user_profile(self, user: User) -> None:
        self.auth.current_user = SessionUser.from_user(user)
        self.save()

    def update_agent_profile(self, agent: Agent) -> None:
        self.auth.current_agent = SessionAgent.from_agent(agent)
        self.save()

    async def verify_email(self, token: str) -> None:
        """
        Confirm an email address with the emailed token.

        Raises:
            APIException: If the token is invalid or expired
        """
        try:
            payload = await self.api.post("/api/auth/verify-email", json={"token": token})
        except APIException as e:
            self.show_toast(_error_message(e, "Email verification failed"), "error")
            raise

        self.show_toast("Email verified successfully!", "success")

        response = AuthResponse.model_validate(payload or {})
        if response.token and response.user:
            self._set_user(response.user, response.token)
            await self.load_favorites()
            await self.load_user_notification_preferences()
        elif self.current_user:
            self.current_user.email_verified = True
        self.save()

    async def request_password_reset(self, email: str) -> None:
        try:
            await self.api.post("/api/auth/forgot-password", json={"email": email})
        except APIException as e:
            self.show_toast(_error_message(e, "Password reset request failed"), "error")
            raise
        self.show_toast("If an account exists, a password reset email has been sent", "success")

    async def reset_password(self, token: str, new_password: str) -> None:
        try:
            await self.api.post(
                "/api/auth/reset-password",
                json={"token": token, "new_password": new_password}
            )
        except APIException as e:
            self.show_toast(_error_message(e, "Password reset failed"), "error")
            raise
        self.show_toast("Password reset successfully. You can now login.", "success")

    async def change_password(self, current_password: str, new_password: str) -> None:
        """
        Change the password of the signed-in user or agent.

        Raises:
            UnauthorizedError: If nobody is signed in
            APIException: If the API rejects the change
        """
        token = self.user_token or self.agent_token
        if not token:
            raise UnauthorizedError("Not authenticated")

        try:
            await self.api.post(
                "/api/auth/change-password",
                token=token,
                json={"current_password": current_password, "new_password": new_password}
            )
        except APIException as e:
            self.show_toast(_error_message(e, "Password change failed"), "error")
            raise
        self.show_toast("Password changed successfully", "success")

    def clear_auth_error(self) -> None:
        self.auth.error_message = None

    # ========== Favorites ==========

    def is_property_saved(self, property_id: str) -> bool:
        return property_id in self.state.user_favorites.saved_properties

    async def add_favorite(self, property_id: str) -> None:
        """
        Save a property, optimistically.

        Raises:
            LoginRequiredError: If no property seeker is signed in
            APIException: If the API rejects the favorite (the add is rolled back)
        """
        if not self.current_user or not self.user_token:
            raise LoginRequiredError("user")

        favorites = self.state.user_favorites
        if property_id not in favorites.saved_properties:
            favorites.saved_properties.append(property_id)
        favorites.last_updated = _now_iso()

        try:
            await self.api.post("/api/favorites", token=self.user_token, json={"property_id": property_id})
        except APIException as e:
            favorites.saved_properties = [p for p in favorites.saved_properties if p != property_id]
            self.show_toast(_error_message(e, "Failed to save property"), "error")
            raise

        self.show_toast("Property saved to favorites", "success")

    async def remove_favorite(self, property_id: str) -> None:
        """
        Remove a saved property, optimistically.

        Raises:
            LoginRequiredError: If no property seeker is signed in
            APIException: If the API call fails (the previous set is restored)
        """
        if not self.user_token:
            raise LoginRequiredError("user")

        favorites = self.state.user_favorites
        previous = list(favorites.saved_properties)
        favorites.saved_properties = [p for p in previous if p != property_id]
        favorites.last_updated = _now_iso()

        try:
            await self.api.delete(f"/api/favorites/{property_id}", token=self.user_token)
        except APIException as e:
            favorites.saved_properties = previous
            self.show_toast(_error_message(e, "Failed to remove property"), "error")
            raise

        self.show_toast("Property removed from favorites", "success")

    async def toggle_favorite(self, property_id: str) -> bool:
        """
        Save or unsave a property.

        Returns:
            True if the property is saved afterwards
        """
        if self.is_property_saved(property_id):
            await self.remove_favorite(property_id)
            return False
        await self.add_favorite(property_id)
        return True

    def replace_saved_properties(self, property_ids: List[str]) -> None:
        self.state.user_favorites = FavoritesState(saved_properties=list(property_ids), last_updated=_now_iso())
        self._favorites_known = True
        self.save()

    async def load_favorites(self) -> None:
        """Reload the saved property ids; failures leave the set unchanged."""
        if not self.current_user or not self.user_token:
            return

        favorites = self.state.user_favorites
        favorites.is_loading = True
        try:
            payload = await self.api.get(
                "/api/favorites",
                token=self.user_token,
                params={"limit": settings.favorites_page_size, "offset": 0}
            )
        except APIException as e:
            logger.error(f"Failed to load favorites: {e.message}")
            favorites.is_loading = False
            return

        items = payload.get("data", []) if isinstance(payload, dict) else payload or []
        self.state.user_favorites = FavoritesState(
            saved_properties=[str(item["property_id"]) for item in items if item.get("property_id")],
            last_updated=_now_iso(),
        )
        self._favorites_known = True
        self.save()

    # ========== Notification preferences ==========

    async def load_user_notification_preferences(self) -> None:
        if not self.user_token:
            return
        try:
            payload = await self.api.get("/api/users/notification-preferences", token=self.user_token)
        except APIException as e:
            logger.error(f"Failed to load user notification preferences: {e.message}")
            return
        self.state.user_notification_preferences = UserNotificationPreferences.model_validate(payload or {})
        self.save()

    async def update_user_notification_preferences(self, preferences: Dict[str, Any]) -> UserNotificationPreferences:
        """
        Apply a partial preferences update, optimistically.

        Raises:
            LoginRequiredError: If no property seeker is signed in
            APIException: If the update fails (the previous values are restored)
        """
        if not self.user_token:
            raise LoginRequiredError("user")
        if self.state.user_notification_preferences is None:
            await self.load_user_notification_preferences()

        previous = self.state.user_notification_preferences
        base = previous.model_dump() if previous else {}
        self.state.user_notification_preferences = UserNotificationPreferences.model_validate({**base, **preferences})

        try:
            payload = await self.api.put(
                "/api/users/notification-preferences",
                token=self.user_token,
                json=preferences
            )
        except APIException as e:
            self.state.user_notification_preferences = previous
            self.show_toast(_error_message(e, "Failed to update preferences"), "error")
            raise

        if payload:
            self.state.user_notification_preferences = UserNotificationPreferences.model_validate(payload)
        self.show_toast("Notification preferences updated", "success")
        return self.state.user_notification_preferences

    async def load_agent_notification_preferences(self) -> None:
        if not self.agent_token:
            return
        try:
            payload = await self.api.get("/api/agents/notification-preferences", token=self.agent_token)
        except APIException as e:
            logger.error(f"Failed to load agent notification preferences: {e.message}")
            return
        self.state.agent_notification_preferences = AgentNotificationPreferences.model_validate(payload or {})
        self.save()

    async def update_agent_notification_preferences(self, preferences: Dict[str, Any]) -> AgentNotificationPreferences:
        """
        Apply a partial agent preferences update, optimistically.

        Raises:
            LoginRequiredError: If no agent is signed in
            APIException: If the update fails (the previous values are restored)
        """
        if not self.agent_token:
            raise LoginRequiredError("agent")
        if self.state.agent_notification_preferences is None:
            await self.load_agent_notification_preferences()

        previous = self.state.agent_notification_preferences
        base = previous.model_dump() if previous else {}
        self.state.agent_notification_preferences = AgentNotificationPreferences.model_validate({**base, **preferences})

        try:
            payload = await self.api.put(
                "/api/agents/notification-preferences",
                token=self.agent_token,
                json=preferences
            )
        except APIException as e:
            self.state.agent_notification_preferences = previous
            self.show_toast(_error_message(e, "Failed to update preferences"), "error")
            raise

        if payload:
            self.state.agent_notification_preferences = AgentNotificationPreferences.model_validate(payload)
        self.show_toast("Notification preferences updated", "success")
        return self.state.agent_notification_preferences

    # ========== Agent dashboard ==========

    async def load_agent_dashboard_stats(self) -> Optional[AgentDashboardStats]:
        """Refresh the agent counters; failures are logged and keep the old values."""
        if not self.agent_token:
            return None

        dashboard = self.state.agent_dashboard_state
        dashboard.is_loading = True
        try:
            payload = await self.api.get("/api/agents/dashboard/stats", token=self.agent_token)
        except APIException as e:
            logger.error(f"Failed to load agent dashboard stats: {e.message}")
            dashboard.is_loading = False
            return None

        stats = AgentDashboardStats.model_validate(payload or {})
        self.state.agent_dashboard_state = AgentDashboardState(
            unread_inquiry_count=stats.unread_inquiry_count,
            total_active_listings=stats.total_active_listings,
        )
        self.save()
        return stats

    def set_unread_inquiry_count(self, count: int) -> None:
        self.state.agent_dashboard_state.unread_inquiry_count = max(0, int(count))
        self.save()

    def increment_unread_inquiries(self) -> None:
        self.state.agent_dashboard_state.unread_inquiry_count += 1
        self.save()

    def decrement_unread_inquiries(self) -> None:
        dashboard = self.state.agent_dashboard_state
        dashboard.unread_inquiry_count = max(0, dashboard.unread_inquiry_count - 1)
        self.save()

    # ========== UI ==========

    def show_toast(self, message: str, type: str = "info", duration: Optional[int] = None) -> Toast:
        """
        Queue a toast for the next rendered page.

        Args:
            message: Text to show
            type: success, error, info or warning
            duration: Display time in milliseconds

        Returns:
            The queued toast
        """
        if type not in TOAST_TYPES:
            type = "info"
        toast = Toast(
            id=f"toast_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            message=message,
            type=type,
            duration=duration or settings.toast_default_duration_ms,
            created_at=_now_iso(),
        )
        self.state.ui_state.toast_messages.append(toast)
        self.save()
        return toast

    def dismiss_toast(self, toast_id: str) -> None:
        ui = self.state.ui_state
        ui.toast_messages = [t for t in ui.toast_messages if t.id != toast_id]
        self.save()

    def drain_toasts(self) -> List[Toast]:
        """Return the queued toasts and clear the queue."""
        toasts = list(self.state.ui_state.toast_messages)
        if toasts:
            self.state.ui_state.toast_messages = []
            self.save()
        return toasts

    def open_modal(self, name: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.state.ui_state.active_modal = name
        self.state.ui_state.modal_data = data
        self.save()

    def close_modal(self) -> None:
        self.state.ui_state.active_modal = None
        self.state.ui_state.modal_data = None
        self.save()
