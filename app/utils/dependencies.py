"""
FastAPI dependency injection utilities for the API client, the session store,
domain services and page guards.
"""

from fastapi import Depends, Request

from app.services.account import AccountService
from app.services.admin import AdminService
from app.services.agent import AgentService
from app.services.api_client import MarketplaceAPIClient
from app.services.inquiry import InquiryService
from app.services.property import PropertyService
from app.services.report import ReportService
from app.services.uploads import UploadService
from app.services.view_tracker import PropertyViewTracker
from app.store import SessionStore
from app.utils.exceptions import AgentNotApprovedError, LoginRequiredError


def get_api_client(request: Request) -> MarketplaceAPIClient:
    """
    Get the API client created in the application lifespan.

    Args:
        request: Current request

    Returns:
        MarketplaceAPIClient instance
    """
    return request.app.state.api


async def get_store(
    request: Request,
    api: MarketplaceAPIClient = Depends(get_api_client)
) -> SessionStore:
    """
    Get the session store for this browser session.

    The store is created once per request, kept on `request.state` for the
    template layer, and its stored tokens are re-validated.

    Returns:
        SessionStore instance
    """
    store = getattr(request.state, "store", None)
    if store is None:
        store = SessionStore(request.session, api)
        request.state.store = store
        await store.initialize_auth()
    return store


def get_property_service(api: MarketplaceAPIClient = Depends(get_api_client)) -> PropertyService:
    return PropertyService(api)


def get_agent_service(api: MarketplaceAPIClient = Depends(get_api_client)) -> AgentService:
    return AgentService(api)


def get_inquiry_service(api: MarketplaceAPIClient = Depends(get_api_client)) -> InquiryService:
    return InquiryService(api)


def get_report_service(api: MarketplaceAPIClient = Depends(get_api_client)) -> ReportService:
    return ReportService(api)


def get_account_service(api: MarketplaceAPIClient = Depends(get_api_client)) -> AccountService:
    return AccountService(api)


def get_upload_service(api: MarketplaceAPIClient = Depends(get_api_client)) -> UploadService:
    return UploadService(api)


def get_view_tracker(request: Request) -> PropertyViewTracker:
    return request.app.state.view_tracker


async def require_user(store: SessionStore = Depends(get_store)) -> SessionStore:
    """
    Require a signed-in property seeker.

    Raises:
        LoginRequiredError: If no user is signed in
    """
    if not (store.is_user and store.user_token):
        raise LoginRequiredError("user")
    return store


async def require_agent(store: SessionStore = Depends(get_store)) -> SessionStore:
    """
    Require a signed-in, approved agent.

    Raises:
        LoginRequiredError: If no agent is signed in
        AgentNotApprovedError: If the agent is not, or no longer, approved
    """
    if not (store.is_agent and store.agent_token and store.current_agent):
        raise LoginRequiredError("agent")
    if not store.current_agent.is_approved:
        raise AgentNotApprovedError()
    return store


async def require_admin(store: SessionStore = Depends(get_store)) -> SessionStore:
    """
    Require a signed-in admin.

    Raises:
        LoginRequiredError: If no admin is signed in
    """
    if not (store.is_admin and store.admin_token):
        raise LoginRequiredError("admin")
    return store


async def get_admin_service(
    store: SessionStore = Depends(require_admin),
    api: MarketplaceAPIClient = Depends(get_api_client)
) -> AdminService:
    return AdminService(api, store.admin_token)
