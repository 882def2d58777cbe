"""
Public pages: landing, search, listing details, agent profiles and static pages.
"""

from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from app.config import settings
from app.schemas.inquiry import InquiryCreate
from app.schemas.property import AMENITIES, PROPERTY_TYPES, Property
from app.schemas.report import REPORT_REASONS, ReportCreate
from app.schemas.search import SEARCH_SORT_OPTIONS, SearchFilters
from app.routers.common import as_bool, blank_to_none, browser_session_id, parse_model, redirect, redirect_back
from app.services.agent import AgentService
from app.services.api_client import MarketplaceAPIClient
from app.services.inquiry import InquiryService
from app.services.property import PropertyService
from app.services.report import ReportService
from app.services.uploads import UploadService
from app.services.view_tracker import PropertyViewTracker
from app.store import SessionStore
from app.utils.dependencies import (
    get_agent_service,
    get_api_client,
    get_inquiry_service,
    get_property_service,
    get_report_service,
    get_store,
    get_upload_service,
    get_view_tracker,
)
from app.utils.exceptions import APIException, FileUploadError, LoginRequiredError
from app.utils.query_params import merge_repeated, safe_redirect_target
from app.utils.templating import render
from app.utils.validators import FormValidator
from app.views.state import load_view

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Public"])

SEARCH_CSV_KEYS = ("property_type", "amenities", "features")
VIEW_MODES = ("grid", "list")


@router.get("/", response_class=HTMLResponse, summary="Landing page")
async def landing(
    request: Request,
    store: SessionStore = Depends(get_store),
    properties: PropertyService = Depends(get_property_service)
):
    """
    Landing page with the hero search form and featured listings.

    Args:
        request: Current request
        store: Session store
        properties: Property service

    Returns:
        Rendered landing page
    """
    featured = await load_view(properties.get_featured, retry_url="/")
    return render(request, "public/landing.html", {
        "featured": featured,
        "property_types": PROPERTY_TYPES,
    })


@router.get("/search", response_class=HTMLResponse, summary="Search results")
async def search(
    request: Request,
    store: SessionStore = Depends(get_store),
    properties: PropertyService = Depends(get_property_service)
):
    """
    Search results with the filter panel, active filter chips, sort and pagination.
    """
    params = merge_repeated(request.query_params, SEARCH_CSV_KEYS)
    filters = SearchFilters.from_query_params(params)
    view_mode = params.get("view") if params.get("view") in VIEW_MODES else "grid"

    results = await load_view(lambda: properties.search(filters), retry_url=filters.url())
    return render(request, "public/search.html", {
        "filters": filters,
        "results": results,
        "active_filters": filters.active_filters(),
        "sort_options": SEARCH_SORT_OPTIONS,
        "property_types": PROPERTY_TYPES,
        "amenities": AMENITIES,
        "view_mode": view_mode,
    })


@router.post("/favorites/{property_id}/toggle", summary="Save or unsave a listing")
async def toggle_favorite(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(get_store)
):
    """
    Save or unsave a listing, then return to the page the visitor came from.

    Raises:
        LoginRequiredError: If no property seeker is signed in
    """
    form = await request.form()
    next_url = safe_redirect_target(form.get("next"), f"/properties/{property_id}")
    if not store.is_user:
        store.show_toast("Please sign in to save properties", "info")
        raise LoginRequiredError("user", redirect_to=next_url)

    try:
        await store.toggle_favorite(property_id)
    except APIException as e:
        logger.info(f"Favorite toggle failed for {property_id}: {e.message}")
    return redirect(next_url)


async def _property_page(
    request: Request,
    store: SessionStore,
    property_id: str,
    properties: PropertyService,
    agents: AgentService,
    inquiry_form: Optional[Dict[str, Any]] = None,
    inquiry_errors: Optional[Dict[str, str]] = None,
    report_errors: Optional[Dict[str, str]] = None,
    status_code: int = 200
):
    listing: Property = await properties.get_property(property_id, token=store.agent_token or store.admin_token)
    photos = await load_view(lambda: properties.get_photos(property_id), retry_url=request.url.path)
    agent = await agents.find_agent(listing.agent_id)
    similar = await load_view(lambda: properties.get_similar(listing), retry_url=request.url.path)

    user = store.current_user
    defaults = {
        "inquirer_name": user.full_name if user else "",
        "inquirer_email": user.email if user else "",
        "message": f"I'm interested in {listing.title}. Please contact me with more information.",
    }
    return render(request, "public/property_detail.html", {
        "listing": listing,
        "photos": photos,
        "agent": agent,
        "similar": similar,
        "is_saved": store.is_property_saved(property_id),
        "inquiry_form": inquiry_form or defaults,
        "inquiry_errors": inquiry_errors or {},
        "report_errors": report_errors or {},
        "report_reasons": REPORT_REASONS,
    }, status_code=status_code)


@router.get("/properties/{property_id}", response_class=HTMLResponse, summary="Listing details")
async def property_detail(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(get_store),
    properties: PropertyService = Depends(get_property_service),
    agents: AgentService = Depends(get_agent_service),
    tracker: PropertyViewTracker = Depends(get_view_tracker)
):
    """
    Listing details with photos, the agent card, similar listings and the
    inquiry and report forms. Each listing counts one view per browser session.

    Raises:
        PropertyNotFoundError: Rendered as the not found page
    """
    response = await _property_page(request, store, property_id, properties, agents)
    user = store.current_user
    tracker.track(property_id, browser_session_id(request), user.user_id if user else None)
    return response


def _inquiry_errors(data: Dict[str, Any]) -> Dict[str, str]:
    return (
        FormValidator(data)
        .required("inquirer_name", message="Name is required")
        .email("inquirer_email")
        .phone("inquirer_phone", required=False)
        .required("message", min_length=10, label="Message")
        .errors
    )


def _inquiry_payload(data: Dict[str, Any], store: SessionStore) -> Dict[str, Any]:
    payload = blank_to_none({
        key: data.get(key, "")
        for key in (
            "inquirer_name", "inquirer_email", "inquirer_phone", "message",
            "preferred_viewing_date", "preferred_viewing_time",
        )
    })
    payload["viewing_requested"] = as_bool(data.get("viewing_requested"))
    if store.current_user:
        payload["user_id"] = store.current_user.user_id
    return payload


@router.post("/properties/{property_id}/inquiry", response_class=HTMLResponse, summary="Contact the listing agent")
async def send_property_inquiry(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(get_store),
    properties: PropertyService = Depends(get_property_service),
    agents: AgentService = Depends(get_agent_service),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    """Send an inquiry about a listing; invalid input re-renders the page with messages."""
    data = dict(await request.form())
    errors = _inquiry_errors(data)
    inquiry = None
    if not errors:
        payload = _inquiry_payload(data, store)
        listing = await properties.get_property(property_id)
        payload.update(property_id=property_id, agent_id=listing.agent_id)
        inquiry, errors = parse_model(InquiryCreate, payload)

    if errors:
        return await _property_page(
            request, store, property_id, properties, agents,
            inquiry_form=data, inquiry_errors=errors, status_code=422
        )

    try:
        await inquiries.create_inquiry(inquiry, token=store.user_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return await _property_page(
            request, store, property_id, properties, agents,
            inquiry_form=data, status_code=e.status_code
        )

    store.show_toast("Inquiry sent successfully! The agent will contact you soon.", "success")
    return redirect(f"/properties/{property_id}")


@router.post("/properties/{property_id}/report", response_class=HTMLResponse, summary="Report a listing")
async def report_property(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(get_store),
    properties: PropertyService = Depends(get_property_service),
    agents: AgentService = Depends(get_agent_service),
    reports: ReportService = Depends(get_report_service)
):
    """Flag a listing for moderation."""
    data = dict(await request.form())
    validator = FormValidator(data).required("reason", message="Please select a reason")
    if data.get("reason") and data["reason"] not in REPORT_REASONS:
        validator.add_error("reason", "Please select a reason")
    if validator.errors:
        store.open_modal("report", {"property_id": property_id})
        return await _property_page(
            request, store, property_id, properties, agents,
            report_errors=validator.errors, status_code=422
        )

    user = store.current_user
    report = ReportCreate(
        property_id=property_id,
        reporter_user_id=user.user_id if user else None,
        reporter_email=user.email if user else (data.get("reporter_email") or None),
        reason=data["reason"],
        details=(data.get("details") or "").strip() or None,
    )
    try:
        await reports.create_report(report, token=store.user_token)
    except APIException as e:
        logger.info(f"Report failed for {property_id}: {e.message}")
        store.show_toast("Failed to submit report. Please try again.", "error")
        return redirect(f"/properties/{property_id}")

    store.close_modal()
    store.show_toast("Thank you for your report. We will review this listing.", "success")
    return redirect(f"/properties/{property_id}")


async def _agent_page(
    request: Request,
    agent_id: str,
    agents: AgentService,
    properties: PropertyService,
    contact_form: Optional[Dict[str, Any]] = None,
    contact_errors: Optional[Dict[str, str]] = None,
    status_code: int = 200
):
    agent = await agents.get_agent(agent_id)
    listings = await load_view(
        lambda: properties.get_agent_active_listings(agent_id),
        retry_url=request.url.path
    )
    return render(request, "public/agent_profile.html", {
        "agent": agent,
        "listings": listings,
        "contact_form": contact_form or {},
        "contact_errors": contact_errors or {},
    }, status_code=status_code)


@router.get("/agents/{agent_id}", response_class=HTMLResponse, summary="Agent profile")
async def agent_profile(
    request: Request,
    agent_id: str,
    store: SessionStore = Depends(get_store),
    agents: AgentService = Depends(get_agent_service),
    properties: PropertyService = Depends(get_property_service)
):
    """
    Public agent profile with their active listings and a contact form.

    Raises:
        NotFoundError: Rendered as the not found page
    """
    user = store.current_user
    contact_form = {"inquirer_name": user.full_name, "inquirer_email": user.email} if user else None
    return await _agent_page(request, agent_id, agents, properties, contact_form=contact_form)


@router.post("/agents/{agent_id}/contact", response_class=HTMLResponse, summary="Contact an agent")
async def contact_agent(
    request: Request,
    agent_id: str,
    store: SessionStore = Depends(get_store),
    agents: AgentService = Depends(get_agent_service),
    properties: PropertyService = Depends(get_property_service),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    data = dict(await request.form())
    errors = _inquiry_errors(data)
    inquiry = None
    if not errors:
        payload = _inquiry_payload(data, store)
        payload["agent_id"] = agent_id
        inquiry, errors = parse_model(InquiryCreate, payload)
    if errors:
        return await _agent_page(request, agent_id, agents, properties, data, errors, status_code=422)

    try:
        await inquiries.create_inquiry(inquiry, token=store.user_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return await _agent_page(request, agent_id, agents, properties, data, status_code=e.status_code)

    store.show_toast("Message sent successfully! The agent will contact you soon.", "success")
    return redirect(f"/agents/{agent_id}")


CONTACT_CATEGORIES = {
    "general": "General question",
    "listing": "Question about a listing",
    "agent": "Becoming an agent",
    "technical": "Technical support",
    "feedback": "Feedback",
}


@router.get("/contact", response_class=HTMLResponse, summary="Contact page")
async def contact_page(request: Request, store: SessionStore = Depends(get_store)):
    user = store.current_user
    form = {"inquirer_name": user.full_name, "inquirer_email": user.email} if user else {}
    return _render_contact(request, form, {})


@router.post("/contact", response_class=HTMLResponse, summary="Send a message to the marketplace team")
async def send_contact_message(
    request: Request,
    store: SessionStore = Depends(get_store),
    inquiries: InquiryService = Depends(get_inquiry_service),
    uploads: UploadService = Depends(get_upload_service)
):
    """
    Contact form. Messages are delivered through the inquiries endpoint
    without a listing or agent.

    An attached document (PDF, JPEG or PNG up to 10MB) is uploaded first and
    its URL kept in the form as `attachment_url`, so a re-rendered form does
    not ask for the file again. The URL is appended to the message body.
    """
    form = await request.form()
    attachment = form.get("attachment")
    data = {key: value for key, value in form.items() if key != "attachment"}
    category = data.get("category") if data.get("category") in CONTACT_CATEGORIES else "general"

    errors = {}
    if getattr(attachment, "filename", None):
        try:
            data["attachment_url"] = await uploads.upload_document(attachment, category, store.user_token)
        except FileUploadError as e:
            errors["attachment"] = e.message
        except APIException as e:
            store.show_toast(e.message, "error")
            return _render_contact(request, data, {}, status_code=e.status_code)

    errors = {
        **FormValidator(data).required("subject", message="Subject is required").errors,
        **_inquiry_errors(data),
        **errors,
    }
    inquiry = None
    if not errors:
        payload = _inquiry_payload(data, store)
        payload["message"] = _contact_message(data, category, payload["message"])
        inquiry, errors = parse_model(InquiryCreate, payload)
    if errors:
        return _render_contact(request, data, errors, status_code=422)

    try:
        await inquiries.create_inquiry(inquiry, token=store.user_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return _render_contact(request, data, {}, status_code=e.status_code)

    store.show_toast("Message sent successfully! We'll get back to you soon.", "success")
    return redirect("/contact")


def _contact_message(data: Dict[str, Any], category: str, message: str) -> str:
    body = (
        f"Subject: {data['subject'].strip()}\n"
        f"Category: {CONTACT_CATEGORIES[category]}\n\n"
        f"Message:\n{message}"
    )
    if data.get("attachment_url"):
        body += f"\n\nAttachment: {data['attachment_url']}"
    return body


def _render_contact(request: Request, form: Dict[str, Any], errors: Dict[str, str], status_code: int = 200):
    return render(request, "public/contact.html", {
        "form": form,
        "errors": errors,
        "categories": CONTACT_CATEGORIES,
    }, status_code=status_code)


@router.get("/terms", response_class=HTMLResponse, summary="Terms of service")
async def terms(request: Request, store: SessionStore = Depends(get_store)):
    return render(request, "public/terms.html")


@router.get("/privacy", response_class=HTMLResponse, summary="Privacy policy")
async def privacy(request: Request, store: SessionStore = Depends(get_store)):
    return render(request, "public/privacy.html")


@router.get("/health", tags=["Health"], summary="Health check")
async def health_check(api: MarketplaceAPIClient = Depends(get_api_client)):
    """
    Health check of this application and the marketplace API behind it.
    Used by container health checks and load balancers.
    """
    try:
        upstream = await api.health()
        api_status = upstream.get("status", "ok")
    except APIException as e:
        logger.error(f"Health check failed: {e.message}")
        api_status = "unreachable"

    return {
        "status": "healthy" if api_status == "ok" else "degraded",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "marketplace_api": api_status,
    }
