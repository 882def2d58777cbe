"""
Admin moderation pages: dashboard, agent approvals, reported listings and
featured listings. All routes require a signed-in admin.
"""

from typing import Optional
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from app.config import settings
from app.routers.common import parse_model, redirect, redirect_back
from app.schemas.admin import REJECTION_REASON_MAX_LENGTH, AgentRejection
from app.schemas.report import REPORT_REASONS
from app.schemas.search import APPROVAL_STATUSES, AgentApprovalFilters, ReportFilters
from app.services.admin import AdminService
from app.services.property import move_item
from app.store import SessionStore
from app.utils.dependencies import get_admin_service, require_admin
from app.utils.exceptions import APIException
from app.utils.query_params import parse_optional_int
from app.utils.templating import render
from app.views.state import load_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

REJECT_MODAL = "reject_agent"


@router.get("", summary="Admin home")
async def admin_home(store: SessionStore = Depends(require_admin)):
    return redirect("/admin/dashboard")


@router.get("/dashboard", response_class=HTMLResponse, summary="Admin dashboard")
async def dashboard(
    request: Request,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    """
    Platform counters with the newest pending agents and reports.

    When the stats endpoint fails the counters are aggregated from the
    list endpoints by the service.
    """
    retry_url = "/admin/dashboard"
    stats = await load_view(admin.get_dashboard_stats, retry_url=retry_url)
    pending_agents = await load_view(admin.get_recent_pending_agents, retry_url=retry_url)
    recent_reports = await load_view(admin.get_recent_reports, retry_url=retry_url)
    return render(request, "admin/dashboard.html", {
        "stats": stats,
        "pending_agents": pending_agents,
        "recent_reports": recent_reports,
    })


# ========== Agent approvals ==========

@router.get("/agents", response_class=HTMLResponse, summary="Agent approval queue")
async def agents(
    request: Request,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    filters = AgentApprovalFilters.from_query_params(request.query_params)
    results = await load_view(lambda: admin.get_agents(filters), retry_url=f"/admin/agents?status={filters.status}")

    reject = None
    if store.state.ui_state.active_modal == REJECT_MODAL:
        reject = store.state.ui_state.modal_data
    return render(request, "admin/agents.html", {
        "filters": filters,
        "agents": results,
        "statuses": APPROVAL_STATUSES,
        "reject": reject,
    })


@router.post("/agents/{agent_id}/approve", summary="Approve an agent")
async def approve_agent(
    request: Request,
    agent_id: str,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    form = await request.form()
    try:
        await admin.approve_agent(agent_id, form.get("welcome_message"))
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.show_toast("Agent approved successfully", "success")
    return redirect_back(form.get("next"), "/admin/agents")


@router.post("/agents/{agent_id}/reject", summary="Reject an agent")
async def reject_agent(
    request: Request,
    agent_id: str,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    """
    Reject an agent application. A reason of up to 2000 characters is
    required; otherwise the rejection dialog stays open with the error.
    """
    form = await request.form()
    back_to = form.get("next")
    reason = (form.get("rejection_reason") or "").strip()
    if not reason:
        store.open_modal(REJECT_MODAL, {"agent_id": agent_id, "error": "Rejection reason is required"})
        return redirect_back(back_to, "/admin/agents")

    _, errors = parse_model(AgentRejection, {"rejection_reason": reason})
    if errors:
        store.open_modal(REJECT_MODAL, {
            "agent_id": agent_id,
            "error": errors.get("rejection_reason") or next(iter(errors.values())),
            "rejection_reason": reason[:REJECTION_REASON_MAX_LENGTH],
        })
        return redirect_back(back_to, "/admin/agents")

    try:
        await admin.reject_agent(agent_id, reason)
    except APIException as e:
        store.open_modal(REJECT_MODAL, {"agent_id": agent_id, "error": e.message, "rejection_reason": reason})
        return redirect_back(back_to, "/admin/agents")

    store.close_modal()
    store.show_toast("Agent application rejected. Notification email sent.", "success")
    return redirect_back(back_to, "/admin/agents")


@router.post("/agents/{agent_id}/reject/open", summary="Open the rejection dialog")
async def open_reject_dialog(request: Request, agent_id: str, store: SessionStore = Depends(require_admin)):
    form = await request.form()
    store.open_modal(REJECT_MODAL, {"agent_id": agent_id})
    return redirect_back(form.get("next"), "/admin/agents")


@router.post("/modal/close", summary="Close the open dialog")
async def close_dialog(request: Request, store: SessionStore = Depends(require_admin)):
    form = await request.form()
    store.close_modal()
    return redirect_back(form.get("next"), "/admin/dashboard")


# ========== Reports ==========

@router.get("/reports", response_class=HTMLResponse, summary="Reported listings")
async def reports(
    request: Request,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    """
    Reports filtered by status and reason, newest first.

    `report=<id>` opens the detail panel with the reported listing.
    """
    filters = ReportFilters.from_query_params(request.query_params)
    page = max(parse_optional_int(request.query_params.get("page")) or 1, 1)
    offset = (page - 1) * settings.admin_page_size
    results = await load_view(lambda: admin.get_reports(filters, offset=offset), retry_url=filters.url())

    detail = None
    selected_id: Optional[str] = request.query_params.get("report")
    if selected_id and results.data:
        selected = next((r for r in results.data.data if r.report_id == selected_id), None)
        if selected is not None:
            detail = await load_view(lambda: admin.get_report_detail(selected), retry_url=filters.url())

    return render(request, "admin/reports.html", {
        "filters": filters,
        "reports": results,
        "detail": detail,
        "page": page,
        "reasons": REPORT_REASONS,
        "statuses": ("pending", "resolved", "dismissed"),
    })


@router.post("/reports/{report_id}/resolve", summary="Resolve or dismiss a report")
async def resolve_report(
    request: Request,
    report_id: str,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    form = await request.form()
    action = form.get("action")
    if action not in ("resolve", "dismiss"):
        store.show_toast("Choose resolve or dismiss", "warning")
        return redirect_back(form.get("next"), "/admin/reports")

    try:
        await admin.resolve_report(report_id, action, (form.get("admin_notes") or "").strip())
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        label = "resolved" if action == "resolve" else "dismissed"
        store.show_toast(f"Report {label} successfully", "success")
    return redirect_back(form.get("next"), "/admin/reports")


# ========== Featured listings ==========

@router.get("/featured", response_class=HTMLResponse, summary="Featured listings")
async def featured(
    request: Request,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    """Curated featured order plus a search over active, non-featured listings."""
    query = (request.query_params.get("q") or "").strip()
    listings = await load_view(admin.get_featured, retry_url="/admin/featured")
    candidates = None
    if query:
        candidates = await load_view(lambda: admin.search_featurable(query), retry_url=request.url.path)
    return render(request, "admin/featured.html", {
        "featured": listings,
        "candidates": candidates,
        "query": query,
    })


@router.post("/featured", summary="Feature a listing")
async def add_featured(
    request: Request,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    form = await request.form()
    property_id = form.get("property_id")
    if not property_id:
        return redirect("/admin/featured")
    try:
        current = await admin.get_featured()
        await admin.add_featured(property_id, len(current))
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.show_toast("Property added to featured listings", "success")
    return redirect("/admin/featured")


@router.post("/featured/{property_id}/remove", summary="Unfeature a listing")
async def remove_featured(
    property_id: str,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    try:
        await admin.remove_featured(property_id)
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.show_toast("Property removed from featured listings", "success")
    return redirect("/admin/featured")


@router.post("/featured/{property_id}/move", summary="Move a featured listing")
async def move_featured(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service)
):
    """Move a listing one place up or down and send the full new order."""
    form = await request.form()
    offset = -1 if form.get("direction") == "up" else 1
    try:
        ids = [p.property_id for p in await admin.get_featured()]
        reordered = move_item(ids, property_id, offset)
        if reordered != ids:
            await admin.reorder_featured(reordered)
            store.show_toast("Featured listings reordered successfully", "success")
    except APIException as e:
        store.show_toast(e.message, "error")
    return redirect("/admin/featured")
