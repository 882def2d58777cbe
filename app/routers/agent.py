"""
Agent workspace pages: dashboard, listing management, inquiries inbox and settings.
All routes require a signed-in, approved agent.
"""

from typing import Any, Dict, List, Mapping, Optional
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from app.routers.common import as_bool, blank_to_none, parse_model, redirect, redirect_back
from app.schemas.agent import AgentUpdate
from app.schemas.inquiry import INQUIRY_STATUSES, InquiryReplyCreate, InquiryStatus
from app.schemas.property import AMENITIES, PROPERTY_TYPES, Property, PropertyForm, PropertyStatus
from app.schemas.search import AGENT_LISTING_SORT_OPTIONS, INQUIRY_TABS, AgentListingFilters, InquiryFilters
from app.schemas.user import AGENT_PREFERENCE_FLAGS, NotificationFrequency
from app.services.agent import AgentService
from app.services.inquiry import InquiryService
from app.services.property import PropertyService, move_item
from app.services.uploads import UploadService
from app.store import SessionStore
from app.utils.dependencies import (
    get_agent_service,
    get_inquiry_service,
    get_property_service,
    get_upload_service,
    require_agent,
)
from app.utils.exceptions import APIException, ForbiddenError
from app.utils.query_params import join_csv, parse_csv
from app.utils.templating import render
from app.utils.validators import FormValidator
from app.views.bulk import (
    BULK_MODAL,
    BulkActionState,
    IllegalTransitionError,
    clear_selection,
    execute_bulk_action,
    select_all,
)
from app.views.state import load_view
from app.views.wizard import (
    FormWizard,
    form_to_dict,
    listing_wizard,
    validate_listing_details,
    validate_listing_publish,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["Agent"])

LISTING_FLAGS = ("furnished", "pet_friendly", "new_construction", "recently_renovated", "virtual_tour_available")
LISTING_TEXT_LISTS = ("interior_features", "exterior_features", "highlights")
LISTING_LIST_FIELDS = ("amenities", "photo_urls")
AGENT_TEXT_LISTS = ("specializations", "service_areas", "languages_spoken")


# ========== Dashboard ==========

@router.get("/dashboard", response_class=HTMLResponse, summary="Agent dashboard")
async def dashboard(
    request: Request,
    store: SessionStore = Depends(require_agent),
    agents: AgentService = Depends(get_agent_service),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    """
    Listing and inquiry counters with the most recent inquiries.

    The unread counter in the session follows the fresh stats.
    """
    stats = await load_view(lambda: agents.get_dashboard_stats(store.agent_token), retry_url="/agent/dashboard")
    if stats.is_populated:
        store.set_unread_inquiry_count(stats.data.unread_inquiry_count)
    recent = await load_view(
        lambda: inquiries.get_recent_agent_inquiries(store.agent_token),
        retry_url="/agent/dashboard"
    )
    return render(request, "agent/dashboard.html", {"stats": stats, "recent_inquiries": recent})


# ========== Listings ==========

def _bulk_state(store: SessionStore) -> BulkActionState:
    ui = store.state.ui_state
    if ui.active_modal != BULK_MODAL:
        return BulkActionState()
    return BulkActionState.from_modal_data(ui.modal_data)


@router.get("/listings", response_class=HTMLResponse, summary="My listings")
async def listings(
    request: Request,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    """
    The agent's listings with status, type and text filters, sort, and the
    bulk action bar.

    `select=all` pre-selects every listing shown; `select=none` clears the
    selection. A pending bulk confirmation is kept in the session modal.
    """
    filters = AgentListingFilters.from_query_params(request.query_params)
    agent_id = store.current_agent.agent_id
    results = await load_view(
        lambda: properties.get_agent_listings(agent_id, filters, store.agent_token),
        retry_url=filters.url()
    )

    bulk = _bulk_state(store)

    select = request.query_params.get("select")
    if select == "all" and results.data:
        selected = select_all(p.property_id for p in results.data.data)
    elif select == "none":
        selected = clear_selection()
    else:
        selected = list(bulk.selected_ids)

    return render(request, "agent/listings.html", {
        "filters": filters,
        "listings": results,
        "bulk": bulk,
        "selected": selected,
        "statuses": [s.value for s in PropertyStatus],
        "property_types": PROPERTY_TYPES,
        "sort_options": AGENT_LISTING_SORT_OPTIONS,
    })


@router.post("/listings/bulk", summary="Ask to confirm a bulk action")
async def request_bulk_action(request: Request, store: SessionStore = Depends(require_agent)):
    form = await request.form()
    back_to = form.get("next")
    state = _bulk_state(store)
    selected = [pid for pid in form.getlist("selected") if pid]
    try:
        if form.get("action") == "delete":
            state.request_delete(selected)
        else:
            state.request_status_change(selected, form.get("status") or "")
    except IllegalTransitionError as e:
        store.show_toast(str(e), "warning")
        return redirect_back(back_to, "/agent/listings")
    except ValueError:
        store.show_toast("Choose a status to apply", "warning")
        return redirect_back(back_to, "/agent/listings")

    store.open_modal(BULK_MODAL, state.to_modal_data())
    return redirect_back(back_to, "/agent/listings")


@router.post("/listings/bulk/confirm", summary="Run the confirmed bulk action")
async def confirm_bulk_action(
    request: Request,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    """
    Run the confirmed bulk action.

    Every selected listing gets its own request; all of them are awaited.
    On failure the confirmation stays open with the error so the agent can
    retry or cancel.
    """
    form = await request.form()
    back_to = form.get("next")
    state = _bulk_state(store)
    if not state.confirming:
        return redirect_back(back_to, "/agent/listings")

    result = await execute_bulk_action(state, properties, store.agent_token)
    if result.ok:
        store.close_modal()
        store.show_toast(result.message, "success")
        await store.load_agent_dashboard_stats()
    else:
        store.open_modal(BULK_MODAL, state.to_modal_data())
        store.show_toast(result.message, "error")
    return redirect_back(back_to, "/agent/listings")


@router.post("/listings/bulk/cancel", summary="Cancel a bulk action")
async def cancel_bulk_action(request: Request, store: SessionStore = Depends(require_agent)):
    form = await request.form()
    state = _bulk_state(store)
    if not state.processing:
        state.cancel()
    store.close_modal()
    return redirect_back(form.get("next"), "/agent/listings")


@router.post("/listings/{property_id}/delete", summary="Delete a listing")
async def delete_listing(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    form = await request.form()
    try:
        await properties.delete_property(property_id, store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return redirect_back(form.get("next"), "/agent/listings")

    store.show_toast("Listing deleted successfully", "success")
    await store.load_agent_dashboard_stats()
    return redirect_back(form.get("next"), "/agent/listings")


# ========== Listing form helpers ==========

def listing_form_values(data: Mapping[str, Any], status: str) -> Dict[str, Any]:
    """
    Map submitted listing fields onto `PropertyForm` input.

    Blank fields are left out so their defaults apply; checkbox flags are
    false when absent; comma separated feature lists are split.
    """
    values: Dict[str, Any] = {}
    for name in PropertyForm.model_fields:
        if name in LISTING_FLAGS:
            values[name] = as_bool(data.get(name))
        elif name == "amenities":
            values[name] = [a for a in (data.get(name) or []) if a]
        elif name in LISTING_TEXT_LISTS:
            value = data.get(name)
            values[name] = parse_csv(value) if isinstance(value, str) else list(value or [])
        elif name in data:
            values[name] = data[name]
    values["status"] = status
    if values.get("listing_type") != "rent":
        values.pop("rent_frequency", None)
    return {key: value for key, value in blank_to_none(values).items() if value is not None}


def listing_form_data(listing: Property) -> Dict[str, Any]:
    """Edit form defaults for a stored listing."""
    data = listing.model_dump(mode="json", include=set(PropertyForm.model_fields))
    for name in LISTING_TEXT_LISTS:
        data[name] = join_csv(data.get(name) or [])
    return {key: ("" if value is None else value) for key, value in data.items()}


def _price_per_sqft(data: Mapping[str, Any]) -> Optional[int]:
    listing_form, errors = parse_model(PropertyForm, listing_form_values(data, PropertyStatus.DRAFT.value))
    return None if errors else listing_form.price_per_sqft


def _render_wizard(request: Request, wizard: FormWizard, error: Optional[str] = None, status_code: int = 200):
    return render(request, "agent/listing_new.html", {
        "wizard": wizard,
        "form": wizard.data,
        "errors": wizard.errors,
        "hidden_fields": wizard.hidden_fields(),
        "photo_urls": list(wizard.data.get("photo_urls") or []),
        "price_per_sqft": _price_per_sqft(wizard.data),
        "property_types": PROPERTY_TYPES,
        "amenities": AMENITIES,
        "error": error,
    }, status_code=status_code)


async def _upload_photos(
    files: List[Any],
    uploads: UploadService,
    store: SessionStore
) -> List[str]:
    urls = []
    for file in files:
        if getattr(file, "filename", None):
            photo = await uploads.upload_listing_photo(file, store.current_agent.agent_id, store.agent_token)
            urls.append(photo.image_url)
    return urls


# ========== Create listing ==========

@router.get("/listings/new", response_class=HTMLResponse, summary="Create listing")
async def new_listing(request: Request, store: SessionStore = Depends(require_agent)):
    return _render_wizard(request, listing_wizard())


@router.post("/listings/new", response_class=HTMLResponse, summary="Create listing step")
async def create_listing(
    request: Request,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service),
    uploads: UploadService = Depends(get_upload_service)
):
    """
    Drive the five step create listing wizard.

    The `nav` field selects the move: `back`, `next`, `goto:<index>`,
    `draft` or `publish`. Photos chosen on the photos step are uploaded
    straight away; their URLs travel with the form. Drafts skip the publish
    rules; publishing requires them, including at least one photo.
    """
    form = await request.form()
    data = form_to_dict(form, list_fields=LISTING_LIST_FIELDS)
    removed = data.pop("remove_photo", None)
    wizard = listing_wizard(data)
    nav = form.get("nav") or "next"

    if wizard.current.name == "photos":
        photo_urls = [url for url in (data.get("photo_urls") or []) if url != removed]
        try:
            uploaded = await _upload_photos(form.getlist("photos"), uploads, store)
        except APIException as e:
            data["photo_urls"] = photo_urls
            wizard.submit_step(data)
            wizard.errors = {"photos": e.message}
            return _render_wizard(request, wizard, status_code=422)
        data["photo_urls"] = photo_urls + uploaded
        if uploaded:
            store.show_toast("Photo uploaded successfully", "success")
        if nav == "upload" or removed:
            wizard.submit_step(data)
            return _render_wizard(request, wizard)

    if nav == "back":
        wizard.back(data)
        return _render_wizard(request, wizard)
    if nav.startswith("goto:"):
        wizard.submit_step(data)
        try:
            wizard.go_to(int(nav.split(":", 1)[1]))
        except ValueError:
            pass
        return _render_wizard(request, wizard)
    if nav not in ("draft", "publish"):
        wizard.advance(data)
        return _render_wizard(request, wizard, status_code=422 if wizard.errors else 200)

    wizard.submit_step(data)
    photo_urls = list(wizard.data.get("photo_urls") or [])
    errors = wizard.validate_all()
    if nav == "publish":
        for key, message in validate_listing_publish(wizard.data, len(photo_urls)).items():
            errors.setdefault(key, message)
    if errors:
        wizard.errors = errors
        return _render_wizard(request, wizard, status_code=422)

    status = PropertyStatus.ACTIVE if nav == "publish" else PropertyStatus.DRAFT
    listing_form, errors = parse_model(PropertyForm, listing_form_values(wizard.data, status.value))
    if errors:
        wizard.errors = errors
        return _render_wizard(request, wizard, status_code=422)

    try:
        created = await properties.create_property(listing_form, store.agent_token)
    except APIException as e:
        return _render_wizard(request, wizard, error=e.message, status_code=e.status_code)

    if photo_urls:
        photos = [
            {"image_url": url, "thumbnail_url": url, "display_order": index, "is_primary": index == 1}
            for index, url in enumerate(photo_urls, start=1)
        ]
        try:
            await properties.add_photos(created.property_id, photos, store.agent_token)
        except APIException as e:
            logger.warning(f"Photos could not be attached to {created.property_id}: {e.message}")
            store.show_toast("Listing saved but some photos failed to attach", "warning")

    if status == PropertyStatus.ACTIVE:
        store.show_toast("Listing published successfully!", "success", 5000)
    else:
        store.show_toast("Listing saved as draft", "success")
    await store.load_agent_dashboard_stats()
    return redirect("/agent/listings")


# ========== Edit listing ==========

async def _own_listing(properties: PropertyService, property_id: str, store: SessionStore) -> Property:
    listing = await properties.get_property(property_id, token=store.agent_token)
    if listing.agent_id and listing.agent_id != store.current_agent.agent_id:
        raise ForbiddenError("You can only manage your own listings")
    return listing


async def _edit_page(
    request: Request,
    store: SessionStore,
    properties: PropertyService,
    property_id: str,
    form: Optional[Dict[str, Any]] = None,
    errors: Optional[Dict[str, str]] = None,
    status_code: int = 200
):
    listing = await _own_listing(properties, property_id, store)
    retry_url = f"/agent/listings/{property_id}/edit"
    token = store.agent_token
    photos = await load_view(lambda: properties.get_photos(property_id, token), retry_url=retry_url)
    price_history = await load_view(lambda: properties.get_price_history(property_id, token), retry_url=retry_url)
    status_history = await load_view(lambda: properties.get_status_history(property_id, token), retry_url=retry_url)
    form = form or listing_form_data(listing)
    return render(request, "agent/listing_edit.html", {
        "listing": listing,
        "form": form,
        "errors": errors or {},
        "photos": photos,
        "price_history": price_history,
        "status_history": status_history,
        "price_per_sqft": _price_per_sqft(form),
        "statuses": [s.value for s in PropertyStatus],
        "property_types": PROPERTY_TYPES,
        "amenities": AMENITIES,
    }, status_code=status_code)


@router.get("/listings/{property_id}/edit", response_class=HTMLResponse, summary="Edit listing")
async def edit_listing_page(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    """
    Edit form with the photo manager and the price and status history.

    Raises:
        PropertyNotFoundError: If the listing doesn't exist
        ForbiddenError: If the listing belongs to another agent
    """
    return await _edit_page(request, store, properties, property_id)


@router.post("/listings/{property_id}/edit", response_class=HTMLResponse, summary="Save listing")
async def update_listing(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    """Save listing changes; an active listing must still meet the publish rules."""
    form = await request.form()
    data = form_to_dict(form, list_fields=LISTING_LIST_FIELDS)
    status = data.get("status") or PropertyStatus.DRAFT.value

    errors = validate_listing_details(data)
    if status == PropertyStatus.ACTIVE.value:
        photos = await properties.get_photos(property_id, store.agent_token)
        for key, message in validate_listing_publish(data, len(photos)).items():
            errors.setdefault(key, message)
    listing_form = None
    if not errors:
        listing_form, errors = parse_model(PropertyForm, listing_form_values(data, status))
    if errors:
        return await _edit_page(request, store, properties, property_id, data, errors, status_code=422)

    try:
        await properties.update_property(property_id, listing_form.to_payload(), store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return await _edit_page(request, store, properties, property_id, data, status_code=e.status_code)

    store.show_toast("Listing updated successfully", "success")
    return redirect(f"/agent/listings/{property_id}/edit")


@router.post("/listings/{property_id}/photos", summary="Upload listing photos")
async def upload_listing_photos(
    request: Request,
    property_id: str,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service),
    uploads: UploadService = Depends(get_upload_service)
):
    """Upload photos and attach them after the existing ones."""
    await _own_listing(properties, property_id, store)
    form = await request.form()
    existing = await properties.get_photos(property_id, store.agent_token)
    count = len(existing)
    try:
        for file in form.getlist("photos"):
            if not getattr(file, "filename", None):
                continue
            uploaded = await uploads.upload_listing_photo(file, store.current_agent.agent_id, store.agent_token)
            await properties.add_photo(
                property_id, uploaded.image_url, store.agent_token,
                thumbnail_url=uploaded.thumbnail_url, existing_count=count
            )
            count += 1
    except APIException as e:
        store.show_toast(e.message, "error")
        return redirect(f"/agent/listings/{property_id}/edit#photos")

    if count > len(existing):
        store.show_toast("Photo uploaded successfully", "success")
    return redirect(f"/agent/listings/{property_id}/edit#photos")


@router.post("/listings/{property_id}/photos/{photo_id}/delete", summary="Delete a listing photo")
async def delete_listing_photo(
    property_id: str,
    photo_id: str,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    try:
        await properties.delete_photo(property_id, photo_id, store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.show_toast("Photo deleted successfully", "success")
    return redirect(f"/agent/listings/{property_id}/edit#photos")


@router.post("/listings/{property_id}/photos/{photo_id}/move", summary="Move a listing photo")
async def move_listing_photo(
    request: Request,
    property_id: str,
    photo_id: str,
    store: SessionStore = Depends(require_agent),
    properties: PropertyService = Depends(get_property_service)
):
    """Move a photo one place up or down; the full order is sent back."""
    form = await request.form()
    offset = -1 if form.get("direction") == "up" else 1
    try:
        photos = await properties.get_photos(property_id, store.agent_token)
        ids = [p.photo_id for p in photos if p.photo_id]
        reordered = move_item(ids, photo_id, offset)
        if reordered != ids:
            await properties.reorder_photos(property_id, reordered, store.agent_token)
            store.show_toast("Photos reordered successfully", "success")
    except APIException as e:
        store.show_toast(e.message, "error")
    return redirect(f"/agent/listings/{property_id}/edit#photos")


# ========== Inquiries ==========

@router.get("/inquiries", response_class=HTMLResponse, summary="Inquiries inbox")
async def inquiries_inbox(
    request: Request,
    store: SessionStore = Depends(require_agent),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    filters = InquiryFilters.from_query_params(request.query_params)
    results = await load_view(
        lambda: inquiries.get_agent_inquiries(store.agent_token, filters),
        retry_url=filters.url()
    )
    return render(request, "agent/inquiries.html", {
        "inquiries": results,
        "filters": filters,
        "tabs": list(INQUIRY_TABS),
        "statuses": INQUIRY_STATUSES,
    })


@router.get("/inquiries/{inquiry_id}", response_class=HTMLResponse, summary="Inquiry detail")
async def inquiry_detail(
    request: Request,
    inquiry_id: str,
    store: SessionStore = Depends(require_agent),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    """
    One inquiry with its replies. Opening an unread inquiry marks it read.

    Raises:
        NotFoundError: Rendered as the not found page
    """
    inquiry, replies = await inquiries.get_inquiry(inquiry_id, store.agent_token)
    if not inquiry.agent_read:
        try:
            await inquiries.mark_read(inquiry_id, store.agent_token)
        except APIException as e:
            logger.warning(f"Could not mark inquiry {inquiry_id} read: {e.message}")
        else:
            inquiry.agent_read = True
            store.decrement_unread_inquiries()
    return render(request, "agent/inquiry_detail.html", {
        "inquiry": inquiry,
        "replies": replies,
        "statuses": INQUIRY_STATUSES,
        "errors": {},
    })


@router.post("/inquiries/{inquiry_id}/read", summary="Mark an inquiry read")
async def mark_inquiry_read(
    request: Request,
    inquiry_id: str,
    store: SessionStore = Depends(require_agent),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    form = await request.form()
    try:
        await inquiries.mark_read(inquiry_id, store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.decrement_unread_inquiries()
    return redirect_back(form.get("next"), "/agent/inquiries")


@router.post("/inquiries/{inquiry_id}/reply", response_class=HTMLResponse, summary="Reply to an inquiry")
async def reply_to_inquiry(
    request: Request,
    inquiry_id: str,
    store: SessionStore = Depends(require_agent),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    form = dict(await request.form())
    reply, errors = parse_model(InquiryReplyCreate, {
        "message": (form.get("message") or "").strip(),
        "include_signature": as_bool(form.get("include_signature")),
    })
    if errors:
        inquiry, replies = await inquiries.get_inquiry(inquiry_id, store.agent_token)
        return render(request, "agent/inquiry_detail.html", {
            "inquiry": inquiry,
            "replies": replies,
            "statuses": INQUIRY_STATUSES,
            "errors": {"message": "Reply message is required"},
        }, status_code=422)

    try:
        await inquiries.reply(inquiry_id, reply, store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.show_toast("Reply sent successfully", "success")
    return redirect(f"/agent/inquiries/{inquiry_id}")


@router.post("/inquiries/{inquiry_id}/status", summary="Change inquiry status")
async def change_inquiry_status(
    request: Request,
    inquiry_id: str,
    store: SessionStore = Depends(require_agent),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    form = await request.form()
    try:
        new_status = InquiryStatus(form.get("status"))
    except ValueError:
        store.show_toast("Unknown inquiry status", "error")
        return redirect(f"/agent/inquiries/{inquiry_id}")

    try:
        await inquiries.update_status(inquiry_id, new_status, store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
    else:
        store.show_toast("Inquiry status updated", "success")
    return redirect_back(form.get("next"), f"/agent/inquiries/{inquiry_id}")


# ========== Settings ==========

async def _settings_page(
    request: Request,
    store: SessionStore,
    agents: AgentService,
    profile_form: Optional[Dict[str, Any]] = None,
    errors: Optional[Dict[str, str]] = None,
    section: str = "profile",
    status_code: int = 200
):
    profile = await load_view(lambda: agents.get_me(store.agent_token), retry_url="/agent/settings")
    if store.state.agent_notification_preferences is None:
        await store.load_agent_notification_preferences()
    return render(request, "agent/settings.html", {
        "profile": profile,
        "profile_form": profile_form,
        "preferences": store.state.agent_notification_preferences,
        "preference_flags": AGENT_PREFERENCE_FLAGS,
        "frequencies": [f.value for f in NotificationFrequency],
        "errors": errors or {},
        "section": section,
    }, status_code=status_code)


@router.get("/settings", response_class=HTMLResponse, summary="Agent settings")
async def agent_settings(
    request: Request,
    store: SessionStore = Depends(require_agent),
    agents: AgentService = Depends(get_agent_service)
):
    return await _settings_page(request, store, agents)


@router.post("/settings/profile", response_class=HTMLResponse, summary="Update agent profile")
async def update_agent_profile(
    request: Request,
    store: SessionStore = Depends(require_agent),
    agents: AgentService = Depends(get_agent_service),
    uploads: UploadService = Depends(get_upload_service)
):
    form = await request.form()
    data = {
        key: form.get(key, "")
        for key in ("full_name", "phone_number", "professional_title", "bio", "agency_name", "email_signature")
    }
    data.update({key: form.get(key, "") for key in AGENT_TEXT_LISTS})
    errors = (
        FormValidator(data)
        .required("full_name", min_length=2, label="Full name")
        .phone("phone_number", required=False)
        .errors
    )
    if errors:
        return await _settings_page(request, store, agents, data, errors, status_code=422)

    values = blank_to_none(data)
    for key in AGENT_TEXT_LISTS:
        values[key] = parse_csv(data[key])
    photo = form.get("profile_photo")
    try:
        if getattr(photo, "filename", None):
            values["profile_photo_url"] = await uploads.upload_profile_photo(photo, token=store.agent_token)
        update, errors = parse_model(AgentUpdate, values)
        if errors:
            return await _settings_page(request, store, agents, data, errors, status_code=422)
        agent = await agents.update_me(update, store.agent_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return await _settings_page(request, store, agents, data, status_code=e.status_code)

    store.update_agent_profile(agent)
    store.show_toast("Profile updated successfully", "success")
    return redirect("/agent/settings")


@router.post("/settings/preferences", summary="Update agent notification preferences")
async def update_agent_preferences(request: Request, store: SessionStore = Depends(require_agent)):
    form = await request.form()
    preferences: Dict[str, Any] = {name: as_bool(form.get(name)) for name in AGENT_PREFERENCE_FLAGS}
    frequency = form.get("notification_frequency")
    if frequency in [f.value for f in NotificationFrequency]:
        preferences["notification_frequency"] = frequency
    try:
        await store.update_agent_notification_preferences(preferences)
    except APIException as e:
        logger.info(f"Agent preferences update failed: {e.message}")
    return redirect("/agent/settings#notifications")


@router.post("/settings/password", response_class=HTMLResponse, summary="Change agent password")
async def change_agent_password(
    request: Request,
    store: SessionStore = Depends(require_agent),
    agents: AgentService = Depends(get_agent_service)
):
    form = dict(await request.form())
    errors = (
        FormValidator(form)
        .required("current_password", message="Current password is required")
        .password("new_password")
        .passwords_match("new_password", "confirm_password")
        .errors
    )
    if errors:
        return await _settings_page(request, store, agents, errors=errors, section="password", status_code=422)

    try:
        await store.change_password(form["current_password"], form["new_password"])
    except APIException as e:
        return await _settings_page(request, store, agents, section="password", status_code=e.status_code)
    return redirect("/agent/settings")
