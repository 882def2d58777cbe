"""
Property seeker pages: saved listings, account settings and sent inquiries.
All routes require a signed-in user.
"""

from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from app.routers.common import as_bool, blank_to_none, parse_model, redirect
from app.schemas.inquiry import INQUIRY_STATUSES
from app.schemas.search import InquiryFilters
from app.schemas.user import USER_PREFERENCE_FIELDS, UserUpdate
from app.services.account import AccountService
from app.services.inquiry import InquiryService
from app.services.uploads import UploadService
from app.store import SessionStore
from app.utils.dependencies import (
    get_account_service,
    get_inquiry_service,
    get_upload_service,
    require_user,
)
from app.utils.exceptions import APIException, NotFoundError
from app.utils.templating import render
from app.utils.validators import FormValidator
from app.views.state import load_view

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"])

DELETE_CONFIRMATION = "DELETE"


@router.get("/saved", response_class=HTMLResponse, summary="Saved listings")
async def saved_properties(
    request: Request,
    store: SessionStore = Depends(require_user),
    account: AccountService = Depends(get_account_service)
):
    """
    Saved listings of the signed-in user.

    The saved id set in the session is refreshed from the same response, so
    the save toggles on other pages stay in sync.
    """
    saved = await load_view(lambda: account.get_saved_properties(store.user_token), retry_url="/saved")
    if saved.is_populated or saved.is_empty:
        store.replace_saved_properties([p.property_id for p in saved.data or []])
    return render(request, "account/saved.html", {"saved": saved})


@router.post("/saved/{property_id}/remove", summary="Remove a saved listing")
async def remove_saved_property(property_id: str, store: SessionStore = Depends(require_user)):
    try:
        await store.remove_favorite(property_id)
    except APIException as e:
        logger.info(f"Removing favorite {property_id} failed: {e.message}")
    return redirect("/saved")


async def _account_page(
    request: Request,
    store: SessionStore,
    account: AccountService,
    profile_form: Optional[Dict[str, Any]] = None,
    errors: Optional[Dict[str, str]] = None,
    section: str = "profile",
    status_code: int = 200
):
    profile = await load_view(lambda: account.get_profile(store.user_token), retry_url="/account")
    if store.state.user_notification_preferences is None:
        await store.load_user_notification_preferences()
    return render(request, "account/settings.html", {
        "profile": profile,
        "profile_form": profile_form,
        "preferences": store.state.user_notification_preferences,
        "preference_fields": USER_PREFERENCE_FIELDS,
        "errors": errors or {},
        "section": section,
        "delete_confirmation": DELETE_CONFIRMATION,
    }, status_code=status_code)


@router.get("/account", response_class=HTMLResponse, summary="Account settings")
async def account_settings(
    request: Request,
    store: SessionStore = Depends(require_user),
    account: AccountService = Depends(get_account_service)
):
    return await _account_page(request, store, account)


@router.post("/account/profile", response_class=HTMLResponse, summary="Update profile")
async def update_profile(
    request: Request,
    store: SessionStore = Depends(require_user),
    account: AccountService = Depends(get_account_service),
    uploads: UploadService = Depends(get_upload_service)
):
    """
    Update name, phone, location and optionally the profile photo.

    Raises:
        LoginRequiredError: If no user is signed in
    """
    form = await request.form()
    data = {key: form.get(key, "") for key in ("full_name", "phone_number", "location")}
    errors = (
        FormValidator(data)
        .required("full_name", min_length=2, label="Full name")
        .phone("phone_number", required=False)
        .errors
    )
    if errors:
        return await _account_page(request, store, account, data, errors, status_code=422)

    photo = form.get("profile_photo")
    try:
        if getattr(photo, "filename", None):
            data["profile_photo_url"] = await uploads.upload_profile_photo(photo, token=store.user_token)
        update, errors = parse_model(UserUpdate, blank_to_none(data))
        if errors:
            return await _account_page(request, store, account, data, errors, status_code=422)
        user = await account.update_profile(update, store.user_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return await _account_page(request, store, account, data, status_code=e.status_code)

    store.update_user_profile(user)
    store.show_toast("Profile updated successfully", "success")
    return redirect("/account")


@router.post("/account/password", response_class=HTMLResponse, summary="Change password")
async def change_password(
    request: Request,
    store: SessionStore = Depends(require_user),
    account: AccountService = Depends(get_account_service)
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
        return await _account_page(request, store, account, errors=errors, section="password", status_code=422)

    try:
        await store.change_password(form["current_password"], form["new_password"])
    except APIException as e:
        return await _account_page(request, store, account, section="password", status_code=e.status_code)
    return redirect("/account")


@router.post("/account/preferences", summary="Update notification preferences")
async def update_preferences(request: Request, store: SessionStore = Depends(require_user)):
    """Switches left unchecked in the form are turned off."""
    form = await request.form()
    preferences = {name: as_bool(form.get(name)) for name in USER_PREFERENCE_FIELDS}
    try:
        await store.update_user_notification_preferences(preferences)
    except APIException as e:
        logger.info(f"Preferences update failed: {e.message}")
    return redirect("/account#notifications")


@router.post("/account/delete", response_class=HTMLResponse, summary="Delete account")
async def delete_account(
    request: Request,
    store: SessionStore = Depends(require_user),
    account: AccountService = Depends(get_account_service)
):
    """
    Permanently delete the account, then sign out.

    The visitor must type the confirmation word and their password.
    """
    form = dict(await request.form())
    validator = FormValidator(form).required("password", message="Password is required")
    if (form.get("confirmation") or "").strip() != DELETE_CONFIRMATION:
        validator.add_error("confirmation", f"Type {DELETE_CONFIRMATION} to confirm")
    if validator.errors:
        return await _account_page(
            request, store, account, errors=validator.errors, section="delete", status_code=422
        )

    try:
        await account.delete_account(form["password"], store.user_token)
    except APIException as e:
        store.show_toast(e.message, "error")
        return await _account_page(request, store, account, section="delete", status_code=e.status_code)

    await store.logout()
    store.drain_toasts()
    store.show_toast("Your account has been deleted. We're sorry to see you go.", "success", 5000)
    return redirect("/")


@router.get("/inquiries", response_class=HTMLResponse, summary="Sent inquiries")
async def my_inquiries(
    request: Request,
    store: SessionStore = Depends(require_user),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    filters = InquiryFilters.from_query_params(request.query_params)
    results = await load_view(
        lambda: inquiries.get_my_inquiries(store.user_token, filters.status, filters.property_id),
        retry_url=filters.url("/inquiries")
    )
    return render(request, "account/inquiries.html", {
        "inquiries": results,
        "filters": filters,
        "statuses": INQUIRY_STATUSES,
    })


@router.get("/inquiries/{inquiry_id}", response_class=HTMLResponse, summary="Sent inquiry detail")
async def my_inquiry_detail(
    request: Request,
    inquiry_id: str,
    store: SessionStore = Depends(require_user),
    inquiries: InquiryService = Depends(get_inquiry_service)
):
    """
    One sent inquiry with the agent's replies.

    Raises:
        NotFoundError: Rendered as the not found page
    """
    inquiry, replies = await inquiries.get_inquiry(inquiry_id, store.user_token)
    if inquiry.user_id and store.current_user and inquiry.user_id != store.current_user.user_id:
        raise NotFoundError("Inquiry", inquiry_id)
    return render(request, "account/inquiry_detail.html", {"inquiry": inquiry, "replies": replies})
