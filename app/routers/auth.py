"""
Authentication pages for property seekers, agents and admins.
Covers login, registration, email verification and password recovery.
"""

from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse

from app.routers.common import parse_model, redirect
from app.schemas.auth import LoginRequest, RegisterAgentRequest, RegisterUserRequest
from app.services.uploads import UploadService
from app.store import SessionStore
from app.utils.dependencies import get_store, get_upload_service
from app.utils.exceptions import APIException, FileUploadError
from app.utils.query_params import parse_csv, safe_redirect_target
from app.utils.templating import render
from app.utils.validators import FormValidator, ValidationUtils
from app.views.wizard import agent_registration_wizard, form_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

LOGIN_PAGES = {
    "user": ("auth/login.html", "/", "Sign in"),
    "agent": ("auth/login.html", "/agent/dashboard", "Agent sign in"),
    "admin": ("auth/login.html", "/admin/dashboard", "Admin sign in"),
}


def _error_status(error: APIException) -> int:
    return error.status_code if error.status_code >= 500 else status.HTTP_400_BAD_REQUEST


def _render_login(
    request: Request,
    actor: str,
    form: Optional[Dict[str, Any]] = None,
    errors: Optional[Dict[str, str]] = None,
    error: Optional[str] = None,
    status_code: int = 200
):
    template, default_target, title = LOGIN_PAGES[actor]
    form = form or {}
    return render(request, template, {
        "actor": actor,
        "title": title,
        "action": request.url.path,
        "form": {"email": form.get("email", "")},
        "errors": errors or {},
        "error": error,
        "redirect_to": safe_redirect_target(
            form.get("redirect") or request.query_params.get("redirect"),
            default_target
        ),
    }, status_code=status_code)


async def _login(request: Request, store: SessionStore, actor: str):
    """
    Shared POST handler of the three login pages.

    Credentials are checked against the API by the store; on success the
    visitor returns to the `redirect` target when it is a local path.
    """
    form = dict(await request.form())
    credentials, errors = parse_model(LoginRequest, {
        "email": (form.get("email") or "").strip(),
        "password": form.get("password") or "",
    })
    if errors:
        return _render_login(request, actor, form, errors=errors, status_code=422)

    login = {
        "user": store.login_user,
        "agent": store.login_agent,
        "admin": store.login_admin,
    }[actor]
    try:
        await login(credentials.email, credentials.password)
    except APIException as e:
        logger.info(f"{actor.capitalize()} sign in failed for {credentials.email}: {e.error_code}")
        return _render_login(request, actor, form, error=e.message, status_code=_error_status(e))

    _, default_target, _ = LOGIN_PAGES[actor]
    return redirect(safe_redirect_target(form.get("redirect"), default_target))


@router.get("/login", response_class=HTMLResponse, summary="Sign in page")
async def login_page(request: Request, store: SessionStore = Depends(get_store)):
    if store.is_user:
        return redirect(safe_redirect_target(request.query_params.get("redirect"), "/"))
    return _render_login(request, "user")


@router.post("/login", response_class=HTMLResponse, summary="Sign in")
async def login(request: Request, store: SessionStore = Depends(get_store)):
    """
    Sign in a property seeker.

    Returns:
        Redirect to the requested page, or the login page with the error
    """
    return await _login(request, store, "user")


@router.get("/agent/login", response_class=HTMLResponse, summary="Agent sign in page")
async def agent_login_page(request: Request, store: SessionStore = Depends(get_store)):
    if store.is_agent:
        return redirect(safe_redirect_target(request.query_params.get("redirect"), "/agent/dashboard"))
    return _render_login(request, "agent")


@router.post("/agent/login", response_class=HTMLResponse, summary="Agent sign in")
async def agent_login(request: Request, store: SessionStore = Depends(get_store)):
    """Sign in an agent; accounts still pending approval are refused."""
    return await _login(request, store, "agent")


@router.get("/admin/login", response_class=HTMLResponse, summary="Admin sign in page")
async def admin_login_page(request: Request, store: SessionStore = Depends(get_store)):
    if store.is_admin:
        return redirect(safe_redirect_target(request.query_params.get("redirect"), "/admin/dashboard"))
    return _render_login(request, "admin")


@router.post("/admin/login", response_class=HTMLResponse, summary="Admin sign in")
async def admin_login(request: Request, store: SessionStore = Depends(get_store)):
    return await _login(request, store, "admin")


@router.post("/logout", summary="Sign out")
async def logout(request: Request, store: SessionStore = Depends(get_store)):
    await store.logout()
    return redirect("/")


# ========== Property seeker registration ==========

def _render_register(request: Request, form=None, errors=None, error=None, status_code: int = 200):
    form = dict(form or {})
    form.pop("password", None)
    form.pop("confirm_password", None)
    return render(request, "auth/register.html", {
        "form": form,
        "errors": errors or {},
        "error": error,
    }, status_code=status_code)


@router.get("/register", response_class=HTMLResponse, summary="Registration page")
async def register_page(request: Request, store: SessionStore = Depends(get_store)):
    if store.is_user:
        return redirect("/")
    return _render_register(request)


@router.post("/register", response_class=HTMLResponse, summary="Create an account")
async def register(request: Request, store: SessionStore = Depends(get_store)):
    """
    Register a property seeker and sign them in.

    Advisory checks run first; the API has the final word, e.g. on an
    email that is already registered.
    """
    form = dict(await request.form())
    errors = (
        FormValidator(form)
        .required("full_name", min_length=2, label="Full name")
        .email("email")
        .phone("phone_number", required=False)
        .password("password")
        .passwords_match("password", "confirm_password")
        .checked("terms_accepted", "You must agree to the Terms of Service")
        .errors
    )
    registration = None
    if not errors:
        registration, errors = parse_model(RegisterUserRequest, {
            "email": form.get("email"),
            "password": form.get("password"),
            "full_name": form.get("full_name"),
            "phone_number": form.get("phone_number") or None,
        })
    if errors:
        return _render_register(request, form, errors=errors, status_code=422)

    try:
        await store.register_user(registration.model_dump(exclude_none=True))
    except APIException as e:
        logger.info(f"Registration failed for {registration.email}: {e.error_code}")
        return _render_register(request, form, error=e.message, status_code=_error_status(e))

    store.show_toast("Account created successfully! Please check your email to verify your address.", "success")
    return redirect(safe_redirect_target(form.get("redirect"), "/"))


# ========== Agent registration ==========

AGENT_LIST_FIELDS = ("specializations", "service_areas")


def _render_agent_register(request: Request, wizard, error: Optional[str] = None, status_code: int = 200):
    return render(request, "auth/agent_register.html", {
        "wizard": wizard,
        "form": wizard.data,
        "errors": wizard.errors,
        "hidden_fields": wizard.hidden_fields(),
        "error": error,
    }, status_code=status_code)


@router.get("/agent/register", response_class=HTMLResponse, summary="Agent application")
async def agent_register_page(request: Request, store: SessionStore = Depends(get_store)):
    return _render_agent_register(request, agent_registration_wizard())


@router.post("/agent/register", response_class=HTMLResponse, summary="Agent application step")
async def agent_register(
    request: Request,
    store: SessionStore = Depends(get_store),
    uploads: UploadService = Depends(get_upload_service)
):
    """
    Drive the three step agent application.

    Each POST carries the data of every step. The `nav` field is `back` or
    `next`; `next` on the last step submits the application. A license
    document attached on the license step is uploaded straight away and its
    URL kept for the submission.
    """
    form = await request.form()
    data = form_to_dict(form)
    wizard = agent_registration_wizard(data)

    document = form.get("license_document")
    if getattr(document, "filename", None) and wizard.current.name == "license":
        try:
            data["license_document_url"] = await uploads.upload_document(document, "license")
        except FileUploadError as e:
            wizard.submit_step(data)
            wizard.errors = {"license_document": e.message}
            return _render_agent_register(request, wizard, status_code=422)
        except APIException as e:
            wizard.submit_step(data)
            return _render_agent_register(request, wizard, error=e.message, status_code=_error_status(e))

    if form.get("nav") == "back":
        wizard.back(data)
        return _render_agent_register(request, wizard)

    was_last = wizard.is_last
    if not wizard.advance(data):
        return _render_agent_register(request, wizard, status_code=422)
    if not was_last:
        return _render_agent_register(request, wizard)

    if wizard.validate_all():
        return _render_agent_register(request, wizard, status_code=422)

    payload = {**wizard.data}
    for name in AGENT_LIST_FIELDS:
        payload[name] = parse_csv(payload.get(name))
    payload.pop("confirm_password", None)
    payload.pop("terms_accepted", None)
    application, errors = parse_model(RegisterAgentRequest, payload)
    if errors:
        wizard.errors = errors
        return _render_agent_register(request, wizard, status_code=422)

    try:
        await store.register_agent(application.model_dump(exclude_none=True))
    except APIException as e:
        logger.info(f"Agent application failed for {application.email}: {e.error_code}")
        return _render_agent_register(request, wizard, error=e.message, status_code=_error_status(e))

    return redirect("/agent/login")


# ========== Email verification and password recovery ==========

@router.get("/verify-email", response_class=HTMLResponse, summary="Verify an email address")
async def verify_email(request: Request, token: str = "", store: SessionStore = Depends(get_store)):
    """
    Confirm an email address with the token from the verification email.
    A verified user is signed in when the API returns a session token.
    """
    if not token:
        return render(request, "auth/verify_email.html", {
            "verified": False,
            "error": "Verification link is missing its token",
        }, status_code=400)

    try:
        await store.verify_email(token)
    except APIException as e:
        return render(request, "auth/verify_email.html", {
            "verified": False,
            "error": e.message,
        }, status_code=_error_status(e))

    return render(request, "auth/verify_email.html", {"verified": True, "error": None})


@router.get("/forgot-password", response_class=HTMLResponse, summary="Password reset request page")
async def forgot_password_page(request: Request, store: SessionStore = Depends(get_store)):
    return render(request, "auth/forgot_password.html", {"form": {}, "errors": {}, "sent": False})


@router.post("/forgot-password", response_class=HTMLResponse, summary="Request a password reset")
async def forgot_password(request: Request, store: SessionStore = Depends(get_store)):
    form = dict(await request.form())
    errors = FormValidator(form).email("email").errors
    if errors:
        return render(request, "auth/forgot_password.html", {
            "form": form, "errors": errors, "sent": False,
        }, status_code=422)

    try:
        await store.request_password_reset(form["email"].strip().lower())
    except APIException as e:
        return render(request, "auth/forgot_password.html", {
            "form": form, "errors": {}, "sent": False,
        }, status_code=_error_status(e))

    return render(request, "auth/forgot_password.html", {"form": form, "errors": {}, "sent": True})


def _render_reset(request: Request, token: str, errors=None, password: str = "", status_code: int = 200):
    return render(request, "auth/reset_password.html", {
        "token": token,
        "errors": errors or {},
        "strength": ValidationUtils.password_strength(password) if password else None,
    }, status_code=status_code)


@router.get("/reset-password", response_class=HTMLResponse, summary="Password reset page")
async def reset_password_page(request: Request, token: str = "", store: SessionStore = Depends(get_store)):
    if not token:
        store.show_toast("Invalid or missing reset token", "error")
        return redirect("/forgot-password")
    return _render_reset(request, token)


@router.post("/reset-password", response_class=HTMLResponse, summary="Reset a password")
async def reset_password(request: Request, store: SessionStore = Depends(get_store)):
    """
    Set a new password with the emailed reset token.

    A failed submission re-renders the form with the strength of the
    rejected password.
    """
    form = dict(await request.form())
    token = form.get("token") or ""
    if not token:
        store.show_toast("Invalid or missing reset token", "error")
        return redirect("/forgot-password")

    password = form.get("new_password") or ""
    errors = (
        FormValidator(form)
        .password("new_password")
        .passwords_match("new_password", "confirm_password")
        .errors
    )
    if errors:
        return _render_reset(request, token, errors, password, status_code=422)

    try:
        await store.reset_password(token, password)
    except APIException as e:
        return _render_reset(request, token, password=password, status_code=_error_status(e))

    return redirect("/login")


@router.get("/password-strength", summary="Password strength score")
async def password_strength(password: str = ""):
    """Strength meter data for the reset and registration forms."""
    strength = ValidationUtils.password_strength(password)
    return {"score": strength.score, "level": strength.level, "feedback": strength.feedback}
