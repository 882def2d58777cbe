"""
Jinja2 template environment and page rendering helpers.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import Request
from fastapi.templating import Jinja2Templates

from app.config import settings
from app.schemas.common import coerce_number

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}
RENT_SUFFIXES = {"monthly": "/mo", "weekly": "/wk", "daily": "/day", "yearly": "/yr"}


def format_price(value: Any, currency: str = "USD", rent_frequency: Optional[str] = None) -> str:
    """
    Format a price for display, e.g. `$450,000` or `$2,500/mo`.

    Null and unparseable prices render as 0.
    """
    amount = coerce_number(value)
    symbol = CURRENCY_SYMBOLS.get((currency or "USD").upper())
    text = f"{symbol}{amount:,.0f}" if symbol else f"{amount:,.0f} {currency}"
    if rent_frequency:
        text += RENT_SUFFIXES.get(rent_frequency, f"/{rent_frequency}")
    return text


def format_number(value: Any) -> str:
    amount = coerce_number(value)
    if amount == int(amount):
        return f"{int(amount):,}"
    return f"{amount:,.1f}"


def format_date(value: Optional[str], fmt: str = "%b %d, %Y") -> str:
    """Format an ISO timestamp from the API; unparseable values pass through."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime(fmt)
    except ValueError:
        return value


def humanize(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.replace("_", " ").capitalize()


def login_url(path: str, redirect_to: Optional[str] = None) -> str:
    if not redirect_to:
        return path
    return f"{path}?redirect={quote(redirect_to, safe='/')}"


templates.env.filters["price"] = format_price
templates.env.filters["number"] = format_number
templates.env.filters["date"] = format_date
templates.env.filters["humanize"] = humanize
templates.env.globals["app_name"] = settings.app_name
templates.env.globals["login_url"] = login_url


def render(
    request: Request,
    template_name: str,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 200
):
    """
    Render a page with the session context every layout needs.

    Queued toasts are drained here, so each toast is shown exactly once.

    Args:
        request: Current request
        template_name: Template path under `app/templates`
        context: Page specific variables
        status_code: Response status

    Returns:
        TemplateResponse
    """
    store = getattr(request.state, "store", None)
    page_context: Dict[str, Any] = {
        "store": store,
        "toasts": store.drain_toasts() if store is not None else [],
        "current_url": str(request.url.path) + (f"?{request.url.query}" if request.url.query else ""),
        "settings": settings,
    }
    page_context.update(context or {})
    return templates.TemplateResponse(request, template_name, page_context, status_code=status_code)
