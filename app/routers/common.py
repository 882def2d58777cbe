"""
Helpers shared by the page routers.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError as PydanticValidationError

from app.store.session import session_id
from app.utils.query_params import safe_redirect_target
from app.utils.validators import field_errors_to_dict, handle_pydantic_validation_error


def redirect(url: str) -> RedirectResponse:
    """303 redirect after a form POST."""
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def redirect_back(target: Optional[str], default: str = "/") -> RedirectResponse:
    """Redirect to a local `next` target, falling back to `default`."""
    return redirect(safe_redirect_target(target, default))


def browser_session_id(request: Request) -> str:
    """Stable anonymous ID of this browser session, used for view tracking."""
    return session_id(request.session)


def parse_model(model: type, data: Dict[str, Any]) -> tuple:
    """
    Validate form data into a schema.

    Returns:
        Tuple of (instance or None, field -> message errors)
    """
    try:
        return model.model_validate(data), {}
    except PydanticValidationError as e:
        error = handle_pydantic_validation_error(e)
        return None, field_errors_to_dict(error.field_errors)


def blank_to_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: (None if value == "" else value) for key, value in data.items()}


def as_bool(value: Any) -> bool:
    return value in (True, "true", "on", "1", 1, "yes")
