"""
Error handling service for consistent error pages, JSON errors and logging.
Pages get an HTML error page; clients asking for JSON get a structured error body.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Union
from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
from fastapi.exceptions import RequestValidationError
import logging
import uuid

from app.utils.exceptions import APIException, LoginRequiredError
from app.utils.templating import login_url, render

logger = logging.getLogger(__name__)

ERROR_TITLES = {
    400: "Bad request",
    401: "Sign in required",
    403: "Access denied",
    404: "Page not found",
    409: "Conflict",
    422: "Invalid input",
    503: "Service unavailable",
}


class ErrorHandlerService:
    """
    Service for handling and formatting errors consistently across the application.
    Chooses between an HTML error page, a JSON body and a login redirect.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Format error response in a consistent structure.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional list of detailed error information
            request_id: Optional request identifier for tracking

        Returns:
            Formatted error response dictionary
        """
        response = {
            "error": {
                "code": error_code,
                "message": message,
                "timestamp": ErrorHandlerService._get_current_timestamp(),
            }
        }

        if details:
            response["error"]["details"] = details

        if request_id:
            response["error"]["request_id"] = request_id

        return response

    @staticmethod
    def wants_json(request: Optional[Request]) -> bool:
        """True when the client asked for JSON rather than a page."""
        if request is None:
            return True
        accept = request.headers.get("accept", "")
        return "application/json" in accept and "text/html" not in accept

    @staticmethod
    def _respond(
        request: Optional[Request],
        status_code: int,
        error_response: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Response:
        if ErrorHandlerService.wants_json(request):
            return JSONResponse(status_code=status_code, content=error_response, headers=headers)

        error = error_response["error"]
        template = "errors/404.html" if status_code == 404 else "errors/error.html"
        return render(request, template, {
            "status_code": status_code,
            "title": ERROR_TITLES.get(status_code, "Something went wrong"),
            "message": error["message"],
            "details": error.get("details"),
            "request_id": error.get("request_id"),
            "retry_url": request.url.path if status_code >= 500 else None,
        }, status_code=status_code)

    @staticmethod
    def handle_login_required(
        exception: LoginRequiredError,
        request: Request
    ) -> Response:
        """Send visitors to the login page for the actor the page needs."""
        if ErrorHandlerService.wants_json(request):
            return ErrorHandlerService.handle_api_exception(exception, request)

        redirect_to = exception.redirect_to
        if redirect_to is None and request.method == "GET":
            redirect_to = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        logger.info(
            f"Login required for {request.url.path}, redirecting to {exception.login_path}",
            extra={"actor": exception.actor}
        )
        return RedirectResponse(login_url(exception.login_path, redirect_to), status_code=303)

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> Response:
        """
        Handle custom API exceptions with structured response.

        Args:
            exception: API exception instance
            request: Optional FastAPI request object

        Returns:
            Error page or JSON response
        """
        request_id = ErrorHandlerService._request_id(request)

        logger.warning(
            f"API Exception [{request_id}]: {exception.error_code} - {exception.detail}",
            extra={
                "error_code": exception.error_code,
                "status_code": exception.status_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code=exception.error_code or "API_ERROR",
            message=exception.message,
            details=getattr(exception, "field_errors", None),
            request_id=request_id
        )

        return ErrorHandlerService._respond(request, exception.status_code, error_response, exception.headers)

    @staticmethod
    def handle_validation_error(
        exception: Union[PydanticValidationError, RequestValidationError],
        request: Optional[Request] = None
    ) -> Response:
        """
        Handle request validation errors with detailed field information.

        Args:
            exception: Pydantic or FastAPI validation error
            request: Optional FastAPI request object

        Returns:
            Error page or JSON response with validation details
        """
        request_id = ErrorHandlerService._request_id(request)

        validation_details = []
        for error in exception.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            validation_details.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"]
            })

        logger.warning(
            f"Validation Error [{request_id}]: {len(validation_details)} field errors",
            extra={
                "error_count": len(validation_details),
                "request_id": request_id,
                "path": request.url.path if request else None,
                "validation_errors": validation_details
            }
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details=validation_details,
            request_id=request_id
        )

        return ErrorHandlerService._respond(request, 422, error_response)

    @staticmethod
    def handle_http_exception(
        exception: StarletteHTTPException,
        request: Optional[Request] = None
    ) -> Response:
        """
        Handle framework HTTP exceptions such as unknown paths.

        Args:
            exception: HTTP exception
            request: Optional FastAPI request object

        Returns:
            Error page or JSON response
        """
        request_id = ErrorHandlerService._request_id(request)

        log = logger.info if exception.status_code == 404 else logger.warning
        log(
            f"HTTP Exception [{request_id}]: {exception.status_code} - {exception.detail}",
            extra={
                "status_code": exception.status_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        message = exception.detail
        if exception.status_code == 404:
            message = "The page you are looking for doesn't exist or has been moved."

        error_response = ErrorHandlerService.format_error_response(
            error_code=f"HTTP_{exception.status_code}",
            message=str(message),
            request_id=request_id
        )

        return ErrorHandlerService._respond(
            request, exception.status_code, error_response, getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> Response:
        """
        Handle unexpected errors with a generic error page.

        Args:
            exception: Unexpected exception
            request: Optional FastAPI request object

        Returns:
            Generic 500 page or JSON response
        """
        request_id = ErrorHandlerService._request_id(request)

        logger.error(
            f"Unexpected Error [{request_id}]: {type(exception).__name__} - {str(exception)}",
            extra={
                "request_id": request_id,
                "path": request.url.path if request else None,
                "exception_type": type(exception).__name__
            },
            exc_info=exception
        )

        error_response = ErrorHandlerService.format_error_response(
            error_code="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred. Please try again later.",
            request_id=request_id
        )

        return ErrorHandlerService._respond(request, 500, error_response)

    @staticmethod
    def _request_id(request: Optional[Request]) -> str:
        """Use the middleware's request ID, or generate one."""
        if request is not None:
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                return request_id
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _get_current_timestamp() -> str:
        """Get current timestamp in ISO format."""
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
