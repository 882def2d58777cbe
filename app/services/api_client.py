"""
HTTP client for the marketplace REST API.
Wraps a shared httpx.AsyncClient, attaches bearer tokens and maps API errors
onto the application's exception hierarchy.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple, Union
import httpx

from app.config import settings
from app.utils.exceptions import (
    APIException,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

Params = Union[Dict[str, Any], Sequence[Tuple[str, Any]], None]

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


def create_http_client(
    base_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """
    Create the process-wide HTTP client for the marketplace API.

    Args:
        base_url: API origin, defaults to the configured base URL
        transport: Optional transport (tests pass an httpx.MockTransport)

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        base_url=base_url or settings.api_base_url,
        timeout=settings.api_timeout_seconds,
        headers={"Accept": "application/json"},
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=50),
        transport=transport
    )


def extract_error(payload: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Pull the message and error code out of an API error body.

    The API answers `{success: false, error: {code, message}}` for most
    failures and `{message, error_code}` for a few older endpoints.

    Returns:
        Tuple of (message, code), either may be None
    """
    if not isinstance(payload, dict):
        return None, None

    message = None
    code = None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        code = error.get("code")
    elif isinstance(error, str):
        message = error

    message = message or payload.get("message") or payload.get("detail")
    code = code or payload.get("error_code")
    if not isinstance(message, str):
        message = None
    return message, code


def map_error_response(response: httpx.Response) -> APIException:
    """
    Translate an error response into an APIException subclass.

    Args:
        response: Response with a status code >= 400

    Returns:
        Exception to raise
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None

    message, code = extract_error(payload)
    message = message or GENERIC_ERROR_MESSAGE
    status_code = response.status_code

    if status_code == 400:
        return BadRequestError(message, error_code=code or "BAD_REQUEST")
    if status_code == 401:
        return UnauthorizedError(message, error_code=code or "UNAUTHORIZED")
    if status_code == 403:
        return ForbiddenError(message, error_code=code or "FORBIDDEN")
    if status_code == 404:
        error = NotFoundError("Resource", error_code=code or "NOT_FOUND")
        error.detail = message
        return error
    if status_code == 409:
        return ConflictError(message, error_code=code or "CONFLICT")
    if status_code == 422:
        field_errors = payload.get("errors") if isinstance(payload, dict) else None
        return ValidationError(
            message,
            field_errors=field_errors if isinstance(field_errors, list) else None,
            error_code=code or "VALIDATION_ERROR"
        )
    return APIException(status_code=status_code, detail=message, error_code=code or "API_ERROR")


class MarketplaceAPIClient:
    """
    Thin JSON client for the marketplace REST API.

    One instance wraps the shared httpx.AsyncClient created in the
    application lifespan. Calls are not retried.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self.http = http_client

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Any = None,
        params: Params = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Issue a request and decode the JSON response.

        Args:
            method: HTTP method
            path: API path such as `/api/properties`
            token: Bearer token of the acting user, agent or admin
            json: JSON body
            params: Query parameters (mapping or list of pairs)
            files: Multipart files
            data: Multipart form fields

        Returns:
            Decoded JSON, or None for empty responses

        Raises:
            APIException: Mapped from the API error status
            ServiceUnavailableError: If the API cannot be reached
        """
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.http.request(
                method,
                path,
                json=json,
                params=params,
                files=files,
                data=data,
                headers=headers
            )
        except httpx.TimeoutException as e:
            logger.error(f"Marketplace API timeout: {method} {path}", extra={"error": str(e)})
            raise ServiceUnavailableError("The marketplace service took too long to respond")
        except httpx.RequestError as e:
            logger.error(f"Marketplace API unreachable: {method} {path}", extra={"error": str(e)})
            raise ServiceUnavailableError()

        if response.status_code >= 400:
            error = map_error_response(response)
            log = logger.error if response.status_code >= 500 else logger.info
            log(
                f"Marketplace API error {response.status_code}: {method} {path}",
                extra={"status_code": response.status_code, "error_code": error.error_code}
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            logger.error(f"Marketplace API returned invalid JSON: {method} {path}")
            raise ServiceUnavailableError("The marketplace service returned an invalid response")

    async def get(self, path: str, token: Optional[str] = None, params: Params = None) -> Any:
        return await self.request("GET", path, token=token, params=params)

    async def post(self, path: str, token: Optional[str] = None, json: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, token=token, json=json, **kwargs)

    async def put(self, path: str, token: Optional[str] = None, json: Any = None) -> Any:
        return await self.request("PUT", path, token=token, json=json)

    async def delete(self, path: str, token: Optional[str] = None, json: Any = None) -> Any:
        return await self.request("DELETE", path, token=token, json=json)

    async def health(self) -> Dict[str, Any]:
        """Check the marketplace API health endpoint."""
        result = await self.get("/api/health")
        return result if isinstance(result, dict) else {"status": "ok"}
