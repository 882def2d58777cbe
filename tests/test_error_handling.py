"""
Tests for error handling: the error handler service, error pages and
JSON errors for clients that ask for them.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.main import app
from app.services.error_handler import ErrorHandlerService
from app.utils.exceptions import (
    AgentNotApprovedError,
    BadRequestError,
    ConflictError,
    FileUploadError,
    ForbiddenError,
    LoginRequiredError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


def body_of(response) -> dict:
    return json.loads(response.body)


class TestErrorHandlerService:
    """Test error handler service functionality."""

    def test_format_error_response(self):
        """Test the structured error body."""
        response = ErrorHandlerService.format_error_response(
            error_code="TEST_ERROR",
            message="Test error message",
            details=[{"field": "email", "message": "Invalid"}],
            request_id="abc12345"
        )

        assert response["error"]["code"] == "TEST_ERROR"
        assert response["error"]["message"] == "Test error message"
        assert response["error"]["details"] == [{"field": "email", "message": "Invalid"}]
        assert response["error"]["request_id"] == "abc12345"
        assert response["error"]["timestamp"].endswith("Z")

    def test_optional_fields_are_omitted(self):
        """Test details and request ID are left out when absent."""
        response = ErrorHandlerService.format_error_response("TEST_ERROR", "Test")

        assert "details" not in response["error"]
        assert "request_id" not in response["error"]

    @pytest.mark.parametrize("exception,status_code,code", [
        (BadRequestError("Bad input"), 400, "BAD_REQUEST"),
        (UnauthorizedError(), 401, "UNAUTHORIZED"),
        (ForbiddenError(), 403, "FORBIDDEN"),
        (NotFoundError("Property", "prop-1"), 404, "NOT_FOUND"),
        (ConflictError("Email already registered"), 409, "CONFLICT"),
        (AgentNotApprovedError(), 403, "AGENT_NOT_APPROVED"),
        (FileUploadError("File is empty"), 400, "UPLOAD_ERROR"),
    ])
    def test_api_exceptions(self, exception, status_code, code):
        """Test API exceptions keep their status and code."""
        response = ErrorHandlerService.handle_api_exception(exception)

        assert response.status_code == status_code
        assert body_of(response)["error"]["code"] == code
        assert body_of(response)["error"]["message"] == exception.message

    def test_field_errors_become_details(self):
        """Test validation field errors are included as details."""
        exception = ValidationError(
            "Please correct the highlighted fields",
            field_errors=[{"field": "email", "message": "Email already registered"}]
        )

        response = ErrorHandlerService.handle_api_exception(exception)

        assert response.status_code == 422
        assert body_of(response)["error"]["details"] == [{"field": "email", "message": "Email already registered"}]

    def test_pydantic_validation_error(self):
        """Test pydantic errors are listed field by field."""

        class ContactForm(BaseModel):
            email: str
            message: str

        try:
            ContactForm.model_validate({"email": "jane@example.com"})
        except PydanticValidationError as e:
            response = ErrorHandlerService.handle_validation_error(e)

        body = body_of(response)
        assert response.status_code == 422
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"][0]["field"] == "message"

    def test_http_exception(self):
        """Test framework 404s get the friendly message."""
        response = ErrorHandlerService.handle_http_exception(StarletteHTTPException(status_code=404))

        body = body_of(response)
        assert body["error"]["code"] == "HTTP_404"
        assert body["error"]["message"] == "The page you are looking for doesn't exist or has been moved."

    def test_unexpected_error_hides_details(self):
        """Test unexpected errors never leak the exception text."""
        response = ErrorHandlerService.handle_unexpected_error(RuntimeError("database password is hunter2"))

        body = body_of(response)
        assert response.status_code == 500
        assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "hunter2" not in response.body.decode()


class TestErrorPages:
    """Test error pages rendered by the application."""

    def test_unknown_path(self, client):
        """Test unknown paths render the not found page."""
        response = client.get("/no-such-page")

        assert response.status_code == 404
        assert "text/html" in response.headers["content-type"]
        assert "Page not found" in response.text
        assert "doesn&#39;t exist or has been moved" in response.text
        assert "X-Request-ID" in response.headers

    def test_unknown_path_as_json(self, client):
        """Test JSON clients get a structured error."""
        response = client.get("/no-such-page", headers={"Accept": "application/json"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_404"

    def test_missing_listing(self, client, fake_api):
        """Test a listing the API does not know renders the not found page."""
        fake_api.fail("GET", "/api/properties/prop-404", 404, "Property not found", "NOT_FOUND")

        response = client.get("/properties/prop-404")

        assert response.status_code == 404
        assert "Property not found with ID: prop-404" in response.text

    def test_login_required_redirects(self, client):
        """Test protected pages redirect to the matching login page."""
        saved = client.get("/saved?sort=price")
        agent = client.get("/agent/dashboard")
        admin = client.get("/admin/reports")

        assert saved.status_code == 303
        assert saved.headers["location"] == "/login?redirect=/saved%3Fsort%3Dprice"
        assert agent.headers["location"] == "/agent/login?redirect=/agent/dashboard"
        assert admin.headers["location"] == "/admin/login?redirect=/admin/reports"

    def test_login_required_as_json(self, client):
        """Test JSON clients get a 401 instead of a redirect."""
        response = client.get("/saved", headers={"Accept": "application/json"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "LOGIN_REQUIRED"

    def test_upstream_failure_in_a_section(self, client, fake_api):
        """Test an API outage shows an error section with a retry link, not an error page."""
        fake_api.fail("GET", "/api/properties", 503, "Service temporarily unavailable")

        response = client.get("/search?location=Austin")

        assert response.status_code == 200
        assert "state-error" in response.text
        assert "Service temporarily unavailable" in response.text
        assert 'href="/search?location=Austin"' in response.text

    def test_unexpected_error_page(self, client, fake_api):
        """Test unexpected failures render the generic error page."""

        def explode(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("boom")

        fake_api.add("GET", "/api/properties", handler=explode)
        quiet_client = TestClient(app, raise_server_exceptions=False, follow_redirects=False)

        response = quiet_client.get("/")

        assert response.status_code == 500
        assert "An unexpected error occurred. Please try again later." in response.text
        assert "boom" not in response.text

    def test_login_required_error_paths(self):
        """Test each actor maps to its login page."""
        assert LoginRequiredError("user").login_path == "/login"
        assert LoginRequiredError("agent").login_path == "/agent/login"
        assert LoginRequiredError("admin").login_path == "/admin/login"
