"""
Test configuration and fixtures for the marketplace web application.
Provides an in-memory marketplace API, test data factories, and signed-in
test clients for each actor.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.api_client import MarketplaceAPIClient, create_http_client
from app.store import SessionStore
from app.store.registry import saved_properties_registry


API_BASE_URL = "http://api.test"

Route = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeMarketplaceAPI:
    """
    In-memory marketplace REST API served through httpx.MockTransport.

    Routes are keyed by method and path; unknown routes answer 404 in the
    API's error envelope. Every request is recorded for assertions.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status_code: int = 200,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None
    ) -> "FakeMarketplaceAPI":
        """Register a canned response or a handler for a route."""
        self.routes[(method.upper(), path)] = handler or (status_code, json)
        return self

    def fail(self, method: str, path: str, status_code: int, message: str, code: str = "ERROR"):
        """Register an error response in the API's `{success, error}` envelope."""
        return self.add(method, path, json=api_error(message, code), status_code=status_code)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(
                404,
                json=api_error(f"No route for {request.method} {request.url.path}", "NOT_FOUND")
            )
        if callable(route):
            return route(request)
        status_code, body = route
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def called(self, method: str, path: str) -> bool:
        return bool(self.calls(method, path))

    def last_json(self, method: str, path: str) -> Any:
        """Decoded JSON body of the most recent call to a route."""
        calls = self.calls(method, path)
        assert calls, f"{method} {path} was not called"
        return json.loads(calls[-1].content)


class RecordingViewTracker:
    """View tracker that records calls instead of scheduling them."""

    def __init__(self):
        self.tracked: List[Tuple[str, str, Optional[str]]] = []

    def track(self, property_id: str, session_id: str, user_id: Optional[str] = None) -> None:
        self.tracked.append((property_id, session_id, user_id))

    async def flush(self) -> int:
        return 0


def api_error(message: str, code: str = "ERROR") -> Dict[str, Any]:
    return {"success": False, "error": {"code": code, "message": message}}


def page_payload(items: List[Dict[str, Any]], total: Optional[int] = None, limit: int = 20, offset: int = 0) -> dict:
    """List endpoint envelope: `{data, pagination}`."""
    total = len(items) if total is None else total
    return {
        "data": items,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(items) < total,
        },
    }


def toast_messages(html: str) -> List[str]:
    """Toast texts rendered on a page."""
    return re.findall(r'<div class="toast toast-\w+"[^>]*>([^<]*)</div>', html)


# Test data factories
class UserFactory:
    """Factory for property seeker payloads."""

    @staticmethod
    def create_user_data(
        user_id: str = "user-1",
        email: str = "jane@example.com",
        full_name: str = "Jane Buyer",
        email_verified: bool = True,
        **overrides
    ) -> dict:
        data = {
            "user_id": user_id,
            "email": email,
            "full_name": full_name,
            "phone_number": "512-555-0101",
            "email_verified": email_verified,
            "location": "Austin, TX",
            "created_at": "2024-01-10T12:00:00Z",
        }
        data.update(overrides)
        return data


class AgentFactory:
    """Factory for agent payloads."""

    @staticmethod
    def create_agent_data(
        agent_id: str = "agent-1",
        email: str = "sam@realty.example.com",
        full_name: str = "Sam Agent",
        approved: bool = True,
        approval_status: str = "approved",
        **overrides
    ) -> dict:
        data = {
            "agent_id": agent_id,
            "email": email,
            "full_name": full_name,
            "phone_number": "512-555-0199",
            "license_number": "TX-123456",
            "license_state": "TX",
            "agency_name": "Lone Star Realty",
            "office_address_street": "100 Congress Ave",
            "office_address_city": "Austin",
            "office_address_state": "TX",
            "office_address_zip": "78701",
            "years_experience": "5-10",
            "specializations": ["residential"],
            "service_areas": None,
            "approved": approved,
            "approval_status": approval_status,
            "account_status": "active",
            "created_at": "2024-01-05T09:00:00Z",
        }
        data.update(overrides)
        return data


class AdminFactory:
    """Factory for admin payloads."""

    @staticmethod
    def create_admin_data(admin_id: str = "admin-1", email: str = "ops@marketplace.example.com", **overrides) -> dict:
        data = {"admin_id": admin_id, "email": email, "full_name": "Ops Admin", "role": "admin"}
        data.update(overrides)
        return data


class PropertyFactory:
    """Factory for listing payloads, with numerics as strings the way the API sends them."""

    @staticmethod
    def create_property_data(
        property_id: str = "prop-1",
        agent_id: str = "agent-1",
        title: str = "Sunny Bungalow",
        price: str = "450000.00",
        status: str = "active",
        listing_type: str = "sale",
        **overrides
    ) -> dict:
        data = {
            "property_id": property_id,
            "agent_id": agent_id,
            "title": title,
            "description": "Three bedroom bungalow close to downtown with a large garden.",
            "listing_type": listing_type,
            "property_type": "house",
            "status": status,
            "price": price,
            "currency": "USD",
            "address_street": "12 Elm St",
            "address_city": "Austin",
            "address_state": "TX",
            "address_zip": "78704",
            "bedrooms": "3",
            "bathrooms": "2.0",
            "square_footage": "1800",
            "amenities": ["garden", "parking"],
            "interior_features": None,
            "view_count": "42",
            "favorite_count": 3,
            "created_at": "2024-02-01T10:00:00Z",
        }
        data.update(overrides)
        return data


class InquiryFactory:
    """Factory for inquiry payloads."""

    @staticmethod
    def create_inquiry_data(
        inquiry_id: str = "inq-1",
        property_id: str = "prop-1",
        agent_id: str = "agent-1",
        user_id: Optional[str] = "user-1",
        status: str = "new",
        **overrides
    ) -> dict:
        data = {
            "inquiry_id": inquiry_id,
            "property_id": property_id,
            "agent_id": agent_id,
            "user_id": user_id,
            "inquirer_name": "Jane Buyer",
            "inquirer_email": "jane@example.com",
            "message": "Is the property still available for a viewing this weekend?",
            "status": status,
            "agent_read": False,
            "replies": [],
            "property_title": "Sunny Bungalow",
            "created_at": "2024-02-03T15:30:00Z",
        }
        data.update(overrides)
        return data


def stub_user_session(fake_api: FakeMarketplaceAPI, user: Optional[dict] = None, favorites=(), token: str = "user-token") -> dict:
    """Register the routes a property seeker sign-in touches."""
    user = user or UserFactory.create_user_data()
    fake_api.add("POST", "/api/auth/login", json={"success": True, "token": token, "user": user})
    fake_api.add("GET", "/api/users/me", json=user)
    fake_api.add("GET", "/api/favorites", json=page_payload([{"property_id": pid} for pid in favorites]))
    fake_api.add("GET", "/api/users/notification-preferences", json={"user_id": user["user_id"]})
    fake_api.add("POST", "/api/auth/logout", json={"success": True})
    return user


def stub_agent_session(fake_api: FakeMarketplaceAPI, agent: Optional[dict] = None, stats: Optional[dict] = None, token: str = "agent-token") -> dict:
    """Register the routes an agent sign-in touches."""
    agent = agent or AgentFactory.create_agent_data()
    fake_api.add("POST", "/api/auth/agent/login", json={"success": True, "token": token, "agent": agent})
    fake_api.add("GET", "/api/agents/me", json=agent)
    fake_api.add("GET", "/api/agents/notification-preferences", json={"agent_id": agent["agent_id"]})
    fake_api.add("GET", "/api/agents/dashboard/stats", json=stats or {
        "total_active_listings": 4,
        "total_listings": 6,
        "unread_inquiry_count": 2,
        "total_inquiries": 9,
        "total_views": "310",
        "total_favorites": 12,
    })
    fake_api.add("POST", "/api/auth/logout", json={"success": True})
    return agent


def stub_admin_session(fake_api: FakeMarketplaceAPI, admin: Optional[dict] = None, token: str = "admin-token") -> dict:
    """Register the routes an admin sign-in touches."""
    admin = admin or AdminFactory.create_admin_data()
    fake_api.add("POST", "/api/auth/admin/login", json={"success": True, "token": token, "admin": admin})
    fake_api.add("POST", "/api/auth/logout", json={"success": True})
    return admin


# API fixtures
@pytest.fixture(autouse=True)
def clear_saved_properties_registry():
    """Start every test with no server-side saved ids."""
    saved_properties_registry.clear()
    yield
    saved_properties_registry.clear()


@pytest.fixture
def fake_api() -> FakeMarketplaceAPI:
    """Create an empty fake marketplace API."""
    return FakeMarketplaceAPI()


@pytest.fixture
def api_client(fake_api: FakeMarketplaceAPI) -> MarketplaceAPIClient:
    """Create an API client wired to the fake marketplace API."""
    http_client = create_http_client(base_url=API_BASE_URL, transport=httpx.MockTransport(fake_api))
    return MarketplaceAPIClient(http_client)


@pytest.fixture
def session() -> dict:
    """Plain dict standing in for `request.session`."""
    return {}


@pytest.fixture
def store(session: dict, api_client: MarketplaceAPIClient) -> SessionStore:
    """Create a session store for a fresh browser session."""
    return SessionStore(session, api_client)


@pytest.fixture
def view_tracker() -> RecordingViewTracker:
    return RecordingViewTracker()


@pytest.fixture
def client(api_client: MarketplaceAPIClient, view_tracker: RecordingViewTracker) -> TestClient:
    """
    Create a test client backed by the fake marketplace API.

    The lifespan is not entered, so the app state set here is what the
    dependencies see.
    """
    app.state.api = api_client
    app.state.view_tracker = view_tracker
    test_client = TestClient(app, follow_redirects=False)
    yield test_client
    del app.state.api
    del app.state.view_tracker


# Signed-in clients
@pytest.fixture
def user_client(client: TestClient, fake_api: FakeMarketplaceAPI) -> TestClient:
    """Test client with a property seeker signed in."""
    stub_user_session(fake_api, favorites=["prop-9"])
    response = client.post("/login", data={"email": "jane@example.com", "password": "secret-pass"})
    assert response.status_code == 303
    return client


@pytest.fixture
def agent_client(client: TestClient, fake_api: FakeMarketplaceAPI) -> TestClient:
    """Test client with an approved agent signed in."""
    stub_agent_session(fake_api)
    response = client.post("/agent/login", data={"email": "sam@realty.example.com", "password": "secret-pass"})
    assert response.status_code == 303
    return client


@pytest.fixture
def admin_client(client: TestClient, fake_api: FakeMarketplaceAPI) -> TestClient:
    """Test client with an admin signed in."""
    stub_admin_session(fake_api)
    response = client.post("/admin/login", data={"email": "ops@marketplace.example.com", "password": "secret-pass"})
    assert response.status_code == 303
    return client
