"""
Tests for the service classes wrapping the marketplace API.
Tests request shapes, payload parsing and error translation.
"""

import asyncio

import pytest

from app.schemas.inquiry import InquiryCreate, InquiryReplyCreate, InquiryStatus
from app.schemas.property import Property, PropertyForm
from app.schemas.report import ReportCreate
from app.schemas.search import InquiryFilters, SearchFilters
from app.schemas.user import UserUpdate
from app.services.account import AccountService
from app.services.admin import AdminService
from app.services.agent import AgentService
from app.services.bulk import settle_all
from app.services.inquiry import InquiryService
from app.services.property import PropertyService, move_item
from app.services.report import ReportService
from app.utils.exceptions import ForbiddenError, NotFoundError, PropertyNotFoundError
from tests.conftest import AgentFactory, InquiryFactory, PropertyFactory, page_payload


class TestPropertyService:
    """Test PropertyService functionality."""

    @pytest.mark.asyncio
    async def test_search(self, fake_api, api_client):
        """Test search sends the filter parameters and parses the page."""
        fake_api.add("GET", "/api/properties", json=page_payload(
            [PropertyFactory.create_property_data(), PropertyFactory.create_property_data("prop-2")],
            total=41,
        ))
        filters = SearchFilters(query="Austin", min_bedrooms=3, offset=20)

        page = await PropertyService(api_client).search(filters)

        assert [p.property_id for p in page.data] == ["prop-1", "prop-2"]
        assert page.pagination.total == 41
        assert page.data[0].price == 450000
        assert page.data[0].bedrooms == 3
        assert page.data[0].view_count == 42
        params = fake_api.calls("GET", "/api/properties")[0].url.params
        assert params["query"] == "Austin"
        assert params["bedrooms"] == "3"
        assert params["status"] == "active"
        assert params["offset"] == "20"

    @pytest.mark.asyncio
    async def test_search_accepts_bare_list(self, fake_api, api_client):
        """Test list endpoints that answer a bare JSON array."""
        fake_api.add("GET", "/api/properties", json=[PropertyFactory.create_property_data()])

        page = await PropertyService(api_client).search(SearchFilters())

        assert page.pagination.total == 1
        assert not page.pagination.has_more

    @pytest.mark.asyncio
    async def test_get_property_not_found(self, fake_api, api_client):
        """Test a missing listing raises PropertyNotFoundError."""
        fake_api.fail("GET", "/api/properties/prop-404", 404, "Property not found", "NOT_FOUND")

        with pytest.raises(PropertyNotFoundError) as exc_info:
            await PropertyService(api_client).get_property("prop-404")

        assert exc_info.value.status_code == 404
        assert "prop-404" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_photos_primary_first(self, fake_api, api_client):
        """Test photos are ordered primary first, then by display order."""
        fake_api.add("GET", "/api/properties/prop-1/photos", json=[
            {"photo_id": "ph-3", "image_url": "c.jpg", "display_order": 3},
            {"photo_id": "ph-2", "image_url": "b.jpg", "display_order": 2, "is_primary": True},
            {"photo_id": "ph-1", "image_url": "a.jpg", "display_order": 1},
        ])

        photos = await PropertyService(api_client).get_photos("prop-1")

        assert [p.photo_id for p in photos] == ["ph-2", "ph-1", "ph-3"]

    @pytest.mark.asyncio
    async def test_similar_excludes_listing_itself(self, fake_api, api_client):
        """Test similar listings skip the listing being viewed."""
        fake_api.add("GET", "/api/properties", json=page_payload([
            PropertyFactory.create_property_data("prop-1"),
            PropertyFactory.create_property_data("prop-2"),
            PropertyFactory.create_property_data("prop-3"),
        ]))
        listing = Property.model_validate(PropertyFactory.create_property_data("prop-1"))

        similar = await PropertyService(api_client).get_similar(listing, limit=2)

        assert [p.property_id for p in similar] == ["prop-2", "prop-3"]
        params = fake_api.calls("GET", "/api/properties")[0].url.params
        assert params["limit"] == "3"
        assert params["city"] == "Austin"
        assert params["property_type"] == "house"
        assert params["listing_type"] == "sale"

    @pytest.mark.asyncio
    async def test_create_property(self, fake_api, api_client):
        """Test creating a listing posts the form payload."""
        fake_api.add("POST", "/api/properties", json=PropertyFactory.create_property_data("prop-7", status="draft"))
        form = PropertyForm(title="  Sunny Bungalow  ", price=450000, address_city="Austin", bedrooms=3)

        created = await PropertyService(api_client).create_property(form, "agent-token")

        assert created.property_id == "prop-7"
        body = fake_api.last_json("POST", "/api/properties")
        assert body["title"] == "Sunny Bungalow"
        assert body["status"] == "draft"
        assert body["bedrooms"] == 3
        assert "square_footage" not in body

    @pytest.mark.asyncio
    async def test_reorder_photos(self, fake_api, api_client):
        """Test the reorder body numbers photos from 1."""
        fake_api.add("PUT", "/api/properties/prop-1/photos/reorder", json={"success": True})

        await PropertyService(api_client).reorder_photos("prop-1", ["ph-2", "ph-1"], "agent-token")

        assert fake_api.last_json("PUT", "/api/properties/prop-1/photos/reorder") == {
            "photo_order": [
                {"photo_id": "ph-2", "display_order": 1},
                {"photo_id": "ph-1", "display_order": 2},
            ]
        }

    @pytest.mark.asyncio
    async def test_first_photo_is_primary(self, fake_api, api_client):
        """Test the first photo added becomes the primary photo."""
        fake_api.add("POST", "/api/properties/prop-1/photos", status_code=201)
        service = PropertyService(api_client)

        photo = await service.add_photo("prop-1", "a.jpg", "agent-token")
        first = fake_api.last_json("POST", "/api/properties/prop-1/photos")
        await service.add_photo("prop-1", "b.jpg", "agent-token", thumbnail_url="b_t.jpg", existing_count=1)
        second = fake_api.last_json("POST", "/api/properties/prop-1/photos")

        assert photo.image_url == "a.jpg"
        assert first == {"image_url": "a.jpg", "thumbnail_url": "a.jpg", "display_order": 1, "is_primary": True}
        assert second == {"image_url": "b.jpg", "thumbnail_url": "b_t.jpg", "display_order": 2, "is_primary": False}

    @pytest.mark.asyncio
    async def test_history(self, fake_api, api_client):
        """Test price and status history parsing."""
        fake_api.add("GET", "/api/properties/prop-1/price-history", json=[
            {"old_price": "475000.00", "new_price": "450000.00", "changed_at": "2024-02-10T09:00:00Z"},
        ])
        fake_api.add("GET", "/api/properties/prop-1/status-history", json={"data": [
            {"old_status": "draft", "new_status": "active"},
        ]})
        service = PropertyService(api_client)

        prices = await service.get_price_history("prop-1")
        statuses = await service.get_status_history("prop-1")

        assert prices[0].old_price == 475000
        assert statuses[0].new_status == "active"

    def test_move_item(self):
        """Test moving ids up and down."""
        ids = ["a", "b", "c"]

        assert move_item(ids, "b", -1) == ["b", "a", "c"]
        assert move_item(ids, "b", 1) == ["a", "c", "b"]
        assert move_item(ids, "a", -1) == ids
        assert move_item(ids, "c", 1) == ids
        assert move_item(ids, "z", 1) == ids
        assert ids == ["a", "b", "c"]


class TestInquiryService:
    """Test InquiryService functionality."""

    @pytest.mark.asyncio
    async def test_create_inquiry(self, fake_api, api_client):
        """Test sending an inquiry as an anonymous visitor."""
        fake_api.add("POST", "/api/inquiries", json=InquiryFactory.create_inquiry_data(user_id=None), status_code=201)
        inquiry = InquiryCreate(
            property_id="prop-1",
            agent_id="agent-1",
            inquirer_name="Jane Buyer",
            inquirer_email="jane@example.com",
            message="Is the property still available?",
        )

        created = await InquiryService(api_client).create_inquiry(inquiry)

        assert created.inquiry_id == "inq-1"
        request = fake_api.calls("POST", "/api/inquiries")[0]
        assert "Authorization" not in request.headers
        body = fake_api.last_json("POST", "/api/inquiries")
        assert "user_id" not in body
        assert body["viewing_requested"] is False

    @pytest.mark.asyncio
    async def test_get_inquiry_with_replies(self, fake_api, api_client):
        """Test both inquiry detail shapes."""
        fake_api.add("GET", "/api/inquiries/inq-1", json={
            "inquiry": InquiryFactory.create_inquiry_data(),
            "replies": [{"reply_id": "r-1", "message": "Yes, Saturday works."}],
        })
        fake_api.add("GET", "/api/inquiries/inq-2", json=InquiryFactory.create_inquiry_data(
            "inq-2", replies=[{"message": "Embedded reply"}]
        ))
        service = InquiryService(api_client)

        inquiry, replies = await service.get_inquiry("inq-1", "user-token")
        embedded, embedded_replies = await service.get_inquiry("inq-2", "user-token")

        assert inquiry.inquiry_id == "inq-1"
        assert [r.message for r in replies] == ["Yes, Saturday works."]
        assert [r.message for r in embedded_replies] == ["Embedded reply"]

    @pytest.mark.asyncio
    async def test_missing_inquiry(self, fake_api, api_client):
        """Test a missing inquiry raises NotFoundError naming it."""
        with pytest.raises(NotFoundError, match="Inquiry not found with ID: inq-404"):
            await InquiryService(api_client).get_inquiry("inq-404", "user-token")

    @pytest.mark.asyncio
    async def test_agent_inbox_filters(self, fake_api, api_client):
        """Test the inbox tab becomes a status parameter."""
        fake_api.add("GET", "/api/inquiries/agent/my-inquiries", json=page_payload([]))

        await InquiryService(api_client).get_agent_inquiries(
            "agent-token", InquiryFilters.from_query_params({"tab": "closed"})
        )

        params = fake_api.calls("GET", "/api/inquiries/agent/my-inquiries")[0].url.params
        assert params["status"] == "completed,closed"
        assert params["sort_order"] == "desc"

    @pytest.mark.asyncio
    async def test_reply_and_status(self, fake_api, api_client):
        """Test replying and changing an inquiry status."""
        fake_api.add("POST", "/api/inquiries/inq-1/reply", json={"reply_id": "r-1", "message": "See you Saturday"})
        fake_api.add("PUT", "/api/inquiries/inq-1/status", json={"success": True})
        service = InquiryService(api_client)

        reply = await service.reply("inq-1", InquiryReplyCreate(message="See you Saturday"), "agent-token")
        await service.update_status("inq-1", InquiryStatus("closed"), "agent-token")

        assert reply.reply_id == "r-1"
        assert fake_api.last_json("POST", "/api/inquiries/inq-1/reply") == {
            "message": "See you Saturday",
            "include_signature": True,
        }
        assert fake_api.last_json("PUT", "/api/inquiries/inq-1/status") == {"status": "closed"}


class TestAccountService:
    """Test AccountService functionality."""

    @pytest.mark.asyncio
    async def test_saved_properties_both_shapes(self, fake_api, api_client):
        """Test favorites with a nested listing or joined columns."""
        fake_api.add("GET", "/api/favorites", json=page_payload([
            {"favorite_id": "fav-1", "property_id": "prop-1", "property": PropertyFactory.create_property_data()},
            {"favorite_id": "fav-2", **PropertyFactory.create_property_data("prop-2", title="Downtown Loft")},
        ]))

        saved = await AccountService(api_client).get_saved_properties("user-token")

        assert [(p.property_id, p.title) for p in saved] == [
            ("prop-1", "Sunny Bungalow"),
            ("prop-2", "Downtown Loft"),
        ]
        assert fake_api.calls("GET", "/api/favorites")[0].url.params["limit"] == "1000"

    @pytest.mark.asyncio
    async def test_update_profile_sends_changed_fields(self, fake_api, api_client):
        """Test only set fields are sent."""
        fake_api.add("PUT", "/api/users/me", json={
            "user_id": "user-1", "email": "jane@example.com", "full_name": "Jane Q Buyer",
        })

        user = await AccountService(api_client).update_profile(UserUpdate(full_name="Jane Q Buyer"), "user-token")

        assert user.full_name == "Jane Q Buyer"
        assert fake_api.last_json("PUT", "/api/users/me") == {"full_name": "Jane Q Buyer"}

    @pytest.mark.asyncio
    async def test_delete_account(self, fake_api, api_client):
        """Test the password is sent with the delete request."""
        fake_api.add("DELETE", "/api/users/me", status_code=204)

        await AccountService(api_client).delete_account("secret-pass", "user-token")

        assert fake_api.last_json("DELETE", "/api/users/me") == {"password": "secret-pass"}


class TestAgentService:
    """Test AgentService functionality."""

    @pytest.mark.asyncio
    async def test_find_agent(self, fake_api, api_client):
        """Test listing cards tolerate a missing agent."""
        fake_api.add("GET", "/api/agents/agent-1", json=AgentFactory.create_agent_data())
        service = AgentService(api_client)

        agent = await service.find_agent("agent-1")

        assert agent.agency_name == "Lone Star Realty"
        assert agent.service_areas == []
        assert await service.find_agent("agent-404") is None
        assert await service.find_agent(None) is None

    @pytest.mark.asyncio
    async def test_get_agent_not_found(self, fake_api, api_client):
        """Test the profile page gets a NotFoundError for missing agents."""
        with pytest.raises(NotFoundError, match="Agent not found"):
            await AgentService(api_client).get_agent("agent-404")

    @pytest.mark.asyncio
    async def test_dashboard_stats(self, fake_api, api_client):
        """Test counters sent as strings are parsed."""
        fake_api.add("GET", "/api/agents/dashboard/stats", json={"total_views": "310", "unread_inquiry_count": 2})

        stats = await AgentService(api_client).get_dashboard_stats("agent-token")

        assert stats.total_views == 310
        assert stats.unread_inquiry_count == 2
        assert stats.total_favorites == 0


class TestAdminService:
    """Test AdminService functionality."""

    @pytest.mark.asyncio
    async def test_stats_endpoint(self, fake_api, api_client):
        """Test the stats endpoint is used when available."""
        fake_api.add("GET", "/api/admin/dashboard/stats", json={"total_agents": "12", "pending_approvals": 3})

        stats = await AdminService(api_client, "admin-token").get_dashboard_stats()

        assert stats.total_agents == 12
        assert stats.pending_approvals == 3

    @pytest.mark.asyncio
    async def test_stats_fallback(self, fake_api, api_client):
        """Test counters are aggregated from list totals when the stats endpoint fails."""
        fake_api.fail("GET", "/api/admin/dashboard/stats", 500, "Stats unavailable")
        fake_api.add("GET", "/api/admin/agents", json=page_payload([AgentFactory.create_agent_data()], total=25))
        fake_api.add("GET", "/api/admin/agents/pending", json=page_payload([], total=4))
        fake_api.add("GET", "/api/admin/featured-listings", json=[
            PropertyFactory.create_property_data("prop-1"),
            PropertyFactory.create_property_data("prop-2"),
        ])
        fake_api.fail("GET", "/api/admin/property-reports", 503, "Reports unavailable")

        stats = await AdminService(api_client, "admin-token").get_dashboard_stats()

        assert stats.total_agents == 25
        assert stats.pending_approvals == 4
        assert stats.featured_listings_count == 2
        assert stats.reports_pending == 0
        assert stats.total_properties == 0

    @pytest.mark.asyncio
    async def test_resolve_and_dismiss_reports(self, fake_api, api_client):
        """Test report decisions map onto the resolution payload."""
        fake_api.add("PUT", "/api/admin/property-reports/rep-1", json={"success": True})
        service = AdminService(api_client, "admin-token")

        await service.resolve_report("rep-1", "resolve", "Listing corrected")
        resolved = fake_api.last_json("PUT", "/api/admin/property-reports/rep-1")
        await service.resolve_report("rep-1", "dismiss")
        dismissed = fake_api.last_json("PUT", "/api/admin/property-reports/rep-1")

        assert resolved == {"status": "resolved", "admin_notes": "Listing corrected", "action_taken": "no_action"}
        assert dismissed == {"status": "dismissed", "admin_notes": ""}
        with pytest.raises(ValueError):
            await service.resolve_report("rep-1", "escalate")

    @pytest.mark.asyncio
    async def test_report_detail_with_deleted_listing(self, fake_api, api_client):
        """Test a report whose listing was deleted."""
        from app.schemas.report import PropertyReport

        report = PropertyReport(report_id="rep-1", property_id="prop-gone", reason="fraudulent")

        detail = await AdminService(api_client, "admin-token").get_report_detail(report)

        assert detail.listing is None
        assert detail.report.reason_label == "Suspected fraud or scam"

    @pytest.mark.asyncio
    async def test_featured_listings(self, fake_api, api_client):
        """Test featuring, ordering and reordering."""
        fake_api.add("GET", "/api/admin/featured-listings", json=[
            PropertyFactory.create_property_data("prop-2", is_featured=True, featured_order=2),
            PropertyFactory.create_property_data("prop-1", is_featured=True, featured_order=1),
        ])
        fake_api.add("POST", "/api/admin/featured-listings", json={"success": True}, status_code=201)
        fake_api.add("PUT", "/api/admin/featured-listings/reorder", json={"success": True})
        service = AdminService(api_client, "admin-token")

        featured = await service.get_featured()
        await service.add_featured("prop-3", current_count=len(featured))
        await service.reorder_featured(["prop-3", "prop-1", "prop-2"])

        assert [p.property_id for p in featured] == ["prop-1", "prop-2"]
        assert fake_api.last_json("POST", "/api/admin/featured-listings") == {
            "property_id": "prop-3",
            "featured_until": None,
            "featured_order": 3,
        }
        assert fake_api.last_json("PUT", "/api/admin/featured-listings/reorder") == {
            "listing_order": [
                {"property_id": "prop-3", "featured_order": 1},
                {"property_id": "prop-1", "featured_order": 2},
                {"property_id": "prop-2", "featured_order": 3},
            ]
        }

    @pytest.mark.asyncio
    async def test_approve_and_reject_agent(self, fake_api, api_client):
        """Test approval decisions."""
        fake_api.add("PUT", "/api/admin/agents/agent-2/approve", json={"success": True})
        fake_api.add("PUT", "/api/admin/agents/agent-3/reject", json={"success": True})
        service = AdminService(api_client, "admin-token")

        await service.approve_agent("agent-2", "  ")
        await service.reject_agent("agent-3", "  License could not be verified ")

        assert fake_api.last_json("PUT", "/api/admin/agents/agent-2/approve") == {"welcome_message": None}
        assert fake_api.last_json("PUT", "/api/admin/agents/agent-3/reject") == {
            "rejection_reason": "License could not be verified",
            "message": None,
        }


class TestReportService:
    """Test ReportService functionality."""

    @pytest.mark.asyncio
    async def test_create_report(self, fake_api, api_client):
        """Test reporting a listing without an account."""
        fake_api.add("POST", "/api/property-reports", json={"success": True}, status_code=201)

        stored = await ReportService(api_client).create_report(ReportCreate(
            property_id="prop-1",
            reporter_email="jane@example.com",
            reason="already_sold",
        ))

        assert stored is None
        assert fake_api.last_json("POST", "/api/property-reports") == {
            "property_id": "prop-1",
            "reporter_email": "jane@example.com",
            "reason": "already_sold",
        }


class TestSettleAll:
    """Test all-settled concurrent execution."""

    @pytest.mark.asyncio
    async def test_failures_do_not_cancel_others(self):
        """Test every call runs to completion and failures are recorded."""
        finished = []

        async def slow_ok():
            await asyncio.sleep(0.01)
            finished.append("slow")
            return "done"

        async def forbidden():
            raise ForbiddenError("Not your listing")

        results = await settle_all({"a": slow_ok(), "b": forbidden()})

        assert finished == ["slow"]
        assert not results.ok
        assert results.value("a") == "done"
        assert results.value("b", "fallback") == "fallback"
        assert [o.key for o in results.succeeded] == ["a"]
        assert results.failed[0].message == "Not your listing"

    @pytest.mark.asyncio
    async def test_empty(self):
        """Test that nothing to run is a success."""
        results = await settle_all({})

        assert results.ok
        assert results.outcomes == {}
