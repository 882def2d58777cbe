"""
Tests for the agent workspace: dashboard, listings, bulk actions, the
create listing wizard, inquiries and settings.
"""

from urllib.parse import parse_qs

from app.config import settings
from tests.conftest import AgentFactory, InquiryFactory, PropertyFactory, page_payload, toast_messages
from tests.test_file_utils import image_bytes


LISTING = {
    "title": "Sunny Bungalow near Zilker",
    "description": "Three bedroom bungalow close to downtown with a large garden and a new roof.",
    "listing_type": "sale",
    "property_type": "house",
    "price": "450000",
    "currency": "USD",
    "address_street": "12 Elm St",
    "address_city": "Austin",
    "address_state": "TX",
    "address_zip": "78704",
    "bedrooms": "3",
    "bathrooms": "2",
    "square_footage": "1800",
}

PHOTOS = [
    {"photo_id": "ph-1", "image_url": "https://cdn.example.com/p/1.jpg", "display_order": 1, "is_primary": True},
    {"photo_id": "ph-2", "image_url": "https://cdn.example.com/p/2.jpg", "display_order": 2},
]


def stub_listings(fake_api, *listings):
    listings = listings or (
        PropertyFactory.create_property_data(),
        PropertyFactory.create_property_data(property_id="prop-2", title="Loft Downtown", status="draft"),
    )
    fake_api.add("GET", "/api/properties", json=page_payload(list(listings)))


def stub_edit_page(fake_api, photos=PHOTOS, **overrides):
    fake_api.add("GET", "/api/properties/prop-1", json=PropertyFactory.create_property_data(**overrides))
    fake_api.add("GET", "/api/properties/prop-1/photos", json=photos)
    fake_api.add("GET", "/api/properties/prop-1/price-history", json=[
        {"old_price": "475000.00", "new_price": "450000.00", "changed_at": "2024-02-10T10:00:00Z"},
    ])
    fake_api.add("GET", "/api/properties/prop-1/status-history", json=[
        {"old_status": "draft", "new_status": "active", "changed_at": "2024-02-01T10:00:00Z"},
    ])


class TestDashboard:
    """Test the agent dashboard."""

    def test_dashboard(self, agent_client, fake_api):
        """Test counters and recent inquiries are shown."""
        fake_api.add("GET", "/api/inquiries/agent/my-inquiries", json=page_payload([
            InquiryFactory.create_inquiry_data(),
        ]))

        response = agent_client.get("/agent/dashboard")

        assert response.status_code == 200
        assert "Welcome back, Sam Agent" in response.text
        assert '<span class="value">310</span><span class="label">Views</span>' in response.text
        assert 'href="/agent/inquiries/inq-1">Jane Buyer' in response.text
        assert '<span class="badge">2</span>' in response.text
        params = parse_qs(fake_api.calls("GET", "/api/inquiries/agent/my-inquiries")[-1].url.query.decode())
        assert params["limit"] == ["5"]

    def test_withdrawn_approval_closes_workspace(self, agent_client, fake_api, monkeypatch):
        """Test an agent whose application was later rejected loses access."""
        monkeypatch.setattr(settings, "auth_recheck_seconds", 0)
        fake_api.add("GET", "/api/agents/me", json=AgentFactory.create_agent_data(approval_status="rejected"))

        response = agent_client.get("/agent/dashboard")

        assert response.status_code == 403
        assert "Agent account is not approved yet" in response.text
        assert not fake_api.called("GET", "/api/inquiries/agent/my-inquiries")

    def test_stats_unavailable(self, agent_client, fake_api):
        """Test a stats failure only fails its own section."""
        fake_api.fail("GET", "/api/agents/dashboard/stats", 503, "Service temporarily unavailable")
        fake_api.add("GET", "/api/inquiries/agent/my-inquiries", json=page_payload([]))

        response = agent_client.get("/agent/dashboard")

        assert response.status_code == 200
        assert "state-error" in response.text
        assert "No inquiries yet." in response.text

    def test_guest_is_sent_to_agent_login(self, client):
        """Test guests are sent to the agent login page."""
        response = client.get("/agent/listings")

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/login?redirect=/agent/listings"


class TestListings:
    """Test the agent listings page and single listing actions."""

    def test_listings_with_filters(self, agent_client, fake_api):
        """Test filters are sent to the API and listings shown."""
        stub_listings(fake_api)

        response = agent_client.get("/agent/listings?status=active&search=bungalow&sort=price_desc")

        assert response.status_code == 200
        assert "Sunny Bungalow" in response.text
        assert "Loft Downtown" in response.text
        params = parse_qs(fake_api.calls("GET", "/api/properties")[-1].url.query.decode())
        assert params["agent_id"] == ["agent-1"]
        assert params["status"] == ["active"]
        assert params["query"] == ["bungalow"]
        assert params["sort_by"] == ["price"]
        assert params["sort_order"] == ["desc"]

    def test_select_all(self, agent_client, fake_api):
        """Test select=all checks every listing shown."""
        stub_listings(fake_api)

        response = agent_client.get("/agent/listings?select=all")

        assert 'value="prop-1" checked' in response.text
        assert 'value="prop-2" checked' in response.text

    def test_no_listings(self, agent_client, fake_api):
        """Test the empty state."""
        fake_api.add("GET", "/api/properties", json=page_payload([]))

        response = agent_client.get("/agent/listings")

        assert "No listings yet. Create your first listing to get started." in response.text

    def test_delete_listing(self, agent_client, fake_api):
        """Test a single listing is deleted and the agent returned to the list."""
        fake_api.add("DELETE", "/api/properties/prop-1", json={"success": True})
        stub_listings(fake_api)

        response = agent_client.post("/agent/listings/prop-1/delete", data={"next": "/agent/listings?status=active"})

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/listings?status=active"
        page = agent_client.get("/agent/listings")
        assert "Listing deleted successfully" in toast_messages(page.text)


class TestBulkActions:
    """Test confirming and running bulk actions."""

    def request_status_change(self, client, status="sold"):
        return client.post("/agent/listings/bulk", data={
            "selected": ["prop-1", "prop-2"],
            "action": "status",
            "status": status,
            "next": "/agent/listings",
        })

    def test_confirmation_is_shown(self, agent_client, fake_api):
        """Test a bulk action waits for confirmation."""
        stub_listings(fake_api)

        response = self.request_status_change(agent_client)
        page = agent_client.get("/agent/listings")

        assert response.status_code == 303
        assert "Change 2 listing(s) to Sold?" in page.text
        assert 'value="prop-2" checked' in page.text
        assert not fake_api.called("PUT", "/api/properties/prop-1")

    def test_confirm_runs_every_update(self, agent_client, fake_api):
        """Test every selected listing is updated and the dialog closed."""
        stub_listings(fake_api)
        fake_api.add("PUT", "/api/properties/prop-1", json={"success": True})
        fake_api.add("PUT", "/api/properties/prop-2", json={"success": True})

        self.request_status_change(agent_client)
        response = agent_client.post("/agent/listings/bulk/confirm", data={"next": "/agent/listings"})
        page = agent_client.get("/agent/listings")

        assert response.status_code == 303
        assert fake_api.last_json("PUT", "/api/properties/prop-1") == {"property_id": "prop-1", "status": "sold"}
        assert fake_api.last_json("PUT", "/api/properties/prop-2") == {"property_id": "prop-2", "status": "sold"}
        assert "2 listing(s) updated to sold" in toast_messages(page.text)
        assert "Confirm bulk action" not in page.text

    def test_partial_failure_keeps_dialog_open(self, agent_client, fake_api):
        """Test a failed request returns to the confirmation with a retry."""
        stub_listings(fake_api)
        fake_api.add("PUT", "/api/properties/prop-1", json={"success": True})
        fake_api.fail("PUT", "/api/properties/prop-2", 500, "Database unavailable")

        self.request_status_change(agent_client)
        agent_client.post("/agent/listings/bulk/confirm", data={"next": "/agent/listings"})
        page = agent_client.get("/agent/listings")

        assert "Some actions failed. Please try again." in toast_messages(page.text)
        assert "Confirm bulk action" in page.text
        assert "Retry</button>" in page.text

    def test_cancel(self, agent_client, fake_api):
        """Test cancelling closes the dialog without any request."""
        stub_listings(fake_api)

        self.request_status_change(agent_client)
        response = agent_client.post("/agent/listings/bulk/cancel", data={"next": "/agent/listings"})
        page = agent_client.get("/agent/listings")

        assert response.status_code == 303
        assert "Confirm bulk action" not in page.text
        assert not fake_api.called("PUT", "/api/properties/prop-1")

    def test_bulk_delete(self, agent_client, fake_api):
        """Test a confirmed bulk delete."""
        stub_listings(fake_api)
        fake_api.add("DELETE", "/api/properties/prop-1", json={"success": True})

        agent_client.post("/agent/listings/bulk", data={"selected": ["prop-1"], "action": "delete"})
        agent_client.post("/agent/listings/bulk/confirm")
        page = agent_client.get("/agent/listings")

        assert fake_api.called("DELETE", "/api/properties/prop-1")
        assert "1 listing(s) deleted" in toast_messages(page.text)

    def test_nothing_selected(self, agent_client, fake_api):
        """Test an empty selection is refused."""
        stub_listings(fake_api)

        agent_client.post("/agent/listings/bulk", data={"action": "delete"})
        page = agent_client.get("/agent/listings")

        assert "Select at least one listing first" in toast_messages(page.text)
        assert "Confirm bulk action" not in page.text

    def test_missing_status(self, agent_client, fake_api):
        """Test a status change needs a target status."""
        stub_listings(fake_api)

        self.request_status_change(agent_client, status="")
        page = agent_client.get("/agent/listings")

        assert "Choose a status to apply" in toast_messages(page.text)


class TestCreateListing:
    """Test the create listing wizard."""

    def test_first_step(self, agent_client):
        """Test the wizard starts on the basics step."""
        response = agent_client.get("/agent/listings/new")

        assert response.status_code == 200
        assert 'name="_step" value="0"' in response.text
        assert 'name="title"' in response.text

    def test_invalid_price(self, agent_client):
        """Test a step with errors is shown again."""
        response = agent_client.post("/agent/listings/new", data={
            **LISTING, "price": "a lot", "_step": "0", "nav": "next",
        })

        assert response.status_code == 422
        assert "Price must be a number" in response.text
        assert 'name="_step" value="0"' in response.text

    def test_next_step(self, agent_client):
        """Test a valid step moves on."""
        response = agent_client.post("/agent/listings/new", data={**LISTING, "_step": "0", "nav": "next"})

        assert response.status_code == 200
        assert 'name="_step" value="1"' in response.text
        assert '<input type="hidden" name="title" value="Sunny Bungalow near Zilker">' in response.text

    def test_photo_upload(self, agent_client, fake_api):
        """Test photos are uploaded on the photos step and kept with the form."""
        fake_api.add("POST", "/api/upload/photo", json={
            "image_url": "https://cdn.example.com/p/new.jpg",
            "thumbnail_url": "https://cdn.example.com/p/new-thumb.jpg",
        })

        response = agent_client.post(
            "/agent/listings/new",
            data={**LISTING, "_step": "3", "nav": "upload"},
            files=[("photos", ("house.jpg", image_bytes(), "image/jpeg"))]
        )

        assert response.status_code == 200
        assert 'name="_step" value="3"' in response.text
        assert '<input type="hidden" name="photo_urls" value="https://cdn.example.com/p/new.jpg">' in response.text
        assert "Primary photo" in response.text
        assert "Photo uploaded successfully" in toast_messages(response.text)

    def test_remove_photo(self, agent_client):
        """Test a photo can be removed before the listing is saved."""
        response = agent_client.post("/agent/listings/new", data={
            **LISTING,
            "photo_urls": ["https://cdn.example.com/p/1.jpg", "https://cdn.example.com/p/2.jpg"],
            "remove_photo": "https://cdn.example.com/p/1.jpg",
            "_step": "3",
        })

        assert response.status_code == 200
        assert 'value="https://cdn.example.com/p/1.jpg"' not in response.text
        assert 'name="photo_urls" value="https://cdn.example.com/p/2.jpg"' in response.text

    def test_save_draft(self, agent_client, fake_api):
        """Test drafts skip the publish rules."""
        fake_api.add("POST", "/api/properties", json=PropertyFactory.create_property_data(status="draft"))

        response = agent_client.post("/agent/listings/new", data={
            "title": "Loft", "listing_type": "sale", "property_type": "condo", "_step": "0", "nav": "draft",
        })

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/listings"
        body = fake_api.last_json("POST", "/api/properties")
        assert body["title"] == "Loft"
        assert body["status"] == "draft"
        assert body["property_type"] == "condo"
        assert "rent_frequency" not in body
        assert not fake_api.called("POST", "/api/properties/prop-1/photos")
        stub_listings(fake_api)
        page = agent_client.get("/agent/listings")
        assert "Listing saved as draft" in toast_messages(page.text)

    def test_publish_requires_photo(self, agent_client, fake_api):
        """Test publishing without photos is refused."""
        response = agent_client.post("/agent/listings/new", data={**LISTING, "_step": "4", "nav": "publish"})

        assert response.status_code == 422
        assert "At least 1 photo is required" in response.text
        assert not fake_api.called("POST", "/api/properties")

    def test_publish_rules(self, agent_client, fake_api):
        """Test the publish rules on the review step."""
        response = agent_client.post("/agent/listings/new", data={
            **LISTING,
            "title": "Loft",
            "description": "Nice.",
            "photo_urls": ["https://cdn.example.com/p/1.jpg"],
            "_step": "4",
            "nav": "publish",
        })

        assert response.status_code == 422
        assert "Title must be at least 10 characters" in response.text
        assert "Description must be at least 50 characters" in response.text

    def test_publish(self, agent_client, fake_api):
        """Test publishing creates the listing and attaches its photos in order."""
        fake_api.add("POST", "/api/properties", json=PropertyFactory.create_property_data())
        fake_api.add("POST", "/api/properties/prop-1/photos", json=PHOTOS)

        response = agent_client.post("/agent/listings/new", data={
            **LISTING,
            "photo_urls": ["https://cdn.example.com/p/1.jpg", "https://cdn.example.com/p/2.jpg"],
            "amenities": ["garden", "parking"],
            "highlights": "Big garden, New roof",
            "pet_friendly": "true",
            "_step": "4",
            "nav": "publish",
        })

        assert response.status_code == 303
        body = fake_api.last_json("POST", "/api/properties")
        assert body["status"] == "active"
        assert body["price"] == 450000.0
        assert body["bedrooms"] == 3
        assert body["amenities"] == ["garden", "parking"]
        assert body["highlights"] == ["Big garden", "New roof"]
        assert body["pet_friendly"] is True
        assert body["furnished"] is False
        photos = fake_api.last_json("POST", "/api/properties/prop-1/photos")["photos"]
        assert [(p["image_url"], p["display_order"], p["is_primary"]) for p in photos] == [
            ("https://cdn.example.com/p/1.jpg", 1, True),
            ("https://cdn.example.com/p/2.jpg", 2, False),
        ]

    def test_photo_attach_failure_still_saves(self, agent_client, fake_api):
        """Test the listing is kept when its photos fail to attach."""
        fake_api.add("POST", "/api/properties", json=PropertyFactory.create_property_data())
        fake_api.fail("POST", "/api/properties/prop-1/photos", 500, "Storage unavailable")

        response = agent_client.post("/agent/listings/new", data={
            **LISTING,
            "photo_urls": ["https://cdn.example.com/p/1.jpg"],
            "_step": "4",
            "nav": "publish",
        })

        assert response.status_code == 303
        stub_listings(fake_api)
        messages = toast_messages(agent_client.get("/agent/listings").text)
        assert "Listing saved but some photos failed to attach" in messages
        assert "Listing published successfully!" in messages


class TestEditListing:
    """Test editing a listing and managing its photos."""

    def test_edit_page(self, agent_client, fake_api):
        """Test the form is filled from the listing with photos and history."""
        stub_edit_page(fake_api)

        response = agent_client.get("/agent/listings/prop-1/edit")

        assert response.status_code == 200
        assert 'name="title" maxlength="255" value="Sunny Bungalow"' in response.text
        assert "https://cdn.example.com/p/2.jpg" in response.text
        assert "Price history" in response.text
        assert 'action="/agent/listings/prop-1/photos/ph-2/move"' in response.text

    def test_listing_of_another_agent(self, agent_client, fake_api):
        """Test agents cannot edit listings they do not own."""
        stub_edit_page(fake_api, agent_id="agent-2")

        response = agent_client.get("/agent/listings/prop-1/edit")

        assert response.status_code == 403
        assert "You can only manage your own listings" in response.text

    def test_missing_listing(self, agent_client, fake_api):
        """Test an unknown listing renders the not found page."""
        response = agent_client.get("/agent/listings/prop-404/edit")

        assert response.status_code == 404
        assert "Property not found with ID: prop-404" in response.text

    def test_save_changes(self, agent_client, fake_api):
        """Test changes are sent as a partial update."""
        stub_edit_page(fake_api)
        fake_api.add("PUT", "/api/properties/prop-1", json=PropertyFactory.create_property_data(price="425000.00"))

        response = agent_client.post("/agent/listings/prop-1/edit", data={
            **LISTING, "price": "425000", "status": "active",
        })

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/listings/prop-1/edit"
        body = fake_api.last_json("PUT", "/api/properties/prop-1")
        assert body["property_id"] == "prop-1"
        assert body["price"] == 425000.0
        assert body["status"] == "active"
        page = agent_client.get("/agent/listings/prop-1/edit")
        assert "Listing updated successfully" in toast_messages(page.text)

    def test_active_listing_needs_photos(self, agent_client, fake_api):
        """Test an active listing without photos cannot be saved."""
        stub_edit_page(fake_api, photos=[])

        response = agent_client.post("/agent/listings/prop-1/edit", data={**LISTING, "status": "active"})

        assert response.status_code == 422
        assert "At least 1 photo is required" in response.text
        assert not fake_api.called("PUT", "/api/properties/prop-1")

    def test_draft_skips_publish_rules(self, agent_client, fake_api):
        """Test drafts can be saved incomplete."""
        stub_edit_page(fake_api, photos=[])
        fake_api.add("PUT", "/api/properties/prop-1", json=PropertyFactory.create_property_data(status="draft"))

        response = agent_client.post("/agent/listings/prop-1/edit", data={"title": "Loft", "status": "draft"})

        assert response.status_code == 303
        assert fake_api.last_json("PUT", "/api/properties/prop-1")["status"] == "draft"

    def test_upload_photo(self, agent_client, fake_api):
        """Test an uploaded photo is attached after the existing ones."""
        stub_edit_page(fake_api)
        fake_api.add("POST", "/api/upload/photo", json={"image_url": "https://cdn.example.com/p/3.jpg"})
        fake_api.add("POST", "/api/properties/prop-1/photos", json={"photo_id": "ph-3", "image_url": "https://cdn.example.com/p/3.jpg"})

        response = agent_client.post(
            "/agent/listings/prop-1/photos",
            files=[("photos", ("house.jpg", image_bytes(), "image/jpeg"))]
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/listings/prop-1/edit#photos"
        assert fake_api.last_json("POST", "/api/properties/prop-1/photos") == {
            "image_url": "https://cdn.example.com/p/3.jpg",
            "thumbnail_url": "https://cdn.example.com/p/3.jpg",
            "display_order": 3,
            "is_primary": False,
        }

    def test_move_photo(self, agent_client, fake_api):
        """Test moving a photo up sends the full new order."""
        stub_edit_page(fake_api)
        fake_api.add("PUT", "/api/properties/prop-1/photos/reorder", json={"success": True})

        response = agent_client.post("/agent/listings/prop-1/photos/ph-2/move", data={"direction": "up"})

        assert response.status_code == 303
        assert fake_api.last_json("PUT", "/api/properties/prop-1/photos/reorder") == {
            "photo_order": [
                {"photo_id": "ph-2", "display_order": 1},
                {"photo_id": "ph-1", "display_order": 2},
            ]
        }

    def test_move_past_the_end(self, agent_client, fake_api):
        """Test moving the last photo down changes nothing."""
        stub_edit_page(fake_api)

        agent_client.post("/agent/listings/prop-1/photos/ph-2/move", data={"direction": "down"})

        assert not fake_api.called("PUT", "/api/properties/prop-1/photos/reorder")

    def test_delete_photo(self, agent_client, fake_api):
        """Test deleting a photo."""
        stub_edit_page(fake_api)
        fake_api.add("DELETE", "/api/properties/prop-1/photos/ph-1", json={"success": True})

        agent_client.post("/agent/listings/prop-1/photos/ph-1/delete")
        page = agent_client.get("/agent/listings/prop-1/edit")

        assert fake_api.called("DELETE", "/api/properties/prop-1/photos/ph-1")
        assert "Photo deleted successfully" in toast_messages(page.text)


class TestAgentInquiries:
    """Test the agent inquiries inbox."""

    def test_inbox_tab(self, agent_client, fake_api):
        """Test tabs map onto status filters."""
        fake_api.add("GET", "/api/inquiries/agent/my-inquiries", json=page_payload([
            InquiryFactory.create_inquiry_data(status="completed"),
        ]))

        response = agent_client.get("/agent/inquiries?tab=closed")

        assert response.status_code == 200
        assert "Jane Buyer" in response.text
        assert 'action="/agent/inquiries/inq-1/read"' in response.text
        params = parse_qs(fake_api.calls("GET", "/api/inquiries/agent/my-inquiries")[-1].url.query.decode())
        assert params["status"] == ["completed,closed"]

    def test_opening_marks_read(self, agent_client, fake_api):
        """Test opening an unread inquiry marks it read and lowers the unread count."""
        fake_api.add("GET", "/api/inquiries/inq-1", json=InquiryFactory.create_inquiry_data())
        fake_api.add("PUT", "/api/inquiries/inq-1/mark-read", json={"success": True})

        response = agent_client.get("/agent/inquiries/inq-1")

        assert response.status_code == 200
        assert "Is the property still available" in response.text
        assert fake_api.called("PUT", "/api/inquiries/inq-1/mark-read")
        assert '<span class="badge">1</span>' in response.text

    def test_read_inquiry_is_not_marked_again(self, agent_client, fake_api):
        """Test inquiries already read are left alone."""
        fake_api.add("GET", "/api/inquiries/inq-1", json=InquiryFactory.create_inquiry_data(agent_read=True))

        agent_client.get("/agent/inquiries/inq-1")

        assert not fake_api.called("PUT", "/api/inquiries/inq-1/mark-read")

    def test_reply(self, agent_client, fake_api):
        """Test a reply is sent with the signature switch."""
        fake_api.add("POST", "/api/inquiries/inq-1/reply", json={"reply_id": "rep-1", "message": "Saturday works."})

        response = agent_client.post("/agent/inquiries/inq-1/reply", data={"message": " Saturday works. "})

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/inquiries/inq-1"
        assert fake_api.last_json("POST", "/api/inquiries/inq-1/reply") == {
            "message": "Saturday works.",
            "include_signature": False,
        }

    def test_empty_reply(self, agent_client, fake_api):
        """Test an empty reply is refused on the page."""
        fake_api.add("GET", "/api/inquiries/inq-1", json=InquiryFactory.create_inquiry_data(agent_read=True))

        response = agent_client.post("/agent/inquiries/inq-1/reply", data={"message": "  ", "include_signature": "true"})

        assert response.status_code == 422
        assert "Reply message is required" in response.text
        assert not fake_api.called("POST", "/api/inquiries/inq-1/reply")

    def test_change_status(self, agent_client, fake_api):
        """Test the status of an inquiry is updated."""
        fake_api.add("PUT", "/api/inquiries/inq-1/status", json={"success": True})

        response = agent_client.post("/agent/inquiries/inq-1/status", data={"status": "scheduled"})

        assert response.status_code == 303
        assert fake_api.last_json("PUT", "/api/inquiries/inq-1/status") == {"status": "scheduled"}

    def test_unknown_status(self, agent_client, fake_api):
        """Test unknown statuses never reach the API."""
        fake_api.add("GET", "/api/inquiries/inq-1", json=InquiryFactory.create_inquiry_data(agent_read=True))

        agent_client.post("/agent/inquiries/inq-1/status", data={"status": "archived"})
        page = agent_client.get("/agent/inquiries/inq-1")

        assert "Unknown inquiry status" in toast_messages(page.text)
        assert not fake_api.called("PUT", "/api/inquiries/inq-1/status")


class TestAgentSettings:
    """Test the agent settings page."""

    def test_settings_page(self, agent_client):
        """Test the profile form and preferences are shown."""
        response = agent_client.get("/agent/settings")

        assert response.status_code == 200
        assert 'name="agency_name" value="Lone Star Realty"' in response.text
        assert 'name="specializations" value="residential"' in response.text
        assert 'name="monthly_report" value="true" checked' in response.text

    def test_update_profile(self, agent_client, fake_api):
        """Test comma separated lists are split before sending."""
        fake_api.add("PUT", "/api/agents/me", json=AgentFactory.create_agent_data(full_name="Sam Realtor"))

        response = agent_client.post("/agent/settings/profile", data={
            "full_name": "Sam Realtor",
            "phone_number": "512-555-0199",
            "agency_name": "Lone Star Realty",
            "specializations": "residential, luxury",
            "service_areas": "Austin, Round Rock",
            "languages_spoken": "",
        })

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/settings"
        body = fake_api.last_json("PUT", "/api/agents/me")
        assert body["full_name"] == "Sam Realtor"
        assert body["specializations"] == ["residential", "luxury"]
        assert body["service_areas"] == ["Austin", "Round Rock"]
        assert body["languages_spoken"] == []
        assert "bio" not in body
        page = agent_client.get("/agent/settings")
        assert "Profile updated successfully" in toast_messages(page.text)

    def test_profile_validation(self, agent_client, fake_api):
        """Test invalid fields are shown without calling the API."""
        response = agent_client.post("/agent/settings/profile", data={"full_name": "", "phone_number": "12"})

        assert response.status_code == 422
        assert "Full name is required" in response.text
        assert not fake_api.called("PUT", "/api/agents/me")

    def test_update_preferences(self, agent_client, fake_api):
        """Test switches and the email frequency are saved."""
        fake_api.add("PUT", "/api/agents/notification-preferences", json={
            "agent_id": "agent-1",
            "new_inquiry_received": True,
            "notification_frequency": "daily",
        })

        response = agent_client.post("/agent/settings/preferences", data={
            "new_inquiry_received": "true",
            "notification_frequency": "daily",
        })

        assert response.status_code == 303
        assert response.headers["location"] == "/agent/settings#notifications"
        body = fake_api.last_json("PUT", "/api/agents/notification-preferences")
        assert body["new_inquiry_received"] is True
        assert body["monthly_report"] is False
        assert body["notification_frequency"] == "daily"

    def test_change_password(self, agent_client, fake_api):
        """Test agents change their password with the agent token."""
        fake_api.add("POST", "/api/auth/change-password", json={"success": True})

        response = agent_client.post("/agent/settings/password", data={
            "current_password": "secret-pass",
            "new_password": "Secret-pass9",
            "confirm_password": "Secret-pass9",
        })

        assert response.status_code == 303
        request = fake_api.calls("POST", "/api/auth/change-password")[-1]
        assert request.headers["authorization"] == "Bearer agent-token"
