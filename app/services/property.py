"""
Property service for browsing and managing listings through the marketplace API.
Handles search, listing details, agent listing management, photos and history.
"""

from typing import Any, Dict, List, Optional
import logging

from app.config import settings
from app.schemas.common import Page, parse_list, parse_page
from app.schemas.property import (
    PriceHistoryEntry,
    Property,
    PropertyForm,
    PropertyPhoto,
    PropertyStatus,
    StatusHistoryEntry,
)
from app.schemas.search import AgentListingFilters, SearchFilters
from app.services.api_client import MarketplaceAPIClient
from app.utils.exceptions import NotFoundError, PropertyNotFoundError

logger = logging.getLogger(__name__)


class PropertyService:
    """
    Property service wrapping the `/api/properties` endpoints.
    Translates API payloads into schemas; the API owns every business rule.
    """

    def __init__(self, api: MarketplaceAPIClient):
        self.api = api

    async def search(self, filters: SearchFilters) -> Page[Property]:
        """
        Search active listings.

        Args:
            filters: Search page filters

        Returns:
            Page of matching listings
        """
        payload = await self.api.get("/api/properties", params=filters.to_api_params())
        return parse_page(payload, Property)

    async def get_featured(self, limit: Optional[int] = None) -> List[Property]:
        """Featured active listings in their curated order."""
        payload = await self.api.get("/api/properties", params={
            "is_featured": "true",
            "status": "active",
            "limit": limit or settings.featured_listings_limit,
            "sort_by": "featured_order",
            "sort_order": "asc",
        })
        return parse_list(payload, Property)

    async def get_property(self, property_id: str, token: Optional[str] = None) -> Property:
        """
        Get a listing by ID.

        Raises:
            PropertyNotFoundError: If the listing doesn't exist
        """
        try:
            payload = await self.api.get(f"/api/properties/{property_id}", token=token)
        except NotFoundError:
            raise PropertyNotFoundError(property_id)
        return Property.model_validate(payload)

    async def get_photos(self, property_id: str, token: Optional[str] = None) -> List[PropertyPhoto]:
        """Listing photos ordered for display, primary photo first."""
        payload = await self.api.get(f"/api/properties/{property_id}/photos", token=token)
        photos = parse_list(payload, PropertyPhoto)
        return sorted(photos, key=lambda p: (not p.is_primary, p.display_order))

    async def get_similar(self, property_obj: Property, limit: Optional[int] = None) -> List[Property]:
        """
        Active listings in the same city with the same listing and property type.

        The listing itself is excluded.

        Args:
            property_obj: Listing being viewed
            limit: Maximum number of results

        Returns:
            Similar listings
        """
        limit = limit or settings.similar_listings_limit
        params: Dict[str, Any] = {
            "listing_type": property_obj.listing_type.value,
            "status": "active",
            "limit": limit + 1,
            "sort_by": "created_at",
            "sort_order": "desc",
        }
        if property_obj.address_city:
            params["city"] = property_obj.address_city
        if property_obj.property_type:
            params["property_type"] = property_obj.property_type

        payload = await self.api.get("/api/properties", params=params)
        similar = [p for p in parse_list(payload, Property) if p.property_id != property_obj.property_id]
        return similar[:limit]

    async def get_agent_listings(
        self,
        agent_id: str,
        filters: AgentListingFilters,
        token: Optional[str] = None
    ) -> Page[Property]:
        """All listings of an agent matching the listings page filters."""
        payload = await self.api.get(
            "/api/properties",
            token=token,
            params=filters.to_api_params(agent_id)
        )
        return parse_page(payload, Property)

    async def get_agent_active_listings(self, agent_id: str, limit: Optional[int] = None) -> List[Property]:
        """Public active listings of an agent for the profile page."""
        payload = await self.api.get("/api/properties", params={
            "agent_id": agent_id,
            "status": "active",
            "limit": limit or settings.default_page_size,
            "offset": 0,
            "sort_by": "created_at",
            "sort_order": "desc",
        })
        return parse_list(payload, Property)

    async def create_property(self, form: PropertyForm, token: str) -> Property:
        """
        Create a listing owned by the signed-in agent.

        Args:
            form: Listing form data
            token: Agent bearer token

        Returns:
            Created listing
        """
        payload = await self.api.post("/api/properties", token=token, json=form.to_payload())
        created = Property.model_validate(payload)
        logger.info(f"Listing created: {created.title} (ID: {created.property_id})")
        return created

    async def update_property(self, property_id: str, data: Dict[str, Any], token: str) -> Property:
        """Update listing fields; `data` is sent as a partial payload."""
        payload = await self.api.put(
            f"/api/properties/{property_id}",
            token=token,
            json={"property_id": property_id, **data}
        )
        return Property.model_validate(payload) if payload else await self.get_property(property_id, token)

    async def update_status(self, property_id: str, status: PropertyStatus, token: str) -> Any:
        return await self.api.put(
            f"/api/properties/{property_id}",
            token=token,
            json={"property_id": property_id, "status": PropertyStatus(status).value}
        )

    async def delete_property(self, property_id: str, token: str) -> None:
        await self.api.delete(f"/api/properties/{property_id}", token=token)
        logger.info(f"Listing deleted: {property_id}")

    async def add_photos(self, property_id: str, photos: List[Dict[str, Any]], token: str) -> List[PropertyPhoto]:
        """
        Attach uploaded photos to a listing.

        Args:
            property_id: Listing ID
            photos: Photo records with image_url, thumbnail_url, display_order, is_primary
            token: Agent bearer token

        Returns:
            Photos created by the API
        """
        payload = await self.api.post(f"/api/properties/{property_id}/photos", token=token, json={"photos": photos})
        return parse_list(payload, PropertyPhoto) if payload else []

    async def add_photo(
        self,
        property_id: str,
        image_url: str,
        token: str,
        thumbnail_url: Optional[str] = None,
        existing_count: int = 0
    ) -> PropertyPhoto:
        """Attach a single photo after the existing ones; the first photo becomes primary."""
        payload = await self.api.post(f"/api/properties/{property_id}/photos", token=token, json={
            "image_url": image_url,
            "thumbnail_url": thumbnail_url or image_url,
            "display_order": existing_count + 1,
            "is_primary": existing_count == 0,
        })
        if isinstance(payload, dict) and payload.get("image_url"):
            return PropertyPhoto.model_validate(payload)
        return PropertyPhoto(image_url=image_url, thumbnail_url=thumbnail_url, display_order=existing_count + 1)

    async def delete_photo(self, property_id: str, photo_id: str, token: str) -> None:
        await self.api.delete(f"/api/properties/{property_id}/photos/{photo_id}", token=token)

    async def reorder_photos(self, property_id: str, photo_ids: List[str], token: str) -> None:
        """Persist a new photo order; display order starts at 1."""
        photo_order = [
            {"photo_id": photo_id, "display_order": index}
            for index, photo_id in enumerate(photo_ids, start=1)
        ]
        await self.api.put(
            f"/api/properties/{property_id}/photos/reorder",
            token=token,
            json={"photo_order": photo_order}
        )

    async def get_price_history(self, property_id: str, token: Optional[str] = None) -> List[PriceHistoryEntry]:
        payload = await self.api.get(f"/api/properties/{property_id}/price-history", token=token)
        return parse_list(payload, PriceHistoryEntry)

    async def get_status_history(self, property_id: str, token: Optional[str] = None) -> List[StatusHistoryEntry]:
        payload = await self.api.get(f"/api/properties/{property_id}/status-history", token=token)
        return parse_list(payload, StatusHistoryEntry)

    async def record_view(self, property_id: str, user_id: Optional[str], session_id: Optional[str]) -> None:
        await self.api.post(f"/api/properties/{property_id}/view", json={
            "property_id": property_id,
            "user_id": user_id,
            "session_id": session_id,
        })


def move_item(ids: List[str], item_id: str, offset: int) -> List[str]:
    """
    Move an id up (-1) or down (+1) in an ordered list.

    Moving past either end leaves the order unchanged.
    """
    if item_id not in ids:
        return list(ids)
    ids = list(ids)
    index = ids.index(item_id)
    target = index + offset
    if target < 0 or target >= len(ids):
        return ids
    ids[index], ids[target] = ids[target], ids[index]
    return ids
