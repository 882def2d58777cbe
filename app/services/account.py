"""
Account service for the property seeker's own profile and saved listings.
"""

from typing import List
import logging

from app.config import settings
from app.schemas.property import Property
from app.schemas.user import User, UserUpdate
from app.services.api_client import MarketplaceAPIClient

logger = logging.getLogger(__name__)


class AccountService:
    """Account service wrapping `/api/users/me` and `/api/favorites`."""

    def __init__(self, api: MarketplaceAPIClient):
        self.api = api

    async def get_profile(self, token: str) -> User:
        payload = await self.api.get("/api/users/me", token=token)
        return User.model_validate(payload)

    async def update_profile(self, update: UserUpdate, token: str) -> User:
        """
        Update the signed-in user's profile.

        Args:
            update: Changed fields; unset fields are not sent
            token: User bearer token

        Returns:
            Updated user
        """
        payload = await self.api.put(
            "/api/users/me",
            token=token,
            json=update.model_dump(exclude_none=True)
        )
        return User.model_validate(payload) if payload else await self.get_profile(token)

    async def delete_account(self, password: str, token: str) -> None:
        """Delete the signed-in user's account; the API checks the password."""
        await self.api.delete("/api/users/me", token=token, json={"password": password})
        logger.info("User account deleted")

    async def get_saved_properties(self, token: str) -> List[Property]:
        """
        Saved listings of the signed-in user, newest first.

        Favorites come back either with the listing nested under `property`
        or with its columns joined onto the favorite row.
        """
        payload = await self.api.get(
            "/api/favorites",
            token=token,
            params={"limit": settings.favorites_page_size, "offset": 0}
        )
        items = payload.get("data", []) if isinstance(payload, dict) else payload or []
        saved = []
        for item in items:
            listing = item.get("property") if isinstance(item.get("property"), dict) else item
            if listing.get("property_id") or item.get("property_id"):
                saved.append(Property.model_validate({"property_id": item.get("property_id"), **listing}))
        return saved
