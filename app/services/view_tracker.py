"""
Listing view tracking with per-session debouncing.
"""

from typing import Optional
import logging

from app.config import settings
from app.services.property import PropertyService
from app.store.registry import SessionRegistry
from app.utils.debounce import Debouncer

logger = logging.getLogger(__name__)


class PropertyViewTracker:
    """
    Records listing views on the marketplace API.

    A listing counts one view per browser session. Bursts of loads are
    collapsed by the debouncer; later loads of a listing already recorded
    for the session are ignored. The recorded pairs are kept in a bounded
    registry, so a session evicted from it may count one more view.
    """

    def __init__(
        self,
        property_service: PropertyService,
        wait: float,
        max_recorded: int = settings.viewed_properties_max_entries
    ):
        self.properties = property_service
        self.debouncer = Debouncer(wait)
        self.recorded = SessionRegistry(max_recorded, "recorded views")

    def track(self, property_id: str, session_id: Optional[str], user_id: Optional[str] = None) -> None:
        """Schedule a view record for a listing page load."""
        key = (session_id, property_id)
        if key in self.recorded:
            return

        async def record() -> None:
            await self.properties.record_view(property_id, user_id, session_id)
            self.recorded.set(key, True)
            logger.debug(f"View recorded: {property_id}", extra={"session_id": session_id})

        self.debouncer.call(key, record)

    async def flush(self) -> int:
        return await self.debouncer.flush()
