"""
Process-local registry for per-session data that does not fit in the
session cookie.
"""

from collections import OrderedDict
from typing import Any, Hashable, Optional
import logging

from app.config import settings

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Bounded least-recently-used mapping keyed by browser session.

    Entries past `max_entries` are evicted oldest first. Evicted or unknown
    keys read as missing, so callers must be able to rebuild an entry from
    the marketplace API.

    Args:
        max_entries: Maximum number of keys kept
        name: Label used in log messages
    """

    def __init__(self, max_entries: int, name: str = "registry"):
        self.max_entries = max_entries
        self.name = name
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the entry and mark it as recently used, or None."""
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        evicted = 0
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            evicted += 1
        if evicted:
            logger.debug(f"Evicted {evicted} entries from {self.name}")

    def discard(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


# Saved property ids of signed-in property seekers, keyed by session ID
saved_properties_registry = SessionRegistry(settings.saved_properties_max_sessions, "saved properties")
