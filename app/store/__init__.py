"""
Per-browser-session state container.
"""

from .session import SessionStore, SESSION_KEY
from .state import StoreState, SessionUser, SessionAgent, Toast

__all__ = [
    "SessionStore",
    "SESSION_KEY",
    "StoreState",
    "SessionUser",
    "SessionAgent",
    "Toast"
]
