"""
Page routers of the marketplace front end.
"""

from .public import router as public_router
from .auth import router as auth_router
from .account import router as account_router
from .agent import router as agent_router
from .admin import router as admin_router

__all__ = ["public_router", "auth_router", "account_router", "agent_router", "admin_router"]
