"""
Service layer wrapping the marketplace REST API.
Contains the API client, one service per API area, and error handling.
"""

from .api_client import MarketplaceAPIClient, create_http_client
from .property import PropertyService
from .agent import AgentService
from .inquiry import InquiryService
from .report import ReportService
from .account import AccountService
from .admin import AdminService
from .uploads import UploadService
from .view_tracker import PropertyViewTracker
from .error_handler import ErrorHandlerService

__all__ = [
    "MarketplaceAPIClient",
    "create_http_client",
    "PropertyService",
    "AgentService",
    "InquiryService",
    "ReportService",
    "AccountService",
    "AdminService",
    "UploadService",
    "PropertyViewTracker",
    "ErrorHandlerService"
]
