"""
FastAPI application entry point.
Wires the marketplace API client, session middleware, page routers and
error handlers together.
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from app.config import settings
from app.middleware import RequestLoggingMiddleware
from app.routers import account_router, admin_router, agent_router, auth_router, public_router
from app.services.api_client import MarketplaceAPIClient, create_http_client
from app.services.error_handler import ErrorHandlerService
from app.services.property import PropertyService
from app.services.view_tracker import PropertyViewTracker
from app.utils.exceptions import APIException, LoginRequiredError

# Configure logging
logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Opens the shared HTTP client for the marketplace API on startup. On
    shutdown pending view records are flushed before the client closes.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}, marketplace API: {settings.api_base_url}")

    http_client = create_http_client()
    app.state.api = MarketplaceAPIClient(http_client)
    app.state.view_tracker = PropertyViewTracker(
        PropertyService(app.state.api),
        settings.view_tracking_debounce_seconds
    )

    yield

    logger.info("Shutting down application")
    flushed = await app.state.view_tracker.flush()
    if flushed:
        logger.info(f"Flushed {flushed} pending view records")
    await http_client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Web front end of the property marketplace.

    ## Features

    * **Search**: Browse and filter listings, save favorites
    * **Agents**: Manage listings, photos and inquiries
    * **Admins**: Approve agents, moderate reports, curate featured listings

    Every page is rendered from the marketplace REST API; no data is stored here.
    """,
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_tags=[
        {"name": "Public", "description": "Landing, search and listing pages"},
        {"name": "Authentication", "description": "Sign in, registration and password recovery"},
        {"name": "Account", "description": "Property seeker account pages"},
        {"name": "Agent", "description": "Agent workspace"},
        {"name": "Admin", "description": "Admin moderation"},
        {"name": "Health", "description": "System health endpoints"},
    ],
    lifespan=lifespan,
)

app.add_middleware(
    RequestLoggingMiddleware,
    slow_request_threshold=settings.slow_request_threshold,
    enable_request_logging=not settings.is_testing,
)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    session_cookie=settings.session_cookie_name,
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.session_https_only,
)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.include_router(public_router)
app.include_router(auth_router)
app.include_router(account_router)
app.include_router(agent_router)
app.include_router(admin_router)


# Global exception handlers using ErrorHandlerService
@app.exception_handler(LoginRequiredError)
async def login_required_handler(request: Request, exc: LoginRequiredError):
    """Send visitors without the required session to the matching login page."""
    return ErrorHandlerService.handle_login_required(exc, request)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions with an error page or structured JSON."""
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle framework HTTP exceptions such as unknown paths."""
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with a generic error page."""
    return ErrorHandlerService.handle_unexpected_error(exc, request)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
