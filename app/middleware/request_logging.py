"""
Request logging middleware.
Assigns a request ID, times every request and warns about slow pages.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

logger = logging.getLogger(__name__)

# Static assets are served without logging
SKIP_PATH_PREFIXES = ("/static",)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request tracing and timing.
    Adds `X-Request-ID` and `X-Processing-Time` headers to every response.
    """

    def __init__(
        self,
        app: ASGIApp,
        slow_request_threshold: float = 2.0,  # seconds
        enable_request_logging: bool = True
    ):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request through the logging middleware.

        Args:
            request: FastAPI request object
            call_next: Next middleware/handler in chain

        Returns:
            Response object with tracing headers
        """
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start_time = time.time()
        log_request = self.enable_request_logging and not request.url.path.startswith(SKIP_PATH_PREFIXES)

        try:
            response = await call_next(request)
        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Request error [{request_id}]: {type(exc).__name__} - {str(exc)} "
                f"(processing_time: {processing_time:.3f}s)",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "method": request.method,
                    "processing_time": processing_time,
                    "error_type": type(exc).__name__
                },
                exc_info=True
            )
            raise

        processing_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"

        if log_request:
            logger.info(
                f"Response [{request_id}]: {request.method} {request.url.path} "
                f"{response.status_code} - {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "processing_time": processing_time
                }
            )

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request [{request_id}]: {request.method} {request.url.path} "
                f"took {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold
                }
            )

        return response
