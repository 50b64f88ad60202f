"""Request tracing and response header middleware for ANODE Lite."""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("anode-api.middleware")

# Health and metrics endpoints polled by the platform; not worth a log line each
SKIP_LOG_PATHS = {"/health", "/metrics"}


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Tags every response with X-Request-ID and X-Process-Time (ms) and logs
    one structured line per request.

    Routes that produce a sheet leave its filename in
    ``request.state.sheet_filename``; it is carried into the log line so a
    download can be traced back to the request that rendered it. Server
    errors are logged at WARNING.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()
        request.state.request_id = request_id

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path in SKIP_LOG_PATHS:
            return response

        extra = {
            "http_method": request.method,
            "http_path": request.url.path,
            "http_status": response.status_code,
            "request_id": request_id,
            "duration_ms": duration_ms,
        }
        sheet_filename = getattr(request.state, "sheet_filename", None)
        if sheet_filename:
            extra["sheet_filename"] = sheet_filename

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(level, f"{request.method} {request.url.path} -> {response.status_code}", extra=extra)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response
