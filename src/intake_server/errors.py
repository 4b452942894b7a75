"""Global exception handlers — map SDK exceptions to HTTP status codes.

Every deliberate SDK failure is an ``IntakeError`` subclass carrying its own
``http_status``, so one handler covers the whole taxonomy.  The raw
exception message (which may contain subject or session ids) is logged
server-side; the client receives only a generic description.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from intake_flow.errors import IntakeError

logger = logging.getLogger(__name__)

# --- Client-safe messages keyed by HTTP status code ---
_SAFE_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    403: "Not allowed",
    404: "Resource not found",
    409: "Resource is in use",
    422: "Invalid input",
    502: "Downstream service error",
    503: "Service unavailable",
}


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Map an ``IntakeError`` to its status code with a safe message."""
    status = exc.http_status
    logger.warning(
        "%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc,
    )
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
