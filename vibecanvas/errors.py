"""Application-level error responses and the fallback handler."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from .logging_config import req_id_var

logger = logging.getLogger(__name__)


def json_error(
    code: str, message: str, status: int, meta: dict[str, Any] | None = None
) -> JSONResponse:
    """Create a standardized JSON error response.

    Shape: {"code", "message", "meta"} with a lowercase code.
    """
    return JSONResponse(
        {"code": code.lower(), "message": message, "meta": meta or {}},
        status_code=status,
    )


async def global_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for exceptions no route translated itself."""
    # The exception unwinds through RequestIDMiddleware before this runs
    req_id = (
        getattr(request.state, "req_id", None)
        or request.headers.get("x-request-id")
        or req_id_var.get()
    )
    now = datetime.now(timezone.utc).isoformat()
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
        extra={"req_id": req_id},
    )

    base_meta = {"request_id": req_id, "timestamp": now}

    if isinstance(exc, TimeoutError):
        response = json_error("timeout", "Request timed out", 504, meta=base_meta)
    elif isinstance(exc, ConnectionError):
        response = json_error(
            "connection_error", "Service temporarily unavailable", 503, meta=base_meta
        )
    else:
        response = json_error("internal_error", "Something went wrong", 500, meta=base_meta)
    response.headers["X-Request-ID"] = req_id
    return response


def register_error_handlers(app) -> None:
    """Register the fallback handler; HTTPException keeps FastAPI's default."""
    app.add_exception_handler(Exception, global_error_handler)
