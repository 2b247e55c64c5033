from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .logging_config import req_id_var


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to the logging context and the response headers."""

    async def dispatch(self, request: Request, call_next):
        # Prefer client-provided ID to enable end-to-end correlation
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        # Kept on the scope state so the fallback error handler can echo it
        request.state.req_id = req_id
        token = req_id_var.set(req_id)
        try:
            response = await call_next(request)
        finally:
            req_id_var.reset(token)
        response.headers.setdefault("X-Request-ID", req_id)
        return response
