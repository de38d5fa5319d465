"""
RequestContext Middleware - request tracing for every HTTP request.

Adds to request.state:
- request_id: UUID for tracing this request (echoed as X-Request-ID)
- ip_address: Client IP address
- user_id: Acting user from X-User-Id, when present

The request id and acting user are also bound into structlog's context
variables, so every log line emitted while handling the request carries them.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from link_app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = request.client.host if request.client else None
        request.state.user_id = request.headers.get("x-user-id")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        if request.state.user_id:
            structlog.contextvars.bind_contextvars(user_id=request.state.user_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            ip_address=request.state.ip_address,
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response
