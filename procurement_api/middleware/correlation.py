import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every log line and audit row of a request with one request id."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        with structlog.contextvars.bound_contextvars(
            request_id=request_id, path=request.url.path
        ):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
