import uuid
from contextvars import ContextVar

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

current_request: ContextVar[Request | None] = ContextVar("current_request", default=None)


def get_request() -> Request:
    req = current_request.get()
    if req is None:
        raise RuntimeError("No request in context; is RequestContextMiddleware installed?")
    return req


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds the Request to a context var for lazy auth resolution and tags every
    log line emitted while handling it with a request id.
    """

    async def dispatch(self, request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        token = current_request.set(request)
        try:
            with logger.contextualize(request_id=request_id):
                response = await call_next(request)
        finally:
            current_request.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
