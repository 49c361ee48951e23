import logging
import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

log = logging.getLogger("app.request")


def _client_ip(request: Request) -> str | None:
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[-1].strip()
    return request.client.host if request.client else None


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs it on the way in and out."""

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        extra = {"request_id": request_id}

        log.info(
            "%s %s received from %s",
            request.method,
            request.url.path,
            _client_ip(request),
            extra=extra,
        )
        try:
            response = await call_next(request)
        except Exception:
            log.exception("%s %s failed", request.method, request.url.path, extra=extra)
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(
            "%s %s -> %s in %.1f ms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra=extra,
        )
        response.headers["X-Request-ID"] = request_id
        return response
