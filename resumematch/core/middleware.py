import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from resumematch.core.config import settings
from resumematch.core.logging import request_id_var

logger = logging.getLogger(__name__)

class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every request (and every log line it produces) with a request id."""

    async def dispatch(self, request: Request, call_next):
        header = settings.request_id_header
        request_id = request.headers.get(header) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        start = time.time()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[header] = request_id
        response.headers["X-Process-Time"] = f"{time.time() - start:.3f}"
        return response

class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"duration_ms": round((time.time() - start) * 1000, 1)},
        )
        return response
