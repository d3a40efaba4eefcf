"""Access log middleware: method, path, status and duration per request."""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from studenthub.logging import get_logger

logger = get_logger("studenthub.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"{request.method} {request.url.path} 500 {elapsed_ms:.1f}ms", exc_info=True
            )
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
        return response
