import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

TIMING_HEADER = "X-Response-Time-Ms"


class HTTPLogMiddleware(BaseHTTPMiddleware):
    """Debug-level request log with timing, enabled by ``REQUEST_DEBUG``."""

    def __init__(self, app, logger_name: str = "meetgrid.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        method, path = request.method, request.url.path
        try:
            response = await call_next(request)
        except Exception as e:
            self._logger.warning(
                "http.request error method=%s path=%s dur_ms=%d err=%r",
                method, path, (time.perf_counter() - started) * 1000, e,
            )
            raise
        dur_ms = int((time.perf_counter() - started) * 1000)
        response.headers[TIMING_HEADER] = str(dur_ms)
        self._logger.debug(
            "http.request method=%s path=%s status=%s dur_ms=%d",
            method, path, response.status_code, dur_ms,
        )
        return response
