"""
Answerbank middleware
"""
import logging
import time

from .core import Middleware, Request, Response

access_logger = logging.getLogger("answerbank.access")


class LoggingMiddleware(Middleware):
    """One log line per request: method, path, status and duration"""

    def __init__(self, skip_paths=("/health",)):
        self.skip_paths = set(skip_paths)

    async def process_request(self, request: Request) -> Request:
        request._start_time = time.perf_counter()
        return request

    async def process_response(self, request: Request, response: Response) -> Response:
        if request.path in self.skip_paths:
            return response

        start = getattr(request, "_start_time", None)
        duration_ms = (time.perf_counter() - start) * 1000 if start is not None else 0.0

        level = logging.WARNING if response.status >= 400 else logging.INFO
        access_logger.log(
            level,
            "%s %s %d %.1fms",
            request.method,
            request.path,
            response.status,
            duration_ms,
        )
        return response
