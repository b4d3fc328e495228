# backend/rentline/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("rentline.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One http_request log line per request:
      request_id, actor header, method, path, status_code, latency_ms

    The actor is taken from the dev header when present; bearer-token actors
    are resolved inside handlers and log their own actor_id.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        actor_hint = request.headers.get(settings.dev_header_user_id)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            request_id: Optional[str] = getattr(request.state, "request_id", None)
            latency_ms = int((time.perf_counter() - t0) * 1000)
            log.info(
                json.dumps(
                    {
                        "event": "http_request",
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "query": str(request.url.query) if request.url.query else "",
                        "status_code": status_code,
                        "latency_ms": latency_ms,
                        "actor_id": actor_hint,
                    },
                    default=str,
                )
            )
