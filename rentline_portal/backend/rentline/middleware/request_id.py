# backend/rentline/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# inbound ids end up in every log line, so only short opaque tokens are kept
_SAFE_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def accept_request_id(raw: Optional[str]) -> str:
    """The caller's id when it is a safe token, otherwise a fresh uuid4 hex."""
    if raw and _SAFE_ID.fullmatch(raw.strip()):
        return raw.strip()
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the log formatter and request.state, and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = rid

        token = request_id_ctx.set(rid)
        try:
            resp = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        resp.headers[REQUEST_ID_HEADER] = rid
        return resp
