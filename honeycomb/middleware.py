"""Request correlation for API error logs.

``RequestIdMiddleware`` reuses a well-formed ``X-Request-ID`` sent by the
client or generates a UUID4, exposes it as ``request.state.request_id`` and
echoes it in the response. ``RequestIdFilter`` stamps the current ID on log
records emitted while the request is being served.
"""

from __future__ import annotations

import logging
import re
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Accepted client-supplied IDs
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")

_current_request_id: ContextVar[str | None] = ContextVar("honeycomb_request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Adds the current request ID to records that carry none."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _current_request_id.get()
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that assigns a request ID to each request.

    Incoming IDs not matching ``[A-Za-z0-9._:-]{1,128}`` are replaced by a
    new UUID4.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        if incoming and _VALID_REQUEST_ID.fullmatch(incoming):
            request_id = incoming
        else:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        token = _current_request_id.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            _current_request_id.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
