"""Request ID middleware.

Every scorecard request gets an id that is bound into structlog's context,
so reference-data warnings and aggregation logs can be tied back to the
call that produced them.
"""

import re
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import structlog

REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied ids are written into log lines verbatim
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

logger = structlog.get_logger()


def resolve_request_id(header_value: Optional[str]) -> str:
    """Reuse a well-formed incoming id, otherwise mint a UUID4."""
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    if header_value:
        logger.debug("request_id_replaced", supplied_length=len(header_value))
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
