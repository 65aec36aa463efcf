"""Maps membership engine errors onto HTTP responses.

Services raise typed ``MembershipError`` subclasses and never build
responses themselves.  One exception handler, registered in main.py,
turns every one of them into::

    {"detail": {"code": "<ErrorClass>", "kind": "<kind>", "message": "..."}}

The ``detail`` key matches FastAPI's own HTTPException body, so clients
read errors the same way regardless of where they came from.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from membership.core.exceptions import MembershipError
from membership.core.metrics import MEMBERSHIP_ERRORS

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "conflict": status.HTTP_409_CONFLICT,
    "undeletable": status.HTTP_409_CONFLICT,
    "invalid": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "partial_write": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: MembershipError) -> int:
    return _STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_body(error: MembershipError) -> dict[str, str]:
    return {"code": error.code, "kind": error.kind, "message": error.message}


async def membership_error_handler(request: Request, exc: MembershipError) -> JSONResponse:
    status_code = status_for(exc)
    MEMBERSHIP_ERRORS.labels(code=exc.code).inc()
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "%s %s rejected: %s (%s)",
        request.method,
        request.url.path,
        exc.code,
        exc.message,
        extra={
            "error_code": exc.code,
            "user_id": getattr(request.state, "user_id", None),
            "org_id": request.path_params.get("org_id"),
        },
    )
    return JSONResponse(status_code=status_code, content={"detail": error_body(exc)})
