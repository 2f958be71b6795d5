"""Error taxonomy for the meetgrid API.

Every failure leaves the service as ``{"error", "detail", "context"}``:

- ``NotFoundError`` (404): unknown event id.
- ``BadRequestError`` (400): slot outside the event grid, unknown timezone.
- ``ExpiredError`` (410): submission to an event past its expiry date.
- ``StorageUnavailableError`` (503): the event store failed. ``context.retryable``
  tells the client whether trying again can help.

Body shape errors are left to pydantic and come back as 422 in the same
envelope, with the individual problems under ``context.errors``.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
    context: dict[str, Any] | None = None


class APIError(Exception):
    """Base for errors raised from controllers and stores.

    Keyword arguments beyond ``detail`` are returned to the client as
    ``context``, so only pass values that are safe to expose.
    """

    status_code: int = 500
    error: str = "internal_error"
    detail: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None, **context: Any) -> None:
        self.detail = detail or type(self).detail
        self.context = context or None
        super().__init__(self.detail)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.error, detail=self.detail, context=self.context)


class NotFoundError(APIError):
    status_code = 404
    error = "not_found"
    detail = "Resource not found"


class BadRequestError(APIError):
    status_code = 400
    error = "bad_request"
    detail = "Invalid request"


class ExpiredError(APIError):
    """The event no longer accepts responses (410).

    Reading an expired event stays valid; only submissions are rejected.
    """

    status_code = 410
    error = "expired"
    detail = "Event has expired"


class ServiceUnavailableError(APIError):
    status_code = 503
    error = "service_unavailable"
    detail = "Service temporarily unavailable"


class StorageUnavailableError(ServiceUnavailableError):
    """The event store failed (503). Retryable unless said otherwise."""

    error = "storage_unavailable"
    detail = "Event storage temporarily unavailable"

    def __init__(self, detail: str | None = None, **context: Any) -> None:
        context.setdefault("retryable", True)
        super().__init__(detail, **context)


def _status_to_error_type(status_code: int) -> str:
    return {
        400: "bad_request",
        404: "not_found",
        409: "conflict",
        410: "expired",
        422: "validation_error",
        500: "internal_error",
        503: "service_unavailable",
    }.get(status_code, "error")


def _json(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s %s -> %d %s: %s", request.method, request.url.path, exc.status_code, exc.error, exc.detail)
    return _json(exc.status_code, exc.to_response())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _json(
        exc.status_code,
        ErrorResponse(error=_status_to_error_type(exc.status_code), detail=str(exc.detail)),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    logger.info("%s %s -> 422 (%d problems)", request.method, request.url.path, len(problems))
    detail = problems[0]["msg"] if problems else "Invalid request body"
    return _json(422, ErrorResponse(error="validation_error", detail=detail, context={"errors": problems}))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
