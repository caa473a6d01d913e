"""Error Handlers — map failures to the calendar's JSON error envelope.

Invariants:
    - CalendarError → its own http_status and to_response() body, unchanged
    - Retryable errors (storage unavailable) carry a Retry-After header
    - Malformed requests (RequestValidationError) → 400 VALIDATION_ERROR with
      one entry per offending field
    - Anything else → 500 INTERNAL_ERROR, internals never leak

Design Decisions:
    - Client mistakes and scheduling conflicts are expected outcomes: logged at
      WARNING; 5xx logged at ERROR with the operation that failed
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from parallel_calendar.core.errors import CalendarError, ErrorCategory, ErrorSeverity

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 1


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CalendarError, calendar_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


async def calendar_error_handler(request: Request, exc: CalendarError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        "%s: %s", exc.code, exc.message,
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "operation": exc.context.operation,
            "user_id": str(exc.context.user_id) if exc.context.user_id else None,
        },
    )
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    problems = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        "Rejected request: %d invalid field(s)", len(problems),
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.ERROR.value,
                "retryable": False,
                "details": problems,
            },
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled %s", type(exc).__name__,
        exc_info=exc, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
                "retryable": False,
            },
        },
    )
