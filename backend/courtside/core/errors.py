"""
Error translation for the HTTP layer.

Engines return ``Failure`` values; services turn them into ``DomainError`` via
``raise_for_failure`` and the handlers below map the error kind to a status
code. Anything unexpected becomes a generic 500 without internal detail.
"""

from typing import NoReturn

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from courtside.core.logging import get_logger
from courtside.domain.results import ErrorKind, Failure

logger = get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_REFUND_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISSING_REASON: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CANNOT_VOTE_OWN_REVIEW: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_VOTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_VENUE_OWNER: status.HTTP_403_FORBIDDEN,
    ErrorKind.ALREADY_VOTED: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_RESPONDED: status.HTTP_409_CONFLICT,
    ErrorKind.NO_RESPONSE_TO_UPDATE: status.HTTP_409_CONFLICT,
}


class DomainError(Exception):
    """A business rule rejected the request."""

    def __init__(self, kind: ErrorKind, message: str, details: dict | None = None):
        self.kind = kind
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND.get(self.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def raise_for_failure(failure: Failure) -> NoReturn:
    raise DomainError(failure.kind, failure.message, failure.details)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(
        "domain_rule_rejected",
        kind=exc.kind.value,
        message=exc.message,
        **{k: v for k, v in exc.details.items() if k not in ("kind", "message")},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind.value, "message": exc.message},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
