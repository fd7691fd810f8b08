"""Exception handlers that turn store errors into HTTP responses.

Every failure leaves the API as ``{"error": {"code", "message", ...}}`` with
the status the error class carries. Conflicts add ``Retry-After``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.exceptions import ValidationError as DomainValidationError

from store.errors import ConcurrencyConflictError, PersistencePartialFailureError, StoreError
from store.settings import settings

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, body: dict, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": jsonable_encoder(body)}, headers=headers)


async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    headers = None
    if isinstance(exc, ConcurrencyConflictError):
        headers = {"Retry-After": str(settings.checkout_retry_after)}

    if isinstance(exc, PersistencePartialFailureError):
        logger.critical("request_partial_failure", path=request.url.path, **exc.details)
    elif exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, message=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code, message=exc.message)

    return _error_response(exc.status_code, exc.to_dict(), headers)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        400,
        {"code": "ValidationError", "message": "Request validation failed", "errors": exc.errors()},
    )


async def handle_domain_validation(request: Request, exc: DomainValidationError) -> JSONResponse:
    return _error_response(
        400,
        {"code": "ValidationError", "message": "Invalid value", "errors": exc.messages},
    )


async def handle_object_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _error_response(404, {"code": "NotFound", "message": str(exc) or "Not found"})


def register_store_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreError, handle_store_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(DomainValidationError, handle_domain_validation)
    app.add_exception_handler(ObjectNotFoundError, handle_object_not_found)
