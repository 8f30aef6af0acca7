# app/api/errors.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.intake.errors import IntakeError, IntakeValidationError
from app.logging_config import get_logger
from app.services.lock import IntakeLockedError
from app.services.recovery import (
    ERROR_CATALOG,
    ClassifiedError,
    ErrorSeverity,
    IntakeServiceError,
    classify_error,
)

from .schemas import ErrorResponse

logger = get_logger(__name__)


def _status_for(classified: ClassifiedError) -> int:
    return 500 if classified.severity is ErrorSeverity.CRITICAL else 503


def _classified_body(classified: ClassifiedError) -> dict:
    return ErrorResponse(
        code=classified.code.value,
        message=classified.user_message.to_wire(),
        severity=classified.severity.value,
        retryable=classified.retryable,
        suggested_action=classified.suggested_action.value,
    ).model_dump(exclude_none=True)


async def validation_error_handler(request: Request, exc: IntakeValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=exc.to_dict())


async def lock_error_handler(request: Request, exc: IntakeLockedError) -> JSONResponse:
    return JSONResponse(status_code=409, content=exc.to_dict())


async def service_error_handler(request: Request, exc: IntakeServiceError) -> JSONResponse:
    classified = exc.classified
    return JSONResponse(status_code=_status_for(classified), content=_classified_body(classified))


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Intake errors raised outside the service's recovery path, e.g. an expired session."""
    entry = ERROR_CATALOG[classify_error(exc)]
    body = ErrorResponse(
        code=exc.code,
        message={"en": exc.message_en, "ur": exc.message_ur},
        severity=entry.severity.value,
        retryable=entry.retryable,
        suggested_action=entry.suggested_action.value,
    ).model_dump(exclude_none=True)
    status = 500 if entry.severity is ErrorSeverity.CRITICAL else 503
    logger.info("Intake error on %s: %s", request.url.path, exc.code)
    return JSONResponse(status_code=status, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IntakeValidationError, validation_error_handler)
    app.add_exception_handler(IntakeLockedError, lock_error_handler)
    app.add_exception_handler(IntakeServiceError, service_error_handler)
    app.add_exception_handler(IntakeError, intake_error_handler)
