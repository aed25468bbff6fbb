"""
Error Handling - Cocoa Contest Evaluation Engine
cocoa_contest/routers/errors.py

Maps typed core errors onto the ErrorResponse JSON shape.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cocoa_contest.core.exceptions import (
    CapacityExceeded,
    ContestEngineError,
    DuplicateEntityException,
    DuplicateEvaluation,
    EntityNotFoundException,
    GateDenied,
    InvalidTransition,
    RoleNotPermitted,
    StaleWrite,
)
from cocoa_contest.models.common import ErrorResponse

logger = logging.getLogger(__name__)

ENGINE_STATUS: Dict[type, int] = {
    RoleNotPermitted: status.HTTP_403_FORBIDDEN,
    GateDenied: status.HTTP_403_FORBIDDEN,
    InvalidTransition: status.HTTP_409_CONFLICT,
    CapacityExceeded: status.HTTP_409_CONFLICT,
    DuplicateEvaluation: status.HTTP_409_CONFLICT,
    StaleWrite: status.HTTP_409_CONFLICT,
}


#  Validation Error Messages


FIELD_MESSAGES = {
    "overall_quality": {
        "missing": "Overall quality is required",
        "less_than_equal": "Overall quality must be between 0 and 10",
        "greater_than_equal": "Overall quality must be between 0 and 10",
    },
    "reasons": {
        "too_short": "At least one disqualification reason is required",
    },
    "judge_ids": {
        "too_short": "At least one judge is required",
    },
    "amount": {
        "greater_than_equal": "Payment amount cannot be negative",
        "decimal_parsing": "Payment amount must be a valid number",
    },
}

DEFAULT_MESSAGES = {
    "missing": "Field '{field}' is required",
    "string_too_short": "Field '{field}' is too short",
    "string_too_long": "Field '{field}' is too long",
    "too_short": "Field '{field}' must not be empty",
    "less_than_equal": "Field '{field}' exceeds maximum allowed value",
    "greater_than_equal": "Field '{field}' is below minimum allowed value",
    "enum": "Field '{field}' must be one of the allowed values",
    "string_type": "Field '{field}' must be a string",
    "float_type": "Field '{field}' must be a number",
    "float_parsing": "Field '{field}' must be a valid number",
    "int_parsing": "Field '{field}' must be a valid integer",
    "date_from_datetime_parsing": "Field '{field}' must be a valid date",
    "date_parsing": "Field '{field}' must be a valid date",
    "json_invalid": "Malformed JSON request body",
}


def get_validation_message(field: str, error_type: str) -> str:
    if field in FIELD_MESSAGES:
        for key in FIELD_MESSAGES[field]:
            if key in error_type:
                return FIELD_MESSAGES[field][key]
    for key, template in DEFAULT_MESSAGES.items():
        if key in error_type:
            return template.format(field=field)
    return f"Invalid value for field '{field}'"


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_code=error_code,
            message=message,
            details=details or None,
            timestamp=datetime.now(timezone.utc),
        ).model_dump(mode="json"),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", "Request validation failed")
    err = errors[0]
    error_type = err.get("type", "")
    loc = err.get("loc", [])
    if "json_invalid" in error_type:
        return error_response(status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "Malformed JSON request body")
    field = ".".join(str(l) for l in loc if l not in ("body", "header", "query", "path"))
    message = get_validation_message(field, error_type)
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        message,
        {"field": field, "type": error_type} if field else None,
    )


async def engine_exception_handler(request: Request, exc: ContestEngineError):
    status_code = next(
        (code for cls, code in ENGINE_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info("Request refused: %s %s -> %s", request.method, request.url.path, exc.error_code,
                extra={"error_code": exc.error_code, "status_code": status_code})
    return error_response(status_code, exc.error_code, exc.message, exc.details)


async def not_found_exception_handler(request: Request, exc: EntityNotFoundException):
    return error_response(
        status.HTTP_404_NOT_FOUND,
        f"{exc.entity_type.upper()}_NOT_FOUND",
        str(exc),
        {"entity_type": exc.entity_type, "entity_id": exc.entity_id},
    )


async def duplicate_exception_handler(request: Request, exc: DuplicateEntityException):
    return error_response(status.HTTP_409_CONFLICT, "DUPLICATE_ENTITY", exc.message)


async def value_error_handler(request: Request, exc: ValueError):
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", str(exc))


def _example(error_code: str, message: str) -> dict:
    return {
        "model": ErrorResponse,
        "content": {
            "application/json": {
                "example": {
                    "error_code": error_code,
                    "message": message,
                    "details": None,
                    "timestamp": "2026-01-28T12:00:00Z",
                }
            }
        },
    }


# OpenAPI error documentation shared by the routers
RESPONSES_403 = {403: {"description": "Role or gate refused", **_example("ROLE_NOT_PERMITTED", "Role 'judge' may not perform 'approve'")}}
RESPONSES_404 = {404: {"description": "Not found", **_example("SAMPLE_NOT_FOUND", "Sample with ID 123 not found")}}
RESPONSES_409 = {409: {"description": "Conflict", **_example("INVALID_TRANSITION", "Cannot apply 'approve' to a sample in status 'received'")}}
RESPONSES_422 = {422: {"description": "Validation error", **_example("VALIDATION_ERROR", "Field 'contest_id' is required")}}

COMMON_RESPONSES = {**RESPONSES_403, **RESPONSES_404, **RESPONSES_409, **RESPONSES_422}
