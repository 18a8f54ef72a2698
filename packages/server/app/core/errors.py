"""
Domain errors and their HTTP mapping.

Services raise these with a machine code and context; the exception handlers
registered in ``register_error_handlers`` turn them into the JSON error
envelope ``{"error": {"code", "message", "status", "context"}}``.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

log = structlog.get_logger()


class DomainError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationFailed(DomainError):
    status_code = 400
    code = "VALIDATION_FAILED"


class InvalidTransition(DomainError):
    status_code = 400
    code = "INVALID_TRANSITION"


class PolicyViolation(DomainError):
    status_code = 422
    code = "POLICY_VIOLATION"


class ConflictError(DomainError):
    status_code = 409
    code = "CONFLICT"


class SideEffectFailure(DomainError):
    """The primary mutation is committed; an audit or notification write failed."""

    status_code = 500
    code = "SIDE_EFFECT_FAILED"


class ActivityLoggingFailed(SideEffectFailure):
    pass


def _error_response(status: int, code: str, message: str, context: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={
            "error": {
                "code": code,
                "message": message,
                "status": status,
                "context": jsonable_encoder(context or {}),
            }
        },
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request.failed", path=request.url.path, code=exc.code, error=exc.message)
    return _error_response(exc.status_code, exc.code, exc.message, exc.context)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        400,
        ValidationFailed.code,
        "Request validation failed",
        {"errors": [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
