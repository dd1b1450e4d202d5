"""
Application Exceptions Module.

Centralized exception definitions with:
- HTTP status code mapping
- Error codes for client handling
- A single handler that renders them as {"error", "code", "status"}
"""

from enum import Enum
from typing import Any, Optional

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class ErrorCode(str, Enum):
    """Application error codes."""

    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"

    REGISTRY_ERROR = "E5000"
    REGISTRY_TIMEOUT = "E5001"


class KybIntelError(Exception):
    """Base exception for the application."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.message,
            "code": self.code.value,
            "status": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequestError(KybIntelError):
    """Malformed or missing request parameters. Raised before any computation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details={"field": field} if field else None,
        )


class RegistryError(KybIntelError):
    """The registry provider failed or returned an unusable response."""

    def __init__(self, message: str, status_code: int = 502, upstream_status: Optional[int] = None):
        super().__init__(
            message=message,
            code=ErrorCode.REGISTRY_ERROR,
            status_code=status_code,
            details={"upstream_status": upstream_status} if upstream_status else None,
        )


class RegistryNotFound(RegistryError):
    """The registry has no record for the requested entity."""

    def __init__(self, resource: str):
        super().__init__(message=f"{resource} not found in registry", status_code=404, upstream_status=404)
        self.code = ErrorCode.NOT_FOUND


class RegistryUnavailable(RegistryError):
    """Transient upstream failure (connection error, 5xx, 429). Retried."""


class RegistryTimeout(RegistryError):
    """Every attempt hit the per-call deadline."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(message=f"Registry did not respond in time ({operation})", status_code=504)
        self.code = ErrorCode.REGISTRY_TIMEOUT
        self.details = {"timeout_seconds": timeout}


# ── Exception handlers ────────────────────────────────────────────────────


async def kybintel_exception_handler(request: Request, exc: KybIntelError) -> JSONResponse:
    """Render domain errors. Message is always the curated one, never str(cause)."""
    request_id = getattr(request.state, "request_id", None)
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        error_code=exc.code.value,
        message=exc.message,
        status_code=exc.status_code,
        request_id=request_id,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/body parameters are client errors (400), not 422."""
    errors = [
        {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning("request_validation_failed", path=request.url.path, errors=errors)
    error = InvalidRequestError("Invalid request parameters")
    error.details = {"errors": errors}
    return JSONResponse(status_code=error.status_code, content=error.to_response())


def register_exception_handlers(app) -> None:
    """Register exception handlers with FastAPI app."""
    app.add_exception_handler(KybIntelError, kybintel_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
