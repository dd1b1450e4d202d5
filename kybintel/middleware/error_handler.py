"""
Global Error Handler Middleware.

Last line of defence for failures no exception handler claimed. The client
gets a fixed, human-readable message and an error_id; the exception, its
type and the traceback stay in the server log under that id.
"""

import traceback
import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from kybintel.config import settings

logger = structlog.get_logger(__name__)

GENERIC_MESSAGE = "An internal error occurred. Please try again later."


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Outermost middleware.

    Response body: {"error": GENERIC_MESSAGE, "error_id": "<uuid4>", "status": 500}
    With DEBUG on, "debug_hint" carries the exception class name and nothing more.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid.uuid4())
            logger.error(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                error=str(exc),
                traceback=traceback.format_exc(),
            )

            body: dict = {"error": GENERIC_MESSAGE, "error_id": error_id, "status": 500}
            if settings.debug:
                body["debug_hint"] = type(exc).__name__
            return JSONResponse(status_code=500, content=body)
