"""Error taxonomy shared by the core components.

``NotFoundError`` and ``ValidationError`` carry enough detail for the
caller to act on. ``InternalError`` is reported generically; its cause is
logged and never returned to the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors raised by the core components."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    """A referenced webhook, request or blob does not exist (or is not owned)."""

    status_code = 404

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class ValidationError(AppError):
    """Input outside declared ranges, sizes or types."""

    status_code = 422

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InternalError(AppError):
    """Storage or backend fault not attributable to the caller."""

    status_code = 500


async def app_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, AppError)
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    content: dict[str, object] = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
