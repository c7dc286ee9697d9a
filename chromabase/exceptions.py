"""Custom exceptions and FastAPI exception handlers."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(self, error: str, message: str, status_code: int = 400, details: dict | None = None):
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__("VALIDATION_ERROR", message, 400, details)


class PersistenceError(AppError):
    """The document store rejected or failed an operation."""

    def __init__(self, message: str, details: dict | None = None, status_code: int = 502):
        super().__init__("PERSISTENCE_ERROR", message, status_code, details)


class NotFoundError(PersistenceError):
    def __init__(self, message: str = "Not found", details: dict | None = None):
        super().__init__(message, details, status_code=404)
        self.error = "NOT_FOUND"


class DeliveryError(Exception):
    """A single webhook delivery attempt failed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class BroadcastError(Exception):
    """A live subscriber channel can no longer accept frames."""


def error_body(message: str) -> dict:
    return {"status": "error", "message": message}


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""

    def _status(request: Request, status_code: int) -> int:
        if request.app.state.settings.conventional_status_codes:
            return status_code
        return 200

    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        body = error_body(exc.message)
        if exc.details:
            body["details"] = exc.details
        return JSONResponse(status_code=_status(request, exc.status_code), content=body)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=_status(request, 422),
            content=error_body("Invalid request body"),
        )
