"""
Error taxonomy shared by services and routes.

Services raise these; the API layer turns them into JSON responses.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog


class FacilityError(Exception):
    """Base class for errors that map to a client-facing HTTP status."""
    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class NotFoundError(FacilityError):
    status_code = 404


class ValidationError(FacilityError):
    status_code = 400


class ConflictError(FacilityError):
    status_code = 409


class AuthorizationError(FacilityError):
    status_code = 403


async def _facility_error_handler(request: Request, exc: FacilityError) -> JSONResponse:
    structlog.get_logger(__name__).info(
        "request_failed",
        error=type(exc).__name__,
        detail=exc.message,
        path=request.url.path,
    )
    body = {"detail": exc.message}
    if exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FacilityError, _facility_error_handler)
