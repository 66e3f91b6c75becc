import uuid
import logging
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .config import settings


# First path segment -> audited resource name
AUDITED_RESOURCES = {
    "users": "user",
    "buildings": "building",
    "floors": "floor",
    "rooms": "room",
    "storage": "storage",
    "assets": "asset",
    "deployments": "deployment",
    "schedules": "schedule",
    "tickets": "ticket",
    "attendance": "attendance",
}

METHOD_ACTIONS = {
    "GET": "READ",
    "POST": "CREATE",
    "PUT": "UPDATE",
    "PATCH": "UPDATE",
    "DELETE": "DELETE",
}


def setup_logging() -> None:
    level = settings.log_level.upper()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def resource_from_path(path: str):
    """Return (resource, resource_id) for audited paths, else (None, None)."""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return None, None
    resource = AUDITED_RESOURCES.get(segments[0].lower())
    if resource is None:
        return None, None
    return resource, "/".join(segments[1:]) or "all"


class AuditMiddleware(BaseHTTPMiddleware):
    """Emit one structured event per audited API call and one for its outcome."""

    async def dispatch(self, request: Request, call_next):
        resource, resource_id = resource_from_path(request.url.path)
        if resource is None:
            return await call_next(request)

        log = structlog.get_logger("facilityhub.audit")
        action = METHOD_ACTIONS.get(request.method, "READ")
        log.info(
            "api_request",
            action=action,
            resource=resource,
            resource_id=resource_id,
            method=request.method,
            path=request.url.path,
            user_agent=request.headers.get("user-agent"),
        )
        response: Response = await call_next(request)
        user_id = getattr(request.state, "user_id", None) or "anonymous"
        event = "api_response" if response.status_code < 400 else "api_error"
        log.info(
            event,
            action=action,
            resource=resource,
            resource_id=resource_id,
            user=user_id,
            status=response.status_code,
        )
        return response
