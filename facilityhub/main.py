import os

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import Base, engine, SessionLocal
from .errors import register_error_handlers
from .logging import setup_logging, RequestIdMiddleware, AuditMiddleware
from .services.permission_catalog import seed_permission_catalog
from .routes.users import router as users_router
from .routes.permissions import router as permissions_router
from .routes.buildings import router as buildings_router
from .routes.floors import router as floors_router
from .routes.rooms import router as rooms_router
from .routes.assets import router as assets_router
from .routes.storage import router as storage_router
from .routes.deployments import router as deployments_router
from .routes.schedules import router as schedules_router
from .routes.tickets import router as tickets_router
from .routes.attendance import router as attendance_router


log = structlog.get_logger(__name__)


def init_db() -> None:
    """Create missing tables and make sure the permission catalog is seeded."""
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        count = seed_permission_catalog(db)
        log.info("permission_catalog_seeded", permissions=count)
    finally:
        db.close()


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(AuditMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    register_error_handlers(app)

    # Routers
    app.include_router(users_router)
    app.include_router(permissions_router)
    app.include_router(buildings_router)
    app.include_router(floors_router)
    app.include_router(rooms_router)
    app.include_router(assets_router)
    app.include_router(storage_router)
    app.include_router(deployments_router)
    app.include_router(schedules_router)
    app.include_router(tickets_router)
    app.include_router(attendance_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.environment}

    @app.on_event("startup")
    def _startup():
        log.info("startup", app=settings.app_name, environment=settings.environment)
        if settings.auto_create_db:
            init_db()

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the API on the configured host and port."""
    uvicorn.run("facilityhub.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
