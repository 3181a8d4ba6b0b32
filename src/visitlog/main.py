"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from visitlog import __version__
from visitlog.config import get_settings
from visitlog.db.engine import dispose_engine, init_db
from visitlog.routers import agents, auth, dashboard, health, provisioning, purposes, visits
from visitlog.services.identity_service import IdentityServiceError
from visitlog.services.provisioning import ProvisioningError
from visitlog.services.slots import StaleSlotError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.environment == "development" else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "Starting visit log API v%s in %s mode (%s identity)",
        __version__,
        settings.environment,
        settings.identity_backend,
    )

    # Reject insecure default secrets in production
    settings.validate_production()

    # Create tables (for SQLite dev mode; production uses Alembic migrations)
    if settings.environment == "development":
        await init_db()
        logger.info("Database tables created/verified")

    yield

    # Shutdown
    await dispose_engine()
    logger.info("Visit log API shut down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    docs_url = "/docs" if settings.environment == "development" else None
    redoc_url = "/redoc" if settings.environment == "development" else None
    openapi_url = "/openapi.json" if settings.environment == "development" else None

    app = FastAPI(
        title="Visit Log API",
        description="Visitor logging, statistics and account administration",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )

    # Clients authenticate with a bearer header, never cookies
    origins = [o.strip() for o in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response

    @app.exception_handler(ProvisioningError)
    async def provisioning_error_handler(request: Request, exc: ProvisioningError):
        logger.info("Rejected %s: %s", request.url.path, exc.reason)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.reason})

    @app.exception_handler(StaleSlotError)
    async def stale_slot_handler(request: Request, exc: StaleSlotError):
        logger.warning("Concurrent write to slot %s rejected", exc.key)
        return JSONResponse(
            status_code=409,
            content={"detail": "The data changed while saving; reload and retry"},
        )

    @app.exception_handler(IdentityServiceError)
    async def identity_service_handler(request: Request, exc: IdentityServiceError):
        logger.error("Identity service call failed: %s", exc.message)
        return JSONResponse(status_code=502, content={"detail": exc.message})

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(visits.router)
    app.include_router(dashboard.router)
    app.include_router(purposes.router)
    app.include_router(agents.router)
    app.include_router(provisioning.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "visitlog.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
