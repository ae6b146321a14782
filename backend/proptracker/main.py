"""FastAPI application entrypoint for the prop tracker query API."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from proptracker.api.v1 import health, props
from proptracker.api.v1.health import VERSION
from proptracker.core.config import settings
from proptracker.core.logging import configure_logging
from proptracker.db.session import dispose_engine

# Configure logging
configure_logging(settings.ENVIRONMENT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting prop tracker API")
    # Schema is managed by Alembic migrations
    yield
    dispose_engine()
    logger.info("Shutting down prop tracker API")


def create_application() -> FastAPI:
    """Instantiate the FastAPI application with middleware and routers."""
    app = FastAPI(
        title="Prop Tracker API",
        description="Historical player-prop lines, odds and hit rates by date and category.",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=1_000)

    # Health and meta endpoints (not versioned)
    app.include_router(health.router, tags=["health"])

    app.include_router(props.router, prefix="/api/v1/props", tags=["props"])

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "message": "Prop Tracker API",
            "version": VERSION,
            "api_version": "v1",
            "docs": "/docs",
        }

    return app


app = create_application()
