"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from fieldlens.config import settings
from fieldlens.infrastructure.raster_provider_client import close_raster_client
from fieldlens.middleware.error_handler import ErrorHandlerMiddleware
from fieldlens.api.v1.routers import boundaries, ndvi, overlays

API_PREFIX = "/api/v1"

DESCRIPTION = """
Field Boundary and NDVI Overlay API

Imports and measures farm field boundaries and renders NDVI overlays clipped
exactly to each field's shape.

## Features

- **Boundary Import**: CAR (Cadastro Ambiental Rural) GeoJSON exports, main
  parcel selection and declared attributes
- **Area Measurement**: planar area for field-sized polygons with a geodesic
  cross-check
- **Raster Clipping**: remote NDVI imagery masked to the field boundary
- **Synthetic Fallback**: gradient in the field's NDVI color when imagery is
  unavailable, covering the same pixels as the real raster
- **Color Scale**: one NDVI band table for overlays and legends
"""


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Rate limiter applied to every route
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_requests}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Logs the effective overlay configuration on startup and releases the
    shared raster provider connection pool on shutdown.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version} (log level {settings.log_level})")
    logger.info(
        f"Raster provider {settings.raster_provider_base_url}, palette={settings.raster_palette}, "
        f"deadline={settings.raster_timeout_seconds}s, upscale={settings.raster_upscale_factor}x"
    )
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    logger.info("Closing raster provider client...")
    await close_raster_client()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Middleware order, outermost first: error handling, CORS, rate limiting.
    """
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )

    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    application.add_middleware(SlowAPIMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(ErrorHandlerMiddleware)

    for router in (boundaries.router, ndvi.router, overlays.router):
        application.include_router(router, prefix=API_PREFIX)

    @application.get("/", tags=["health"])
    async def root():
        """Service identity and status."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @application.get("/health", tags=["health"])
    async def health_check():
        """Liveness probe."""
        return {"status": "healthy", "service": settings.app_name}

    return application


app = create_app()
