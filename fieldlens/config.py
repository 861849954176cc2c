"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Raster Provider Configuration
    raster_provider_base_url: str = Field(
        default="https://api.example.com",
        description="Base URL for the NDVI raster provider"
    )
    raster_provider_api_key: str = Field(
        default="",
        description="API key for authentication against the raster provider"
    )
    raster_palette: str = Field(
        default="onesoil",
        description="Color palette requested from the raster provider"
    )
    raster_request_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for a single raster request"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for raster provider calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=1,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=5,
        description="Maximum wait time in seconds between retries"
    )

    # Overlay Rendering Parameters
    raster_timeout_seconds: float = Field(
        default=20.0,
        description="Deadline for the real raster before falling back to the synthetic gradient"
    )
    raster_upscale_factor: int = Field(
        default=8,
        description="Nearest-neighbour upscale applied to the source raster before clipping"
    )
    raster_min_render_size: int = Field(
        default=256,
        description="Minimum length in pixels of the longest side of a clipped raster"
    )
    raster_max_render_size: int = Field(
        default=2048,
        description="Maximum length in pixels of the longest side of a clipped raster"
    )
    gradient_size: int = Field(
        default=256,
        description="Width and height in pixels of the synthetic gradient raster"
    )
    gradient_edge_darkening: float = Field(
        default=0.2,
        description="Fraction by which the gradient color darkens toward the edges"
    )
    default_ndvi_value: float = Field(
        default=0.65,
        description="NDVI used for the synthetic gradient when a field has no reading"
    )

    # Planar Area Validity Range
    max_planar_extent_km: float = Field(
        default=10.0,
        description="Largest ring extent for which the planar area is trusted"
    )
    max_planar_latitude: float = Field(
        default=60.0,
        description="Highest absolute latitude for which the planar area is trusted"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="FieldLens",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
