"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends

from fieldlens.config import settings
from fieldlens.infrastructure.map_surface import InMemoryMapSurface
from fieldlens.infrastructure.raster_provider_client import (
    RasterProviderClient,
    get_raster_client,
)
from fieldlens.services.application.overlay_orchestrator import OverlayOrchestrator
from fieldlens.services.domain.boundary_importer import CarBoundaryImporter
from fieldlens.services.domain.gradient_generator import GradientGenerator
from fieldlens.services.domain.raster_clipper import RasterClipper


def get_boundary_importer() -> CarBoundaryImporter:
    """
    Dependency factory for CarBoundaryImporter.

    Returns:
        CarBoundaryImporter instance
    """
    return CarBoundaryImporter(
        max_planar_extent_km=settings.max_planar_extent_km,
        max_planar_latitude=settings.max_planar_latitude,
    )


def get_raster_clipper(
    client: Annotated[RasterProviderClient, Depends(get_raster_client)],
) -> RasterClipper:
    """
    Dependency factory for RasterClipper.

    Args:
        client: Raster provider client (injected)

    Returns:
        RasterClipper instance
    """
    return RasterClipper(
        client=client,
        upscale_factor=settings.raster_upscale_factor,
        min_render_size=settings.raster_min_render_size,
        max_render_size=settings.raster_max_render_size,
    )


def get_gradient_generator() -> GradientGenerator:
    """
    Dependency factory for GradientGenerator.

    Returns:
        GradientGenerator instance
    """
    return GradientGenerator(
        edge_darkening=settings.gradient_edge_darkening,
        default_size=settings.gradient_size,
    )


def get_overlay_orchestrator(
    clipper: Annotated[RasterClipper, Depends(get_raster_clipper)],
    generator: Annotated[GradientGenerator, Depends(get_gradient_generator)],
) -> OverlayOrchestrator:
    """
    Dependency factory for OverlayOrchestrator.

    Each request renders onto its own in-memory map surface whose snapshot is
    returned to the client.

    Args:
        clipper: Raster clipper (injected)
        generator: Gradient generator (injected)

    Returns:
        OverlayOrchestrator instance
    """
    return OverlayOrchestrator(
        map_surface=InMemoryMapSurface(),
        clipper=clipper,
        generator=generator,
        raster_timeout=settings.raster_timeout_seconds,
        default_ndvi=settings.default_ndvi_value,
    )


# Type aliases for cleaner route signatures
BoundaryImporterDep = Annotated[CarBoundaryImporter, Depends(get_boundary_importer)]
OverlayOrchestratorDep = Annotated[OverlayOrchestrator, Depends(get_overlay_orchestrator)]
