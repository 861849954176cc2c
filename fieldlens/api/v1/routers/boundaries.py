"""
API router for boundary import and measurement endpoints.
"""
from fastapi import APIRouter, Path, Request
from typing import Annotated

from fieldlens.api.dependencies import BoundaryImporterDep
from fieldlens.api.v1.models.responses import (
    CarCodeValidationResponse,
    MeasureRequest,
    MeasureResponse,
)
from fieldlens.config import settings
from fieldlens.domain.models import Boundary, CarImportResult
from fieldlens.services.domain.boundary_importer import validate_car_code
from fieldlens.utils.geo_projection import geodesic_area_hectares, planar_area_is_reliable
from fieldlens.utils.geometry import area_hectares, bounding_box_of, normalize_ring


router = APIRouter(
    prefix="/boundaries",
    tags=["boundaries"],
)


@router.post(
    "/import",
    response_model=CarImportResult,
    summary="Import a boundary from CAR GeoJSON",
    description="""
    Parse a cadastral GeoJSON export (Polygon, MultiPolygon, Feature or
    FeatureCollection) and return the field boundary with its declared attributes.

    For a MultiPolygon the part with the largest area is selected. Declared
    attributes are read from the common CAR export property names; the total
    area falls back to the computed planar area.

    Unusable documents return `success: false` with a user-facing `error`.
    """,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/geo+json": {"schema": {"type": "object"}},
                "application/json": {"schema": {"type": "object"}},
            },
        }
    },
    responses={
        429: {"description": "Rate limit exceeded"},
    },
)
async def import_boundary(
    request: Request,
    importer: BoundaryImporterDep,
) -> CarImportResult:
    """
    Import a boundary from the raw request body.

    Args:
        request: Incoming request carrying the GeoJSON document
        importer: CAR boundary importer (injected dependency)

    Returns:
        CarImportResult
    """
    body = await request.body()
    return importer.parse(body)


@router.post(
    "/measure",
    response_model=MeasureResponse,
    summary="Measure a boundary",
    responses={
        400: {"description": "Invalid boundary or unsupported coordinate format"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def measure_boundary(payload: MeasureRequest) -> MeasureResponse:
    """
    Compute area and extent of a boundary.

    Raises:
        UnsupportedCoordinateFormat: If a vertex cannot be read
        InvalidGeometry: If the ring has fewer than 3 points or is degenerate
    """
    boundary = Boundary(points=tuple(normalize_ring(payload.points)))
    bbox = bounding_box_of(boundary)

    return MeasureResponse(
        vertex_count=len(boundary),
        area_hectares=area_hectares(boundary),
        geodesic_area_hectares=geodesic_area_hectares(boundary),
        planar_reliable=planar_area_is_reliable(
            boundary,
            settings.max_planar_extent_km,
            settings.max_planar_latitude,
        ),
        bbox=bbox,
        corners=bbox.corners(),
    )


@router.get(
    "/car-code/{code}/validate",
    response_model=CarCodeValidationResponse,
    summary="Validate a CAR code",
)
async def validate_code(
    code: Annotated[str, Path(description="CAR registration code")],
) -> CarCodeValidationResponse:
    """Check that a CAR code has the registry's format."""
    return CarCodeValidationResponse(code=code, valid=validate_car_code(code))
