"""
API router for the NDVI color scale.
"""
from fastapi import APIRouter, Query
from typing import Annotated, List

from fieldlens.services.domain.ndvi_color_scale import LegendEntry, NdviSample, legend


router = APIRouter(
    prefix="/ndvi",
    tags=["ndvi"],
)


@router.get(
    "/color",
    response_model=NdviSample,
    summary="Color of an NDVI value",
)
async def get_color(
    value: Annotated[float, Query(description="NDVI value; out-of-range values clamp")],
) -> NdviSample:
    """Return the band and display color of an NDVI value."""
    return NdviSample(value=value)


@router.get(
    "/legend",
    response_model=List[LegendEntry],
    summary="NDVI legend",
)
async def get_legend() -> List[LegendEntry]:
    """Return the band thresholds and colors for legend swatches."""
    return legend()
