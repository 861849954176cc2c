"""
API request and response models using Pydantic.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from fieldlens.domain.models import BoundingBox, GeoPoint
from fieldlens.services.application.overlay_orchestrator import OverlayState


class MeasureRequest(BaseModel):
    """Boundary to measure."""
    points: List[Any] = Field(
        description="Ring as [lng, lat] pairs or {lat, lng} / {latitude, longitude} objects"
    )


class MeasureResponse(BaseModel):
    """Area and extent of a boundary."""
    vertex_count: int
    area_hectares: float = Field(description="Planar (equirectangular) area in hectares")
    geodesic_area_hectares: float = Field(description="Ellipsoidal WGS84 area in hectares")
    planar_reliable: bool = Field(
        description="Whether the boundary lies within the planar approximation range"
    )
    bbox: BoundingBox
    corners: List[List[float]] = Field(
        description="Image placement corners: top-left, top-right, bottom-right, bottom-left"
    )


class CarCodeValidationResponse(BaseModel):
    """Result of a CAR code format check."""
    code: str
    valid: bool


class OverlayRequest(BaseModel):
    """Field data needed to render its overlay."""
    boundary: Optional[List[GeoPoint]] = None
    current_ndvi: Optional[float] = None

    class Config:
        json_schema_extra = {
            "example": {
                "boundary": [
                    {"lat": -15.601, "lng": -56.101},
                    {"lat": -15.601, "lng": -56.091},
                    {"lat": -15.611, "lng": -56.091},
                    {"lat": -15.611, "lng": -56.101},
                ],
                "current_ndvi": 0.62,
            }
        }


class OverlayResponse(BaseModel):
    """Rendered overlay for a field."""
    field_id: int
    state: OverlayState
    fill_source: Optional[str] = Field(
        default=None,
        description="'raster' for real imagery, 'gradient' for the synthetic fallback"
    )
    width: Optional[int] = None
    height: Optional[int] = None
    style: Dict[str, Any] = Field(
        description="Map sources, layers and bounds to install on the client map"
    )
