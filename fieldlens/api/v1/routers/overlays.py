"""
API router for field overlay rendering.
"""
from fastapi import APIRouter, Path
from typing import Annotated

from fieldlens.api.dependencies import OverlayOrchestratorDep
from fieldlens.api.v1.models.responses import OverlayRequest, OverlayResponse
from fieldlens.domain.models import FieldRecord


router = APIRouter(
    prefix="/fields",
    tags=["overlays"],
)


@router.post(
    "/{field_id}/overlay",
    response_model=OverlayResponse,
    summary="Render the NDVI overlay of a field",
    description="""
    Render the NDVI fill and boundary outline of a field as map sources and layers.

    The real NDVI raster is fetched from the raster provider and clipped to the
    boundary. When it is unavailable or too slow, a synthetic gradient in the
    field's NDVI color is clipped to the same pixels instead. The outline is
    always included.
    """,
    responses={
        200: {
            "description": "Overlay rendered",
            "content": {
                "application/json": {
                    "example": {
                        "field_id": 42,
                        "state": "fallback",
                        "fill_source": "gradient",
                        "width": 256,
                        "height": 256,
                        "style": {
                            "sources": {"ndvi-image": {"type": "image"}},
                            "layers": [{"id": "ndvi-image", "type": "raster"}],
                            "bounds": [[-56.101, -15.611], [-56.091, -15.601]],
                        },
                    }
                }
            }
        },
        429: {"description": "Rate limit exceeded"},
    }
)
async def render_overlay(
    field_id: Annotated[int, Path(description="Unique identifier for the field")],
    payload: OverlayRequest,
    orchestrator: OverlayOrchestratorDep,
) -> OverlayResponse:
    """
    Render the overlay of a field.

    Args:
        field_id: Unique identifier for the field
        payload: Boundary and latest NDVI of the field
        orchestrator: Overlay orchestrator (injected dependency)

    Returns:
        OverlayResponse with the resulting map style fragment
    """
    field = FieldRecord(id=field_id, boundary=payload.boundary, current_ndvi=payload.current_ndvi)
    outcome = await orchestrator.select_field(field)

    return OverlayResponse(
        field_id=field_id,
        state=outcome.state,
        fill_source=outcome.fill.source if outcome.fill else None,
        width=outcome.fill.width if outcome.fill else None,
        height=outcome.fill.height if outcome.fill else None,
        style=orchestrator.map_surface.snapshot(),
    )
