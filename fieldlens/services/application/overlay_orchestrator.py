"""
Application service: NDVI overlay lifecycle for the selected field.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from fieldlens.domain.exceptions import InvalidGeometry, RasterUnavailable
from fieldlens.domain.models import Boundary, BoundingBox, ClippedRaster, FieldRecord
from fieldlens.infrastructure.map_surface import MapSurface, MapSurfaceError
from fieldlens.services.domain.gradient_generator import GradientGenerator
from fieldlens.services.domain.raster_clipper import RasterClipper
from fieldlens.utils.geometry import bounding_box_of

logger = logging.getLogger(__name__)

FILL_LAYER_ID = "ndvi-image"
OUTLINE_LAYER_ID = "ndvi-outline"


class OverlayState(str, Enum):
    """Overlay lifecycle states."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FALLBACK = "fallback"
    STALE = "stale"


@dataclass
class OverlayOutcome:
    """Result of one field selection."""
    field_id: int
    state: OverlayState
    fill: Optional[ClippedRaster] = None
    bbox: Optional[BoundingBox] = None


class OverlayOrchestrator:
    """
    Application service installing a field's NDVI overlay on a map surface.

    Each selection removes the previous overlay, tries the real raster under a
    deadline and falls back to the synthetic gradient. The boundary outline is
    installed in both cases. A selection that is superseded while its raster is
    loading discards its result.
    """

    def __init__(
        self,
        map_surface: MapSurface,
        clipper: RasterClipper,
        generator: GradientGenerator,
        raster_timeout: float = 20.0,
        default_ndvi: float = 0.65,
        image_url_for: Optional[Callable[[int], str]] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            map_surface: Live map the layers are installed on
            clipper: Raster clipper for real imagery
            generator: Synthetic gradient generator for the fallback
            raster_timeout: Seconds to wait for the real raster
            default_ndvi: NDVI used for the gradient when a field has none
            image_url_for: Maps a field id to its raster URL (defaults to the
                clipper's provider client)
        """
        self.map_surface = map_surface
        self.clipper = clipper
        self.generator = generator
        self.raster_timeout = raster_timeout
        self.default_ndvi = default_ndvi
        self.image_url_for = image_url_for or clipper.client.field_image_url

        self.state = OverlayState.IDLE
        self._sequence = 0
        self._selection: Optional[Tuple[int, int]] = None
        self._installed: List[str] = []

    @property
    def selected_field_id(self) -> Optional[int]:
        return self._selection[0] if self._selection else None

    async def select_field(self, field: FieldRecord) -> OverlayOutcome:
        """
        Render the overlay for a newly selected field.

        This method orchestrates:
        1. Removing the overlay of the previous selection
        2. Fetching and clipping the real raster (bounded by the deadline)
        3. Falling back to the synthetic gradient on any raster failure,
           expected (RasterUnavailable, timeout) or not
        4. Installing fill and outline layers and fitting the map bounds

        Args:
            field: Field record supplied by the storage collaborator

        Returns:
            OverlayOutcome; ``STALE`` when a newer selection superseded this one
        """
        self._sequence += 1
        token = (field.id, self._sequence)
        self._selection = token
        self.state = OverlayState.IDLE
        self._remove_installed()

        if not field.boundary:
            logger.info(f"Field {field.id} has no boundary, overlay cleared")
            return OverlayOutcome(field_id=field.id, state=OverlayState.IDLE)

        try:
            boundary = Boundary(points=tuple(field.boundary))
        except InvalidGeometry as e:
            logger.warning(f"Field {field.id} has an invalid boundary: {e.message}")
            return OverlayOutcome(field_id=field.id, state=OverlayState.IDLE)
        bbox = bounding_box_of(boundary)

        self.state = OverlayState.LOADING
        fill = await self._load_raster(field.id, boundary, bbox)

        if self._selection != token:
            logger.info(f"Discarding stale overlay for field {field.id}")
            return OverlayOutcome(field_id=field.id, state=OverlayState.STALE)

        state = OverlayState.LOADED
        try:
            if fill is None:
                ndvi = field.current_ndvi if field.current_ndvi is not None else self.default_ndvi
                fill = self.generator.gradient_for(ndvi, boundary, bbox)
                state = OverlayState.FALLBACK
            self._install_fill(fill, bbox)
        finally:
            self._install_outline(boundary)
            self.map_surface.fit_bounds(bbox)

        self.state = state
        logger.info(f"Overlay for field {field.id} installed ({state.value})")
        return OverlayOutcome(field_id=field.id, state=state, fill=fill, bbox=bbox)

    def clear(self) -> None:
        """Remove the overlay and forget the current selection."""
        self._sequence += 1
        self._selection = None
        self._remove_installed()
        self.state = OverlayState.IDLE

    async def _load_raster(
        self,
        field_id: int,
        boundary: Boundary,
        bbox: BoundingBox,
    ) -> Optional[ClippedRaster]:
        try:
            url = self.image_url_for(field_id)
            return await asyncio.wait_for(
                self.clipper.clip_to_polygon(url, boundary, bbox),
                timeout=self.raster_timeout,
            )
        except RasterUnavailable as e:
            logger.warning(f"Raster unavailable for field {field_id}, using gradient: {e.message}")
        except asyncio.TimeoutError:
            logger.warning(
                f"Raster for field {field_id} timed out after {self.raster_timeout}s, using gradient"
            )
        except Exception as e:
            logger.warning(f"Raster for field {field_id} failed ({type(e).__name__}: {e}), using gradient")
        return None

    def _install_fill(self, fill: ClippedRaster, bbox: BoundingBox) -> None:
        self.map_surface.add_source(FILL_LAYER_ID, {
            "type": "image",
            "url": fill.data_url,
            "coordinates": bbox.with_min_span().corners(),
        })
        self._installed.append(FILL_LAYER_ID)
        self.map_surface.add_layer(
            FILL_LAYER_ID,
            "raster",
            FILL_LAYER_ID,
            {
                "raster-opacity": 0.95 if fill.source == "raster" else 1.0,
                "raster-fade-duration": 0,
            },
        )

    def _install_outline(self, boundary: Boundary) -> None:
        self.map_surface.add_source(OUTLINE_LAYER_ID, {
            "type": "geojson",
            "data": {
                "type": "Feature",
                "properties": {},
                "geometry": {"type": "Polygon", "coordinates": [boundary.closed_lnglat()]},
            },
        })
        self._installed.append(OUTLINE_LAYER_ID)
        self.map_surface.add_layer(
            OUTLINE_LAYER_ID,
            "line",
            OUTLINE_LAYER_ID,
            {"line-color": "#ffffff", "line-width": 2},
        )

    def _remove_installed(self) -> None:
        """Remove tracked layers and their sources; unknown ids are ignored."""
        for layer_id in reversed(self._installed):
            try:
                self.map_surface.remove_layer(layer_id)
            except MapSurfaceError:
                logger.debug(f"Layer {layer_id} already removed")
            try:
                self.map_surface.remove_source(layer_id)
            except MapSurfaceError:
                logger.debug(f"Source {layer_id} already removed")
        self._installed.clear()
