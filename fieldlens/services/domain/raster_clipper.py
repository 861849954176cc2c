"""
Domain service: clip a remote NDVI raster to a field boundary.

The source image is fetched, decoded, scaled onto a canvas spanning the
boundary's bounding box and masked so that only pixels inside the boundary
remain visible.
"""
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from fieldlens.domain.exceptions import RasterUnavailable
from fieldlens.domain.models import Boundary, BoundingBox, ClippedRaster
from fieldlens.infrastructure.raster_provider_client import (
    RasterProviderClient,
    RasterProviderError,
)
from fieldlens.utils.geometry import bounding_box_of
from fieldlens.utils.raster_helpers import (
    apply_mask,
    encode_png_data_url,
    polygon_mask,
    render_size,
)

logger = logging.getLogger(__name__)


class RasterClipper:
    """
    Domain service producing boundary-masked copies of remote rasters.

    Any failure along the way (network, non-image payload, decode error,
    zero-area bounding box) is reported as RasterUnavailable, which callers
    treat as an expected degradation rather than a fatal error.
    """

    def __init__(
        self,
        client: RasterProviderClient,
        upscale_factor: int = 8,
        min_render_size: int = 256,
        max_render_size: int = 2048,
    ):
        """
        Initialize the clipper.

        Args:
            client: Raster provider client used to fetch image bytes
            upscale_factor: Nearest-neighbour upscale applied to the source
            min_render_size: Minimum length of the longest canvas side
            max_render_size: Maximum length of the longest canvas side
        """
        self.client = client
        self.upscale_factor = upscale_factor
        self.min_render_size = min_render_size
        self.max_render_size = max_render_size

    async def clip_to_polygon(
        self,
        image_url: str,
        boundary: Boundary,
        bbox: Optional[BoundingBox] = None,
    ) -> ClippedRaster:
        """
        Fetch an image and mask it to a boundary.

        Args:
            image_url: Location of the source raster
            boundary: Field boundary in geographic coordinates
            bbox: Geographic extent of the source image (defaults to the
                boundary's bounding box)

        Returns:
            ClippedRaster holding a PNG data URL

        Raises:
            RasterUnavailable: If the raster cannot be fetched, decoded or placed
        """
        if bbox is None:
            bbox = bounding_box_of(boundary)
        if bbox.is_degenerate:
            raise RasterUnavailable("Cannot place raster on a zero-area bounding box")
        bbox = bbox.with_min_span()

        try:
            payload = await self.client.fetch_image(image_url)
        except RasterProviderError as e:
            raise RasterUnavailable(f"Raster fetch failed: {e.message}") from e

        source = self._decode(payload)
        logger.debug(f"Decoded source raster {source.size[0]}x{source.size[1]} ({source.mode})")

        size = render_size(
            source.size,
            self.upscale_factor,
            self.min_render_size,
            self.max_render_size,
        )
        try:
            canvas = source.convert("RGBA").resize(size, resample=Image.NEAREST)
            mask = polygon_mask(boundary, bbox, size)
            data_url = encode_png_data_url(apply_mask(canvas, mask))
        except (OSError, ValueError, MemoryError) as e:
            raise RasterUnavailable(f"Raster could not be rendered: {e}") from e

        logger.info(f"Clipped raster {size[0]}x{size[1]}, {int(mask.sum())} pixels inside boundary")
        return ClippedRaster(
            data_url=data_url,
            width=size[0],
            height=size[1],
            source="raster",
        )

    @staticmethod
    def _decode(payload: bytes) -> Image.Image:
        """Decode image bytes, mapping every Pillow failure to RasterUnavailable."""
        if not payload:
            raise RasterUnavailable("Raster provider returned an empty body")
        try:
            image = Image.open(io.BytesIO(payload))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise RasterUnavailable(f"Raster could not be decoded: {e}") from e
        if image.size[0] == 0 or image.size[1] == 0:
            raise RasterUnavailable("Raster has zero size")
        return image
