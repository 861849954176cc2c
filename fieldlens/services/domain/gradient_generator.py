"""
Domain service: synthetic NDVI raster used when real imagery is unavailable.
"""
import logging
import math
from typing import Optional

import numpy as np
from PIL import Image
from scipy.ndimage import zoom

from fieldlens.domain.models import Boundary, BoundingBox, ClippedRaster
from fieldlens.services.domain.ndvi_color_scale import color_for
from fieldlens.utils.geometry import bounding_box_of
from fieldlens.utils.raster_helpers import apply_mask, encode_png_data_url, polygon_mask

logger = logging.getLogger(__name__)

# Normalized radius (0 = center, 1 = corner) where the edge fade begins
_FADE_START = 0.7


class GradientGenerator:
    """
    Paints a radial gradient in the NDVI color of a field and clips it to
    the field boundary.

    The output is a pure function of its inputs: the texture noise is seeded
    from the bounding box, and the mask is the same one the raster clipper uses.
    """

    def __init__(
        self,
        edge_darkening: float = 0.2,
        noise_intensity: float = 0.1,
        default_size: int = 256,
    ):
        """
        Initialize the generator.

        Args:
            edge_darkening: Fraction the color darkens toward the corners
            noise_intensity: Amplitude of the block texture as a fraction of 255
            default_size: Width and height used when none is given
        """
        self.edge_darkening = edge_darkening
        self.noise_intensity = noise_intensity
        self.default_size = default_size

    def gradient_for(
        self,
        ndvi_value: Optional[float],
        boundary: Boundary,
        bbox: Optional[BoundingBox] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> ClippedRaster:
        """
        Generate a boundary-masked gradient raster.

        Args:
            ndvi_value: NDVI value driving the center color; None or NaN use
                the lowest band
            boundary: Field boundary in geographic coordinates
            bbox: Extent the canvas spans (defaults to the boundary's box)
            width: Canvas width in pixels
            height: Canvas height in pixels

        Returns:
            ClippedRaster holding a PNG data URL
        """
        width = width or self.default_size
        height = height or self.default_size
        bbox = (bbox or bounding_box_of(boundary)).with_min_span()

        rgb = self._paint(ndvi_value, width, height)
        rgb += self._texture(bbox, width, height)[:, :, np.newaxis]
        rgba = np.dstack([
            np.clip(rgb, 0, 255).astype(np.uint8),
            np.full((height, width), 255, dtype=np.uint8),
        ])

        mask = polygon_mask(boundary, bbox, (width, height))
        clipped = apply_mask(Image.fromarray(rgba), mask)

        logger.debug(f"Generated gradient {width}x{height} for NDVI {ndvi_value}")
        return ClippedRaster(
            data_url=encode_png_data_url(clipped),
            width=width,
            height=height,
            source="gradient",
        )

    def _paint(self, ndvi_value: Optional[float], width: int, height: int) -> np.ndarray:
        """Radial fade from the band color at the center to a darker edge."""
        center = np.array(color_for(ndvi_value).rgb, dtype=np.float64)
        edge = np.array(color_for(ndvi_value).darken(self.edge_darkening).rgb, dtype=np.float64)

        ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
        cx, cy = (width - 1) / 2, (height - 1) / 2
        radius = np.hypot((xs - cx) / max(cx, 1), (ys - cy) / max(cy, 1)) / math.sqrt(2)
        t = np.clip((radius - _FADE_START) / (1 - _FADE_START), 0.0, 1.0)[:, :, np.newaxis]
        return center * (1 - t) + edge * t

    def _texture(self, bbox: BoundingBox, width: int, height: int) -> np.ndarray:
        """Deterministic block noise imitating coarse satellite pixels."""
        block = max(4, min(12, width // 40))
        seed = int(abs(bbox.min_lng * 1000 + bbox.min_lat * 1000)) % 10000
        rng = np.random.default_rng(seed)

        coarse = rng.uniform(-0.5, 0.5, size=(math.ceil(height / block), math.ceil(width / block)))
        blocks = zoom(coarse, block, order=0)
        if blocks.shape[0] < height or blocks.shape[1] < width:
            blocks = np.pad(
                blocks,
                ((0, max(0, height - blocks.shape[0])), (0, max(0, width - blocks.shape[1]))),
                mode="edge",
            )
        return blocks[:height, :width] * self.noise_intensity * 255
