"""
Raster helper functions.

Provides utilities for:
- Geographic to pixel coordinate mapping
- Polygon pixel masks
- Mask application and PNG data URL encoding
"""
import base64
import io
import logging
from typing import Sequence, Union

import numpy as np
from PIL import Image, ImageDraw

from fieldlens.domain.models import Boundary, BoundingBox, GeoPoint

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/png;base64,"


def to_pixel_coords(
    ring: Union[Boundary, Sequence[GeoPoint]],
    bbox: BoundingBox,
    width: int,
    height: int,
) -> list[tuple[float, float]]:
    """
    Map geographic vertices to canvas pixel coordinates.

    Latitude grows northward while pixel rows grow downward, so the vertical
    axis is flipped.

    Args:
        ring: Boundary or sequence of GeoPoints
        bbox: Box spanning the canvas; must not be degenerate
        width: Canvas width in pixels
        height: Canvas height in pixels

    Returns:
        List of (x, y) pixel coordinates
    """
    points = ring.points if isinstance(ring, Boundary) else ring
    lng_range = bbox.max_lng - bbox.min_lng
    lat_range = bbox.max_lat - bbox.min_lat
    return [
        (
            (p.lng - bbox.min_lng) / lng_range * width,
            (bbox.max_lat - p.lat) / lat_range * height,
        )
        for p in points
    ]


def polygon_mask(
    ring: Union[Boundary, Sequence[GeoPoint]],
    bbox: BoundingBox,
    size: tuple[int, int],
) -> np.ndarray:
    """
    Build the boolean pixel mask of a ring.

    The mask depends only on ``(ring, bbox, size)``; every raster placed on a
    field goes through this function so real and synthetic imagery cover
    exactly the same pixels.

    Args:
        ring: Boundary or sequence of GeoPoints (implicitly closed)
        bbox: Box spanning the canvas
        size: (width, height) in pixels

    Returns:
        Array of shape (height, width), True inside the ring
    """
    width, height = size
    pixels = to_pixel_coords(ring, bbox, width, height)

    canvas = Image.new("L", (width, height), 0)
    if len(pixels) >= 3:
        ImageDraw.Draw(canvas).polygon(pixels, fill=255, outline=255)
    return np.asarray(canvas) > 0


def apply_mask(image: Image.Image, mask: np.ndarray) -> Image.Image:
    """
    Make every pixel outside ``mask`` fully transparent.

    Pixels inside the mask keep their color and alpha untouched.
    """
    rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
    rgba[~mask] = 0
    return Image.fromarray(rgba)


def encode_png_data_url(image: Image.Image) -> str:
    """Serialize an image to a PNG data URL."""
    buf = io.BytesIO()
    image.save(buf, format="PNG", optimize=True)
    return DATA_URL_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")


def decode_data_url(data_url: str) -> Image.Image:
    """Load an image back from a PNG data URL."""
    if not data_url.startswith(DATA_URL_PREFIX):
        raise ValueError("Not a PNG data URL")
    payload = base64.b64decode(data_url[len(DATA_URL_PREFIX):])
    image = Image.open(io.BytesIO(payload))
    image.load()
    return image


def opaque_pixels(image: Image.Image) -> np.ndarray:
    """Boolean array, True where the image alpha is non-zero."""
    return np.asarray(image.convert("RGBA"))[:, :, 3] > 0


def render_size(
    natural_size: tuple[int, int],
    upscale_factor: int,
    min_side: int,
    max_side: int,
) -> tuple[int, int]:
    """
    Choose the canvas size for a source raster.

    The natural size is scaled by ``upscale_factor`` and then clamped so that
    the longest side lies in [min_side, max_side], keeping the aspect ratio.
    """
    width, height = natural_size
    longest = max(width, height) * max(1, upscale_factor)
    target = min(max(longest, min_side), max_side)
    scale = target / max(width, height)
    size = (max(1, round(width * scale)), max(1, round(height * scale)))
    logger.debug(f"Render size {natural_size} -> {size}")
    return size
