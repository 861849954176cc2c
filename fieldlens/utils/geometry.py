"""
Planar geometry utilities for field boundaries.

Provides:
- Coordinate normalization from the encodings found in GeoJSON and client payloads
- Bounding box computation
- Local equirectangular area approximation (shoelace formula)
"""
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Union

from fieldlens.domain.exceptions import InvalidGeometry, UnsupportedCoordinateFormat
from fieldlens.domain.models import Boundary, BoundingBox, GeoPoint

logger = logging.getLogger(__name__)

# Meters per degree used by the local tangent-plane projection
METERS_PER_DEGREE_LNG_AT_EQUATOR = 111320.0
METERS_PER_DEGREE_LAT = 110540.0

SQUARE_METERS_PER_HECTARE = 10000.0

# Key pairs accepted for mapping-encoded points, in order of precedence
_MAPPING_KEYS = (
    ("lat", "lng"),
    ("lat", "lon"),
    ("latitude", "longitude"),
)

Ring = Union[Boundary, Sequence[GeoPoint]]


def _points(ring: Ring) -> list[GeoPoint]:
    if isinstance(ring, Boundary):
        return list(ring.points)
    return list(ring)


def _is_number(value) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def parse_point(raw) -> GeoPoint:
    """
    Parse a single coordinate entry.

    Supported encodings:
        - ``[lng, lat]`` sequence (extra elements such as altitude are ignored)
        - ``{"lat": .., "lng": ..}``, ``{"lat": .., "lon": ..}``
        - ``{"latitude": .., "longitude": ..}``

    Raises:
        UnsupportedCoordinateFormat: If the entry matches none of the encodings
    """
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) >= 2 and _is_number(raw[0]) and _is_number(raw[1]):
            return GeoPoint(lng=float(raw[0]), lat=float(raw[1]))
    elif isinstance(raw, Mapping):
        for lat_key, lng_key in _MAPPING_KEYS:
            if _is_number(raw.get(lat_key)) and _is_number(raw.get(lng_key)):
                return GeoPoint(lat=float(raw[lat_key]), lng=float(raw[lng_key]))
    raise UnsupportedCoordinateFormat(f"Unsupported coordinate format: {raw!r}")


def normalize_ring(points, lenient: bool = False) -> list[GeoPoint]:
    """
    Normalize a ring of raw coordinate entries into GeoPoints.

    Args:
        points: Sequence of coordinate entries (see ``parse_point``)
        lenient: Replace malformed individual entries with (0, 0) instead of
            failing, so one bad vertex does not abort an otherwise valid ring

    Returns:
        List of GeoPoints in input order

    Raises:
        UnsupportedCoordinateFormat: If ``points`` is not a sequence, if any entry
            is malformed in strict mode, or if no entry is recognizable at all
    """
    normalized, _ = parse_ring(points, lenient=lenient)
    return normalized


def parse_ring(points, lenient: bool = False) -> tuple[list[GeoPoint], int]:
    """
    Same as ``normalize_ring`` but also reports how many entries were defaulted.

    Returns:
        Tuple of (points, number of entries replaced by (0, 0))
    """
    if not isinstance(points, Sequence) or isinstance(points, (str, bytes, Mapping)):
        raise UnsupportedCoordinateFormat(
            f"Unsupported ring format: expected a list of coordinates, got {type(points).__name__}"
        )

    normalized = []
    defaulted = 0
    for raw in points:
        try:
            normalized.append(parse_point(raw))
        except UnsupportedCoordinateFormat:
            if not lenient:
                raise
            defaulted += 1
            normalized.append(GeoPoint(lat=0.0, lng=0.0))

    if normalized and defaulted == len(normalized):
        raise UnsupportedCoordinateFormat("Unsupported coordinate format: no readable coordinates in ring")
    if defaulted:
        logger.warning(f"Defaulted {defaulted}/{len(normalized)} malformed coordinate(s) to (0, 0)")
    return normalized, defaulted


def bounding_box_of(ring: Ring) -> BoundingBox:
    """
    Compute the bounding box of a boundary.

    Raises:
        InvalidGeometry: If the ring has fewer than 3 points
    """
    points = _points(ring)
    if len(points) < 3:
        raise InvalidGeometry(f"Invalid boundary: {len(points)} point(s), at least 3 are required")

    lngs = [p.lng for p in points]
    lats = [p.lat for p in points]
    return BoundingBox(
        min_lng=min(lngs),
        max_lng=max(lngs),
        min_lat=min(lats),
        max_lat=max(lats),
    )


def project_to_local_meters(ring: Ring) -> list[tuple[float, float]]:
    """
    Project a ring to planar meters around its first vertex.

    Uses an equirectangular approximation; valid for field-sized extents.
    """
    points = _points(ring)
    if not points:
        return []

    ref = points[0]
    meters_per_degree_lng = METERS_PER_DEGREE_LNG_AT_EQUATOR * math.cos(math.radians(ref.lat))
    return [
        ((p.lng - ref.lng) * meters_per_degree_lng, (p.lat - ref.lat) * METERS_PER_DEGREE_LAT)
        for p in points
    ]


def signed_area_m2(ring: Ring) -> float:
    """Signed shoelace area in square meters (positive for counter-clockwise rings)."""
    projected = project_to_local_meters(ring)
    n = len(projected)
    if n < 3:
        return 0.0

    total = 0.0
    for i in range(n):
        x1, y1 = projected[i]
        x2, y2 = projected[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2


def area_hectares(ring: Ring) -> float:
    """
    Planar area of a ring in hectares.

    Degenerate rings (fewer than 3 points, collinear or coincident) yield 0.
    The value is independent of winding direction.
    """
    return abs(signed_area_m2(ring)) / SQUARE_METERS_PER_HECTARE


def is_degenerate(ring: Ring, min_area_m2: float = 1e-6) -> bool:
    """True when the ring encloses (practically) no area."""
    return abs(signed_area_m2(ring)) < min_area_m2


def extent_km(ring: Ring) -> float:
    """Largest planar extent of the ring in kilometers."""
    projected = project_to_local_meters(ring)
    if not projected:
        return 0.0
    xs = [x for x, _ in projected]
    ys = [y for _, y in projected]
    return max(max(xs) - min(xs), max(ys) - min(ys)) / 1000
