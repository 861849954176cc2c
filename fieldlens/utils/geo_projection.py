"""
Geodesic utilities backing the planar area approximation.
"""
from typing import Union, Sequence

from pyproj import Geod

from fieldlens.domain.models import Boundary, GeoPoint
from fieldlens.utils.geometry import (
    SQUARE_METERS_PER_HECTARE,
    extent_km,
)

# WGS84 ellipsoid
_GEOD = Geod(ellps="WGS84")


def geodesic_area_hectares(ring: Union[Boundary, Sequence[GeoPoint]]) -> float:
    """
    Calculate the ellipsoidal area of a ring in hectares.

    Args:
        ring: Boundary or sequence of GeoPoints (implicitly closed)

    Returns:
        Absolute area in hectares, 0 for fewer than 3 points
    """
    points = list(ring.points) if isinstance(ring, Boundary) else list(ring)
    if len(points) < 3:
        return 0.0

    lngs = [p.lng for p in points]
    lats = [p.lat for p in points]
    area, _ = _GEOD.polygon_area_perimeter(lngs, lats)
    return abs(area) / SQUARE_METERS_PER_HECTARE


def planar_area_is_reliable(
    ring: Union[Boundary, Sequence[GeoPoint]],
    max_extent_km: float,
    max_latitude: float,
) -> bool:
    """
    Check whether the equirectangular area approximation holds for a ring.

    Args:
        ring: Boundary or sequence of GeoPoints
        max_extent_km: Largest extent for which the approximation is trusted
        max_latitude: Highest absolute latitude for which it is trusted

    Returns:
        True if the ring lies within both limits
    """
    points = list(ring.points) if isinstance(ring, Boundary) else list(ring)
    if not points:
        return True
    if max(abs(p.lat) for p in points) > max_latitude:
        return False
    return extent_km(points) <= max_extent_km
