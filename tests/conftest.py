"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample boundaries (field-sized squares and triangles)
- Sample CAR GeoJSON documents
- PNG image factory
- Fake raster clipper
- FastAPI test client
"""
import asyncio
import io
import math
import pytest
from types import SimpleNamespace
from typing import Callable, Optional
from fastapi.testclient import TestClient
from PIL import Image

from fieldlens.main import app
from fieldlens.domain.exceptions import RasterUnavailable
from fieldlens.domain.models import BoundingBox, ClippedRaster, GeoPoint
from fieldlens.utils.geometry import METERS_PER_DEGREE_LAT, METERS_PER_DEGREE_LNG_AT_EQUATOR


# ============================================================
# Geometry Helpers
# ============================================================

def square_lnglat(lat: float, lng: float, side_m: float) -> list[list[float]]:
    """Closed square ring ([lng, lat] pairs) with its south-west corner at (lat, lng)."""
    dlat = side_m / METERS_PER_DEGREE_LAT
    dlng = side_m / (METERS_PER_DEGREE_LNG_AT_EQUATOR * math.cos(math.radians(lat)))
    return [
        [lng, lat],
        [lng + dlng, lat],
        [lng + dlng, lat + dlat],
        [lng, lat + dlat],
        [lng, lat],
    ]


def to_points(ring: list[list[float]]) -> list[GeoPoint]:
    return [GeoPoint(lng=lng, lat=lat) for lng, lat in ring]


@pytest.fixture
def square_ring() -> Callable[..., list[list[float]]]:
    """Factory for closed square rings in [lng, lat] form."""
    return square_lnglat


@pytest.fixture
def square_points() -> list[GeoPoint]:
    """1000m x 1000m square in Mato Grosso (100 ha)."""
    return to_points(square_lnglat(-15.61, -56.10, 1000.0))


@pytest.fixture
def triangle_points() -> list[GeoPoint]:
    """Right triangle filling the lower-left half of its bounding box."""
    return [
        GeoPoint(lng=-56.10, lat=-15.61),
        GeoPoint(lng=-56.09, lat=-15.61),
        GeoPoint(lng=-56.10, lat=-15.60),
    ]


@pytest.fixture
def triangle_bbox() -> BoundingBox:
    return BoundingBox(min_lng=-56.10, max_lng=-56.09, min_lat=-15.61, max_lat=-15.60)


# ============================================================
# GeoJSON Fixtures
# ============================================================

@pytest.fixture
def pentagon_ring() -> list[list[float]]:
    """Closed ring with 5 distinct vertices."""
    return [
        [-56.100, -15.610],
        [-56.090, -15.610],
        [-56.085, -15.603],
        [-56.095, -15.598],
        [-56.104, -15.603],
        [-56.100, -15.610],
    ]


@pytest.fixture
def car_feature_collection(pentagon_ring) -> dict:
    """CAR export with one feature and declared attributes."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {
                    "cod_imovel": "MT-5107909-1B2C3D4E5F6A7B8C9D0E",
                    "nom_imovel": "Fazenda Boa Vista",
                    "nom_municip": "Sorriso",
                    "cod_estado": "MT",
                    "num_area": 123.45,
                    "area_reserva_legal": 40.0,
                    "area_app": 7.5,
                },
                "geometry": {"type": "Polygon", "coordinates": [pentagon_ring]},
            }
        ],
    }


# ============================================================
# Raster Fixtures
# ============================================================

@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    """Factory for encoded PNG images of a solid color."""
    def make(width: int = 64, height: int = 64, color=(10, 120, 200, 255)) -> bytes:
        buf = io.BytesIO()
        Image.new("RGBA", (width, height), color).save(buf, format="PNG")
        return buf.getvalue()
    return make


class FakeClipper:
    """
    Stand-in for RasterClipper.

    Returns ``result`` or raises ``error``; when ``gate`` is set the call
    waits for it first, simulating a slow network fetch.
    """

    def __init__(
        self,
        result: Optional[ClippedRaster] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.result = result
        self.error = error
        self.delay = delay
        self.gates = {}
        self.calls = []
        self.client = SimpleNamespace(field_image_url=lambda field_id: f"https://raster.test/{field_id}")

    async def clip_to_polygon(self, image_url, boundary, bbox=None):
        self.calls.append(image_url)
        if self.delay:
            await asyncio.sleep(self.delay)
        gate = self.gates.get(image_url)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result.model_copy(update={"data_url": f"{self.result.data_url}#{image_url}"})
        raise RasterUnavailable("no raster configured")


@pytest.fixture
def clipped_raster() -> ClippedRaster:
    return ClippedRaster(
        data_url="data:image/png;base64,iVBORw0KGgo=",
        width=64,
        height=64,
        source="raster",
    )


@pytest.fixture
def fake_clipper_factory() -> Callable[..., FakeClipper]:
    return FakeClipper


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)
