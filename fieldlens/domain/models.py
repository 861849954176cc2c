"""
Domain models for field boundaries and derived raster data.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, map surfaces, etc.).
"""
from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from shapely.geometry import Polygon

from fieldlens.domain.exceptions import InvalidGeometry

# Smallest span (degrees) used in place of a zero-width or zero-height bbox
MIN_SPAN_DEGREES = 1e-6

# Rings whose area in square degrees falls below this are collinear or coincident
_DEGENERATE_AREA_DEG2 = 1e-14


class GeoPoint(BaseModel):
    """WGS84 point in degrees."""
    lat: float
    lng: float

    class Config:
        frozen = True


@dataclass(frozen=True)
class Boundary:
    """
    Exterior ring of a field.

    The ring is implicitly closed: a trailing point equal to the first one is
    dropped on construction, so ``points`` never repeats its first vertex and
    consumers always wrap last -> first.

    Raises:
        InvalidGeometry: If fewer than 3 points remain or the ring is degenerate
    """
    points: tuple

    def __post_init__(self):
        points = tuple(self.points)
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        object.__setattr__(self, "points", points)

        if len(points) < 3:
            raise InvalidGeometry(
                f"Invalid boundary: {len(points)} point(s), at least 3 are required"
            )
        ring = Polygon([(p.lng, p.lat) for p in points])
        if ring.area < _DEGENERATE_AREA_DEG2:
            raise InvalidGeometry("Invalid boundary: points are collinear or coincident")

    def __iter__(self):
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def lnglat(self) -> List[List[float]]:
        """Ring as [lng, lat] pairs without the closing vertex."""
        return [[p.lng, p.lat] for p in self.points]

    def closed_lnglat(self) -> List[List[float]]:
        """Ring as [lng, lat] pairs with the first vertex repeated (GeoJSON form)."""
        ring = self.lnglat()
        return ring + [ring[0]]


class BoundingBox(BaseModel):
    """Axis-aligned lat/lng rectangle derived from a boundary."""
    min_lng: float
    max_lng: float
    min_lat: float
    max_lat: float

    @property
    def width(self) -> float:
        return self.max_lng - self.min_lng

    @property
    def height(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def with_min_span(self, span: float = MIN_SPAN_DEGREES) -> "BoundingBox":
        """
        Return a box whose width and height are at least ``span``.

        Zero-extent sides are widened symmetrically around their center so that
        pixel mapping never divides by zero.
        """
        min_lng, max_lng = self.min_lng, self.max_lng
        min_lat, max_lat = self.min_lat, self.max_lat
        if self.width < span:
            center = (min_lng + max_lng) / 2
            min_lng, max_lng = center - span / 2, center + span / 2
        if self.height < span:
            center = (min_lat + max_lat) / 2
            min_lat, max_lat = center - span / 2, center + span / 2
        return BoundingBox(min_lng=min_lng, max_lng=max_lng, min_lat=min_lat, max_lat=max_lat)

    def corners(self) -> List[List[float]]:
        """Image placement corners: top-left, top-right, bottom-right, bottom-left."""
        return [
            [self.min_lng, self.max_lat],
            [self.max_lng, self.max_lat],
            [self.max_lng, self.min_lat],
            [self.min_lng, self.min_lat],
        ]


class ClippedRaster(BaseModel):
    """Ephemeral fill image masked to a field boundary."""
    data_url: str = Field(description="PNG image encoded as a data URL")
    width: int
    height: int
    source: Literal["raster", "gradient"]


class FieldRecord(BaseModel):
    """Field as supplied by the record storage collaborator."""
    id: int
    boundary: Optional[List[GeoPoint]] = None
    current_ndvi: Optional[float] = Field(
        default=None,
        description="Latest NDVI reading for the field"
    )


class CarData(BaseModel):
    """Attributes declared by a CAR (Cadastro Ambiental Rural) export."""
    codigo_car: Optional[str] = None
    cpf_cnpj: Optional[str] = None
    nome_propriedade: Optional[str] = None
    municipio: Optional[str] = None
    uf: Optional[str] = None
    situacao: Optional[str] = None
    area_total: float = Field(description="Declared total area in hectares, or the computed one")
    area_reserva_legal: float = 0.0
    area_app: float = 0.0
    area_consolidada: float = 0.0


class CarAreas(BaseModel):
    """Area summary in hectares."""
    total: float
    reserva_legal: float = 0.0
    app: float = 0.0
    consolidada: float = 0.0


class CarImportResult(BaseModel):
    """Structured outcome of a boundary import. Never raised, always returned."""
    success: bool
    data: Optional[CarData] = None
    boundaries: Optional[List[GeoPoint]] = None
    areas: Optional[CarAreas] = None
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = None
