"""
Domain service: import field boundaries from cadastral GeoJSON exports.

Primary input is the GeoJSON download of the Brazilian rural environmental
registry (CAR, Cadastro Ambiental Rural). Exports vary in letter case and
naming of their attributes, so every attribute is looked up through a list of
aliases.

Failures are always returned as structured results so callers can show the
error text to the user directly.
"""
import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Optional, Union

from fieldlens.domain.exceptions import (
    InvalidGeometry,
    MalformedSource,
    UnsupportedCoordinateFormat,
)
from fieldlens.domain.models import (
    Boundary,
    CarAreas,
    CarData,
    CarImportResult,
    GeoPoint,
)
from fieldlens.utils.geo_projection import geodesic_area_hectares, planar_area_is_reliable
from fieldlens.utils.geometry import area_hectares, normalize_ring, parse_ring

logger = logging.getLogger(__name__)

# Attribute aliases, checked in order
CODE_ALIASES = ("cod_imovel", "COD_IMOVEL", "codigo_car")
DOCUMENT_ALIASES = ("cpf_cnpj", "CPF_CNPJ")
NAME_ALIASES = ("nom_imovel", "NOM_IMOVEL", "nome")
MUNICIPALITY_ALIASES = ("nom_municip", "NOM_MUNICIP", "municipio")
STATE_ALIASES = ("cod_estado", "COD_ESTADO", "uf")
STATUS_ALIASES = ("ind_status", "IND_STATUS", "situacao")
TOTAL_AREA_ALIASES = ("num_area", "NUM_AREA")
LEGAL_RESERVE_ALIASES = ("area_reserva_legal", "AREA_RL")
RIPARIAN_ALIASES = ("area_app", "AREA_APP")
CONSOLIDATED_ALIASES = ("area_consolidada", "AREA_CONSOLIDADA")
FEATURE_KIND_ALIASES = ("tipo", "TIPO", "des_condic")

# Declared and computed total area may differ by this much before a warning
AREA_MISMATCH_TOLERANCE_HA = 1.0

_CAR_CODE_PATTERN = re.compile(r"^[A-Z]{2}[-_]?\d{7}[-_]?[A-Z0-9]{16,}$", re.IGNORECASE)


def _first_text(properties: Mapping, aliases: tuple) -> Optional[str]:
    for key in aliases:
        value = properties.get(key)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _first_number(properties: Mapping, aliases: tuple) -> Optional[float]:
    for key in aliases:
        value = properties.get(key)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, str):
            value = value.strip().replace(",", ".")
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            logger.debug(f"Ignoring non-numeric {key}={value!r}")
            continue
        if math.isfinite(number):
            return number
        logger.debug(f"Ignoring non-finite {key}={value!r}")
    return None


def validate_car_code(code: str) -> bool:
    """
    Validate the shape of a CAR code.

    Format: state (2 letters), municipality IBGE code (7 digits) and a
    registry hash (16+ alphanumerics), optionally separated by ``-`` or ``_``.
    Whitespace is ignored.
    """
    if not code:
        return False
    return bool(_CAR_CODE_PATTERN.match(re.sub(r"\s", "", code)))


def extract_geometry(document: Mapping) -> Optional[dict]:
    """
    Locate the geometry object of a GeoJSON document.

    Returns:
        Geometry mapping, or None if the document has no recognizable geometry
    """
    kind = document.get("type")
    if kind == "FeatureCollection":
        features = document.get("features")
        if isinstance(features, list) and features and isinstance(features[0], Mapping):
            return features[0].get("geometry")
        return None
    if kind == "Feature":
        return document.get("geometry")
    if kind in ("Polygon", "MultiPolygon"):
        return document
    return None


def extract_properties(document: Mapping) -> Mapping:
    """Properties of the first feature, or the document's own properties."""
    features = document.get("features")
    if isinstance(features, list) and features and isinstance(features[0], Mapping):
        properties = features[0].get("properties")
    else:
        properties = document.get("properties")
    return properties if isinstance(properties, Mapping) else {}


def _classify_feature(kind: str) -> Optional[str]:
    kind = kind.lower()
    tokens = set(re.split(r"[^a-z0-9]+", kind))
    if "area_imovel" in kind or "perimetro" in kind:
        return "total"
    if "reserva_legal" in kind or "rl" in tokens:
        return "reserva_legal"
    if "app" in tokens or "preservacao" in kind:
        return "app"
    if "consolidada" in kind or "uso" in tokens:
        return "consolidada"
    return None


def extract_car_areas(document: Mapping) -> dict[str, list[GeoPoint]]:
    """
    Split a CAR FeatureCollection into its thematic rings.

    Features are classified by their ``tipo``/``des_condic`` attribute into
    ``total``, ``reserva_legal``, ``app`` and ``consolidada``. Only the first
    exterior ring of each feature is kept; later features of the same kind
    replace earlier ones.

    Args:
        document: Parsed GeoJSON document

    Returns:
        Mapping of area kind to boundary points; empty for non-collections
    """
    result: dict[str, list[GeoPoint]] = {}
    if document.get("type") != "FeatureCollection":
        return result

    for feature in document.get("features") or []:
        if not isinstance(feature, Mapping):
            continue
        properties = feature.get("properties") or {}
        key = _classify_feature(_first_text(properties, FEATURE_KIND_ALIASES) or "")
        geometry = feature.get("geometry")
        if key is None or not isinstance(geometry, Mapping):
            continue

        coordinates = geometry.get("coordinates") or []
        try:
            if geometry.get("type") == "Polygon":
                ring = coordinates[0]
            elif geometry.get("type") == "MultiPolygon":
                ring = coordinates[0][0]
            else:
                continue
            result[key] = normalize_ring(ring, lenient=True)
        except (IndexError, TypeError, UnsupportedCoordinateFormat) as e:
            logger.warning(f"Skipping unreadable {key} feature: {e}")

    return result


class CarBoundaryImporter:
    """
    Imports a field boundary and its declared attributes from CAR GeoJSON.
    """

    def __init__(
        self,
        max_planar_extent_km: float = 10.0,
        max_planar_latitude: float = 60.0,
    ):
        """
        Initialize the importer.

        Args:
            max_planar_extent_km: Extent above which the planar area is flagged
            max_planar_latitude: Latitude above which the planar area is flagged
        """
        self.max_planar_extent_km = max_planar_extent_km
        self.max_planar_latitude = max_planar_latitude

    def parse(self, content: Union[str, bytes, Mapping]) -> CarImportResult:
        """
        Parse a GeoJSON document into a boundary with CAR attributes.

        Args:
            content: GeoJSON text, bytes, or an already-parsed mapping

        Returns:
            CarImportResult; ``success`` is False with a user-facing ``error``
            when the document cannot be used
        """
        try:
            document = self._load(content)
            return self._import(document)
        except (MalformedSource, InvalidGeometry, UnsupportedCoordinateFormat) as e:
            logger.warning(f"Boundary import rejected: {e.message}")
            return CarImportResult(success=False, error=e.message)

    @staticmethod
    def _load(content: Union[str, bytes, Mapping]) -> Mapping:
        if isinstance(content, Mapping):
            return content
        try:
            if isinstance(content, bytes):
                content = content.decode("utf-8-sig")
            document = json.loads(content)
        except (UnicodeDecodeError, ValueError, RecursionError, TypeError) as e:
            raise MalformedSource(f"File is not valid JSON/GeoJSON: {e}")
        if not isinstance(document, Mapping):
            raise MalformedSource("Geometry not found in file")
        return document

    def _import(self, document: Mapping) -> CarImportResult:
        geometry = extract_geometry(document)
        if not isinstance(geometry, Mapping) or geometry.get("type") not in ("Polygon", "MultiPolygon"):
            raise MalformedSource("Geometry not found in file")

        warnings: list[str] = []
        points, defaulted = self._select_ring(geometry, warnings)
        if len(points) < 3:
            raise InvalidGeometry(f"Invalid polygon: {len(points)} point(s), at least 3 are required")
        boundary = Boundary(points=tuple(points))

        if defaulted:
            warnings.append(f"{defaulted} coordinate(s) could not be read and were set to (0, 0)")

        computed_area = area_hectares(boundary)
        if not planar_area_is_reliable(boundary, self.max_planar_extent_km, self.max_planar_latitude):
            warnings.append(
                f"Boundary is outside the planar area approximation range; "
                f"geodesic area is {geodesic_area_hectares(boundary):.2f} ha"
            )

        properties = extract_properties(document)
        declared_total = _first_number(properties, TOTAL_AREA_ALIASES)
        if declared_total is not None and declared_total <= 0:
            declared_total = None

        data = CarData(
            codigo_car=_first_text(properties, CODE_ALIASES),
            cpf_cnpj=_first_text(properties, DOCUMENT_ALIASES),
            nome_propriedade=_first_text(properties, NAME_ALIASES),
            municipio=_first_text(properties, MUNICIPALITY_ALIASES),
            uf=_first_text(properties, STATE_ALIASES),
            situacao=_first_text(properties, STATUS_ALIASES),
            area_total=declared_total if declared_total is not None else computed_area,
            area_reserva_legal=_first_number(properties, LEGAL_RESERVE_ALIASES) or 0.0,
            area_app=_first_number(properties, RIPARIAN_ALIASES) or 0.0,
            area_consolidada=_first_number(properties, CONSOLIDATED_ALIASES) or 0.0,
        )

        if data.codigo_car is None:
            warnings.append("CAR code not found in file")
        elif not validate_car_code(data.codigo_car):
            warnings.append(f"CAR code '{data.codigo_car}' does not match the expected format")

        if abs(computed_area - data.area_total) > AREA_MISMATCH_TOLERANCE_HA:
            warnings.append(
                f"Computed area ({computed_area:.2f} ha) differs from declared area "
                f"({data.area_total:.2f} ha)"
            )

        logger.info(
            f"Imported boundary with {len(boundary)} vertices, "
            f"{computed_area:.2f} ha computed, {data.area_total:.2f} ha declared"
        )
        return CarImportResult(
            success=True,
            data=data,
            boundaries=list(boundary.points),
            areas=CarAreas(
                total=computed_area,
                reserva_legal=data.area_reserva_legal,
                app=data.area_app,
                consolidada=data.area_consolidada,
            ),
            warnings=warnings,
        )

    @staticmethod
    def _select_ring(geometry: Mapping, warnings: list[str]) -> tuple[list[GeoPoint], int]:
        """
        Pick the exterior ring to import.

        For a MultiPolygon the part with the largest planar area is kept; the
        first one seen wins on exact ties.
        """
        coordinates: Any = geometry.get("coordinates")
        if not isinstance(coordinates, list) or not coordinates:
            raise MalformedSource("Geometry has no coordinates")

        if geometry["type"] == "Polygon":
            return parse_ring(coordinates[0], lenient=True)

        best: Optional[tuple[list[GeoPoint], int]] = None
        best_area = -1.0
        areas = []
        error: Optional[UnsupportedCoordinateFormat] = None
        for polygon in coordinates:
            if not isinstance(polygon, list) or not polygon:
                continue
            try:
                points, defaulted = parse_ring(polygon[0], lenient=True)
            except UnsupportedCoordinateFormat as e:
                error = e
                continue
            area = area_hectares(points)
            areas.append(area)
            if area > best_area:
                best, best_area = (points, defaulted), area

        if best is None:
            if error is not None:
                raise error
            raise MalformedSource("Geometry has no coordinates")

        if len(areas) > 1:
            discarded = sum(areas) - best_area
            warnings.append(
                f"MultiPolygon has {len(areas) - 1} additional part(s) totalling "
                f"{discarded:.2f} ha that were discarded"
            )
        return best
