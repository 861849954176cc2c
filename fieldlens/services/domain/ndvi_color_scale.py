"""
NDVI color scale shared by the map overlay, legend, thumbnails and charts.

This module is the only place where band thresholds and colors are defined.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, computed_field


class NdviBand(str, Enum):
    """Named NDVI bands, lowest first."""
    VERY_LOW = "very_low"
    LOW = "low"
    MODERATE = "moderate"
    GOOD = "good"
    EXCELLENT = "excellent"


@dataclass(frozen=True)
class Color:
    """Immutable 8-bit RGB color."""
    r: int
    g: int
    b: int

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        value = value.lstrip("#")
        return cls(int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    @property
    def rgb(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def darken(self, fraction: float) -> "Color":
        """Scale every channel toward black by ``fraction`` (0..1)."""
        factor = 1.0 - min(1.0, max(0.0, fraction))
        return Color(round(self.r * factor), round(self.g * factor), round(self.b * factor))


@dataclass(frozen=True)
class _BandSpec:
    band: NdviBand
    label: str
    lower: Optional[float]
    color: Color


# (band, label, inclusive lower threshold, color); upper threshold is the next lower
_BANDS = (
    _BandSpec(NdviBand.VERY_LOW, "Very low", None, Color.from_hex("#ef4444")),
    _BandSpec(NdviBand.LOW, "Low", 0.2, Color.from_hex("#f97316")),
    _BandSpec(NdviBand.MODERATE, "Moderate", 0.3, Color.from_hex("#eab308")),
    _BandSpec(NdviBand.GOOD, "Good", 0.5, Color.from_hex("#84cc16")),
    _BandSpec(NdviBand.EXCELLENT, "Excellent", 0.7, Color.from_hex("#22c55e")),
)

NDVI_MIN = -1.0
NDVI_MAX = 1.0


def _spec_for(value: float) -> _BandSpec:
    if value is None or math.isnan(value):
        return _BANDS[0]
    value = min(NDVI_MAX, max(NDVI_MIN, value))
    for spec in reversed(_BANDS):
        if spec.lower is None or value >= spec.lower:
            return spec
    return _BANDS[0]


def band_for(value: float) -> NdviBand:
    """Band of an NDVI value; out-of-range values clamp to the nearest band."""
    return _spec_for(value).band


def color_for(value: float) -> Color:
    """Display color of an NDVI value; total and deterministic."""
    return _spec_for(value).color


class LegendEntry(BaseModel):
    """Legend swatch for one band."""
    band: NdviBand
    label: str
    lower: Optional[float]
    upper: Optional[float]
    color: str


def legend() -> list[LegendEntry]:
    """Legend entries in ascending band order."""
    entries = []
    for i, spec in enumerate(_BANDS):
        upper = _BANDS[i + 1].lower if i + 1 < len(_BANDS) else None
        entries.append(LegendEntry(
            band=spec.band,
            label=spec.label,
            lower=spec.lower,
            upper=upper,
            color=spec.color.hex,
        ))
    return entries


class NdviSample(BaseModel):
    """NDVI reading whose color class is always derived from its value."""
    value: float

    @computed_field
    @property
    def color_class(self) -> NdviBand:
        return band_for(self.value)

    @computed_field
    @property
    def color(self) -> str:
        return color_for(self.value).hex
