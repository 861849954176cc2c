"""
Infrastructure layer: map surface the overlay is installed on.

``MapSurface`` is the interface of the live map widget. ``InMemoryMapSurface``
keeps sources and layers in memory and enforces the same id rules as Mapbox GL:
adding an existing id or removing an unknown one is an error.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol

from fieldlens.domain.models import BoundingBox

logger = logging.getLogger(__name__)


class MapSurfaceError(Exception):
    """Invalid source/layer operation on a map surface."""
    pass


class MapSurface(Protocol):
    """Operations the overlay orchestrator needs from a map widget."""

    def add_source(self, source_id: str, spec: Dict[str, Any]) -> None: ...

    def remove_source(self, source_id: str) -> None: ...

    def add_layer(
        self,
        layer_id: str,
        layer_type: str,
        source: str,
        paint: Optional[Dict[str, Any]] = None,
    ) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...

    def fit_bounds(self, bbox: BoundingBox) -> None: ...


class InMemoryMapSurface:
    """
    Map surface kept in memory.

    Serves as the render target of the HTTP API, which returns the resulting
    style snapshot to the client, and as a test double.
    """

    def __init__(self):
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.layers: Dict[str, Dict[str, Any]] = {}
        self.bounds: Optional[BoundingBox] = None

    def add_source(self, source_id: str, spec: Dict[str, Any]) -> None:
        if source_id in self.sources:
            raise MapSurfaceError(f"There is already a source with id '{source_id}'")
        self.sources[source_id] = spec

    def remove_source(self, source_id: str) -> None:
        if source_id not in self.sources:
            raise MapSurfaceError(f"There is no source with id '{source_id}'")
        if any(layer["source"] == source_id for layer in self.layers.values()):
            raise MapSurfaceError(f"Source '{source_id}' is still in use by a layer")
        del self.sources[source_id]

    def add_layer(
        self,
        layer_id: str,
        layer_type: str,
        source: str,
        paint: Optional[Dict[str, Any]] = None,
    ) -> None:
        if layer_id in self.layers:
            raise MapSurfaceError(f"There is already a layer with id '{layer_id}'")
        if source not in self.sources:
            raise MapSurfaceError(f"Layer '{layer_id}' references unknown source '{source}'")
        self.layers[layer_id] = {
            "id": layer_id,
            "type": layer_type,
            "source": source,
            "paint": paint or {},
        }

    def remove_layer(self, layer_id: str) -> None:
        if layer_id not in self.layers:
            raise MapSurfaceError(f"There is no layer with id '{layer_id}'")
        del self.layers[layer_id]

    def fit_bounds(self, bbox: BoundingBox) -> None:
        self.bounds = bbox

    def snapshot(self) -> Dict[str, Any]:
        """Sources, layers and bounds in Mapbox style-fragment form."""
        return {
            "sources": dict(self.sources),
            "layers": list(self.layers.values()),
            "bounds": (
                [[self.bounds.min_lng, self.bounds.min_lat], [self.bounds.max_lng, self.bounds.max_lat]]
                if self.bounds else None
            ),
        }

    def layer_ids(self) -> List[str]:
        return list(self.layers)
