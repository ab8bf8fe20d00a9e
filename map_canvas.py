"""Map surface the loop orchestrator draws on.

``MapSurface`` is the contract: draw an ordered path in a color, get back a
handle, fit the viewport to that handle. ``FoliumCanvas`` keeps the drawn
layers in memory and renders them as a Leaflet page with folium.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import folium

from loop_algo import Bounds, GeoPoint, polyline_bounds

logger = logging.getLogger("map_canvas")
logger.setLevel(logging.INFO)

DEFAULT_CENTER = GeoPoint(48.8566, 2.3522)
DEFAULT_ZOOM = 13
TILES = "CartoDB positron"
LINE_WEIGHT = 4


class LoopError(Exception):
    """Base error for loop generation failures."""


class SurfaceUnavailable(LoopError):
    """The map surface has not been initialized yet."""


@dataclass(frozen=True)
class PathLayer:
    handle: int
    points: Tuple[GeoPoint, ...]
    color: str


class MapSurface(ABC):
    @property
    @abstractmethod
    def ready(self) -> bool:
        ...

    @abstractmethod
    def draw_path(self, points: Sequence[GeoPoint], color: str) -> int:
        ...

    @abstractmethod
    def fit_bounds(self, handle: int) -> None:
        ...


class FoliumCanvas(MapSurface):
    def __init__(self, center: GeoPoint = DEFAULT_CENTER, zoom: int = DEFAULT_ZOOM):
        self.center = center
        self.zoom = zoom
        self.layers: List[PathLayer] = []
        self.viewport: Optional[Bounds] = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        self._ready = True
        logger.info(f"Map canvas ready at {self.center.lat},{self.center.lng} (zoom {self.zoom})")

    def close(self) -> None:
        self._ready = False

    def draw_path(self, points: Sequence[GeoPoint], color: str) -> int:
        if not self._ready:
            raise SurfaceUnavailable("map canvas is not initialized")
        layer = PathLayer(handle=len(self.layers), points=tuple(points), color=color)
        self.layers.append(layer)
        return layer.handle

    def layer(self, handle: int) -> PathLayer:
        return self.layers[handle]

    def fit_bounds(self, handle: int) -> None:
        if not self._ready:
            raise SurfaceUnavailable("map canvas is not initialized")
        self.viewport = polyline_bounds(self.layers[handle].points)

    def render(self) -> str:
        """Full HTML page with every drawn path."""
        m = folium.Map(location=list(self.center), zoom_start=self.zoom, tiles=TILES)
        for layer in self.layers:
            folium.PolyLine(
                [list(p) for p in layer.points],
                color=layer.color,
                weight=LINE_WEIGHT,
            ).add_to(m)
        if self.viewport is not None:
            (s, w), (n, e) = self.viewport
            m.fit_bounds([[s, w], [n, e]])
        return m.get_root().render()
