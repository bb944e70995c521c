"""
Viewport state and pointer handling for the toilet map.

`SlippyMap` owns one viewport (center + zoom), the transient drag state,
the current toilet list, the user location and the selected toilet. The
host feeds it pointer events and geolocation pushes, and asks it for a
`RenderFrame` whenever it repaints.

Modes:
    IDLE --pointer_down--> DRAGGING --pointer_move--> DRAGGING
    DRAGGING --pointer_up--> IDLE
A pointer_down that arrives while still DRAGGING (the release was never
seen) drops the stale drag and starts a fresh one.
"""

from __future__ import annotations
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from toiletmap.model.models import GeoPoint, PointOfInterest
from .markers import DEFAULT_CULL_MARGIN, MarkerPlacement, hit_test, place_markers
from .projection import MercatorProjector, clamp_latitude, clamp_zoom, resolution
from .tiles import DEFAULT_OVERSCAN, TilePlacement, visible_tiles

# Kaliningrad
DEFAULT_CENTER_LAT = 54.710
DEFAULT_CENTER_LON = 20.511
DEFAULT_ZOOM = 13
DEFAULT_CLICK_THRESHOLD = 4.0


class MapMode(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass
class Viewport:
    center_lat: float = DEFAULT_CENTER_LAT
    center_lon: float = DEFAULT_CENTER_LON
    zoom: int = DEFAULT_ZOOM

    def __post_init__(self):
        self.zoom = clamp_zoom(self.zoom)
        self.center_lat = clamp_latitude(self.center_lat)

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(self.center_lat, self.center_lon)

    def set_center(self, lat: float, lon: float) -> None:
        self.center_lat = clamp_latitude(lat)
        self.center_lon = lon


@dataclass(frozen=True)
class DragState:
    start_x: float
    start_y: float
    start_center: GeoPoint
    press_target: Optional[int] = None      # toilet id under the pointer at press time


@dataclass(frozen=True)
class RenderFrame:
    """Everything the host needs to paint one pass."""
    viewport: Viewport
    width: float
    height: float
    tiles: Tuple[TilePlacement, ...]
    markers: Tuple[MarkerPlacement, ...]
    selected: Optional[PointOfInterest]


class SlippyMap:
    """
    Drag-to-pan / discrete-zoom map over a list of toilets.
    """

    def __init__(
        self,
        viewport: Optional[Viewport] = None,
        points: Iterable[PointOfInterest] = (),
        *,
        projector: Optional[MercatorProjector] = None,
        overscan: int = DEFAULT_OVERSCAN,
        cull_margin: float = DEFAULT_CULL_MARGIN,
        click_threshold: float = DEFAULT_CLICK_THRESHOLD,
    ):
        self.viewport = viewport or Viewport()
        self.projector = projector or MercatorProjector()
        self.overscan = overscan
        self.cull_margin = cull_margin
        self.click_threshold = click_threshold

        self.user_location: Optional[GeoPoint] = None
        self.selected_id: Optional[int] = None
        self._points: Tuple[PointOfInterest, ...] = ()
        self._drag: Optional[DragState] = None
        self._travel = 0.0
        self._last_frame: Optional[RenderFrame] = None

        # Event handlers
        self._marker_selected_handlers: List[Callable[[int], None]] = []
        self._center_request_handlers: List[Callable[[], None]] = []

        self.set_points(points)

    # --- Properties ---

    @property
    def mode(self) -> MapMode:
        return MapMode.DRAGGING if self._drag is not None else MapMode.IDLE

    @property
    def drag(self) -> Optional[DragState]:
        return self._drag

    @property
    def points(self) -> Tuple[PointOfInterest, ...]:
        return self._points

    @property
    def selected(self) -> Optional[PointOfInterest]:
        if self.selected_id is None:
            return None
        for p in self._points:
            if p.id == self.selected_id:
                return p
        return None

    def add_marker_selected_handler(self, handler: Callable[[int], None]) -> None:
        self._marker_selected_handlers.append(handler)

    def add_center_request_handler(self, handler: Callable[[], None]) -> None:
        self._center_request_handlers.append(handler)

    # --- Data / location inputs ---

    def set_points(self, points: Iterable[PointOfInterest]) -> None:
        """Replace the toilet list; a selection whose id vanished is cleared."""
        self._points = tuple(points)
        if self.selected_id is not None and all(p.id != self.selected_id for p in self._points):
            self.selected_id = None

    def on_location_update(self, lat: float, lon: float) -> None:
        """Geolocation push: move the user dot and recenter on it."""
        self.user_location = GeoPoint(lat, lon)
        self.viewport.set_center(lat, lon)

    # --- Controls ---

    def zoom_in(self) -> int:
        return self.set_zoom(self.viewport.zoom + 1)

    def zoom_out(self) -> int:
        return self.set_zoom(self.viewport.zoom - 1)

    def set_zoom(self, zoom: int) -> int:
        # center and drag state are left alone
        self.viewport.zoom = clamp_zoom(zoom)
        return self.viewport.zoom

    def center_on_user(self) -> bool:
        """Recenter on the last known user location. False if none is known yet."""
        for handler in self._center_request_handlers:
            handler()
        if self.user_location is None:
            return False
        self.viewport.set_center(self.user_location.lat, self.user_location.lon)
        return True

    # --- Selection ---

    def select(self, poi_id: int) -> bool:
        if all(p.id != poi_id for p in self._points):
            return False
        self.selected_id = poi_id
        for handler in self._marker_selected_handlers:
            handler(poi_id)
        return True

    def deselect(self) -> None:
        self.selected_id = None

    # --- Pointer handling ---

    def pointer_down(self, x: float, y: float) -> None:
        if self._drag is not None:
            warnings.warn("pointer_down while dragging; releasing stale drag")
            self._release()

        target = None
        if self._last_frame is not None:
            hit = hit_test(self._last_frame.markers, x, y)
            target = hit.id if hit is not None else None

        self._drag = DragState(x, y, self.viewport.center, target)
        self._travel = 0.0

    def pointer_move(self, x: float, y: float) -> bool:
        """Pan so the map follows the pointer. False when not dragging."""
        drag = self._drag
        if drag is None:
            return False

        dx = x - drag.start_x
        dy = y - drag.start_y
        self._travel = max(self._travel, math.hypot(dx, dy))

        if dx == 0 and dy == 0:
            self.viewport.set_center(drag.start_center.lat, drag.start_center.lon)
            return True

        sx, sy = self.projector.to_meters(drag.start_center.lat, drag.start_center.lon)
        res = resolution(self.viewport.zoom)
        # screen y points down, projected y points north
        lat, lon = self.projector.to_geo(sx - dx * res, sy + dy * res)
        self.viewport.set_center(lat, lon)
        return True

    def pointer_up(self, x: float, y: float) -> Optional[PointOfInterest]:
        """
        Ends the drag. A gesture that stayed within `click_threshold` px is a
        click: on the pin it was pressed on it selects that toilet, anywhere
        else it clears the selection. Returns the newly selected toilet.
        """
        drag = self._drag
        if drag is None:
            return None

        travel = max(self._travel, math.hypot(x - drag.start_x, y - drag.start_y))
        self._release()
        if travel > self.click_threshold:
            return None

        if drag.press_target is not None and self._last_frame is not None:
            hit = hit_test(self._last_frame.markers, x, y)
            if hit is not None and hit.id == drag.press_target and self.select(hit.id):
                return self.selected
        self.deselect()
        return None

    def _release(self) -> None:
        self._drag = None
        self._travel = 0.0

    # --- Render ---

    def render(self, width: float, height: float) -> RenderFrame:
        vp = self.viewport
        cx, cy = self.projector.to_pixels(vp.center_lat, vp.center_lon, vp.zoom)

        tiles = visible_tiles(cx, cy, vp.zoom, width, height, overscan=self.overscan)
        markers = place_markers(
            self.projector, cx, cy, vp.zoom, width, height,
            self._points, self.user_location, cull_margin=self.cull_margin,
        )
        frame = RenderFrame(
            viewport=Viewport(vp.center_lat, vp.center_lon, vp.zoom),
            width=width,
            height=height,
            tiles=tuple(tiles),
            markers=tuple(markers),
            selected=self.selected,
        )
        self._last_frame = frame
        return frame
