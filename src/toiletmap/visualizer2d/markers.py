# markers.py
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from toiletmap.model.models import GeoPoint, PointOfInterest
from .projection import MercatorProjector, clamp_latitude

PIN_SIZE_PX = 32          # pin icon, anchored at its bottom-center
USER_DOT_SIZE_PX = 32     # user dot, anchored at its center
DEFAULT_CULL_MARGIN = 50

POI = "poi"
USER = "user"
BOTTOM_CENTER = "bottom-center"
CENTER = "center"


@dataclass(frozen=True)
class MarkerPlacement:
    kind: str                       # POI / USER
    left: float                     # screen x of the anchor point
    top: float                      # screen y of the anchor point
    anchor: str                     # BOTTOM_CENTER / CENTER
    poi: Optional[PointOfInterest] = None

    def contains(self, x: float, y: float) -> bool:
        """Hit box of the drawn icon."""
        if self.anchor == BOTTOM_CENTER:
            half = PIN_SIZE_PX / 2
            return self.left - half <= x <= self.left + half and self.top - PIN_SIZE_PX <= y <= self.top
        half = USER_DOT_SIZE_PX / 2
        return abs(x - self.left) <= half and abs(y - self.top) <= half


def _in_bounds(left: float, top: float, width: float, height: float, margin: float) -> bool:
    return -margin <= left <= width + margin and -margin <= top <= height + margin


def _screen_xy(projector: MercatorProjector, loc: GeoPoint, center_px: float, center_py: float,
               zoom: int, width: float, height: float) -> tuple[float, float]:
    px, py = projector.to_pixels(clamp_latitude(loc.lat), loc.lon, zoom)
    return width / 2 + (px - center_px), height / 2 + (py - center_py)


def place_markers(
    projector: MercatorProjector,
    center_px: float,
    center_py: float,
    zoom: int,
    width: float,
    height: float,
    points: Iterable[PointOfInterest],
    user_location: Optional[GeoPoint] = None,
    cull_margin: float = DEFAULT_CULL_MARGIN,
) -> List[MarkerPlacement]:
    """
    Screen placements for the toilet pins and the user dot, relative to the
    viewport center the same way tiles are placed. Anything farther than
    `cull_margin` px outside the surface is left out. Pins come first, the
    user dot last so it is drawn on top.
    """
    out: List[MarkerPlacement] = []

    for p in points:
        left, top = _screen_xy(projector, p.location, center_px, center_py, zoom, width, height)
        if not _in_bounds(left, top, width, height, cull_margin):
            continue
        out.append(MarkerPlacement(POI, left, top, BOTTOM_CENTER, p))

    if user_location is not None:
        left, top = _screen_xy(projector, user_location, center_px, center_py, zoom, width, height)
        if _in_bounds(left, top, width, height, cull_margin):
            out.append(MarkerPlacement(USER, left, top, CENTER))

    return out


def hit_test(placements: Sequence[MarkerPlacement], x: float, y: float) -> Optional[PointOfInterest]:
    """Topmost toilet pin under (x, y), if any."""
    for m in reversed(placements):
        if m.kind == POI and m.contains(x, y):
            return m.poi
    return None
