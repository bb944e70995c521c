# projection.py
import math
from dataclasses import dataclass, field
from typing import Tuple, Protocol

TILE_SIZE = 256
EARTH_RADIUS = 6378137.0
ORIGIN_SHIFT = math.pi * EARTH_RADIUS          # half the equator (m)
MAX_LATITUDE = 85.05112878                     # square Mercator world

MIN_ZOOM = 3
MAX_ZOOM = 18


class InvalidCoordinate(ValueError):
    """Latitude at (or past) the pole, or a non-finite input."""


def _check_geo(lat: float, lon: float) -> None:
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinate(f"non-finite coordinate: lat={lat} lon={lon}")
    if abs(lat) >= 90.0:
        raise InvalidCoordinate(f"latitude {lat} is at or beyond the pole")


def clamp_latitude(lat: float) -> float:
    return max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))


def clamp_zoom(zoom: int) -> int:
    return max(MIN_ZOOM, min(MAX_ZOOM, int(zoom)))


def resolution(zoom: int) -> float:
    """meters per pixel at `zoom` (256px tiles)"""
    return 2.0 * math.pi * EARTH_RADIUS / (TILE_SIZE * 2 ** zoom)


# --- geo <-> meters (EPSG:4326 <-> EPSG:3857) ------------------------------

def geo_to_meters(lat: float, lon: float) -> Tuple[float, float]:
    _check_geo(lat, lon)
    x = lon * ORIGIN_SHIFT / 180.0
    y = math.log(math.tan((90.0 + lat) * math.pi / 360.0)) * EARTH_RADIUS
    return x, y


def meters_to_geo(x: float, y: float) -> Tuple[float, float]:
    lon = x / ORIGIN_SHIFT * 180.0
    lat = math.degrees(2.0 * math.atan(math.exp(y / EARTH_RADIUS)) - math.pi / 2.0)
    return lat, lon


# --- meters <-> pixels -------------------------------------------------------

def meters_to_pixels(x: float, y: float, zoom: int) -> Tuple[float, float]:
    # pixel y grows downwards, so north (larger y) maps to smaller py
    res = resolution(zoom)
    return (x + ORIGIN_SHIFT) / res, (ORIGIN_SHIFT - y) / res


def pixels_to_meters(px: float, py: float, zoom: int) -> Tuple[float, float]:
    res = resolution(zoom)
    return px * res - ORIGIN_SHIFT, ORIGIN_SHIFT - py * res


def geo_to_pixels(lat: float, lon: float, zoom: int) -> Tuple[float, float]:
    return meters_to_pixels(*geo_to_meters(lat, lon), zoom)


def pixels_to_geo(px: float, py: float, zoom: int) -> Tuple[float, float]:
    return meters_to_geo(*pixels_to_meters(px, py, zoom))


# --- Projector objects --------------------------------------------------------

class Projection(Protocol):
    def lonlat_to_xy(self, lon: float, lat: float) -> Tuple[float, float]: ...
    def xy_to_lonlat(self, x: float, y: float) -> Tuple[float, float]: ...


@dataclass(frozen=True)
class SphericalMercator:
    """Closed-form EPSG:3857, the reference used for tile addressing"""
    def lonlat_to_xy(self, lon, lat):
        return geo_to_meters(lat, lon)
    def xy_to_lonlat(self, x, y):
        lat, lon = meters_to_geo(x, y)
        return lon, lat


@dataclass(frozen=True)
class PyprojMercator:
    """EPSG:4326 <-> EPSG:3857 through pyproj"""
    def __post_init__(self):
        from pyproj import Transformer
        object.__setattr__(self, "_to_merc",
            Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True))
        object.__setattr__(self, "_to_geo",
            Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True))
    def lonlat_to_xy(self, lon, lat):
        _check_geo(lat, lon)
        return self._to_merc.transform(lon, lat)
    def xy_to_lonlat(self, x, y):
        return self._to_geo.transform(x, y)


@dataclass(frozen=True)
class MercatorProjector:
    """
    geo <-> meters <-> pixels for the map.
    use_pyproj=False keeps everything in closed form; True delegates the
    geo <-> meters step to pyproj (the pixel step is the same either way).
    """
    use_pyproj: bool = False
    proj: Projection = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.use_pyproj:
            object.__setattr__(self, "proj", PyprojMercator())
        else:
            object.__setattr__(self, "proj", SphericalMercator())

    def to_meters(self, lat: float, lon: float) -> Tuple[float, float]:
        return self.proj.lonlat_to_xy(lon, lat)

    def to_geo(self, x: float, y: float) -> Tuple[float, float]:
        lon, lat = self.proj.xy_to_lonlat(x, y)
        return lat, lon

    def to_pixels(self, lat: float, lon: float, zoom: int) -> Tuple[float, float]:
        return meters_to_pixels(*self.to_meters(lat, lon), zoom)

    def from_pixels(self, px: float, py: float, zoom: int) -> Tuple[float, float]:
        return self.to_geo(*pixels_to_meters(px, py, zoom))
