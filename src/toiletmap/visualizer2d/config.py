# config.py
from dataclasses import dataclass, fields
from pathlib import Path
import json

from .markers import DEFAULT_CULL_MARGIN
from .tiles import DEFAULT_OVERSCAN, DEFAULT_TILES, DEFAULT_USER_AGENT
from .viewport import DEFAULT_CENTER_LAT, DEFAULT_CENTER_LON, DEFAULT_ZOOM, DEFAULT_CLICK_THRESHOLD

@dataclass
class MapConfig:
    toilets: str | None = None            # JSON file with toilet records
    api_url: str | None = None            # backend base URL, e.g. http://localhost:5000/api
    include_pending: bool = False
    tiles: str = DEFAULT_TILES
    center_lat: float = DEFAULT_CENTER_LAT
    center_lon: float = DEFAULT_CENTER_LON
    zoom: int = DEFAULT_ZOOM
    width: int = 800
    height: int = 600
    user_lat: float | None = None
    user_lon: float | None = None
    overscan: int = DEFAULT_OVERSCAN
    cull_margin: float = DEFAULT_CULL_MARGIN
    click_threshold: float = DEFAULT_CLICK_THRESHOLD
    use_pyproj: bool = False
    tile_workers: int = 4
    tile_timeout: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    snapshot: str | None = None           # PNG path; renders once and exits

    @classmethod
    def from_dict(cls, d: dict) -> "MapConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")
        return cls(**d)

def load_json(path: str | None) -> dict:
    if not path: return {}
    p = Path(path)
    if not p.exists(): raise FileNotFoundError(path)
    with p.open("r", encoding="utf-8") as f: return json.load(f)
