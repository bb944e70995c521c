# tiles.py
from __future__ import annotations
import math
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, List, Optional

import contextily as ctx
import numpy as np
import requests
from PIL import Image

from .projection import TILE_SIZE

DEFAULT_TILES = "OpenStreetMap.Mapnik"
DEFAULT_USER_AGENT = "toiletmap/0.1 (+https://www.openstreetmap.org/copyright)"
DEFAULT_OVERSCAN = 1


@dataclass(frozen=True)
class TileKey:
    """(zoom, x, y): identity of one tile image"""
    zoom: int
    x: int
    y: int


@dataclass(frozen=True)
class TilePlacement:
    key: TileKey
    left: float
    top: float


def visible_tiles(center_px: float, center_py: float, zoom: int,
                  width: float, height: float,
                  overscan: int = DEFAULT_OVERSCAN) -> List[TilePlacement]:
    """
    Tiles covering a width x height surface centred on (center_px, center_py),
    plus `overscan` extra tiles on every side. Indices outside
    [0, 2^zoom - 1] do not exist and are dropped (no wrapping).
    """
    tiles_x = math.ceil(width / TILE_SIZE) + 2 * overscan
    tiles_y = math.ceil(height / TILE_SIZE) + 2 * overscan
    max_index = 2 ** zoom - 1

    base_x = math.floor(center_px / TILE_SIZE)
    base_y = math.floor(center_py / TILE_SIZE)

    placements: List[TilePlacement] = []
    for i in range(-(tiles_x // 2), math.ceil(tiles_x / 2) + 1):
        for j in range(-(tiles_y // 2), math.ceil(tiles_y / 2) + 1):
            tx, ty = base_x + i, base_y + j
            if tx < 0 or ty < 0 or tx > max_index or ty > max_index:
                continue
            left = width / 2 + (tx * TILE_SIZE - center_px)
            top = height / 2 + (ty * TILE_SIZE - center_py)
            placements.append(TilePlacement(TileKey(zoom, tx, ty), left, top))
    return placements


@dataclass(frozen=True)
class TileSource:
    """Provider name ('OpenStreetMap.Mapnik') or URL template with {z}/{x}/{y}."""
    tiles: str = DEFAULT_TILES

    def _resolve(self):
        if self.tiles.startswith(("http://", "https://")):
            return self.tiles
        prov = ctx.providers
        for p in self.tiles.split("."):
            if p: prov = getattr(prov, p)
        return prov

    def url(self, key: TileKey) -> str:
        provider = self._resolve()
        if isinstance(provider, str):
            return provider.format(s="a", z=key.zoom, x=key.x, y=key.y)
        return provider.build_url(x=key.x, y=key.y, z=key.zoom)

    def attribution(self) -> str:
        provider = self._resolve()
        if isinstance(provider, str):
            return ""
        return provider.get("attribution", "")


class TileCache:
    """
    Identity-keyed tile images.

    request() schedules a background load and returns at once; a key that was
    already requested reuses its future, so stale loads from an earlier
    viewport simply fill their own slot. get() never blocks: it returns an
    RGBA array once loaded and None while pending or after a failure.
    Failed loads are kept as None and not retried.
    """

    def __init__(self, source: TileSource, *, workers: int = 4, timeout: float = 10.0,
                 max_entries: int = 512, user_agent: str = DEFAULT_USER_AGENT):
        self.source = source
        self.timeout = timeout
        self.max_entries = max_entries
        self.headers = {"User-Agent": user_agent}
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tile")
        self._futures: "OrderedDict[TileKey, Future]" = OrderedDict()
        self._lock = threading.Lock()

    # --- Loading ---

    def _load(self, key: TileKey) -> Optional[np.ndarray]:
        # any failure, from building the URL to decoding, leaves the tile blank
        try:
            url = self.source.url(key)
            resp = requests.get(url, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
            img = Image.open(BytesIO(resp.content)).convert("RGBA")
        except (requests.RequestException, OSError, ValueError, KeyError, IndexError,
                Image.DecompressionBombError):
            return None
        return np.asarray(img)

    def request(self, key: TileKey) -> Future:
        with self._lock:
            fut = self._futures.get(key)
            if fut is not None:
                self._futures.move_to_end(key)
                return fut
            fut = self._executor.submit(self._load, key)
            self._futures[key] = fut
            while len(self._futures) > self.max_entries:
                self._futures.popitem(last=False)
            return fut

    def request_all(self, keys: Iterable[TileKey]) -> None:
        for k in keys:
            self.request(k)

    # --- Lookup ---

    def get(self, key: TileKey) -> Optional[np.ndarray]:
        with self._lock:
            fut = self._futures.get(key)
        if fut is None or not fut.done() or fut.cancelled():
            return None
        if fut.exception() is not None:
            return None
        return fut.result()

    def wait(self, keys: Iterable[TileKey], timeout: float | None = None) -> None:
        """Blocks until the given tiles settle. Only the snapshot path uses this."""
        futs = [self.request(k) for k in keys]
        wait_futures(futs, timeout=timeout)

    def __contains__(self, key: TileKey) -> bool:
        with self._lock:
            return key in self._futures

    def __len__(self) -> int:
        with self._lock:
            return len(self._futures)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "TileCache":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
