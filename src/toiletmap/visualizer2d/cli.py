# cli.py
import argparse, sys
from dataclasses import asdict

import matplotlib.pyplot as plt
import requests
from jsonschema import ValidationError

from toiletmap.model.loader import ToiletLoader, ToiletLoadError
from .config import MapConfig, load_json
from .interactive import InteractiveMap
from .projection import MercatorProjector
from .renderer import PlotRenderer, new_surface
from .tiles import TileCache, TileSource
from .viewport import SlippyMap, Viewport

TAG = "[ToiletMap]"


class StaticLocationProvider:
    """Pushes a fixed user location; stands in for a device geolocation feed."""

    def __init__(self, lat: float | None, lon: float | None):
        self.lat = lat
        self.lon = lon

    def attach(self, smap: SlippyMap) -> None:
        if self.lat is None or self.lon is None:
            return
        smap.add_center_request_handler(lambda: self.push(smap))
        self.push(smap)

    def push(self, smap: SlippyMap) -> None:
        smap.on_location_update(self.lat, self.lon)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Public toilet map viewer")
    p.add_argument("--config")
    p.add_argument("--toilets", help="JSON file with toilet records")
    p.add_argument("--api-url", dest="api_url", help="backend base URL (lists GET /toilets)")
    p.add_argument("--include-pending", dest="include_pending", action="store_true", default=None)
    p.add_argument("--tiles", help="provider name or {z}/{x}/{y} URL template")
    p.add_argument("--center-lat", dest="center_lat", type=float)
    p.add_argument("--center-lon", dest="center_lon", type=float)
    p.add_argument("--zoom", type=int)
    p.add_argument("--width", type=int)
    p.add_argument("--height", type=int)
    p.add_argument("--user-lat", dest="user_lat", type=float)
    p.add_argument("--user-lon", dest="user_lon", type=float)
    p.add_argument("--use-pyproj", dest="use_pyproj", action="store_true", default=None)
    p.add_argument("--snapshot", help="render once to this PNG and exit")
    return p.parse_args(argv)


def build_config(args) -> MapConfig:
    cfg_dict = load_json(args.config)
    # JSON as defaults, CLI flags override
    for k, v in vars(args).items():
        if k == "config": continue
        if v is not None: cfg_dict[k] = v
    return MapConfig.from_dict(cfg_dict)


def load_points(cfg: MapConfig):
    loader = ToiletLoader(validate_schema=True, include_pending=cfg.include_pending)
    if cfg.toilets:
        return loader.load_file(cfg.toilets)
    if cfg.api_url:
        return loader.fetch_approved(cfg.api_url)
    print(f"{TAG} no toilets source given (--toilets / --api-url); showing an empty map")
    return []


def build_map(cfg: MapConfig, points) -> SlippyMap:
    smap = SlippyMap(
        Viewport(cfg.center_lat, cfg.center_lon, cfg.zoom),
        points,
        projector=MercatorProjector(use_pyproj=cfg.use_pyproj),
        overscan=cfg.overscan,
        cull_margin=cfg.cull_margin,
        click_threshold=cfg.click_threshold,
    )

    def _on_selected(poi_id: int):
        poi = smap.selected
        print(f"{TAG} selected toilet {poi_id}: {poi.name if poi else '?'}")

    smap.add_marker_selected_handler(_on_selected)
    StaticLocationProvider(cfg.user_lat, cfg.user_lon).attach(smap)
    return smap


def render_snapshot(smap: SlippyMap, renderer: PlotRenderer, cfg: MapConfig) -> None:
    plt.switch_backend("Agg")
    frame = smap.render(cfg.width, cfg.height)
    if renderer.cache is not None:
        renderer.cache.wait([t.key for t in frame.tiles], timeout=cfg.tile_timeout)
    fig, ax = new_surface(cfg.width, cfg.height)
    renderer.draw(ax, frame)
    fig.savefig(cfg.snapshot, dpi=fig.dpi)
    plt.close(fig)
    print(f"{TAG} tiles={len(frame.tiles)} markers={len(frame.markers)} -> {cfg.snapshot}")


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        cfg = build_config(args)
    except (FileNotFoundError, ValueError, TypeError) as e:
        print(f"[ERROR] bad configuration: {e}", file=sys.stderr)
        return 1

    try:
        points = load_points(cfg)
    except (FileNotFoundError, ValidationError, ToiletLoadError, requests.RequestException) as e:
        print(f"[ERROR] failed to load toilets: {e}", file=sys.stderr)
        return 1
    print(f"{TAG} toilets loaded: {len(points)}")

    smap = build_map(cfg, points)
    source = TileSource(cfg.tiles)
    with TileCache(source, workers=cfg.tile_workers, timeout=cfg.tile_timeout,
                   user_agent=cfg.user_agent) as cache:
        renderer = PlotRenderer(cache, attribution=source.attribution())
        if cfg.snapshot:
            render_snapshot(smap, renderer, cfg)
            return 0

        print(f"{TAG} config: {asdict(cfg)}")
        InteractiveMap(smap, renderer, cfg.width, cfg.height).show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
