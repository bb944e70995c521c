"""
2D slippy map for the toilet locator.

- projection: geo <-> Mercator meters <-> pixels
- tiles: visible tile window, tile URLs, identity-keyed image cache
- markers: pin / user-dot placement and culling
- viewport: SlippyMap (viewport, drag, zoom, selection) -> RenderFrame
- renderer / interactive: matplotlib drawing and window
- config / cli: MapConfig and the toiletmap-view command
"""
__all__ = ["projection", "tiles", "markers", "viewport", "renderer", "interactive", "config", "cli"]
