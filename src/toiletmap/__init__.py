"""
toiletmap: slippy-map renderer for a crowd-sourced public toilet locator.

- model: toilet records (PointOfInterest) and their loaders
- visualizer2d: projection, tiles, markers, viewport and drawing
"""
__version__ = "0.1.0"
