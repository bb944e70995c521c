"""
Model layer: toilet records and the loaders that build them.

- models: PointOfInterest / ToiletType / GeoPoint
- loader: JSON file or REST API -> list[PointOfInterest]
"""
__all__ = ["models", "loader"]
