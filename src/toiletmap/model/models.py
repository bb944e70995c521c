from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# --- Categories -----------------------------------------------------------

class ToiletType(str, Enum):
    """Pricing category of a toilet, as stored by the backend."""
    FREE = "free"
    PAID = "paid"
    PURCHASE_REQUIRED = "purchase_required"


# --- Geometry -------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


# --- Points of interest ---------------------------------------------------

@dataclass(frozen=True)
class PointOfInterest:
    """
    One toilet record. Owned by the data layer; the renderer only reads it.
    `id` is the identity used for selection.
    """
    id: int
    latitude: float
    longitude: float
    category: ToiletType
    name: str = ""
    address: str = ""
    price: Optional[str] = None
    description: Optional[str] = None
    approved: bool = True
    created_at: Optional[str] = None

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)

    def price_label(self) -> str:
        """Badge text shown in the detail card."""
        if self.category is ToiletType.FREE:
            return "Free"
        if self.price:
            return f"{self.price} ₽"
        return "Purchase required"


__all__ = [
    "ToiletType",
    "GeoPoint",
    "PointOfInterest",
]
