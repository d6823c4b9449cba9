"""
Geo Service
====================================

Geographic helpers for provider ranking and request display.

Uses the haversine formula for great-circle distance between two points
on Earth's surface (mean radius 6371 km). Accurate enough for choosing the
nearest garage branch; no road-network routing is attempted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

# Earth's mean radius in kilometres
EARTH_RADIUS_KM: float = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    @classmethod
    def from_decimals(cls, lat: Decimal | float, lng: Decimal | float) -> GeoPoint:
        return cls(lat=float(lat), lng=float(lng))

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points using the
    haversine formula.

    Args:
        lat1: Latitude of point 1 in decimal degrees.
        lon1: Longitude of point 1 in decimal degrees.
        lat2: Latitude of point 2 in decimal degrees.
        lon2: Longitude of point 2 in decimal degrees.

    Returns:
        Distance in kilometres.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push ``a`` just past 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_to_provider(origin: GeoPoint, provider: Any) -> float:
    """Distance in km from ``origin`` to a provider's current location.

    ``provider`` is anything exposing ``current_latitude`` and
    ``current_longitude``.
    """
    return haversine_distance(
        origin.lat,
        origin.lng,
        float(provider.current_latitude),
        float(provider.current_longitude),
    )
