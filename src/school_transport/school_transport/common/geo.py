from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.constants import EARTH_RADIUS_KM


@dataclass(frozen=True)
class Position:
    """A WGS84 point in decimal degrees."""

    latitude: float
    longitude: float


def haversine_km(a: Position, b: Position) -> float:
    """Great-circle distance in kilometres (mean Earth radius 6371 km)."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlmb = math.radians(b.longitude - a.longitude)

    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    c = 2 * math.atan2(math.sqrt(s), math.sqrt(1 - s))
    return EARTH_RADIUS_KM * c


def bearing_deg(a: Position, b: Position) -> float:
    # Initial bearing (forward azimuth), degrees true, [0,360)
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dlmb = math.radians(b.longitude - a.longitude)

    y = math.sin(dlmb) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlmb)
    brng = math.degrees(math.atan2(y, x))
    return (brng + 360.0) % 360.0


def within_radius(a: Position, b: Position, radius_km: float) -> bool:
    return haversine_km(a, b) <= radius_km
