from __future__ import annotations

from datetime import time

from ..common.geo import Position
from ..geofence.model import RestrictedArea

DEFAULT_RESTRICTED_AREAS = (
    RestrictedArea(
        name="Hospital Zone",
        center=Position(24.7136, 46.6753),
        radius_km=0.5,
        restricted_from=time(22, 0),
        restricted_until=time(6, 0),
    ),
)
