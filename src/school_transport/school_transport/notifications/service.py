from __future__ import annotations

from typing import Iterable, Optional

from ..core.enums import AttendanceStatus, TripStatus
from .hub import NotificationHub, Subscription, tenant_group, trip_group


class NotificationService:
    """Builds the real-time events pushed to dashboards and parent apps."""

    def __init__(self, hub: NotificationHub):
        self._hub = hub

    def open_stream(self, *, tenant_id: int, trip_ids: Iterable[int] = ()) -> Subscription:
        """Subscribe a client to its tenant group plus one group per followed trip."""
        groups = [tenant_group(tenant_id)] + [trip_group(t) for t in dict.fromkeys(trip_ids)]
        return self._hub.subscribe(groups)

    def close_stream(self, sub: Subscription) -> None:
        self._hub.unsubscribe(sub)

    def send_trip_update(
        self,
        *,
        tenant_id: int,
        trip_id: int,
        status: TripStatus,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> int:
        payload = {
            "trip_id": trip_id,
            "status": status.value,
            "current_location": {"latitude": latitude, "longitude": longitude},
        }
        return self._hub.publish(tenant_group(tenant_id), "TripUpdate", payload) + self._hub.publish(
            trip_group(trip_id), "TripUpdate", payload
        )

    def send_attendance_update(
        self,
        *,
        tenant_id: int,
        student_id: int,
        trip_id: int,
        status: AttendanceStatus,
        location: Optional[str] = None,
    ) -> int:
        return self._hub.publish(
            tenant_group(tenant_id),
            "AttendanceUpdate",
            {"student_id": student_id, "trip_id": trip_id, "status": status.value, "location": location},
        )

    def send_emergency_alert(self, *, tenant_id: int, message: str) -> int:
        return self._hub.publish(tenant_group(tenant_id), "EmergencyAlert", {"message": message, "type": "Emergency"})

    def send_trip_location_update(
        self, *, trip_id: int, vehicle_id: int, latitude: float, longitude: float, speed_kmh: float, heading_deg: float
    ) -> int:
        return self._hub.publish(
            trip_group(trip_id),
            "LocationUpdate",
            {
                "trip_id": trip_id,
                "vehicle_id": vehicle_id,
                "latitude": latitude,
                "longitude": longitude,
                "speed_kmh": speed_kmh,
                "heading_deg": heading_deg,
            },
        )

    def send_student_pickup_notification(self, *, tenant_id: int, student_id: int, status: str) -> int:
        return self._hub.publish(
            tenant_group(tenant_id), "StudentPickupNotification", {"student_id": student_id, "status": status}
        )

    def send_geofence_alert(self, *, tenant_id: int, alert: dict) -> int:
        return self._hub.publish(tenant_group(tenant_id), "GeofenceAlert", alert)
