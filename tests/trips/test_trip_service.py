from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from src.school_transport.school_transport.core.enums import TripStatus
from src.school_transport.school_transport.notifications.hub import NotificationHub, tenant_group
from src.school_transport.school_transport.notifications.service import NotificationService
from src.school_transport.school_transport.trips.service import TripService

NOW = datetime(2026, 3, 2, 6, 35, 0)


@dataclass(frozen=True)
class StubVehicle:
    vehicle_id: int
    current_latitude: Optional[float] = 24.69
    current_longitude: Optional[float] = 46.685


class InMemoryTrips:
    def __init__(self):
        self.rows = {}

    def get_by_id(self, tenant_id, trip_id):
        t = self.rows.get(trip_id)
        return t if t and t.tenant_id == tenant_id else None

    def create(self, trip):
        trip_id = len(self.rows) + 1
        self.rows[trip_id] = replace(trip, trip_id=trip_id)
        return trip_id

    def update(self, trip):
        self.rows[trip.trip_id] = trip
        return True


class Lookup:
    def __init__(self, known, factory=lambda i: object()):
        self.known = set(known)
        self.factory = factory

    def get_by_id(self, tenant_id, entity_id):
        return self.factory(entity_id) if entity_id in self.known else None


def _service():
    hub = NotificationHub(clock=lambda: NOW)
    trips = InMemoryTrips()
    svc = TripService(
        trips,
        Lookup({1}),
        Lookup({3}, StubVehicle),
        Lookup({5}),
        NotificationService(hub),
        clock=lambda: NOW,
    )
    return svc, trips, hub


def _payload(**overrides):
    values = {
        "route_id": 1,
        "vehicle_id": 3,
        "driver_id": 5,
        "scheduled_start": "2026-03-02T06:30:00",
        "scheduled_end": "2026-03-02T07:30:00",
    }
    values.update(overrides)
    return values


def test_create_validates_schedule_and_references():
    svc, _, _ = _service()

    assert svc.create_trip(tenant_id=1, payload=_payload(scheduled_end="2026-03-02T06:00:00")).error == (
        "Scheduled end time must be after start time"
    )
    assert svc.create_trip(tenant_id=1, payload=_payload(vehicle_id=99)).error == "Vehicle not found"
    assert svc.create_trip(tenant_id=1, payload=_payload(driver_id=None)).error == "driver_id is required"

    created = svc.create_trip(tenant_id=1, payload=_payload())
    assert created.is_success
    assert created.value.status == TripStatus.SCHEDULED


def test_full_lifecycle_publishes_updates():
    svc, _, hub = _service()
    sub = hub.subscribe([tenant_group(1)])
    trip_id = svc.create_trip(tenant_id=1, payload=_payload()).value.trip_id

    started = svc.start_trip(tenant_id=1, trip_id=trip_id, start_mileage=1200.0)
    assert started.value.status == TripStatus.IN_PROGRESS
    assert started.value.actual_start == NOW

    ended = svc.end_trip(tenant_id=1, trip_id=trip_id, end_mileage=1212.5)
    assert ended.value.status == TripStatus.COMPLETED
    assert ended.value.distance == 12.5

    events = [sub.get(timeout=0), sub.get(timeout=0)]
    assert [e.payload["status"] for e in events] == ["IN_PROGRESS", "COMPLETED"]
    assert events[0].payload["current_location"]["latitude"] == 24.69


def test_illegal_transitions_are_rejected():
    svc, _, _ = _service()
    trip_id = svc.create_trip(tenant_id=1, payload=_payload()).value.trip_id

    assert svc.end_trip(tenant_id=1, trip_id=trip_id).error == "Trip cannot be ended. Current status: SCHEDULED"
    svc.start_trip(tenant_id=1, trip_id=trip_id)
    assert svc.start_trip(tenant_id=1, trip_id=trip_id).is_failure


def test_end_mileage_cannot_go_backwards():
    svc, _, _ = _service()
    trip_id = svc.create_trip(tenant_id=1, payload=_payload()).value.trip_id
    svc.start_trip(tenant_id=1, trip_id=trip_id, start_mileage=500.0)

    assert svc.end_trip(tenant_id=1, trip_id=trip_id, end_mileage=450.0).error == "End mileage cannot be less than start mileage"


def test_cancel_appends_reason_and_is_final():
    svc, _, _ = _service()
    trip_id = svc.create_trip(tenant_id=1, payload=_payload(notes="Morning run")).value.trip_id

    cancelled = svc.cancel_trip(tenant_id=1, trip_id=trip_id, reason="Sandstorm")
    assert cancelled.value.status == TripStatus.CANCELLED
    assert cancelled.value.notes == "Morning run\nCancelled: Sandstorm"
    assert svc.cancel_trip(tenant_id=1, trip_id=trip_id).is_failure
    assert svc.start_trip(tenant_id=1, trip_id=trip_id).is_failure


def test_unknown_trip_is_not_found():
    svc, _, _ = _service()
    assert svc.start_trip(tenant_id=1, trip_id=42).not_found
