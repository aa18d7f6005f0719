from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.school_transport.school_transport.common.datetime_utils import optional_datetime
from src.school_transport.school_transport.common.geo import Position
from src.school_transport.school_transport.core.enums import TripStatus, ViolationType
from src.school_transport.school_transport.notifications.hub import NotificationHub, tenant_group, trip_group
from src.school_transport.school_transport.notifications.service import NotificationService
from src.school_transport.school_transport.routes.model import RouteStop
from src.school_transport.school_transport.tracking.service import TrackingService, eta_confidence
from src.school_transport.school_transport.trips.model import Trip

KM_PER_DEGREE_LAT = 6371.0 * math.pi / 180.0
NOW = datetime(2026, 3, 2, 7, 0, 0)
STOP = RouteStop(stop_id=10, tenant_id=1, route_id=1, name="Olaya St", latitude=24.69, longitude=46.685, stop_order=1)


class InMemoryLocations:
    def __init__(self):
        self.rows = []

    def add(self, location):
        self.rows.append(replace(location, location_id=len(self.rows) + 1))
        return len(self.rows)

    def latest(self, tenant_id, vehicle_id, *, before):
        prior = [r for r in self.rows if r.vehicle_id == vehicle_id and r.recorded_at <= before]
        return max(prior, key=lambda r: r.recorded_at) if prior else None

    def latest_active(self, tenant_id, vehicle_id):
        active = [r for r in self.rows if r.vehicle_id == vehicle_id and r.is_active]
        return max(active, key=lambda r: r.recorded_at) if active else None

    def average_speed_since(self, tenant_id, vehicle_id, since):
        return 0.0

    def deactivate_vehicle(self, tenant_id, vehicle_id):
        self.rows = [replace(r, is_active=False) if r.vehicle_id == vehicle_id else r for r in self.rows]
        return len(self.rows)

    def history(self, tenant_id, vehicle_id, start, end):
        return [r for r in self.rows if r.vehicle_id == vehicle_id and start <= r.recorded_at <= end]


class FakeVehicles:
    def __init__(self):
        self.positions = {}

    def get_by_id(self, tenant_id, vehicle_id):
        return object() if vehicle_id == 3 else None

    def update_location(self, *, tenant_id, vehicle_id, latitude, longitude, at):
        self.positions[vehicle_id] = (latitude, longitude, at)
        return True


class InMemoryTrips:
    def __init__(self, trip):
        self.trip = trip

    def get_by_id(self, tenant_id, trip_id):
        return self.trip if trip_id == self.trip.trip_id else None

    def get_in_progress_for_vehicle(self, tenant_id, vehicle_id):
        if self.trip.vehicle_id == vehicle_id and self.trip.status == TripStatus.IN_PROGRESS:
            return self.trip
        return None

    def update(self, trip):
        self.trip = trip
        return True


class FakeRoutes:
    def list_stops(self, tenant_id, route_id):
        return [STOP]


def _trip(status=TripStatus.SCHEDULED):
    return Trip(
        trip_id=5, tenant_id=1, route_id=1, vehicle_id=3, driver_id=2,
        scheduled_start=NOW, scheduled_end=NOW + timedelta(hours=1), status=status,
    )


def _service(trip=None, clock=lambda: NOW):
    hub = NotificationHub(clock=lambda: NOW)
    locations = InMemoryLocations()
    vehicles = FakeVehicles()
    trips = InMemoryTrips(trip or _trip())
    svc = TrackingService(locations, vehicles, trips, FakeRoutes(), NotificationService(hub), restricted_areas=(), clock=clock)
    return svc, locations, vehicles, trips, hub


def test_start_tracking_moves_trip_in_progress():
    svc, _, _, trips, hub = _service()
    sub = hub.subscribe([tenant_group(1)])

    assert svc.start_tracking(tenant_id=1, vehicle_id=3, trip_id=5).value is True
    assert trips.trip.status == TripStatus.IN_PROGRESS
    assert trips.trip.actual_start == NOW
    assert sub.get(timeout=0).payload["status"] == "IN_PROGRESS"


def test_start_tracking_rejects_other_vehicle_and_finished_trips():
    svc, _, _, _, _ = _service()
    assert svc.start_tracking(tenant_id=1, vehicle_id=3, trip_id=9).not_found

    svc, _, _, _, _ = _service(replace(_trip(), vehicle_id=4))
    assert svc.start_tracking(tenant_id=1, vehicle_id=3, trip_id=5).error == "Trip is not assigned to this vehicle"

    svc, _, _, _, _ = _service(_trip(TripStatus.COMPLETED))
    assert svc.start_tracking(tenant_id=1, vehicle_id=3, trip_id=5).is_failure


def test_record_location_computes_speed_and_publishes_to_trip():
    svc, locations, vehicles, _, hub = _service(_trip(TripStatus.IN_PROGRESS))
    sub = hub.subscribe([trip_group(5)])

    first = svc.record_location(tenant_id=1, vehicle_id=3, latitude=24.69, longitude=46.685, recorded_at=NOW).value
    assert first.speed_kmh == 0.0
    assert first.trip_id == 5

    second = svc.record_location(
        tenant_id=1,
        vehicle_id=3,
        latitude=24.69 + 1.0 / KM_PER_DEGREE_LAT,
        longitude=46.685,
        recorded_at=NOW + timedelta(minutes=2),
    ).value
    assert second.speed_kmh == pytest.approx(30.0, rel=0.01)
    assert second.heading_deg == pytest.approx(0.0, abs=0.01)
    assert vehicles.positions[3][2] == NOW + timedelta(minutes=2)
    assert len(locations.rows) == 2

    assert sub.get(timeout=0).event == "LocationUpdate"


def test_record_location_validates_coordinates():
    svc, locations, _, _, _ = _service()
    assert svc.record_location(tenant_id=1, vehicle_id=3, latitude=91.0, longitude=0.0).is_failure
    assert svc.record_location(tenant_id=1, vehicle_id=99, latitude=1.0, longitude=1.0).not_found
    assert locations.rows == []


def test_stop_tracking_deactivates_and_completes_trip():
    svc, locations, _, trips, _ = _service(_trip(TripStatus.IN_PROGRESS))
    svc.record_location(tenant_id=1, vehicle_id=3, latitude=24.69, longitude=46.685)

    assert svc.stop_tracking(tenant_id=1, vehicle_id=3).value is True
    assert trips.trip.status == TripStatus.COMPLETED
    assert all(not r.is_active for r in locations.rows)


def test_violations_need_an_in_progress_trip():
    svc, _, _, _, _ = _service()
    far = Position(STOP.latitude + 3.0 / KM_PER_DEGREE_LAT, STOP.longitude)
    assert svc.check_violations(tenant_id=1, vehicle_id=3, position=far).value == []

    svc, _, _, _, _ = _service(_trip(TripStatus.IN_PROGRESS))
    alerts = svc.check_violations(tenant_id=1, vehicle_id=3, position=far).value
    assert [a.violation_type for a in alerts] == [ViolationType.ROUTE_DEVIATION]


def test_eta_uses_default_speed_and_buffer():
    svc, _, _, _, _ = _service(_trip(TripStatus.IN_PROGRESS))
    svc.record_location(tenant_id=1, vehicle_id=3, latitude=24.69 + 3.0 / KM_PER_DEGREE_LAT, longitude=46.685)

    eta = svc.calculate_eta(tenant_id=1, trip_id=5, stop_id=10).value

    assert eta.distance_km == pytest.approx(3.0, abs=0.01)
    assert eta.average_speed_kmh == 30.0
    assert eta.confidence == 0.9
    # 6 minutes driving plus a 6 minute buffer
    assert abs(eta.estimated_arrival - (NOW + timedelta(minutes=12))) < timedelta(seconds=5)
    assert svc.calculate_eta(tenant_id=1, trip_id=5, stop_id=11).not_found


def test_eta_confidence_bands():
    assert eta_confidence(4.9, 30.0) == 0.9
    assert eta_confidence(10.0, 30.0) == 0.7
    assert eta_confidence(20.0, 30.0) == 0.5


def test_stream_following_a_trip_receives_location_updates():
    svc, _, _, _, hub = _service(_trip(TripStatus.IN_PROGRESS))
    notifications = NotificationService(hub)
    follower = notifications.open_stream(tenant_id=1, trip_ids=[5])
    tenant_only = notifications.open_stream(tenant_id=1)

    svc.record_location(tenant_id=1, vehicle_id=3, latitude=24.69, longitude=46.685, recorded_at=NOW)

    event = follower.get(timeout=0)
    assert event.event == "LocationUpdate"
    assert event.group == trip_group(5)
    assert event.payload["vehicle_id"] == 3
    assert tenant_only.get(timeout=0) is None

    notifications.close_stream(follower)
    assert hub.group_size(trip_group(5)) == 0


def test_record_location_accepts_timestamps_with_an_offset():
    svc, locations, _, _, _ = _service(_trip(TripStatus.IN_PROGRESS))
    svc.record_location(tenant_id=1, vehicle_id=3, latitude=24.69, longitude=46.685, recorded_at=NOW)
    with_offset = optional_datetime((NOW + timedelta(minutes=2)).astimezone().isoformat())

    second = svc.record_location(
        tenant_id=1,
        vehicle_id=3,
        latitude=24.69 + 1.0 / KM_PER_DEGREE_LAT,
        longitude=46.685,
        recorded_at=with_offset,
    )

    assert second.is_success
    assert second.value.recorded_at == NOW + timedelta(minutes=2)
    assert second.value.speed_kmh == pytest.approx(30.0, rel=0.01)
    assert len(locations.rows) == 2
