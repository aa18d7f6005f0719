from __future__ import annotations

from datetime import datetime

import pytest

from src.school_transport.school_transport.core.enums import TripStatus
from src.school_transport.school_transport.core.exceptions import NotFoundError, ValidationError
from src.school_transport.school_transport.core.result import Result
from src.school_transport.school_transport.notifications.controller import format_sse, parse_trip_ids, require_tenant_trips
from src.school_transport.school_transport.notifications.hub import NotificationHub, tenant_group, trip_group
from src.school_transport.school_transport.notifications.service import NotificationService

NOW = datetime(2026, 3, 2, 7, 15, 0)


def _hub(**kwargs) -> NotificationHub:
    return NotificationHub(clock=lambda: NOW, **kwargs)


def test_publish_reaches_group_members_only():
    hub = _hub()
    tenant_sub = hub.subscribe([tenant_group(1)])
    other_sub = hub.subscribe([tenant_group(2)])

    delivered = hub.publish(tenant_group(1), "EmergencyAlert", {"message": "Road closed"})

    assert delivered == 1
    event = tenant_sub.get(timeout=0)
    assert event.event == "EmergencyAlert"
    assert event.payload == {"message": "Road closed"}
    assert event.sent_at == NOW
    assert other_sub.get(timeout=0) is None


def test_unsubscribe_leaves_all_groups():
    hub = _hub()
    sub = hub.subscribe([tenant_group(1), trip_group(9)])
    assert hub.group_size(trip_group(9)) == 1

    hub.unsubscribe(sub)

    assert hub.group_size(tenant_group(1)) == 0
    assert hub.group_size(trip_group(9)) == 0
    assert hub.publish(tenant_group(1), "TripUpdate", {}) == 0


def test_full_queue_drops_instead_of_blocking():
    hub = _hub(queue_size=1)
    sub = hub.subscribe([tenant_group(1)])

    assert hub.publish(tenant_group(1), "A", {}) == 1
    assert hub.publish(tenant_group(1), "B", {}) == 0
    assert sub.get(timeout=0).event == "A"


def test_trip_update_goes_to_tenant_and_trip_groups():
    hub = _hub()
    tenant_sub = hub.subscribe([tenant_group(1)])
    trip_sub = hub.subscribe([trip_group(4)])
    service = NotificationService(hub)

    delivered = service.send_trip_update(tenant_id=1, trip_id=4, status=TripStatus.IN_PROGRESS, latitude=24.7, longitude=46.7)

    assert delivered == 2
    assert tenant_sub.get(timeout=0).payload["status"] == "IN_PROGRESS"
    assert trip_sub.get(timeout=0).payload["current_location"] == {"latitude": 24.7, "longitude": 46.7}


def test_format_sse_frame():
    hub = _hub()
    sub = hub.subscribe([tenant_group(1)])
    hub.publish(tenant_group(1), "AttendanceUpdate", {"student_id": 3})

    frame = format_sse(sub.get(timeout=0))

    assert frame.startswith("event: AttendanceUpdate\ndata: ")
    assert frame.endswith("\n\n")
    assert '"student_id": 3' in frame
    assert '"group": "tenant_1"' in frame


class FakeTripService:
    def __init__(self, trips_by_tenant):
        self.trips_by_tenant = trips_by_tenant

    def get_trip(self, *, tenant_id, trip_id):
        if trip_id in self.trips_by_tenant.get(tenant_id, ()):
            return Result.success(object())
        return Result.failure(f"Trip {trip_id} not found", not_found=True)


def test_open_stream_joins_tenant_and_each_trip_once():
    hub = _hub()
    sub = NotificationService(hub).open_stream(tenant_id=1, trip_ids=[5, 7, 5])

    assert sub.groups == {tenant_group(1), trip_group(5), trip_group(7)}
    assert hub.group_size(trip_group(5)) == 1


def test_stream_trip_ids_must_belong_to_the_tenant():
    trips = FakeTripService({1: {5}, 2: {9}})

    assert require_tenant_trips(trips, tenant_id=1, trip_ids=[5]) == [5]
    with pytest.raises(NotFoundError):
        require_tenant_trips(trips, tenant_id=1, trip_ids=[5, 9])


def test_parse_trip_ids_rejects_non_numbers():
    assert parse_trip_ids(["5", "7"]) == [5, 7]
    with pytest.raises(ValidationError):
        parse_trip_ids(["abc"])
