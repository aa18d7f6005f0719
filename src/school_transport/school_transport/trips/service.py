from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local, parse_iso_datetime
from ..core.enums import TripStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, service_result
from ..drivers.repository import DriverRepository
from ..notifications.service import NotificationService
from ..routes.repository import RouteRepository
from ..vehicles.repository import VehicleRepository
from .model import Trip, TripSearch
from .repository import TripRepository

logger = logging.getLogger(__name__)


def parse_trip_status(value: Any) -> TripStatus:
    try:
        return TripStatus(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid trip status")


def _datetime_field(payload: dict, key: str, current: Optional[datetime]) -> Optional[datetime]:
    if key not in payload:
        return current
    raw = payload[key]
    if not raw:
        return None
    try:
        return parse_iso_datetime(str(raw))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 timestamp")


def _optional_float(payload: dict, key: str, current: Optional[float]) -> Optional[float]:
    if key not in payload:
        return current
    raw = payload[key]
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")


def build_trip(payload: dict, *, tenant_id: int, base: Optional[Trip] = None) -> Trip:
    b = base

    def pick_id(key: str, current: Optional[int]) -> int:
        raw = payload.get(key, current)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} is required")
        if value <= 0:
            raise ValidationError(f"{key} is required")
        return value

    scheduled_start = _datetime_field(payload, "scheduled_start", b.scheduled_start if b else None)
    scheduled_end = _datetime_field(payload, "scheduled_end", b.scheduled_end if b else None)
    if scheduled_start is None or scheduled_end is None:
        raise ValidationError("Scheduled start and end times are required")
    if scheduled_end <= scheduled_start:
        raise ValidationError("Scheduled end time must be after start time")

    status_raw = payload.get("status")
    return Trip(
        trip_id=b.trip_id if b else 0,
        tenant_id=tenant_id,
        route_id=pick_id("route_id", b.route_id if b else None),
        vehicle_id=pick_id("vehicle_id", b.vehicle_id if b else None),
        driver_id=pick_id("driver_id", b.driver_id if b else None),
        scheduled_start=scheduled_start,
        scheduled_end=scheduled_end,
        status=parse_trip_status(status_raw) if status_raw else (b.status if b else TripStatus.SCHEDULED),
        actual_start=_datetime_field(payload, "actual_start", b.actual_start if b else None),
        actual_end=_datetime_field(payload, "actual_end", b.actual_end if b else None),
        start_mileage=_optional_float(payload, "start_mileage", b.start_mileage if b else None),
        end_mileage=_optional_float(payload, "end_mileage", b.end_mileage if b else None),
        notes=payload.get("notes", b.notes if b else None),
    )


class TripService:
    """Trip scheduling and the SCHEDULED -> IN_PROGRESS -> COMPLETED lifecycle."""

    def __init__(
        self,
        trips: TripRepository,
        routes: RouteRepository,
        vehicles: VehicleRepository,
        drivers: DriverRepository,
        notifications: NotificationService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._trips = trips
        self._routes = routes
        self._vehicles = vehicles
        self._drivers = drivers
        self._notifications = notifications
        self._clock = clock

    def _require(self, tenant_id: int, trip_id: int) -> Trip:
        trip = self._trips.get_by_id(tenant_id, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")
        return trip

    def _check_references(self, trip: Trip) -> None:
        if not self._routes.get_by_id(trip.tenant_id, trip.route_id):
            raise ValidationError("Route not found")
        if not self._vehicles.get_by_id(trip.tenant_id, trip.vehicle_id):
            raise ValidationError("Vehicle not found")
        if not self._drivers.get_by_id(trip.tenant_id, trip.driver_id):
            raise ValidationError("Driver not found")

    def _save_transition(self, trip: Trip) -> Trip:
        self._trips.update(trip)
        vehicle = self._vehicles.get_by_id(trip.tenant_id, trip.vehicle_id)
        self._notifications.send_trip_update(
            tenant_id=trip.tenant_id,
            trip_id=trip.trip_id,
            status=trip.status,
            latitude=vehicle.current_latitude if vehicle else None,
            longitude=vehicle.current_longitude if vehicle else None,
        )
        logger.info("Trip %s is now %s", trip.trip_id, trip.status.value)
        return self._require(trip.tenant_id, trip.trip_id)

    @service_result("An error occurred while retrieving the trip")
    def get_trip(self, *, tenant_id: int, trip_id: int) -> Trip:
        return self._require(tenant_id, trip_id)

    @service_result("An error occurred while retrieving trips")
    def search_trips(self, *, tenant_id: int, criteria: TripSearch, page: int = 1, page_size: int = 20) -> PagedResult:
        items, total = self._trips.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while creating the trip")
    def create_trip(self, *, tenant_id: int, payload: dict) -> Trip:
        trip = build_trip(payload, tenant_id=tenant_id)
        self._check_references(trip)
        trip_id = self._trips.create(trip)
        return self._require(tenant_id, trip_id)

    @service_result("An error occurred while updating the trip")
    def update_trip(self, *, tenant_id: int, trip_id: int, payload: dict) -> Trip:
        existing = self._require(tenant_id, trip_id)
        updated = build_trip(payload, tenant_id=tenant_id, base=existing)
        self._check_references(updated)
        self._trips.update(updated)
        return self._require(tenant_id, trip_id)

    @service_result("An error occurred while deleting the trip")
    def delete_trip(self, *, tenant_id: int, trip_id: int, deleted_by: Optional[int] = None) -> bool:
        self._require(tenant_id, trip_id)
        return self._trips.soft_delete(tenant_id=tenant_id, trip_id=trip_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving trips for the route")
    def get_trips_by_route_and_date(self, *, tenant_id: int, route_id: int, trip_date: date) -> list[Trip]:
        return list(self._trips.list_by_route_and_date(tenant_id, route_id, trip_date))

    @service_result("An error occurred while retrieving active trips")
    def get_active_trips(self, *, tenant_id: int, trip_date: Optional[date] = None) -> list[Trip]:
        return list(self._trips.list_active(tenant_id, trip_date or self._clock().date()))

    @service_result("An error occurred while starting the trip")
    def start_trip(self, *, tenant_id: int, trip_id: int, start_mileage: Optional[float] = None) -> Trip:
        trip = self._require(tenant_id, trip_id)
        if trip.status != TripStatus.SCHEDULED:
            raise ValidationError(f"Trip cannot be started. Current status: {trip.status.value}")
        return self._save_transition(
            replace(
                trip,
                status=TripStatus.IN_PROGRESS,
                actual_start=self._clock(),
                start_mileage=start_mileage if start_mileage is not None else trip.start_mileage,
            )
        )

    @service_result("An error occurred while ending the trip")
    def end_trip(self, *, tenant_id: int, trip_id: int, end_mileage: Optional[float] = None) -> Trip:
        trip = self._require(tenant_id, trip_id)
        if trip.status != TripStatus.IN_PROGRESS:
            raise ValidationError(f"Trip cannot be ended. Current status: {trip.status.value}")
        if end_mileage is not None and trip.start_mileage is not None and end_mileage < trip.start_mileage:
            raise ValidationError("End mileage cannot be less than start mileage")
        return self._save_transition(
            replace(
                trip,
                status=TripStatus.COMPLETED,
                actual_end=self._clock(),
                end_mileage=end_mileage if end_mileage is not None else trip.end_mileage,
            )
        )

    @service_result("An error occurred while cancelling the trip")
    def cancel_trip(self, *, tenant_id: int, trip_id: int, reason: Optional[str] = None) -> Trip:
        trip = self._require(tenant_id, trip_id)
        if trip.status in (TripStatus.COMPLETED, TripStatus.CANCELLED):
            raise ValidationError(f"Trip cannot be cancelled. Current status: {trip.status.value}")
        notes = trip.notes
        if reason:
            notes = f"{notes}\nCancelled: {reason}" if notes else f"Cancelled: {reason}"
        return self._save_transition(replace(trip, status=TripStatus.CANCELLED, notes=notes))
