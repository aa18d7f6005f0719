from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import now_local
from ..common.geo import Position, bearing_deg, haversine_km
from ..common.validators import require_latitude, require_longitude
from ..core.constants import (
    DEFAULT_AVERAGE_SPEED_KMH,
    ETA_MAX_BUFFER_MINUTES,
    ETA_SPEED_WINDOW_MINUTES,
)
from ..core.enums import TripStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import service_result
from ..geofence.evaluator import evaluate_restricted_areas, evaluate_route_deviation, evaluate_speed
from ..geofence.model import GeofenceAlert, RestrictedArea
from ..notifications.service import NotificationService
from ..routes.repository import RouteRepository
from ..trips.model import Trip
from ..trips.repository import TripRepository
from ..vehicles.repository import VehicleRepository
from .model import ArrivalEstimate, VehicleLocation
from .repository import VehicleLocationRepository
from .restricted_areas import DEFAULT_RESTRICTED_AREAS

logger = logging.getLogger(__name__)


def speed_between(previous: Optional[VehicleLocation], position: Position, at: datetime) -> float:
    if previous is None:
        return 0.0
    hours = (at - previous.recorded_at).total_seconds() / 3600.0
    if hours <= 0:
        return 0.0
    return haversine_km(previous.position, position) / hours


def eta_confidence(distance_km: float, average_speed_kmh: float) -> float:
    if average_speed_kmh > 0 and distance_km < 5:
        return 0.9
    if average_speed_kmh > 0 and distance_km < 15:
        return 0.7
    return 0.5


class TrackingService:
    """GPS fixes, live tracking sessions and tracking-time geofence checks."""

    def __init__(
        self,
        locations: VehicleLocationRepository,
        vehicles: VehicleRepository,
        trips: TripRepository,
        routes: RouteRepository,
        notifications: NotificationService,
        *,
        restricted_areas: Iterable[RestrictedArea] = DEFAULT_RESTRICTED_AREAS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._locations = locations
        self._vehicles = vehicles
        self._trips = trips
        self._routes = routes
        self._notifications = notifications
        self._restricted_areas = tuple(restricted_areas)
        self._clock = clock

    def _require_vehicle(self, tenant_id: int, vehicle_id: int) -> None:
        if not self._vehicles.get_by_id(tenant_id, vehicle_id):
            raise NotFoundError("Vehicle not found")

    def _require_trip(self, tenant_id: int, trip_id: int) -> Trip:
        trip = self._trips.get_by_id(tenant_id, trip_id)
        if not trip:
            raise NotFoundError("Trip not found")
        return trip

    def _set_trip_status(self, trip: Trip, status: TripStatus, **changes) -> None:
        self._trips.update(replace(trip, status=status, **changes))
        self._notifications.send_trip_update(tenant_id=trip.tenant_id, trip_id=trip.trip_id, status=status)

    @service_result("An error occurred while starting real-time tracking")
    def start_tracking(self, *, tenant_id: int, vehicle_id: int, trip_id: int) -> bool:
        self._require_vehicle(tenant_id, vehicle_id)
        trip = self._require_trip(tenant_id, trip_id)
        if trip.vehicle_id != vehicle_id:
            raise ValidationError("Trip is not assigned to this vehicle")
        if trip.status in (TripStatus.COMPLETED, TripStatus.CANCELLED):
            raise ValidationError(f"Trip cannot be tracked. Current status: {trip.status.value}")
        if trip.status != TripStatus.IN_PROGRESS:
            self._set_trip_status(trip, TripStatus.IN_PROGRESS, actual_start=self._clock())
        logger.info("Real-time tracking started for vehicle %s on trip %s", vehicle_id, trip_id)
        return True

    @service_result("An error occurred while stopping real-time tracking")
    def stop_tracking(self, *, tenant_id: int, vehicle_id: int) -> bool:
        self._require_vehicle(tenant_id, vehicle_id)
        self._locations.deactivate_vehicle(tenant_id, vehicle_id)
        trip = self._trips.get_in_progress_for_vehicle(tenant_id, vehicle_id)
        if trip is not None:
            self._set_trip_status(trip, TripStatus.COMPLETED, actual_end=self._clock())
        logger.info("Real-time tracking stopped for vehicle %s", vehicle_id)
        return True

    @service_result("An error occurred while updating vehicle location")
    def record_location(
        self,
        *,
        tenant_id: int,
        vehicle_id: int,
        latitude: float,
        longitude: float,
        recorded_at: Optional[datetime] = None,
    ) -> VehicleLocation:
        self._require_vehicle(tenant_id, vehicle_id)
        position = Position(require_latitude(latitude), require_longitude(longitude))
        at = recorded_at or self._clock()

        previous = self._locations.latest(tenant_id, vehicle_id, before=at)
        trip = self._trips.get_in_progress_for_vehicle(tenant_id, vehicle_id)
        location = VehicleLocation(
            location_id=0,
            tenant_id=tenant_id,
            vehicle_id=vehicle_id,
            trip_id=trip.trip_id if trip else None,
            latitude=position.latitude,
            longitude=position.longitude,
            speed_kmh=speed_between(previous, position, at),
            heading_deg=bearing_deg(previous.position, position) if previous else 0.0,
            recorded_at=at,
        )
        location = replace(location, location_id=self._locations.add(location))
        self._vehicles.update_location(
            tenant_id=tenant_id, vehicle_id=vehicle_id, latitude=position.latitude, longitude=position.longitude, at=at
        )

        if trip is not None:
            self._notifications.send_trip_location_update(
                trip_id=trip.trip_id,
                vehicle_id=vehicle_id,
                latitude=location.latitude,
                longitude=location.longitude,
                speed_kmh=location.speed_kmh,
                heading_deg=location.heading_deg,
            )
        logger.debug("Location updated for vehicle %s: %s, %s", vehicle_id, latitude, longitude)
        return location

    @service_result("An error occurred while checking geofence violations")
    def check_violations(self, *, tenant_id: int, vehicle_id: int, position: Position) -> list[GeofenceAlert]:
        trip = self._trips.get_in_progress_for_vehicle(tenant_id, vehicle_id)
        if trip is None:
            return []

        now = self._clock()
        alerts: list[GeofenceAlert] = []
        stops = self._routes.list_stops(tenant_id, trip.route_id)
        deviation = evaluate_route_deviation(position, stops, now=now, trip_id=trip.trip_id, vehicle_id=vehicle_id)
        if deviation:
            alerts.append(deviation)

        latest = self._locations.latest_active(tenant_id, vehicle_id)
        speeding = evaluate_speed(
            position, latest.speed_kmh if latest else 0.0, now=now, trip_id=trip.trip_id, vehicle_id=vehicle_id
        )
        if speeding:
            alerts.append(speeding)

        alerts.extend(
            evaluate_restricted_areas(position, self._restricted_areas, now=now, trip_id=trip.trip_id, vehicle_id=vehicle_id)
        )

        if alerts:
            logger.warning("Geofence violations detected for vehicle %s: %d violations", vehicle_id, len(alerts))
            for alert in alerts:
                self._notifications.send_geofence_alert(tenant_id=tenant_id, alert=alert.as_payload())
        return alerts

    @service_result("An error occurred while calculating estimated arrival time")
    def calculate_eta(self, *, tenant_id: int, trip_id: int, stop_id: int) -> ArrivalEstimate:
        trip = self._require_trip(tenant_id, trip_id)
        stop = next((s for s in self._routes.list_stops(tenant_id, trip.route_id) if s.stop_id == stop_id), None)
        if stop is None:
            raise NotFoundError("Stop not found in route")
        current = self._locations.latest_active(tenant_id, trip.vehicle_id)
        if current is None:
            raise ValidationError("Current vehicle location not available")

        now = self._clock()
        distance = haversine_km(current.position, stop.position)
        average = self._locations.average_speed_since(
            tenant_id, trip.vehicle_id, now - timedelta(minutes=ETA_SPEED_WINDOW_MINUTES)
        )
        if average <= 0:
            average = DEFAULT_AVERAGE_SPEED_KMH
        confidence = eta_confidence(distance, average)

        buffer_minutes = min(distance * 2, ETA_MAX_BUFFER_MINUTES)
        arrival = now + timedelta(hours=distance / average) + timedelta(minutes=buffer_minutes)
        return ArrivalEstimate(
            trip_id=trip_id,
            stop_id=stop_id,
            stop_name=stop.name,
            estimated_arrival=arrival,
            distance_km=round(distance, 3),
            average_speed_kmh=round(average, 2),
            confidence=confidence,
            last_updated=now,
        )

    @service_result("An error occurred while retrieving location history")
    def get_location_history(
        self, *, tenant_id: int, vehicle_id: int, start: datetime, end: datetime
    ) -> list[VehicleLocation]:
        if end < start:
            raise ValidationError("End time must be after start time")
        return list(self._locations.history(tenant_id, vehicle_id, start, end))

    @service_result("An error occurred while retrieving active vehicle locations")
    def get_active_vehicle_locations(self, *, tenant_id: int) -> list[VehicleLocation]:
        return list(self._locations.active_latest_per_vehicle(tenant_id))
