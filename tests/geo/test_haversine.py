from __future__ import annotations

import math

import pytest

from src.school_transport.school_transport.common.geo import Position, bearing_deg, haversine_km, within_radius

KM_PER_DEGREE_LAT = 6371.0 * math.pi / 180.0


def test_distance_to_itself_is_zero():
    p = Position(24.69, 46.685)
    assert haversine_km(p, p) == 0.0


def test_distance_is_symmetric():
    a = Position(24.69, 46.685)
    b = Position(24.665, 46.73)
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


def test_one_km_north():
    a = Position(24.69, 46.685)
    b = Position(24.69 + 1.0 / KM_PER_DEGREE_LAT, 46.685)
    assert haversine_km(a, b) == pytest.approx(1.0, abs=0.01)


def test_within_radius_is_inclusive():
    a = Position(0.0, 0.0)
    b = Position(0.5 / KM_PER_DEGREE_LAT, 0.0)
    assert within_radius(a, b, 0.5 + 1e-9)
    assert not within_radius(a, b, 0.4)


def test_bearing_due_east_and_north():
    origin = Position(0.0, 0.0)
    assert bearing_deg(origin, Position(1.0, 0.0)) == pytest.approx(0.0)
    assert bearing_deg(origin, Position(0.0, 1.0)) == pytest.approx(90.0)
