from __future__ import annotations

import math

import pytest

from field_router.geo import (
    bearing_deg,
    cardinal_direction,
    haversine_m,
    interpolate_line,
    round_half_up,
    travel_duration_s,
)


def test_haversine_one_degree_of_longitude_on_equator() -> None:
    d = haversine_m(0.0, 0.0, 0.0, 1.0)
    assert d == pytest.approx(111_195.0, rel=1e-3)
    assert haversine_m(0.0, 0.0, 0.0, 0.0) == 0.0


def test_haversine_is_symmetric() -> None:
    a = haversine_m(33.9, -5.5, 34.1, -5.2)
    b = haversine_m(34.1, -5.2, 33.9, -5.5)
    assert math.isclose(a, b, rel_tol=1e-12)


def test_bearing_cardinal_points() -> None:
    assert bearing_deg(0.0, 0.0, 1.0, 0.0) == pytest.approx(0.0, abs=1e-9)
    assert bearing_deg(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0, abs=1e-9)
    assert bearing_deg(0.0, 0.0, -1.0, 0.0) == pytest.approx(180.0, abs=1e-9)
    assert bearing_deg(0.0, 0.0, 0.0, -1.0) == pytest.approx(270.0, abs=1e-9)


@pytest.mark.parametrize(
    ("deg", "expected"),
    [(0.0, "N"), (44.0, "NE"), (90.0, "E"), (135.0, "SE"), (180.0, "S"), (225.0, "SO"), (270.0, "O"), (315.0, "NO"), (350.0, "N")],
)
def test_cardinal_direction_uses_french_labels(deg: float, expected: str) -> None:
    assert cardinal_direction(deg) == expected


def test_travel_duration_from_speed() -> None:
    assert travel_duration_s(40_000.0, 40.0) == pytest.approx(3600.0)
    assert travel_duration_s(1_000.0, 4.0) == pytest.approx(900.0)
    assert travel_duration_s(1_000.0, 0.0) == 0.0


def test_interpolate_line_includes_both_endpoints() -> None:
    line = interpolate_line(0.0, 0.0, 1.0, 2.0, steps=20)
    assert len(line) == 21
    assert line[0] == (0.0, 0.0)
    assert line[-1] == pytest.approx((1.0, 2.0))
    assert line[10] == pytest.approx((0.5, 1.0))


@pytest.mark.parametrize(("value", "expected"), [(22.5, 23), (0.5, 1), (2.5, 3), (89.4, 89), (359.5, 360)])
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


def test_cardinal_direction_rounds_sector_boundaries_up() -> None:
    assert cardinal_direction(22.5) == "NE"
    assert cardinal_direction(337.5) == "N"
