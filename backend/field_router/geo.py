from __future__ import annotations

import math

EARTH_RADIUS_M = 6_371_000.0

# French compass labels, clockwise from north (SO = sud-ouest, O = ouest).
CARDINAL_DIRECTIONS: tuple[str, ...] = ("N", "NE", "E", "SE", "S", "SO", "O", "NO")

LatLngTuple = tuple[float, float]


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lng2 - lng1)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(max(0.0, a))))


def bearing_deg(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial great-circle bearing in degrees, normalised to [0, 360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlambda = math.radians(lng2 - lng1)
    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def round_half_up(value: float) -> int:
    # 22.5 -> 23; builtin round() would give 22.
    return int(math.floor(float(value) + 0.5))


def cardinal_direction(deg: float) -> str:
    index = round_half_up(float(deg) / 45.0) % len(CARDINAL_DIRECTIONS)
    return CARDINAL_DIRECTIONS[index]


def travel_duration_s(distance_m: float, speed_kmh: float) -> float:
    if speed_kmh <= 0:
        return 0.0
    return (max(0.0, float(distance_m)) / 1000.0) / float(speed_kmh) * 3600.0


def interpolate_line(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
    *,
    steps: int,
) -> list[LatLngTuple]:
    """Linear (lat, lng) interpolation with ``steps + 1`` vertices, endpoints included."""
    n = max(1, int(steps))
    return [
        (lat1 + (lat2 - lat1) * (i / n), lng1 + (lng2 - lng1) * (i / n))
        for i in range(n + 1)
    ]
