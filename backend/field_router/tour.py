from __future__ import annotations

import math
from collections.abc import Sequence

from .errors import RouteUnreachableError
from .geo import LatLngTuple, haversine_m, travel_duration_s
from .logging_utils import log_event
from .models import RouteResult, TourResult, TourWaypoint
from .route_geometry import OfflineRouter


def merge_polylines(polylines: Sequence[Sequence[LatLngTuple]]) -> list[LatLngTuple]:
    """Concatenate leg polylines, dropping a join vertex repeated across legs."""
    merged: list[LatLngTuple] = []
    for coords in polylines:
        if not coords:
            continue
        first = coords[0]
        if merged and math.isclose(merged[-1][0], float(first[0]), abs_tol=1e-9) and math.isclose(
            merged[-1][1],
            float(first[1]),
            abs_tol=1e-9,
        ):
            merged.extend((float(lat), float(lng)) for lat, lng in coords[1:])
        else:
            merged.extend((float(lat), float(lng)) for lat, lng in coords)
    return merged


def straight_leg(
    from_lat: float,
    from_lng: float,
    to_lat: float,
    to_lng: float,
    *,
    speed_kmh: float,
) -> RouteResult:
    distance = haversine_m(from_lat, from_lng, to_lat, to_lng)
    return RouteResult(
        coordinates=[(from_lat, from_lng), (to_lat, to_lng)],
        distance_m=distance,
        duration_s=travel_duration_s(distance, speed_kmh),
        source="offline-fallback",
    )


def nearest_neighbor_order(
    router: OfflineRouter,
    waypoints: Sequence[TourWaypoint],
    origin_lat: float,
    origin_lng: float,
) -> list[TourWaypoint]:
    """Greedy visiting order on graph distance from the current snapped node.

    Candidates the graph cannot reach are scored by haversine distance so the
    loop always progresses. Ties keep the earliest candidate.
    """
    current_node = router.nearest_node(origin_lat, origin_lng)
    current_lat, current_lng = origin_lat, origin_lng
    remaining = [(waypoint, router.nearest_node(waypoint.lat, waypoint.lng)) for waypoint in waypoints]

    ordered: list[TourWaypoint] = []
    while remaining:
        best_idx = 0
        best_distance = math.inf
        for idx, (waypoint, node_id) in enumerate(remaining):
            result = router.shortest_path(current_node, node_id)
            if result is not None:
                distance = result.distance
            else:
                distance = haversine_m(current_lat, current_lng, waypoint.lat, waypoint.lng)
            if distance < best_distance:
                best_distance = distance
                best_idx = idx
        waypoint, node_id = remaining.pop(best_idx)
        ordered.append(waypoint)
        current_node = node_id
        current_lat, current_lng = waypoint.lat, waypoint.lng
    return ordered


def straight_line_order(
    waypoints: Sequence[TourWaypoint],
    origin_lat: float,
    origin_lng: float,
) -> list[TourWaypoint]:
    """Greedy visiting order on haversine distance alone (no graph needed)."""
    remaining = list(waypoints)
    current_lat, current_lng = origin_lat, origin_lng
    ordered: list[TourWaypoint] = []
    while remaining:
        best_idx = min(
            range(len(remaining)),
            key=lambda idx: haversine_m(current_lat, current_lng, remaining[idx].lat, remaining[idx].lng),
        )
        waypoint = remaining.pop(best_idx)
        ordered.append(waypoint)
        current_lat, current_lng = waypoint.lat, waypoint.lng
    return ordered


def sequence_and_route(
    router: OfflineRouter,
    waypoints: Sequence[TourWaypoint],
    origin_lat: float,
    origin_lng: float,
    *,
    speed_kmh: float = 0.0,
) -> TourResult:
    if len(waypoints) <= 1:
        return TourResult(
            order=[waypoint.id for waypoint in waypoints],
            distance_m=0.0,
            coordinates=[],
            legs=[],
        )

    ordered = nearest_neighbor_order(router, waypoints, origin_lat, origin_lng)

    legs: list[RouteResult] = []
    prev_lat, prev_lng = origin_lat, origin_lng
    for leg_index, waypoint in enumerate(ordered):
        try:
            leg = router.route(prev_lat, prev_lng, waypoint.lat, waypoint.lng, speed_kmh=speed_kmh)
            leg = leg.model_copy(update={"source": "offline-graph"})
        except RouteUnreachableError as exc:
            log_event(
                "tour_leg_fallback",
                leg_index=leg_index,
                waypoint_id=waypoint.id,
                reason_code=exc.reason_code,
            )
            leg = straight_leg(prev_lat, prev_lng, waypoint.lat, waypoint.lng, speed_kmh=speed_kmh)
        legs.append(leg)
        prev_lat, prev_lng = waypoint.lat, waypoint.lng

    return TourResult(
        order=[waypoint.id for waypoint in ordered],
        distance_m=sum(leg.distance_m for leg in legs),
        coordinates=merge_polylines([leg.coordinates for leg in legs]),
        legs=legs,
    )
