from __future__ import annotations

import pytest

from field_router.geo import haversine_m
from field_router.models import TourWaypoint
from field_router.road_graph import RoadGraph
from field_router.route_geometry import OfflineRouter
from field_router.tour import (
    merge_polylines,
    nearest_neighbor_order,
    sequence_and_route,
    straight_line_order,
)


def _router() -> OfflineRouter:
    raw: dict[str, tuple[float, float, list[tuple[str, float]]]] = {}
    for i in range(5):
        edges = []
        if i > 0:
            edges.append((f"N{i - 1}", 100.0))
        if i < 4:
            edges.append((f"N{i + 1}", 100.0))
        raw[f"N{i}"] = (0.0, float(i), edges)
    raw["island"] = (5.0, 5.0, [])
    return OfflineRouter(RoadGraph.build(raw), last_mile_threshold_m=10.0)


def _waypoints() -> list[TourWaypoint]:
    return [
        TourWaypoint(id="p3", lat=0.0, lng=3.0),
        TourWaypoint(id="p1", lat=0.0, lng=1.0),
        TourWaypoint(id="p4", lat=0.0, lng=4.0),
        TourWaypoint(id="p2", lat=0.0, lng=2.0),
    ]


def test_merge_polylines_drops_repeated_join_vertex() -> None:
    merged = merge_polylines(
        [
            [(0.0, 0.0), (0.0, 1.0)],
            [(0.0, 1.0), (0.0, 2.0)],
            [],
            [(1.0, 1.0), (1.0, 2.0)],
        ]
    )

    assert merged == [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0), (1.0, 1.0), (1.0, 2.0)]


def test_nearest_neighbor_walks_the_line_in_order() -> None:
    ordered = nearest_neighbor_order(_router(), _waypoints(), 0.0, 0.0)

    assert [waypoint.id for waypoint in ordered] == ["p1", "p2", "p3", "p4"]


def test_straight_line_order_uses_haversine_only() -> None:
    ordered = straight_line_order(_waypoints(), 0.0, 4.5)

    assert [waypoint.id for waypoint in ordered] == ["p4", "p3", "p2", "p1"]


def test_tour_order_is_a_permutation_of_the_waypoints() -> None:
    waypoints = _waypoints()

    tour = sequence_and_route(_router(), waypoints, 0.0, 0.0, speed_kmh=4.0)

    assert sorted(tour.order) == sorted(waypoint.id for waypoint in waypoints)
    assert len(tour.order) == len(set(tour.order))
    assert "origin" not in tour.order
    assert len(tour.legs) == len(waypoints)


def test_tour_distance_is_sum_of_graph_legs() -> None:
    tour = sequence_and_route(_router(), _waypoints(), 0.0, 0.0)

    assert tour.order == ["p1", "p2", "p3", "p4"]
    assert tour.distance_m == pytest.approx(400.0)
    assert tour.distance_m == pytest.approx(sum(leg.distance_m for leg in tour.legs))
    assert all(leg.source == "offline-graph" for leg in tour.legs)
    assert tour.coordinates == [(0.0, float(i)) for i in range(5)]


@pytest.mark.parametrize("count", [0, 1])
def test_trivial_tours(count: int) -> None:
    waypoints = _waypoints()[:count]

    tour = sequence_and_route(_router(), waypoints, 0.0, 0.0)

    assert tour.order == [waypoint.id for waypoint in waypoints]
    assert tour.distance_m == 0.0
    assert tour.coordinates == []
    assert tour.legs == []


def test_unreachable_leg_falls_back_to_straight_line() -> None:
    waypoints = [
        TourWaypoint(id="near", lat=0.0, lng=1.0),
        TourWaypoint(id="far", lat=5.0, lng=5.0),
    ]

    tour = sequence_and_route(_router(), waypoints, 0.0, 0.0)

    assert tour.order == ["near", "far"]
    graph_leg, straight = tour.legs
    assert graph_leg.source == "offline-graph"
    assert straight.source == "offline-fallback"
    assert straight.coordinates == [(0.0, 1.0), (5.0, 5.0)]
    assert straight.distance_m == pytest.approx(haversine_m(0.0, 1.0, 5.0, 5.0))
    assert tour.distance_m == pytest.approx(100.0 + straight.distance_m)
