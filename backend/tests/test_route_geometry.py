from __future__ import annotations

import pytest

from field_router.errors import RouteUnreachableError
from field_router.geo import haversine_m
from field_router.road_graph import RoadGraph
from field_router.route_geometry import OfflineRouter, build_path_geometry, last_mile_connectors


def _line_graph(with_geometry: bool = False) -> RoadGraph:
    raw = {
        "A": (0.0, 0.0, [("B", 100.0)]),
        "B": (0.0, 1.0, [("A", 100.0), ("C", 100.0)]),
        "C": (0.0, 2.0, [("B", 100.0)]),
        "island": (5.0, 5.0, []),
    }
    geometry = None
    if with_geometry:
        geometry = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"from": "A", "to": "B"},
                    "geometry": {"type": "LineString", "coordinates": [[0.0, 0.0], [0.5, 0.1], [1.0, 0.0]]},
                }
            ],
        }
    return RoadGraph.build(raw, geometry)


def test_single_node_path_has_no_geometry() -> None:
    assert build_path_geometry(_line_graph(), ["A"]) == []


def test_path_geometry_falls_back_to_straight_segments() -> None:
    coords = build_path_geometry(_line_graph(), ["A", "B", "C"])

    assert coords == [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]


def test_path_geometry_joins_indexed_edges_without_duplicate_vertices() -> None:
    graph = _line_graph(with_geometry=True)

    forward = build_path_geometry(graph, ["A", "B", "C"])
    backward = build_path_geometry(graph, ["C", "B", "A"])

    assert forward == [(0.0, 0.0), (0.1, 0.5), (0.0, 1.0), (0.0, 2.0)]
    assert backward == [(0.0, 2.0), (0.0, 1.0), (0.1, 0.5), (0.0, 0.0)]


def test_last_mile_connectors_respect_threshold() -> None:
    path = [(0.0, 0.0), (0.0, 1.0)]

    near_start, near_end = last_mile_connectors((0.0, 0.00001), (0.0, 1.0), path, threshold_m=10.0)
    far_start, far_end = last_mile_connectors((0.01, 0.0), (0.0, 1.01), path, threshold_m=10.0)

    assert near_start is None and near_end is None
    assert far_start == [(0.01, 0.0), (0.0, 0.0)]
    assert far_end == [(0.0, 1.0), (0.0, 1.01)]
    assert last_mile_connectors((0.0, 0.0), (1.0, 1.0), [], threshold_m=10.0) == (None, None)


def test_route_passes_through_intermediate_node() -> None:
    router = OfflineRouter(_line_graph(), last_mile_threshold_m=10.0)

    result = router.route(0.0, 0.1, 0.0, 1.9)

    assert (0.0, 1.0) in result.coordinates
    assert result.coordinates[0] == (0.0, 0.0)
    assert result.coordinates[-1] == (0.0, 2.0)
    assert result.distance_m >= 200.0
    assert result.last_mile_start == [(0.0, 0.1), (0.0, 0.0)]
    assert result.last_mile_end == [(0.0, 2.0), (0.0, 1.9)]


def test_route_duration_follows_speed() -> None:
    router = OfflineRouter(_line_graph())

    result = router.route(0.0, 0.0, 0.0, 2.0, speed_kmh=36.0)

    assert result.distance_m == pytest.approx(200.0)
    assert result.duration_s == pytest.approx(20.0)


def test_route_within_one_node_is_a_straight_line() -> None:
    router = OfflineRouter(_line_graph())

    result = router.route(0.0, 0.01, 0.01, 0.0)

    assert result.coordinates == [(0.0, 0.01), (0.01, 0.0)]
    assert result.distance_m == pytest.approx(haversine_m(0.0, 0.01, 0.01, 0.0))
    assert result.last_mile_start is None
    assert result.last_mile_end is None


def test_route_to_disconnected_node_raises() -> None:
    router = OfflineRouter(_line_graph())

    with pytest.raises(RouteUnreachableError) as excinfo:
        router.route(0.0, 0.0, 5.0, 5.0)

    assert excinfo.value.reason_code == "routing_graph_no_path"
    assert excinfo.value.details == {"start_node": "A", "end_node": "island"}


def test_router_can_be_shared_between_requests() -> None:
    router = OfflineRouter(_line_graph())

    first = router.route(0.0, 0.0, 0.0, 2.0)
    second = router.route(0.0, 2.0, 0.0, 0.0)
    again = router.route(0.0, 0.0, 0.0, 2.0)

    assert first == again
    assert second.coordinates == list(reversed(first.coordinates))
