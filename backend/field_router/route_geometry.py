from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .errors import RouteUnreachableError
from .geo import LatLngTuple, haversine_m, travel_duration_s
from .models import RouteResult
from .road_graph import RoadGraph
from .settings import settings
from .shortest_path import PathResult, shortest_path


def build_path_geometry(graph: RoadGraph, node_ids: Sequence[str]) -> list[LatLngTuple]:
    """Join per-edge geometry along a node path into one polyline.

    Indexed edge geometry is used where present; otherwise a straight segment
    between the node coordinates. The shared vertex at each join is emitted
    once. A single-node path has no edges and yields ``[]``.
    """
    coords: list[LatLngTuple] = []
    for from_id, to_id in zip(node_ids, node_ids[1:]):
        segment = graph.edge_geometry(from_id, to_id)
        if not segment:
            start = graph.coordinates(from_id)
            end = graph.coordinates(to_id)
            if start is None or end is None:
                continue
            segment = (start, end)
        coords.extend(segment[1:] if coords else segment)
    return coords


def last_mile_connectors(
    origin: LatLngTuple,
    destination: LatLngTuple,
    path: Sequence[LatLngTuple],
    *,
    threshold_m: float,
) -> tuple[list[LatLngTuple] | None, list[LatLngTuple] | None]:
    """Straight connectors from the true endpoints to the routed path ends."""
    if not path:
        return None, None
    first = path[0]
    last = path[-1]
    start = None
    end = None
    if haversine_m(origin[0], origin[1], first[0], first[1]) > threshold_m:
        start = [origin, first]
    if haversine_m(destination[0], destination[1], last[0], last[1]) > threshold_m:
        end = [last, destination]
    return start, end


class OfflineRouter:
    """Routes between arbitrary points over one immutable :class:`RoadGraph`.

    Construct once at the composition root and pass it to whoever needs it;
    nothing here mutates the graph, so one instance serves any number of
    independent requests.
    """

    def __init__(self, graph: RoadGraph, *, last_mile_threshold_m: float | None = None) -> None:
        self.graph = graph
        self.last_mile_threshold_m = (
            float(settings.last_mile_threshold_m)
            if last_mile_threshold_m is None
            else float(last_mile_threshold_m)
        )

    @classmethod
    def from_files(
        cls,
        graph_path: Path | str,
        geometry_path: Path | str | None = None,
    ) -> OfflineRouter:
        return cls(RoadGraph.from_files(graph_path, geometry_path))

    def nearest_node(self, lat: float, lng: float) -> str:
        return self.graph.nearest_node(lat, lng)

    def shortest_path(self, start: str, goal: str) -> PathResult | None:
        return shortest_path(self.graph, start, goal)

    def path_geometry(self, node_ids: Sequence[str]) -> list[LatLngTuple]:
        return build_path_geometry(self.graph, node_ids)

    def route(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        *,
        speed_kmh: float = 0.0,
    ) -> RouteResult:
        """Route between two arbitrary points.

        Raises :class:`RouteUnreachableError` when the snapped nodes are not
        connected; callers own the fallback.
        """
        start_node = self.nearest_node(origin_lat, origin_lng)
        end_node = self.nearest_node(dest_lat, dest_lng)

        if start_node == end_node:
            # Both ends inside one node's catchment: the graph cannot resolve the move.
            distance = haversine_m(origin_lat, origin_lng, dest_lat, dest_lng)
            return RouteResult(
                coordinates=[(origin_lat, origin_lng), (dest_lat, dest_lng)],
                distance_m=distance,
                duration_s=travel_duration_s(distance, speed_kmh),
            )

        result = self.shortest_path(start_node, end_node)
        if result is None:
            raise RouteUnreachableError(
                reason_code="routing_graph_no_path",
                message=f"no path between nodes {start_node!r} and {end_node!r}",
                details={"start_node": start_node, "end_node": end_node},
            )

        path = self.path_geometry(result.nodes)
        if not path:
            path = [(origin_lat, origin_lng), (dest_lat, dest_lng)]
            last_mile_start, last_mile_end = None, None
        else:
            last_mile_start, last_mile_end = last_mile_connectors(
                (origin_lat, origin_lng),
                (dest_lat, dest_lng),
                path,
                threshold_m=self.last_mile_threshold_m,
            )
        return RouteResult(
            coordinates=path,
            distance_m=result.distance,
            duration_s=travel_duration_s(result.distance, speed_kmh),
            last_mile_start=last_mile_start,
            last_mile_end=last_mile_end,
        )
