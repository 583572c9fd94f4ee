from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import EmptyGraphError
from .geo import LatLngTuple, haversine_m
from .graph_input import load_asset, normalize_graph_input, parse_edge_geometries, parse_node_entry


@dataclass(frozen=True)
class GraphNode:
    id: str
    lat: float
    lng: float
    edges: tuple[tuple[str, float], ...]


def edge_key(from_id: str, to_id: str) -> str:
    return f"{from_id}->{to_id}"


@dataclass(frozen=True)
class RoadGraph:
    """Immutable road network: node table plus directed edge-geometry index.

    Edges are kept exactly as supplied per direction. The network is undirected
    by convention only, so asymmetric weights are preserved rather than merged.
    """

    nodes: dict[str, GraphNode]
    edge_geometries: dict[str, tuple[LatLngTuple, ...]]

    @classmethod
    def build(
        cls,
        raw_graph: Mapping[str, Any],
        detailed_geometry: object | None = None,
    ) -> RoadGraph:
        """Build from ``id -> (lat, lng, [(neighbor, weight), ...])``.

        ``detailed_geometry`` is an optional GeoJSON FeatureCollection (or feature
        list) of edge lines in (lng, lat) order. Bad rows, edges to unknown nodes
        and geometry without a from/to key are skipped.
        """
        parsed: dict[str, tuple[float, float, list[tuple[str, float]]]] = {}
        for key, value in raw_graph.items():
            node = parse_node_entry(value)
            if node is not None:
                parsed[str(key)] = node

        nodes: dict[str, GraphNode] = {}
        for node_id, (lat, lng, edges) in parsed.items():
            nodes[node_id] = GraphNode(
                id=node_id,
                lat=lat,
                lng=lng,
                edges=tuple((to, weight) for to, weight in edges if to in parsed),
            )

        edge_geometries: dict[str, tuple[LatLngTuple, ...]] = {}
        if detailed_geometry is not None:
            for from_id, to_id, vertices in parse_edge_geometries(detailed_geometry):
                forward = tuple(vertices)
                edge_geometries[edge_key(from_id, to_id)] = forward
                edge_geometries[edge_key(to_id, from_id)] = forward[::-1]
        return cls(nodes=nodes, edge_geometries=edge_geometries)

    @classmethod
    def from_input(cls, raw: object, detailed_geometry: object | None = None) -> RoadGraph:
        """Normalise a nested or flat payload, then build."""
        return cls.build(normalize_graph_input(raw), detailed_geometry)

    @classmethod
    def from_files(cls, graph_path: Path | str, geometry_path: Path | str | None = None) -> RoadGraph:
        geometry = load_asset(geometry_path) if geometry_path else None
        return cls.from_input(load_asset(graph_path), geometry)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(node.edges) for node in self.nodes.values())

    def coordinates(self, node_id: str) -> LatLngTuple | None:
        node = self.nodes.get(node_id)
        if node is None:
            return None
        return (node.lat, node.lng)

    def edge_geometry(self, from_id: str, to_id: str) -> tuple[LatLngTuple, ...] | None:
        return self.edge_geometries.get(edge_key(from_id, to_id))

    def nearest_node(self, lat: float, lng: float) -> str:
        # Linear scan; the first node wins ties.
        nearest: str | None = None
        best = float("inf")
        for node_id, node in self.nodes.items():
            d = haversine_m(lat, lng, node.lat, node.lng)
            if d < best:
                best = d
                nearest = node_id
        if nearest is None:
            raise EmptyGraphError(
                reason_code="routing_graph_empty",
                message="cannot snap to nearest node: road graph has no nodes",
            )
        return nearest
