from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

from .errors import RoutingDataError

NeighborEdge = tuple[str, float]
CanonicalNode = tuple[float, float, list[NeighborEdge]]
CanonicalGraph = dict[str, CanonicalNode]
EdgeGeometry = tuple[str, str, list[tuple[float, float]]]

FROM_KEYS: tuple[str, ...] = ("from", "f")
TO_KEYS: tuple[str, ...] = ("to", "t_node")

_NEIGHBOR_KEYS: tuple[str, ...] = ("to", "neighbor", "v")
_WEIGHT_KEYS: tuple[str, ...] = ("dist", "weight", "distance", "distance_m")
_LNG_KEYS: tuple[str, ...] = ("lng", "lon")

# Browser bundles ship assets as `window.ROAD_GRAPH = {...};`
_JS_ASSIGNMENT_RE = re.compile(
    r"^\s*(?:window\.[A-Za-z_$][\w$]*|(?:var|let|const)\s+[A-Za-z_$][\w$]*)\s*=\s*",
)


@dataclass(frozen=True)
class NestedGraphInput:
    """``{"nodes": {id: {"lat", "lng", "edges": [{"to", "dist"}, ...]}}}``"""

    nodes: Mapping[str, Any]
    kind: Literal["nested"] = "nested"


@dataclass(frozen=True)
class FlatGraphInput:
    """``{id: [lat, lng, [[neighbor, distance, secondary_weight], ...]]}``

    The secondary weight (travel time in the exported bundles) is ignored.
    """

    entries: Mapping[str, Any]
    kind: Literal["flat"] = "flat"


GraphInput = NestedGraphInput | FlatGraphInput


def detect_graph_input(raw: object) -> GraphInput:
    if isinstance(raw, (NestedGraphInput, FlatGraphInput)):
        return raw
    if not isinstance(raw, Mapping):
        raise RoutingDataError(
            reason_code="invalid_graph_input",
            message=f"graph input must be a mapping, got {type(raw).__name__}",
        )
    nodes = raw.get("nodes")
    if isinstance(nodes, Mapping):
        return NestedGraphInput(nodes=nodes)
    return FlatGraphInput(entries=raw)


def _coerce_float(raw: object) -> float | None:
    if not isinstance(raw, (int, float, str, Decimal)) or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _parse_lat_lng(lat_raw: object, lng_raw: object) -> tuple[float, float] | None:
    lat = _coerce_float(lat_raw)
    lng = _coerce_float(lng_raw)
    if lat is None or lng is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return lat, lng


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_neighbor(raw: object) -> NeighborEdge | None:
    if isinstance(raw, Mapping):
        to = _first_present(raw, _NEIGHBOR_KEYS)
        weight_raw = _first_present(raw, _WEIGHT_KEYS)
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        to, weight_raw = raw[0], raw[1]
    else:
        return None
    if to is None or isinstance(to, (Mapping, list, tuple)) or str(to) == "":
        return None
    weight = _coerce_float(weight_raw)
    if weight is None or weight < 0.0:
        return None
    return str(to), weight


def _parse_neighbors(raw: object) -> list[NeighborEdge]:
    if not isinstance(raw, (list, tuple)):
        return []
    out: list[NeighborEdge] = []
    for item in raw:
        parsed = _parse_neighbor(item)
        if parsed is not None:
            out.append(parsed)
    return out


def parse_node_entry(raw: object) -> CanonicalNode | None:
    if isinstance(raw, Mapping):
        coords = _parse_lat_lng(raw.get("lat"), _first_present(raw, _LNG_KEYS))
        edges_raw = raw.get("edges", [])
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        coords = _parse_lat_lng(raw[0], raw[1])
        edges_raw = raw[2] if len(raw) > 2 else []
    else:
        return None
    if coords is None:
        return None
    return coords[0], coords[1], _parse_neighbors(edges_raw)


def _parse_flat_entry(raw: object) -> CanonicalNode | None:
    if not isinstance(raw, (list, tuple)) or len(raw) < 3:
        return None
    coords = _parse_lat_lng(raw[0], raw[1])
    if coords is None:
        return None
    return coords[0], coords[1], _parse_neighbors(raw[2] or [])


def normalize_graph_input(raw: object) -> CanonicalGraph:
    """Normalise a nested or flat graph payload into ``id -> (lat, lng, edges)``.

    Malformed nodes and edges are dropped; nothing here raises for bad rows.
    """
    graph_input = detect_graph_input(raw)
    if isinstance(graph_input, NestedGraphInput):
        items = graph_input.nodes.items()
        parse = parse_node_entry
    else:
        items = graph_input.entries.items()
        parse = _parse_flat_entry
    out: CanonicalGraph = {}
    for key, value in items:
        node = parse(value)
        if node is not None:
            out[str(key)] = node
    return out


def _flip_vertices(raw: object) -> list[tuple[float, float]] | None:
    if not isinstance(raw, (list, tuple)):
        return None
    out: list[tuple[float, float]] = []
    for vertex in raw:
        if not isinstance(vertex, (list, tuple)) or len(vertex) < 2:
            return None
        # GeoJSON stores (lng, lat).
        coords = _parse_lat_lng(vertex[1], vertex[0])
        if coords is None:
            return None
        out.append(coords)
    return out


def _feature_vertices(geometry: Mapping[str, Any]) -> list[tuple[float, float]] | None:
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geom_type == "LineString":
        return _flip_vertices(coordinates)
    if geom_type == "MultiLineString":
        if not isinstance(coordinates, (list, tuple)):
            return None
        flattened: list[tuple[float, float]] = []
        for part in coordinates:
            vertices = _flip_vertices(part)
            if vertices is None:
                return None
            flattened.extend(vertices)
        return flattened
    return None


def parse_edge_geometries(raw: object) -> list[EdgeGeometry]:
    """Extract ``(from, to, [(lat, lng), ...])`` from GeoJSON line features."""
    if isinstance(raw, Mapping):
        features = raw.get("features", [])
    else:
        features = raw
    if not isinstance(features, (list, tuple)):
        return []

    out: list[EdgeGeometry] = []
    for feature in features:
        if not isinstance(feature, Mapping):
            continue
        geometry = feature.get("geometry")
        properties = feature.get("properties")
        if not isinstance(geometry, Mapping) or not isinstance(properties, Mapping):
            continue
        from_key = _first_present(properties, FROM_KEYS)
        to_key = _first_present(properties, TO_KEYS)
        if from_key is None or to_key is None:
            continue
        vertices = _feature_vertices(geometry)
        if not vertices:
            continue
        out.append((str(from_key), str(to_key), vertices))
    return out


def _strip_js_assignment(text: str) -> str:
    match = _JS_ASSIGNMENT_RE.match(text)
    if match is None:
        return text
    body = text[match.end():].rstrip()
    if body.endswith(";"):
        body = body[:-1]
    return body


def load_asset(path: Path | str) -> Any:
    """Read a ``.json`` asset or a ``window.NAME = {...};`` script bundle."""
    asset_path = Path(path)
    try:
        text = asset_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RoutingDataError(
            reason_code="graph_asset_unreadable",
            message=f"cannot read graph asset {asset_path}: {exc}",
            details={"path": str(asset_path)},
        ) from exc
    if asset_path.suffix.lower() == ".js":
        text = _strip_js_assignment(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise RoutingDataError(
            reason_code="graph_asset_unreadable",
            message=f"graph asset {asset_path} is not valid JSON: {exc}",
            details={"path": str(asset_path)},
        ) from exc
