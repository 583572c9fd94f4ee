from __future__ import annotations

import argparse
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from field_router.graph_input import load_asset, normalize_graph_input
from field_router.road_graph import RoadGraph


def build(
    *,
    source: Path,
    output: Path,
    geometry: Path | None = None,
) -> dict[str, Any]:
    """Normalise a flat/nested graph asset (JSON or JS bundle) into nested JSON."""
    canonical = normalize_graph_input(load_asset(source))
    detailed = load_asset(geometry) if geometry is not None else None
    graph = RoadGraph.build(canonical, detailed)
    if graph.node_count == 0:
        raise RuntimeError("No graph nodes were extracted from source input.")

    payload = {
        "version": "road-graph-v1",
        "source": str(source),
        "generated_at_utc": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "nodes": {
            node.id: {
                "lat": node.lat,
                "lng": node.lng,
                "edges": [{"to": to, "dist": weight} for to, weight in node.edges],
            }
            for node in graph.nodes.values()
        },
    }
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload), encoding="utf-8")

    one_way = sum(
        1
        for node in graph.nodes.values()
        for to, _ in node.edges
        if all(back != node.id for back, _ in graph.nodes[to].edges)
    )
    return {
        "nodes": graph.node_count,
        "edges": graph.edge_count,
        "one_way_edges": one_way,
        "isolated_nodes": sum(1 for node in graph.nodes.values() if not node.edges),
        "edge_geometries": len(graph.edge_geometries),
        "source": str(source),
        "output": str(output),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Normalise a road graph asset into canonical nested JSON.")
    parser.add_argument(
        "--source",
        type=Path,
        required=True,
        help="Graph asset: nested or flat JSON, or a `window.ROAD_GRAPH = ...;` bundle.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("backend/out/road_graph.json"),
        help="Output graph JSON path.",
    )
    parser.add_argument(
        "--geometry",
        type=Path,
        default=None,
        help="Optional GeoJSON edge geometry, used only for the summary counts.",
    )
    args = parser.parse_args()
    report = build(source=args.source, output=args.output, geometry=args.geometry)
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
