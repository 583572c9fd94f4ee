from __future__ import annotations

import heapq
from dataclasses import dataclass
from math import inf

from .road_graph import RoadGraph


@dataclass(frozen=True)
class PathResult:
    nodes: tuple[str, ...]
    distance: float


def shortest_path(graph: RoadGraph, start: str, goal: str) -> PathResult | None:
    """Dijkstra from ``start`` to ``goal`` over directed edge weights.

    Returns ``None`` when ``goal`` is unreachable or either endpoint is unknown.
    Heap entries are ``(distance, node_id)``: equal tentative distances are
    expanded in node-id order, and a node may be pushed several times with
    decreasing priorities (stale entries are skipped on pop).
    """
    if start not in graph.nodes or goal not in graph.nodes:
        return None
    if start == goal:
        return PathResult(nodes=(start,), distance=0.0)

    dist: dict[str, float] = {start: 0.0}
    prev: dict[str, str] = {}
    heap: list[tuple[float, str]] = [(0.0, start)]

    while heap:
        current_dist, current = heapq.heappop(heap)
        if current_dist > dist.get(current, inf):
            continue
        if current == goal or current_dist == inf:
            break
        for nxt, weight in graph.nodes[current].edges:
            alt = current_dist + weight
            if alt < dist.get(nxt, inf):
                dist[nxt] = alt
                prev[nxt] = current
                heapq.heappush(heap, (alt, nxt))

    total = dist.get(goal, inf)
    if total == inf:
        return None

    path: list[str] = [goal]
    while path[-1] != start:
        path.append(prev[path[-1]])
    path.reverse()
    return PathResult(nodes=tuple(path), distance=total)
