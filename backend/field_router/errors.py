from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "routing_graph_unavailable",
        "routing_graph_empty",
        "routing_graph_no_path",
        "invalid_graph_input",
        "graph_asset_unreadable",
        "osrm_unavailable",
    }
)


@dataclass
class RoutingDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class EmptyGraphError(RoutingDataError):
    """Nearest-node lookup on a graph with zero nodes."""


class RouteUnreachableError(RoutingDataError):
    """No connecting path between the snapped origin and destination nodes."""


def normalize_reason_code(reason_code: str, *, default: str = "routing_graph_unavailable") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
