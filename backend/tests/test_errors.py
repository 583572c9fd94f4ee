from __future__ import annotations

from field_router.errors import (
    EmptyGraphError,
    RouteUnreachableError,
    RoutingDataError,
    normalize_reason_code,
)


def test_reason_codes_are_frozen() -> None:
    assert normalize_reason_code("routing_graph_no_path") == "routing_graph_no_path"
    assert normalize_reason_code(" graph_asset_unreadable ") == "graph_asset_unreadable"
    assert normalize_reason_code("something_new") == "routing_graph_unavailable"
    assert normalize_reason_code("", default="invalid_graph_input") == "invalid_graph_input"


def test_errors_carry_reason_and_message() -> None:
    err = RouteUnreachableError(
        reason_code="routing_graph_no_path",
        message="no path between nodes 'A' and 'B'",
        details={"start_node": "A", "end_node": "B"},
    )

    assert isinstance(err, RoutingDataError)
    assert isinstance(err, ValueError)
    assert str(err) == "no path between nodes 'A' and 'B'"
    assert err.details == {"start_node": "A", "end_node": "B"}
    assert not isinstance(err, EmptyGraphError)
