from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

TransportMode = Literal["car", "walk", "bike", "fly"]
RoutingPreference = Literal["offline", "online"]
RouteSource = Literal["osrm", "offline-graph", "offline-fallback", "vol"]

Coordinate = tuple[float, float]


def _accept_coordinate_aliases(value: object) -> object:
    if not isinstance(value, dict):
        return value
    data = dict(value)
    if "lng" not in data:
        for key in ("lon", "longitude"):
            if key in data:
                data["lng"] = data[key]
                break
    if "lat" not in data and "latitude" in data:
        data["lat"] = data["latitude"]
    return data


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def accept_aliases(cls, value: object) -> object:
        return _accept_coordinate_aliases(value)


class TourWaypoint(BaseModel):
    """A placette or reference marker to visit."""

    id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def accept_aliases(cls, value: object) -> object:
        return _accept_coordinate_aliases(value)


class RouteResult(BaseModel):
    """Travel path between two arbitrary points, (lat, lng) vertices throughout.

    ``last_mile_start`` / ``last_mile_end`` are the off-network connectors between
    the true endpoints and the routed path; they are only set when the gap is
    larger than the last-mile threshold.
    """

    coordinates: list[Coordinate]
    distance_m: float = Field(..., ge=0)
    duration_s: float = Field(default=0.0, ge=0)
    last_mile_start: list[Coordinate] | None = None
    last_mile_end: list[Coordinate] | None = None
    source: RouteSource | None = None
    bearing_deg: float | None = None
    direction: str | None = None
    instructions: list[str] = Field(default_factory=list)


class TourResult(BaseModel):
    order: list[str]
    distance_m: float = Field(..., ge=0)
    coordinates: list[Coordinate]
    legs: list[RouteResult]


class TourResponse(TourResult):
    duration_s: float = Field(default=0.0, ge=0)
    source: RouteSource | Literal[""] = ""


class RouteRequest(BaseModel):
    origin: LatLng
    destination: LatLng
    mode: TransportMode = "car"
    routing: RoutingPreference = "offline"


class TourRequest(BaseModel):
    origin: LatLng
    waypoints: list[TourWaypoint] = Field(default_factory=list)
    mode: TransportMode = "car"
    routing: RoutingPreference = "offline"


class OfflineGraphStatus(BaseModel):
    loaded: bool
    nodes: int = 0
    edge_geometries: int = 0


class HealthResponse(BaseModel):
    status: str
    offline_graph: OfflineGraphStatus
