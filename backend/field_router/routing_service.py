from __future__ import annotations

from collections.abc import Sequence

from .errors import RouteUnreachableError
from .geo import (
    bearing_deg,
    cardinal_direction,
    haversine_m,
    interpolate_line,
    round_half_up,
    travel_duration_s,
)
from .logging_utils import log_event
from .models import RouteResult, RoutingPreference, TourResponse, TourWaypoint, TransportMode
from .route_geometry import OfflineRouter, last_mile_connectors
from .routing_osrm import OSRMClient, OSRMError, osrm_profile_for_mode, route_coordinates
from .settings import settings
from .tour import merge_polylines, sequence_and_route, straight_line_order


class RoutingService:
    """Picks the routing strategy for a request and tags where the answer came from.

    Provenance tags: ``osrm`` (online service), ``offline-graph`` (local road
    graph), ``offline-fallback`` (straight-line estimate inflated by the detour
    factor) and ``vol`` (aerial line, bird's-eye mode).
    """

    def __init__(
        self,
        *,
        offline_router: OfflineRouter | None = None,
        osrm: OSRMClient | None = None,
    ) -> None:
        self.offline_router = offline_router
        self.osrm = osrm

    @property
    def graph_loaded(self) -> bool:
        return self.offline_router is not None

    def bird_flight(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> RouteResult:
        distance = haversine_m(origin_lat, origin_lng, dest_lat, dest_lng)
        bearing = bearing_deg(origin_lat, origin_lng, dest_lat, dest_lng)
        direction = cardinal_direction(bearing)
        return RouteResult(
            coordinates=[(origin_lat, origin_lng), (dest_lat, dest_lng)],
            distance_m=distance,
            # Display-only estimate at walking pace.
            duration_s=travel_duration_s(distance, settings.bird_flight_speed_kmh),
            source="vol",
            bearing_deg=bearing,
            direction=direction,
            instructions=[f"Direction {direction} ({round_half_up(bearing)}°)"],
        )

    def offline_fallback(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        mode: TransportMode,
    ) -> RouteResult:
        road_distance = haversine_m(origin_lat, origin_lng, dest_lat, dest_lng) * settings.offline_detour_factor
        return RouteResult(
            coordinates=interpolate_line(
                origin_lat,
                origin_lng,
                dest_lat,
                dest_lng,
                steps=settings.fallback_line_steps,
            ),
            distance_m=road_distance,
            duration_s=travel_duration_s(road_distance, settings.transport_speed_kmh(mode)),
            source="offline-fallback",
        )

    def offline_graph_route(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        mode: TransportMode,
    ) -> RouteResult:
        if mode == "fly":
            return self.bird_flight(origin_lat, origin_lng, dest_lat, dest_lng)

        if self.offline_router is None:
            log_event("route_fallback_used", reason_code="routing_graph_unavailable", mode=mode)
            return self.offline_fallback(origin_lat, origin_lng, dest_lat, dest_lng, mode)

        try:
            result = self.offline_router.route(
                origin_lat,
                origin_lng,
                dest_lat,
                dest_lng,
                speed_kmh=settings.transport_speed_kmh(mode),
            )
        except RouteUnreachableError as exc:
            log_event("route_fallback_used", reason_code=exc.reason_code, mode=mode, details=exc.details)
            return self.offline_fallback(origin_lat, origin_lng, dest_lat, dest_lng, mode)

        if len(result.coordinates) < 2:
            log_event("route_fallback_used", reason_code="routing_graph_no_path", mode=mode)
            return self.offline_fallback(origin_lat, origin_lng, dest_lat, dest_lng, mode)
        return result.model_copy(update={"source": "offline-graph"})

    async def online_route(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        mode: TransportMode,
    ) -> RouteResult:
        if mode == "fly":
            return self.bird_flight(origin_lat, origin_lng, dest_lat, dest_lng)
        if self.osrm is None:
            log_event("route_fallback_used", reason_code="osrm_unavailable", mode=mode)
            return self.offline_graph_route(origin_lat, origin_lng, dest_lat, dest_lng, mode)

        try:
            routes = await self.osrm.fetch_routes(
                origin_lat=origin_lat,
                origin_lng=origin_lng,
                dest_lat=dest_lat,
                dest_lng=dest_lng,
                profile=osrm_profile_for_mode(mode),
            )
            route = routes[0]
            coords = route_coordinates(route)
            distance = float(route.get("distance", 0.0))
            if mode == "car":
                duration = float(route.get("duration", 0.0))
            else:
                duration = travel_duration_s(distance, settings.transport_speed_kmh(mode))
        except (OSRMError, TypeError, ValueError) as exc:
            log_event(
                "osrm_route_failed",
                mode=mode,
                error_type=type(exc).__name__,
                error_message=str(exc).strip() or type(exc).__name__,
            )
            return self.offline_graph_route(origin_lat, origin_lng, dest_lat, dest_lng, mode)

        last_mile_start, last_mile_end = last_mile_connectors(
            (origin_lat, origin_lng),
            (dest_lat, dest_lng),
            coords,
            threshold_m=settings.last_mile_threshold_m,
        )
        return RouteResult(
            coordinates=coords,
            distance_m=max(0.0, distance),
            duration_s=max(0.0, duration),
            last_mile_start=last_mile_start,
            last_mile_end=last_mile_end,
            source="osrm",
        )

    async def calculate_route(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        mode: TransportMode,
        routing_preference: RoutingPreference,
    ) -> RouteResult:
        if mode == "fly":
            return self.bird_flight(origin_lat, origin_lng, dest_lat, dest_lng)
        if routing_preference == "online":
            return await self.online_route(origin_lat, origin_lng, dest_lat, dest_lng, mode)
        return self.offline_graph_route(origin_lat, origin_lng, dest_lat, dest_lng, mode)

    async def solve_tour(
        self,
        waypoints: Sequence[TourWaypoint],
        origin_lat: float,
        origin_lng: float,
        mode: TransportMode,
        routing_preference: RoutingPreference,
    ) -> TourResponse:
        """Order and route a survey tour starting at the origin.

        Offline tours of two or more waypoints over a loaded graph use the graph
        sequencer, where an unreachable leg becomes a plain haversine line. Every
        other tour, a single offline waypoint included, is routed leg by leg
        through :meth:`calculate_route`. An unreachable single leg therefore
        gets the detour-inflated ``offline-fallback`` estimate.
        """
        if not waypoints:
            return TourResponse(order=[], distance_m=0.0, coordinates=[], legs=[], duration_s=0.0, source="")

        speed = settings.transport_speed_kmh(mode)
        if (
            routing_preference == "offline"
            and self.offline_router is not None
            and mode != "fly"
            and len(waypoints) >= 2
        ):
            tour = sequence_and_route(self.offline_router, waypoints, origin_lat, origin_lng, speed_kmh=speed)
            log_event(
                "tour_solved",
                strategy="offline-graph",
                waypoint_count=len(waypoints),
                distance_m=round(tour.distance_m, 2),
            )
            return TourResponse(
                order=tour.order,
                distance_m=tour.distance_m,
                coordinates=tour.coordinates,
                legs=tour.legs,
                duration_s=travel_duration_s(tour.distance_m, speed),
                source="offline-graph",
            )

        # Per-leg graph distances mean nothing against a remote service, so order
        # on straight-line distance and route legs one after another.
        ordered = straight_line_order(waypoints, origin_lat, origin_lng)
        legs: list[RouteResult] = []
        prev_lat, prev_lng = origin_lat, origin_lng
        for waypoint in ordered:
            leg = await self.calculate_route(
                prev_lat,
                prev_lng,
                waypoint.lat,
                waypoint.lng,
                mode,
                routing_preference,
            )
            legs.append(leg)
            prev_lat, prev_lng = waypoint.lat, waypoint.lng

        distance = sum(leg.distance_m for leg in legs)
        log_event(
            "tour_solved",
            strategy="sequential",
            waypoint_count=len(waypoints),
            distance_m=round(distance, 2),
        )
        return TourResponse(
            order=[waypoint.id for waypoint in ordered],
            distance_m=distance,
            coordinates=merge_polylines([leg.coordinates for leg in legs]),
            legs=legs,
            duration_s=sum(leg.duration_s for leg in legs),
            source=legs[0].source or "",
        )
