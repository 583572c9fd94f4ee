from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .errors import EmptyGraphError, RoutingDataError
from .logging_utils import log_event
from .models import (
    HealthResponse,
    OfflineGraphStatus,
    RouteRequest,
    RouteResult,
    TourRequest,
    TourResponse,
)
from .route_geometry import OfflineRouter
from .routing_osrm import OSRMClient
from .routing_service import RoutingService
from .settings import settings


def load_offline_router() -> OfflineRouter | None:
    """Build the offline router from the configured assets, or ``None`` without one."""
    graph_path = settings.road_graph_path
    if not graph_path:
        log_event("offline_router_unavailable", reason_code="routing_graph_unavailable", detail="ROAD_GRAPH_PATH not set")
        return None
    if not Path(graph_path).exists():
        log_event("offline_router_unavailable", reason_code="routing_graph_unavailable", asset_path=graph_path)
        return None

    geometry_path = settings.road_geometry_path or None
    if geometry_path and not Path(geometry_path).exists():
        log_event("offline_router_geometry_missing", asset_path=geometry_path)
        geometry_path = None

    try:
        router = OfflineRouter.from_files(graph_path, geometry_path)
    except RoutingDataError as exc:
        log_event(
            "offline_router_unavailable",
            reason_code=exc.reason_code,
            error_message=str(exc),
            asset_path=graph_path,
        )
        return None

    if router.graph.node_count == 0:
        # Stays loaded: offline lookups then raise EmptyGraphError (503).
        log_event(
            "offline_router_empty",
            level=logging.WARNING,
            reason_code="routing_graph_empty",
            asset_path=graph_path,
        )
        return router

    log_event(
        "offline_router_ready",
        asset_path=graph_path,
        node_count=router.graph.node_count,
        edge_count=router.graph.edge_count,
        edge_geometry_count=len(router.graph.edge_geometries),
    )
    return router


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.osrm = OSRMClient(
        base_url=settings.osrm_base_url,
        timeout_s=settings.osrm_timeout_s,
        max_retries=settings.osrm_max_retries,
    )
    app.state.routing = RoutingService(offline_router=load_offline_router(), osrm=app.state.osrm)
    yield
    await app.state.osrm.aclose()


app = FastAPI(title="Field Router", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def routing_service(request: Request) -> RoutingService:
    service: RoutingService | None = getattr(request.app.state, "routing", None)  # type: ignore[attr-defined]
    if service is None:
        raise HTTPException(status_code=503, detail="Routing service not initialised")
    return service


RoutingDep = Annotated[RoutingService, Depends(routing_service)]


@app.get("/health", response_model=HealthResponse)
async def health(service: RoutingDep) -> HealthResponse:
    router = service.offline_router
    if router is None:
        graph_status = OfflineGraphStatus(loaded=False)
    else:
        graph_status = OfflineGraphStatus(
            loaded=True,
            nodes=router.graph.node_count,
            edge_geometries=len(router.graph.edge_geometries),
        )
    return HealthResponse(status="ok", offline_graph=graph_status)


@app.post("/route", response_model=RouteResult)
async def compute_route(req: RouteRequest, service: RoutingDep) -> RouteResult:
    try:
        return await service.calculate_route(
            req.origin.lat,
            req.origin.lng,
            req.destination.lat,
            req.destination.lng,
            req.mode,
            req.routing,
        )
    except EmptyGraphError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@app.post("/tour", response_model=TourResponse)
async def compute_tour(req: TourRequest, service: RoutingDep) -> TourResponse:
    try:
        return await service.solve_tour(
            req.waypoints,
            req.origin.lat,
            req.origin.lng,
            req.mode,
            req.routing,
        )
    except EmptyGraphError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
