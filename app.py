from contextlib import asynccontextmanager
from functools import partial
from typing import Optional
import logging
import os

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from geocoder import geocode_address_async, reverse_geocode_async
from loops import (
    LOOPS_PER_BATCH,
    RECENT_LOOPS,
    BatchStatus,
    LoopOrchestrator,
    LoopRegistry,
    LoopRequest,
)
from map_canvas import FoliumCanvas
from route_client import fetch_loop_route_async

logger = logging.getLogger("app")
logger.setLevel(logging.INFO)

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    if origin.strip()
]
MAX_LOOPS_PER_BATCH = 10


def create_app(transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build the API. ``transport`` replaces the network for external services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ----------------------------------------------------
        # startup: shared HTTP client, canvas, registry
        # ----------------------------------------------------
        client = httpx.AsyncClient(transport=transport)
        canvas = FoliumCanvas()
        canvas.initialize()
        registry = LoopRegistry()

        app.state.client = client
        app.state.canvas = canvas
        app.state.registry = registry
        app.state.orchestrator = LoopOrchestrator(
            registry=registry,
            surface=canvas,
            geocode=partial(geocode_address_async, client),
            route=partial(fetch_loop_route_async, client),
        )
        logger.info("Loop service ready")

        yield

        # shutdown
        canvas.close()
        await client.aclose()

    app = FastAPI(title="Loop Route API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_headers=["*"],
        allow_methods=["*"],
    )

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "map_ready": app.state.canvas.ready,
            "loops": len(app.state.registry),
        }

    @app.post("/api/loops")
    async def create_loops(
        address: str = Query(..., min_length=1, description="Start address"),
        km: float = Query(..., ge=1.0, le=50.0, multiple_of=0.5, description="Target distance (km)"),
        count: int = Query(LOOPS_PER_BATCH, ge=1, le=MAX_LOOPS_PER_BATCH, description="Loops to generate"),
    ):
        request = LoopRequest(origin_address=address, km=km)
        report = await app.state.orchestrator.generate_loops(request, count)
        body = report.to_dict()
        body["total_loops"] = len(app.state.registry)
        if report.status is BatchStatus.ADDRESS_NOT_FOUND:
            return JSONResponse(status_code=404, content=body)
        return body

    @app.get("/api/loops")
    def list_loops(recent: int = Query(RECENT_LOOPS, ge=0, le=100)):
        registry: LoopRegistry = app.state.registry
        return {
            "count": len(registry),
            "loops": [loop.to_dict() for loop in registry.recent(recent)],
        }

    @app.get("/api/geocode")
    async def geocode(address: str = Query(..., min_length=1)):
        point = await geocode_address_async(app.state.client, address)
        if point is None:
            raise HTTPException(404, f"Address not found: {address}")
        return {"lat": point.lat, "lng": point.lng}

    @app.get("/api/reverse-geocode")
    async def reverse_geocode(
        lat: float = Query(..., ge=-90.0, le=90.0),
        lng: float = Query(..., ge=-180.0, le=180.0),
    ):
        label = await reverse_geocode_async(app.state.client, lat, lng)
        return {"label": label}

    @app.get("/map", response_class=HTMLResponse)
    def map_page():
        return app.state.canvas.render()

    return app


app = create_app()
