from __future__ import annotations

import asyncio
import enum
import itertools
import logging
import os
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from loop_algo import GeoPoint, Polyline, generate_waypoints, polyline_length_m
from map_canvas import MapSurface, SurfaceUnavailable
from route_client import RoutedPath

logger = logging.getLogger("loops")
logger.setLevel(logging.INFO)

# -----------------------------
# Settings
# -----------------------------
PALETTE = ("#ff6b6b", "#4ecdc4", "#45b7d1", "#f9ca24", "#f0932b")
LOOPS_PER_BATCH = int(os.getenv("LOOPS_PER_BATCH", "3"))
RECENT_LOOPS = int(os.getenv("RECENT_LOOPS", "6"))
DISTANCE_UNIT = "km"

GeocodeFn = Callable[[str], Awaitable[Optional[GeoPoint]]]
RouteFn = Callable[[Sequence[GeoPoint]], Awaitable[Optional[RoutedPath]]]


def _format_polyline_for_frontend(points: Sequence[GeoPoint]) -> List[Dict[str, float]]:
    return [{"lat": lat, "lng": lng} for lat, lng in points]


@dataclass(frozen=True)
class LoopRequest:
    origin_address: str
    km: float

    def __post_init__(self):
        if not self.km > 0:
            raise ValueError(f"km must be positive, got {self.km}")


@dataclass(frozen=True)
class Loop:
    id: int
    origin_address: str
    requested_km: float
    actual_km: float
    color: str
    path: RoutedPath
    unit: str = DISTANCE_UNIT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address": self.origin_address,
            "distance": self.requested_km,
            "unit": self.unit,
            "actual_distance": self.actual_km,
            "color": self.color,
            "polyline": _format_polyline_for_frontend(self.path.points),
        }


# ==========================
# Registry
# ==========================

class LoopRegistry:
    """Accepted loops in creation order.

    Color comes from a creation counter that only advances on append, so the
    Nth loop of the session always gets PALETTE[N % len(PALETTE)].
    """

    def __init__(self, palette: Sequence[str] = PALETTE):
        self.palette = tuple(palette)
        self._loops: List[Loop] = []
        self._counter = itertools.count()

    def append(self, origin_address: str, requested_km: float, path: RoutedPath) -> Loop:
        n = next(self._counter)
        loop = Loop(
            id=n,
            origin_address=origin_address,
            requested_km=requested_km,
            actual_km=path.distance_km,
            color=self.palette[n % len(self.palette)],
            path=path,
        )
        self._loops.append(loop)
        return loop

    def all(self) -> Tuple[Loop, ...]:
        return tuple(self._loops)

    def recent(self, n: int = RECENT_LOOPS) -> Tuple[Loop, ...]:
        if n <= 0:
            return ()
        return tuple(self._loops[-n:])

    def __len__(self) -> int:
        return len(self._loops)


# ==========================
# Batch results
# ==========================

class AttemptOutcome(enum.Enum):
    SUCCESS = "success"
    NO_ROUTE = "no_route"
    SURFACE_UNAVAILABLE = "surface_unavailable"


class BatchStatus(enum.Enum):
    ADDED = "added"
    ADDRESS_NOT_FOUND = "address_not_found"
    NO_ROUTE = "no_route"
    SURFACE_UNAVAILABLE = "surface_unavailable"


class FailurePolicy(enum.Enum):
    ABORT = "abort"        # stop the batch, keep loops already added
    CONTINUE = "continue"  # keep trying with fresh polygons


STATUS_MESSAGES = {
    BatchStatus.ADDED: "Loops added!",
    BatchStatus.ADDRESS_NOT_FOUND: "Address not found",
    BatchStatus.NO_ROUTE: "No route found",
    BatchStatus.SURFACE_UNAVAILABLE: "Map not ready",
}


@dataclass
class AttemptResult:
    index: int
    outcome: AttemptOutcome
    waypoint_count: int
    polygon_km: float
    loop: Optional[Loop] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "outcome": self.outcome.value,
            "waypoint_count": self.waypoint_count,
            "polygon_km": round(self.polygon_km, 2),
            "loop_id": self.loop.id if self.loop else None,
        }


@dataclass
class BatchReport:
    request: LoopRequest
    requested_count: int
    status: BatchStatus = BatchStatus.ADDED
    center: Optional[GeoPoint] = None
    attempts: List[AttemptResult] = field(default_factory=list)
    skipped: int = 0

    @property
    def loops(self) -> List[Loop]:
        return [a.loop for a in self.attempts if a.loop is not None]

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self.status]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "address": self.request.origin_address,
            "km_requested": self.request.km,
            "count_requested": self.requested_count,
            "start": {"lat": self.center.lat, "lng": self.center.lng} if self.center else None,
            "attempts": [a.to_dict() for a in self.attempts],
            "skipped": self.skipped,
            "loops": [loop.to_dict() for loop in self.loops],
        }


# ==========================
# Orchestrator
# ==========================

class LoopOrchestrator:
    """Runs loop batches: geocode once, then polygon -> route -> registry per attempt."""

    def __init__(
        self,
        registry: LoopRegistry,
        surface: MapSurface,
        geocode: GeocodeFn,
        route: RouteFn,
        rng: Optional[random.Random] = None,
        policy: FailurePolicy = FailurePolicy.ABORT,
        point_count: Optional[int] = None,
    ):
        self.registry = registry
        self.surface = surface
        self.geocode = geocode
        self.route = route
        self.rng = rng if rng is not None else random.Random()
        self.policy = policy
        self.point_count = point_count
        self._batch_lock = asyncio.Lock()

    async def generate_loops(self, request: LoopRequest, count: int = LOOPS_PER_BATCH) -> BatchReport:
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")
        async with self._batch_lock:
            return await self._run_batch(request, count)

    async def _run_batch(self, request: LoopRequest, count: int) -> BatchReport:
        report = BatchReport(request=request, requested_count=count)
        logger.info(f"Batch start: {count} x {request.km} km from {request.origin_address!r}")

        center = await self.geocode(request.origin_address)
        if center is None:
            report.status = BatchStatus.ADDRESS_NOT_FOUND
            report.skipped = count
            logger.info(f"Batch aborted, address not found: {request.origin_address!r}")
            return report
        report.center = center

        failure: Optional[AttemptOutcome] = None
        for i in range(count):
            result = await self._attempt(i, center, request)
            report.attempts.append(result)
            if result.outcome is AttemptOutcome.SUCCESS:
                continue
            failure = failure or result.outcome
            if self.policy is FailurePolicy.ABORT:
                report.skipped = count - i - 1
                break

        if report.loops:
            report.status = BatchStatus.ADDED
        elif failure is AttemptOutcome.SURFACE_UNAVAILABLE:
            report.status = BatchStatus.SURFACE_UNAVAILABLE
        else:
            report.status = BatchStatus.NO_ROUTE

        logger.info(
            f"Batch done: {len(report.loops)}/{count} loops added, "
            f"{report.skipped} skipped, registry size {len(self.registry)}"
        )
        return report

    async def _attempt(self, index: int, center: GeoPoint, request: LoopRequest) -> AttemptResult:
        waypoints: Polyline = generate_waypoints(
            center, request.km, rng=self.rng, point_count=self.point_count
        )
        result = AttemptResult(
            index=index,
            outcome=AttemptOutcome.NO_ROUTE,
            waypoint_count=len(waypoints),
            polygon_km=polyline_length_m(waypoints) / 1000.0,
        )

        path = await self.route(waypoints)
        if path is None:
            logger.info(f"Attempt {index}: no route")
            return result

        if not self.surface.ready:
            result.outcome = AttemptOutcome.SURFACE_UNAVAILABLE
            logger.info(f"Attempt {index}: map surface unavailable")
            return result

        loop = self.registry.append(request.origin_address, request.km, path)
        try:
            handle = self.surface.draw_path(loop.path.points, loop.color)
            self.surface.fit_bounds(handle)
        except SurfaceUnavailable:
            # surface went away between the readiness check and the draw
            logger.warning(f"Attempt {index}: loop {loop.id} stored but not drawn")

        result.outcome = AttemptOutcome.SUCCESS
        result.loop = loop
        logger.info(
            f"Attempt {index}: loop {loop.id} {loop.color} "
            f"polygon {result.polygon_km:.2f} km -> routed {loop.actual_km:.2f} km"
        )
        return result
