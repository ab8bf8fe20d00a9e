import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import httpx

from loop_algo import Bounds, GeoPoint, polyline_bounds

logger = logging.getLogger("route_client")
logger.setLevel(logging.INFO)

# -----------------------------
# Settings
# -----------------------------
OSRM_URL = os.getenv("OSRM_URL", "https://router.project-osrm.org").rstrip("/")
HTTP_TIMEOUT_SEC = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))

ROUTING_PROFILES = {
    "pedestrian": "foot-walking",
}


@dataclass(frozen=True)
class RoutedPath:
    points: Tuple[GeoPoint, ...]
    distance_km: float

    def bounds(self) -> Bounds:
        return polyline_bounds(self.points)


def _format_coords(waypoints: Sequence[GeoPoint]) -> str:
    # service expects "lng,lat" pairs, in tour order
    return ";".join(f"{p.lng},{p.lat}" for p in waypoints)


def parse_route_response(data: dict) -> Optional[RoutedPath]:
    """Best route of an OSRM response, with axes swapped to (lat, lng)."""
    if not isinstance(data, dict):
        return None
    routes = data.get("routes") or []
    if not routes:
        return None
    best = routes[0]
    coords = best["geometry"]["coordinates"]
    if not coords:
        return None
    points = tuple(GeoPoint(float(c[1]), float(c[0])) for c in coords)
    distance_km = round(float(best["distance"]) / 1000.0, 2)
    return RoutedPath(points=points, distance_km=distance_km)


# -----------------------------
# [Async] waypoints -> walkable path
# -----------------------------
async def fetch_loop_route_async(
    client: httpx.AsyncClient,
    waypoints: Sequence[GeoPoint],
    profile: str = "pedestrian",
) -> Optional[RoutedPath]:
    """Route through ``waypoints`` in order. None when the service has no route."""
    service_profile = ROUTING_PROFILES.get(profile, profile)
    url = f"{OSRM_URL}/route/v1/{service_profile}/{_format_coords(waypoints)}"
    try:
        resp = await client.get(
            url,
            params={"overview": "full", "geometries": "geojson"},
            timeout=HTTP_TIMEOUT_SEC,
        )
        resp.raise_for_status()
        path = parse_route_response(resp.json())
    except httpx.HTTPError as e:
        logger.warning(f"Routing request failed ({len(waypoints)} waypoints): {e}")
        return None
    except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
        logger.warning(f"Unreadable routing response: {e}")
        return None

    if path is None:
        logger.info(f"Routing service returned no route for {len(waypoints)} waypoints")
    return path
