from __future__ import annotations

import math
import random
from typing import List, NamedTuple, Optional, Sequence, Tuple


class GeoPoint(NamedTuple):
    lat: float
    lng: float


Polyline = List[GeoPoint]
Bounds = Tuple[Tuple[float, float], Tuple[float, float]]

# -----------------------------
# Generator constants
# -----------------------------
CIRCUMFERENCE_FACTOR = 0.5  # routed street path runs longer than the polygon
KM_PER_DEGREE = 111.0       # one degree of latitude, flat-earth approximation

MIN_POINTS = 5
MAX_POINTS = 9
FIXED_POINTS = 6            # simpler variant: constant point count

RADIUS_JITTER_MIN = 0.6
RADIUS_JITTER_MAX = 1.4
UNDULATION_AMPLITUDE = 0.2
UNDULATION_FREQUENCY = 0.7


# ==========================
# Distance utilities
# ==========================

def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Approximate great-circle distance between two coordinates (m)."""
    R = 6371000.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def polyline_length_m(poly: Sequence[GeoPoint]) -> float:
    if not poly or len(poly) < 2:
        return 0.0
    total = 0.0
    for (la1, lo1), (la2, lo2) in zip(poly[:-1], poly[1:]):
        total += haversine_m(la1, lo1, la2, lo2)
    return total


def polyline_bounds(poly: Sequence[GeoPoint]) -> Bounds:
    """South-west and north-east corners as ((lat, lng), (lat, lng))."""
    if not poly:
        raise ValueError("empty polyline has no bounds")
    lats = [p.lat for p in poly]
    lngs = [p.lng for p in poly]
    return (min(lats), min(lngs)), (max(lats), max(lngs))


# ==========================
# Waypoint polygon
# ==========================

def base_radius_deg(km: float) -> float:
    """Radius in degrees of the circle whose perimeter is the corrected target."""
    circumference_km = km * CIRCUMFERENCE_FACTOR
    radius_km = circumference_km / (2 * math.pi)
    return radius_km / KM_PER_DEGREE


def generate_waypoints(
    center: GeoPoint,
    km: float,
    rng: Optional[random.Random] = None,
    point_count: Optional[int] = None,
) -> Polyline:
    """Randomized closed polygon around ``center`` for a loop of about ``km``.

    The result starts and ends at ``center``. Between them sit ``point_count``
    points (random in [MIN_POINTS, MAX_POINTS] when not given) placed at even
    angular steps from a random start angle. Each radius is jittered by a
    random factor and shifted by a smooth sinusoidal undulation.

    Equirectangular placement: only valid for loop-sized radii away from the poles.
    """
    if rng is None:
        rng = random.Random()
    if point_count is None:
        n = rng.randint(MIN_POINTS, MAX_POINTS)
    elif point_count < 3:
        raise ValueError(f"point_count must be at least 3, got {point_count}")
    else:
        n = point_count

    radius = base_radius_deg(km)
    start_angle = rng.random() * 2 * math.pi

    waypoints: Polyline = [GeoPoint(center.lat, center.lng)]
    for i in range(n):
        angle = start_angle + (i / n) * 2 * math.pi
        r = radius * rng.uniform(RADIUS_JITTER_MIN, RADIUS_JITTER_MAX)
        r += math.sin(i * UNDULATION_FREQUENCY) * UNDULATION_AMPLITUDE * radius
        waypoints.append(GeoPoint(
            center.lat + r * math.sin(angle),
            center.lng + r * math.cos(angle),
        ))
    waypoints.append(GeoPoint(center.lat, center.lng))
    return waypoints
