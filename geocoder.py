import logging
import os
from typing import Optional

import httpx

from loop_algo import GeoPoint

logger = logging.getLogger("geocoder")
logger.setLevel(logging.INFO)

# -----------------------------
# Settings
# -----------------------------
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org").rstrip("/")
HTTP_USER_AGENT = os.getenv("HTTP_USER_AGENT", "loop-route-api/0.1")
HTTP_TIMEOUT_SEC = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))

LABEL_DECIMALS = 5


def format_point_label(lat: float, lng: float) -> str:
    return f"{lat:.{LABEL_DECIMALS}f}, {lng:.{LABEL_DECIMALS}f}"


# -----------------------------
# [Async] address -> point
# -----------------------------
async def geocode_address_async(client: httpx.AsyncClient, address: str) -> Optional[GeoPoint]:
    """First Nominatim match for ``address``, or None when nothing matches."""
    if not address or not address.strip():
        return None
    try:
        resp = await client.get(
            f"{NOMINATIM_URL}/search",
            params={"q": address, "format": "json", "limit": 1},
            headers={"User-Agent": HTTP_USER_AGENT},
            timeout=HTTP_TIMEOUT_SEC,
        )
        resp.raise_for_status()
        data = resp.json()
        if not data:
            logger.info(f"No geocoding match for {address!r}")
            return None
        return GeoPoint(float(data[0]["lat"]), float(data[0]["lon"]))
    except httpx.HTTPError as e:
        logger.warning(f"Geocoding failed for {address!r}: {e}")
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Unreadable geocoding response for {address!r}: {e}")
    return None


# -----------------------------
# [Async] point -> label
# -----------------------------
async def reverse_geocode_async(client: httpx.AsyncClient, lat: float, lng: float) -> str:
    """Human-readable place for a point; falls back to its coordinates."""
    try:
        resp = await client.get(
            f"{NOMINATIM_URL}/reverse",
            params={"lat": lat, "lon": lng, "format": "json", "zoom": 18},
            headers={"User-Agent": HTTP_USER_AGENT},
            timeout=HTTP_TIMEOUT_SEC,
        )
        resp.raise_for_status()
        label = resp.json().get("display_name")
        if label:
            return label
    except httpx.HTTPError as e:
        logger.warning(f"Reverse geocoding failed for {lat},{lng}: {e}")
    except (ValueError, AttributeError) as e:
        logger.warning(f"Unreadable reverse geocoding response for {lat},{lng}: {e}")
    return format_point_label(lat, lng)
