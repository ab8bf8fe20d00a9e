import httpx

from loop_algo import GeoPoint

PARIS = GeoPoint(48.8566, 2.3522)


def osrm_payload(coords, distance_m=5234.0):
    """Minimal OSRM /route response; ``coords`` are (lng, lat) pairs."""
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": distance_m,
                "geometry": {"type": "LineString", "coordinates": [list(c) for c in coords]},
            }
        ],
    }


ROUTE_COORDS = [(2.3522, 48.8566), (2.3550, 48.8580), (2.3570, 48.8560), (2.3523, 48.8567)]


def make_transport(search=None, route=None, reverse=None):
    """MockTransport answering Nominatim and OSRM paths with canned bodies."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path
        if path.endswith("/search"):
            return httpx.Response(200, json=search if search is not None else [])
        if path.endswith("/reverse"):
            return httpx.Response(200, json=reverse if reverse is not None else {})
        if path.startswith("/route/v1/"):
            body = route if route is not None else osrm_payload(ROUTE_COORDS)
            return httpx.Response(200, json=body)
        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport
