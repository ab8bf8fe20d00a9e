import pytest
from fastapi.testclient import TestClient

from app import create_app
from loops import PALETTE
from tests.helpers import ROUTE_COORDS, make_transport

PARIS_MATCH = [{"lat": "48.8566", "lon": "2.3522", "display_name": "Paris"}]


@pytest.fixture
def client():
    transport = make_transport(search=PARIS_MATCH, reverse={"display_name": "Louvre, Paris"})
    with TestClient(create_app(transport=transport)) as c:
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "map_ready": True, "loops": 0}


def test_generate_batch(client):
    resp = client.post("/api/loops", params={"address": "Paris", "km": 5})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "added"
    assert body["message"] == "Loops added!"
    assert len(body["loops"]) == 3
    assert body["total_loops"] == 3
    assert [loop["color"] for loop in body["loops"]] == list(PALETTE[:3])

    loop = body["loops"][0]
    assert loop["distance"] == 5.0
    assert loop["actual_distance"] == 5.23
    assert loop["unit"] == "km"
    # stored in lat/lng order, exactly as routed
    assert loop["polyline"] == [{"lat": lat, "lng": lng} for lng, lat in ROUTE_COORDS]


def test_list_recent_loops(client):
    client.post("/api/loops", params={"address": "Paris", "km": 5, "count": 4})
    client.post("/api/loops", params={"address": "Paris", "km": 7.5, "count": 4})

    body = client.get("/api/loops").json()
    assert body["count"] == 8
    assert [loop["id"] for loop in body["loops"]] == [2, 3, 4, 5, 6, 7]

    body = client.get("/api/loops", params={"recent": 2}).json()
    assert [loop["distance"] for loop in body["loops"]] == [7.5, 7.5]


def test_address_not_found():
    transport = make_transport(search=[])
    with TestClient(create_app(transport=transport)) as c:
        resp = c.post("/api/loops", params={"address": "Atlantis", "km": 5})
        assert resp.status_code == 404
        assert resp.json()["status"] == "address_not_found"
        assert resp.json()["loops"] == []
        assert c.get("/health").json()["loops"] == 0


def test_no_route_keeps_status_200():
    transport = make_transport(search=PARIS_MATCH, route={"code": "NoRoute", "routes": []})
    with TestClient(create_app(transport=transport)) as c:
        resp = c.post("/api/loops", params={"address": "Paris", "km": 5})
        assert resp.status_code == 200
        assert resp.json()["status"] == "no_route"
        assert resp.json()["skipped"] == 2


@pytest.mark.parametrize("km", [0.5, 51, 5.3])
def test_distance_bounds(client, km):
    resp = client.post("/api/loops", params={"address": "Paris", "km": km})
    assert resp.status_code == 422


def test_geocode_endpoints(client):
    assert client.get("/api/geocode", params={"address": "Paris"}).json() == {"lat": 48.8566, "lng": 2.3522}
    resp = client.get("/api/reverse-geocode", params={"lat": 48.8606, "lng": 2.3376})
    assert resp.json() == {"label": "Louvre, Paris"}


def test_geocode_not_found():
    with TestClient(create_app(transport=make_transport(search=[]))) as c:
        assert c.get("/api/geocode", params={"address": "Atlantis"}).status_code == 404


def test_map_page(client):
    client.post("/api/loops", params={"address": "Paris", "km": 5, "count": 1})
    resp = client.get("/map")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert PALETTE[0] in resp.text
