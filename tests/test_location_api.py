from http.client import IncompleteRead
from urllib.error import URLError

import pytest

from mittimobil.services import BookingService, GeocodingService
from mittimobil.services import geocoding_service

PUNE_RESULT = {
    "lat": "18.5204",
    "lon": "73.8567",
    "display_name": "Pune, Maharashtra, India",
    "place_id": 4242,
    "type": "city",
    "address": {
        "city": "Pune",
        "state_district": "Pune District",
        "state": "Maharashtra",
        "country": "India",
        "postcode": "411001",
    },
}


@pytest.fixture
def geocoder_calls(monkeypatch):
    calls = []
    responses = {}

    def fake_get(path, params):
        calls.append((path, params))
        result = responses.get(path)
        return result(params) if callable(result) else result

    monkeypatch.setattr(GeocodingService, "_get", staticmethod(fake_get))
    return calls, responses


def test_geocode(client, geocoder_calls):
    calls, responses = geocoder_calls
    responses["search"] = [PUNE_RESULT]

    response = client.post("/api/v1/location/geocode", json={"address": "Shivajinagar, Pune"})

    assert response.status_code == 200
    body = response.get_json()
    assert (body["lat"], body["lng"]) == (18.5204, 73.8567)
    assert body["formatted_address"] == "Pune, Maharashtra, India"
    assert body["address"]["district"] == "Pune District"
    assert calls == [("search", {"q": "Shivajinagar, Pune", "limit": 1, "countrycodes": "in"})]


@pytest.mark.parametrize("address", ["   ", 5, ["Pune"], None])
def test_geocode_requires_address(client, geocoder_calls, address):
    response = client.post("/api/v1/location/geocode", json={"address": address})

    assert response.status_code == 400
    assert response.get_json() == {"error": "Address required."}
    assert geocoder_calls[0] == []


def test_geocode_not_found(client, geocoder_calls):
    geocoder_calls[1]["search"] = []

    response = client.post("/api/v1/location/geocode", json={"address": "Atlantis"})

    assert response.status_code == 404
    assert response.get_json() == {"error": "Address not found."}


def test_geocoder_outage_is_bad_gateway(client, monkeypatch):
    def unreachable(*args, **kwargs):
        raise URLError("timed out")

    monkeypatch.setattr(geocoding_service, "urlopen", unreachable)

    response = client.post("/api/v1/location/geocode", json={"address": "Pune"})

    assert response.status_code == 502
    assert response.get_json() == {"error": "Geocoding service unavailable."}


def test_geocoder_dropped_connection_is_bad_gateway(client, monkeypatch):
    def truncated(*args, **kwargs):
        raise IncompleteRead(b"[{")

    monkeypatch.setattr(geocoding_service, "urlopen", truncated)

    response = client.post("/api/v1/location/geocode", json={"address": "Pune"})

    assert response.status_code == 502
    assert response.get_json() == {"error": "Geocoding service unavailable."}


@pytest.mark.parametrize(
    "payload", [{"error": "Unable to geocode"}, "Pune", 42, [{"lat": "north", "lon": "73.8"}]]
)
def test_geocode_unusable_result_is_bad_gateway(client, geocoder_calls, payload):
    geocoder_calls[1]["search"] = payload

    response = client.post("/api/v1/location/geocode", json={"address": "Pune"})

    assert response.status_code == 502
    assert response.get_json() == {"error": "Geocoder returned an unusable result."}


def test_reverse_geocode_unusable_result_is_bad_gateway(client, geocoder_calls):
    geocoder_calls[1]["reverse"] = [PUNE_RESULT]

    response = client.post("/api/v1/location/reverse-geocode", json={"lat": 18.5204, "lng": 73.8567})

    assert response.status_code == 502


def test_reverse_geocode(client, geocoder_calls):
    calls, responses = geocoder_calls
    responses["reverse"] = PUNE_RESULT

    response = client.post("/api/v1/location/reverse-geocode", json={"lat": 18.5204, "lng": 73.8567})

    assert response.status_code == 200
    body = response.get_json()
    assert body["city"] == "Pune"
    assert body["postal_code"] == "411001"
    assert calls == [("reverse", {"lat": 18.5204, "lon": 73.8567})]


def test_reverse_geocode_unknown_point(client, geocoder_calls):
    geocoder_calls[1]["reverse"] = {"error": "Unable to geocode"}

    response = client.post("/api/v1/location/reverse-geocode", json={"lat": 0, "lng": 0})

    assert response.status_code == 404


@pytest.mark.parametrize("payload", [{}, {"lat": 18.5}, {"lat": "north", "lng": 73.8}, {"lat": 95, "lng": 73.8}])
def test_reverse_geocode_validation(client, geocoder_calls, payload):
    response = client.post("/api/v1/location/reverse-geocode", json=payload)

    assert response.status_code == 400
    assert geocoder_calls[0] == []


def test_search_places_biased_to_caller(client, geocoder_calls):
    calls, responses = geocoder_calls
    responses["search"] = [PUNE_RESULT, {"display_name": "Broken", "lat": None, "lon": None}]

    response = client.get("/api/v1/location/search?query=Pune&lat=18.5&lng=73.8")

    assert response.status_code == 200
    body = response.get_json()
    assert body["count"] == 1
    assert body["places"][0]["name"] == "Pune, Maharashtra, India"
    params = calls[0][1]
    assert params["viewbox"] == f"{73.8 - 0.5},{18.5 - 0.5},{73.8 + 0.5},{18.5 + 0.5}"
    assert params["bounded"] == 0


def test_search_places_requires_query(client, geocoder_calls):
    assert client.get("/api/v1/location/search").status_code == 400


def test_distance(client):
    response = client.post(
        "/api/v1/location/distance",
        json={"origin_lat": 0, "origin_lng": 0, "dest_lat": 0, "dest_lng": 1},
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["distance"]["text"] == "111.2 km"
    assert body["duration"] == {"value": 167 * 60, "text": "2h 47m"}


def test_distance_requires_both_points(client):
    response = client.post("/api/v1/location/distance", json={"origin_lat": 0, "origin_lng": 0})

    assert response.status_code == 400
    assert response.get_json() == {"error": "Destination coordinates required."}


def test_nearby_default_radius(client, owner, renter, make_equipment):
    here = make_equipment(owner, longitude=73.8567, latitude=18.5204)
    close = make_equipment(owner, longitude=73.9067, latitude=18.5204)
    make_equipment(owner, longitude=74.0567, latitude=18.5204)
    taken = make_equipment(owner, longitude=73.8600, latitude=18.5204)
    BookingService.create_booking(renter.id, taken.id, "2026-11-02T09:00:00Z", "2026-11-02T10:00:00Z")

    response = client.get("/api/v1/location/nearby?lat=18.5204&lng=73.8567")

    assert response.status_code == 200
    body = response.get_json()
    assert body["radius_km"] == 10.0
    assert [item["id"] for item in body["equipment"]] == [here.id, close.id]
    assert body["equipment"][1]["distance_km"] == 5.3


def test_nearby_custom_radius(client, owner, make_equipment):
    make_equipment(owner, longitude=73.8567, latitude=18.5204)
    make_equipment(owner, longitude=74.0567, latitude=18.5204)

    body = client.get("/api/v1/location/nearby?lat=18.5204&lng=73.8567&radius=25").get_json()

    assert body["count"] == 2
    assert body["radius_km"] == 25.0


@pytest.mark.parametrize("query", ["", "lat=18.5", "lat=18.5&lng=73.8&radius=0"])
def test_nearby_validation(client, query):
    assert client.get(f"/api/v1/location/nearby?{query}").status_code == 400


def test_autocomplete(client, geocoder_calls):
    calls, responses = geocoder_calls
    responses["search"] = [PUNE_RESULT]

    response = client.get("/api/v1/location/autocomplete?input=Pun")

    assert response.status_code == 200
    assert response.get_json()["predictions"] == [
        {
            "description": "Pune, Maharashtra, India",
            "place_id": 4242,
            "main_text": "Pune",
            "secondary_text": "Maharashtra, India",
        }
    ]
    assert calls == [("search", {"q": "Pun", "limit": 5, "countrycodes": "in"})]


def test_autocomplete_requires_input(client, geocoder_calls):
    assert client.get("/api/v1/location/autocomplete?input=%20").status_code == 400
    assert geocoder_calls[0] == []


def test_nearby_places(client, geocoder_calls):
    calls, responses = geocoder_calls
    responses["reverse"] = PUNE_RESULT

    response = client.get("/api/v1/location/nearby-places?lat=18.5204&lng=73.8567")

    assert response.status_code == 200
    assert response.get_json() == {
        "count": 1,
        "radius_km": 5.0,
        "places": [
            {
                "name": "Pune",
                "vicinity": "Pune, Maharashtra, India",
                "location": {"lat": 18.5204, "lng": 73.8567},
            }
        ],
    }
    assert calls == [("reverse", {"lat": 18.5204, "lon": 73.8567, "zoom": 10})]


def test_nearby_places_unknown_point(client, geocoder_calls):
    geocoder_calls[1]["reverse"] = {"error": "Unable to geocode"}

    body = client.get("/api/v1/location/nearby-places?lat=0&lng=0&radius=12").get_json()

    assert body == {"count": 0, "radius_km": 12.0, "places": []}


@pytest.mark.parametrize("query", ["", "lat=18.5", "lat=18.5&lng=73.8&radius=-1"])
def test_nearby_places_validation(client, geocoder_calls, query):
    assert client.get(f"/api/v1/location/nearby-places?{query}").status_code == 400
    assert geocoder_calls[0] == []


def test_batch_geocode_reports_each_address(app, client, geocoder_calls, monkeypatch):
    calls, responses = geocoder_calls
    responses["search"] = lambda params: [PUNE_RESULT] if params["q"] == "Pune" else []
    pauses = []
    monkeypatch.setattr(geocoding_service.time, "sleep", pauses.append)
    app.config["GEOCODER_BATCH_DELAY"] = 0.25

    response = client.post("/api/v1/location/batch-geocode", json={"addresses": ["Pune", "Atlantis", 7]})

    assert response.status_code == 200
    body = response.get_json()
    assert body["count"] == 3
    first, missing, malformed = body["results"]
    assert first["success"] is True
    assert (first["address"], first["lat"], first["lng"]) == ("Pune", 18.5204, 73.8567)
    assert missing == {"address": "Atlantis", "success": False, "error": "Address not found."}
    assert malformed == {"address": 7, "success": False, "error": "Address required."}
    assert [params["q"] for _, params in calls] == ["Pune", "Atlantis"]
    assert pauses == [0.25, 0.25]


@pytest.mark.parametrize("payload", [{}, {"addresses": "Pune"}, {"addresses": ["Pune"] * 11}])
def test_batch_geocode_validation(client, geocoder_calls, payload):
    assert client.post("/api/v1/location/batch-geocode", json=payload).status_code == 400
    assert geocoder_calls[0] == []
