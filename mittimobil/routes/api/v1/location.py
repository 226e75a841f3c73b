from flask import Blueprint, current_app, jsonify, request

from mittimobil.errors import ValidationError
from mittimobil.extensions import limiter
from mittimobil.services import DiscoveryService, GeocodingService
from mittimobil.services.equipment_service import parse_coordinate
from mittimobil.services.geo import travel_estimate
from mittimobil.services.geocoding_service import MAX_BATCH_ADDRESSES

api_location_bp = Blueprint("api_location", __name__)

NEARBY_PLACES_RADIUS_KM = 5


def _required_point(lat, lng, label="Latitude and longitude"):
    latitude = parse_coordinate(lat, "latitude", -90, 90)
    longitude = parse_coordinate(lng, "longitude", -180, 180)
    if latitude is None or longitude is None:
        raise ValidationError(f"{label} required.")
    return latitude, longitude


def _required_text(value, message):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


@api_location_bp.get("/nearby")
def nearby():
    args = request.args
    results = DiscoveryService.nearby(args.get("lat"), args.get("lng"), args.get("radius"))
    return jsonify(
        {
            "count": len(results),
            "radius_km": float(args.get("radius") or current_app.config["NEARBY_RADIUS_KM"]),
            "equipment": [equipment.to_dict(distance_km=distance) for equipment, distance in results],
        }
    )


@api_location_bp.post("/geocode")
@limiter.limit("30 per minute")
def geocode():
    payload = request.get_json(silent=True) or {}
    address = _required_text(payload.get("address"), "Address required.")
    return jsonify(GeocodingService.geocode(address))


@api_location_bp.post("/reverse-geocode")
@limiter.limit("30 per minute")
def reverse_geocode():
    payload = request.get_json(silent=True) or {}
    lat, lng = _required_point(payload.get("lat"), payload.get("lng"))
    return jsonify(GeocodingService.reverse_geocode(lat, lng))


@api_location_bp.get("/search")
@limiter.limit("30 per minute")
def search_places():
    query = _required_text(request.args.get("query"), "Search query required.")
    lat = parse_coordinate(request.args.get("lat"), "latitude", -90, 90)
    lng = parse_coordinate(request.args.get("lng"), "longitude", -180, 180)
    places = GeocodingService.search_places(query, lat, lng)
    return jsonify({"count": len(places), "places": places})


@api_location_bp.get("/autocomplete")
@limiter.limit("60 per minute")
def autocomplete():
    text = _required_text(request.args.get("input"), "Input text required.")
    return jsonify({"predictions": GeocodingService.autocomplete(text)})


@api_location_bp.get("/nearby-places")
@limiter.limit("30 per minute")
def nearby_places():
    args = request.args
    lat, lng = _required_point(args.get("lat"), args.get("lng"))
    radius_km = DiscoveryService.parse_radius(args.get("radius"), NEARBY_PLACES_RADIUS_KM)
    places = GeocodingService.nearby_places(lat, lng)
    return jsonify({"count": len(places), "radius_km": radius_km, "places": places})


@api_location_bp.post("/batch-geocode")
@limiter.limit("5 per minute")
def batch_geocode():
    payload = request.get_json(silent=True) or {}
    addresses = payload.get("addresses")
    if not isinstance(addresses, list):
        raise ValidationError("Addresses array required.")
    if len(addresses) > MAX_BATCH_ADDRESSES:
        raise ValidationError(f"Maximum {MAX_BATCH_ADDRESSES} addresses allowed per batch.")
    results = GeocodingService.batch_geocode(addresses)
    return jsonify({"count": len(results), "results": results})


@api_location_bp.post("/distance")
def distance():
    payload = request.get_json(silent=True) or {}
    origin = _required_point(payload.get("origin_lat"), payload.get("origin_lng"), "Origin coordinates")
    dest = _required_point(payload.get("dest_lat"), payload.get("dest_lng"), "Destination coordinates")
    return jsonify(travel_estimate(origin[0], origin[1], dest[0], dest[1]))
