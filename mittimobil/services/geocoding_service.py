import json
import time
from http.client import HTTPException
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from flask import current_app

from mittimobil.errors import GeocodingError

MAX_BATCH_ADDRESSES = 10


def _town(details):
    return details.get("city") or details.get("town") or details.get("village")


def _point(place):
    try:
        return float(place["lat"]), float(place["lon"])
    except (KeyError, TypeError, ValueError):
        return None


class GeocodingService:
    """Thin client for a Nominatim-compatible geocoder.

    Every call is bounded by ``GEOCODER_TIMEOUT`` and raises ``GeocodingError``
    on any transport or parsing failure, including a response of the wrong
    shape; callers decide whether to degrade.
    """

    @staticmethod
    def _get(path, params):
        config = current_app.config
        query = urlencode({**params, "format": "json", "addressdetails": 1})
        req = Request(
            f"{config['GEOCODER_URL'].rstrip('/')}/{path}?{query}",
            headers={"User-Agent": config["GEOCODER_USER_AGENT"]},
        )
        try:
            with urlopen(req, timeout=config["GEOCODER_TIMEOUT"]) as response:
                return json.loads(response.read().decode("utf-8"))
        except (URLError, HTTPException, OSError, ValueError) as exc:
            current_app.logger.warning("Geocoder request to /%s failed: %s", path, exc)
            raise GeocodingError("Geocoding service unavailable.") from exc

    @staticmethod
    def _search(params):
        data = GeocodingService._get("search", params)
        if not isinstance(data, list):
            current_app.logger.warning("Geocoder search returned %s instead of a list", type(data).__name__)
            raise GeocodingError("Geocoder returned an unusable result.")
        return [place for place in data if isinstance(place, dict)]

    @staticmethod
    def _reverse(lat, lng, **extra):
        data = GeocodingService._get("reverse", {"lat": lat, "lon": lng, **extra})
        if not isinstance(data, dict):
            raise GeocodingError("Geocoder returned an unusable result.")
        if not data or "error" in data:
            raise GeocodingError("Location not found.", 404)
        return data

    @staticmethod
    def geocode(address):
        if not isinstance(address, str) or not address.strip():
            raise GeocodingError("Address required.", 400)
        data = GeocodingService._search(
            {"q": address.strip(), "limit": 1, "countrycodes": current_app.config["GEOCODER_COUNTRY_CODES"]}
        )
        if not data:
            raise GeocodingError("Address not found.", 404)
        result = data[0]
        point = _point(result)
        if point is None:
            raise GeocodingError("Geocoder returned an unusable result.")
        details = result.get("address") or {}
        return {
            "lat": point[0],
            "lng": point[1],
            "formatted_address": result.get("display_name"),
            "place_id": result.get("place_id"),
            "address": {
                "village": details.get("village"),
                "city": details.get("city") or details.get("town"),
                "district": details.get("state_district"),
                "state": details.get("state"),
                "country": details.get("country"),
                "postcode": details.get("postcode"),
            },
        }

    @staticmethod
    def reverse_geocode(lat, lng):
        data = GeocodingService._reverse(lat, lng)
        details = data.get("address") or {}
        return {
            "formatted_address": data.get("display_name"),
            "city": _town(details),
            "district": details.get("state_district"),
            "state": details.get("state"),
            "country": details.get("country"),
            "postal_code": details.get("postcode"),
            "place_id": data.get("place_id"),
        }

    @staticmethod
    def search_places(query, lat=None, lng=None):
        params = {"q": query, "limit": 10, "countrycodes": current_app.config["GEOCODER_COUNTRY_CODES"]}
        if lat is not None and lng is not None:
            # Bias towards the caller without bounding the search.
            params["viewbox"] = f"{lng - 0.5},{lat - 0.5},{lng + 0.5},{lat + 0.5}"
            params["bounded"] = 0
        places = []
        for place in GeocodingService._search(params):
            point = _point(place)
            if point is None:
                continue
            details = place.get("address") or {}
            places.append(
                {
                    "name": place.get("display_name"),
                    "lat": point[0],
                    "lng": point[1],
                    "type": place.get("type"),
                    "place_id": place.get("place_id"),
                    "address": {
                        "village": details.get("village"),
                        "city": details.get("city") or details.get("town"),
                        "state": details.get("state"),
                    },
                }
            )
        return places

    @staticmethod
    def autocomplete(text):
        params = {"q": text, "limit": 5, "countrycodes": current_app.config["GEOCODER_COUNTRY_CODES"]}
        predictions = []
        for place in GeocodingService._search(params):
            details = place.get("address") or {}
            predictions.append(
                {
                    "description": place.get("display_name"),
                    "place_id": place.get("place_id"),
                    "main_text": _town(details),
                    "secondary_text": ", ".join(
                        part for part in (details.get("state"), details.get("country")) if part
                    ),
                }
            )
        return predictions

    @staticmethod
    def nearby_places(lat, lng):
        """Settlement enclosing the point, at town-level zoom."""
        try:
            data = GeocodingService._reverse(lat, lng, zoom=10)
        except GeocodingError as exc:
            if exc.status_code == 404:
                return []
            raise
        point = _point(data)
        if point is None:
            return []
        return [
            {
                "name": _town(data.get("address") or {}),
                "vicinity": data.get("display_name"),
                "location": {"lat": point[0], "lng": point[1]},
            }
        ]

    @staticmethod
    def batch_geocode(addresses):
        """Geocode each address in turn; a failure is reported per address."""
        delay = current_app.config["GEOCODER_BATCH_DELAY"]
        results = []
        for index, address in enumerate(addresses):
            if index and delay:
                # Nominatim allows one request per second.
                time.sleep(delay)
            try:
                found = GeocodingService.geocode(address)
            except GeocodingError as exc:
                results.append({"address": address, "success": False, "error": exc.message})
                continue
            results.append({"address": address, "success": True, **found})
        return results
