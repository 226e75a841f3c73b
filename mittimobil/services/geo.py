import math

EARTH_RADIUS_KM = 6371.0
RURAL_ROAD_SPEED_KMH = 40


def haversine_km(lat1, lon1, lat2, lon2):
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def latitude_window(lat, radius_km):
    """Latitude band that contains every point within ``radius_km`` of ``lat``."""
    spread = math.degrees(radius_km / EARTH_RADIUS_KM) + 1e-9
    return max(lat - spread, -90.0), min(lat + spread, 90.0)


def round_half_up(value):
    return int(math.floor(value + 0.5))


def travel_estimate(origin_lat, origin_lng, dest_lat, dest_lng):
    distance = haversine_km(origin_lat, origin_lng, dest_lat, dest_lng)
    minutes = round_half_up(distance / RURAL_ROAD_SPEED_KMH * 60)
    if minutes < 60:
        duration_text = f"{minutes} mins"
    else:
        duration_text = f"{minutes // 60}h {minutes % 60}m"
    return {
        "distance": {"value": distance * 1000, "text": f"{distance:.1f} km"},
        "duration": {"value": minutes * 60, "text": duration_text},
    }
