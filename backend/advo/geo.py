import math

EARTH_RADIUS_MILES = 3958.8


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles between two coordinates (Haversine)."""
    lat_rad1 = math.radians(lat1)
    lat_rad2 = math.radians(lat2)
    d_lat = lat_rad2 - lat_rad1
    d_lon = math.radians(lon2) - math.radians(lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat_rad1) * math.cos(lat_rad2) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def is_within_distance(
    lat1: float, lon1: float, lat2: float, lon2: float, max_distance: float
) -> bool:
    return calculate_distance(lat1, lon1, lat2, lon2) <= max_distance
