# apps/services/geolocation_utils.py
import math

EARTH_RADIUS_METERS = 6371000.0


def haversine_distance(lat1, lon1, lat2, lon2, earth_radius_m=EARTH_RADIUS_METERS):
    """
    Calculate the great-circle distance between two points on Earth (specified in
    decimal degrees) using the Haversine formula. Result is in meters.
    """
    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)

    dlon = lon2_rad - lon1_rad
    dlat = lat2_rad - lat1_rad

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return earth_radius_m * c


def distance_in_meters(lat1, lon1, lat2, lon2):
    """
    Distance in meters between two coordinates.
    Ensures inputs are float, as they might come from Django Decimal fields or JSON.
    """
    return haversine_distance(float(lat1), float(lon1), float(lat2), float(lon2))
