import math

EARTH_RADIUS_KM = 6371
GPS_RADIUS_KM = 15


# Haversine Formula for Distance (km)
def distance_km(lat1, lng1, lat2, lng2):
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (math.sin(d_lat / 2) * math.sin(d_lat / 2) +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(d_lng / 2) * math.sin(d_lng / 2))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def has_location(point):
    return bool(point) and point.get('lat') is not None and point.get('lng') is not None


def distance_between(a, b):
    """Distance between two {'lat', 'lng'} points."""
    return distance_km(float(a['lat']), float(a['lng']), float(b['lat']), float(b['lng']))
