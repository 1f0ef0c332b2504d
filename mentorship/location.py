"""
Distance search over the latitude/longitude stored on user accounts.

Candidates are narrowed with a bounding box on the (latitude, longitude)
index, then measured exactly with the haversine formula.
"""
import math

from .models import User

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.32
DEFAULT_MAX_DISTANCE_KM = 100


def haversine_km(lat1, lon1, lat2, lon2):
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(km):
    if km < 0.05:
        return "Nearby"
    if km < 1:
        return f"{round(km * 1000)} m"
    return f"{km:.1f} km"


def bounding_box(latitude, longitude, distance_km):
    """(min_lat, max_lat, min_lon, max_lon); longitude bounds are None when the box wraps."""
    lat_delta = distance_km / KM_PER_DEGREE
    min_lat, max_lat = max(latitude - lat_delta, -90), min(latitude + lat_delta, 90)

    cos_lat = math.cos(math.radians(latitude))
    if cos_lat < 1e-6:
        return min_lat, max_lat, None, None
    lon_delta = distance_km / (KM_PER_DEGREE * cos_lat)
    min_lon, max_lon = longitude - lon_delta, longitude + lon_delta
    if min_lon < -180 or max_lon > 180:
        return min_lat, max_lat, None, None
    return min_lat, max_lat, min_lon, max_lon


def nearby_mentors(latitude, longitude, max_distance_km=DEFAULT_MAX_DISTANCE_KM, exclude_user=None):
    """Mentors within max_distance_km, nearest first, as (mentor, distance_km) pairs."""
    min_lat, max_lat, min_lon, max_lon = bounding_box(latitude, longitude, max_distance_km)
    candidates = User.objects.filter(
        role=User.MENTOR,
        is_active=True,
        latitude__gte=min_lat,
        latitude__lte=max_lat,
        longitude__isnull=False,
    )
    if min_lon is not None:
        candidates = candidates.filter(longitude__gte=min_lon, longitude__lte=max_lon)
    if exclude_user is not None:
        candidates = candidates.exclude(pk=exclude_user.pk)

    found = []
    for mentor in candidates:
        distance = haversine_km(latitude, longitude, mentor.latitude, mentor.longitude)
        if distance <= max_distance_km:
            found.append((mentor, distance))
    found.sort(key=lambda pair: (pair[1], pair[0].id))
    return found
