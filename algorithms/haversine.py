"""
Haversine Algorithm - Calculate distance between two geographical points
Used to find donors near the location of a blood request
"""

import math

# Mean radius of the earth in kilometers
EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_KM / 180


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate straight-line distance between two points.
    Note: This is "as the crow flies" distance on a spherical earth, not road distance.

    Non-finite input yields NaN; callers validate coordinates first.

    Args:
        lat1, lon1: Latitude and longitude of point 1 (request)
        lat2, lon2: Latitude and longitude of point 2 (donor)

    Returns:
        Distance in kilometers
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Clamp against float drift just above 1.0 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM


def is_valid_coordinate(latitude, longitude):
    """True for finite numbers within [-90, 90] x [-180, 180]."""
    try:
        latitude = float(latitude)
        longitude = float(longitude)
    except (TypeError, ValueError):
        return False

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def bounding_box(latitude, longitude, radius_km):
    """
    Lat/lon box that contains every point within radius_km of the center.
    Used as a cheap database prefilter before the exact haversine check.

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    dlat = radius_km / KM_PER_DEGREE_LAT
    min_lat = max(-90.0, latitude - dlat)
    max_lat = min(90.0, latitude + dlat)

    cos_lat = math.cos(math.radians(latitude))
    # Near the poles every longitude can be in range
    if max_lat >= 90 or min_lat <= -90 or cos_lat < 1e-6:
        return min_lat, max_lat, -180.0, 180.0

    dlon = dlat / cos_lat
    # Boxes crossing the antimeridian fall back to the full longitude range
    if dlon >= 180 or longitude - dlon < -180 or longitude + dlon > 180:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, longitude - dlon, longitude + dlon


def find_nearby_donors(center_lat, center_lon, donors, max_distance=50):
    """
    Find all donors within a specified distance from the request location

    Args:
        center_lat: Request latitude
        center_lon: Request longitude
        donors: QuerySet or list of donor objects with latitude/longitude
        max_distance: Maximum distance in km (default 50km)

    Returns:
        List of tuples: (donor, distance) sorted by distance
    """
    nearby_donors = []

    for donor in donors:
        if donor.latitude is None or donor.longitude is None:
            continue
        if not is_valid_coordinate(donor.latitude, donor.longitude):
            continue

        distance = haversine_distance(
            center_lat,
            center_lon,
            donor.latitude,
            donor.longitude
        )

        if distance <= max_distance:
            nearby_donors.append((donor, distance))

    # Sort by distance (closest first)
    nearby_donors.sort(key=lambda x: x[1])

    return nearby_donors
