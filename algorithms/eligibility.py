"""
Geo candidate search - which donors can be asked to give blood for a request

Two queries share the same filters but differ on verification:

- find_dispatch_candidates: who gets a notification when a request is
  created. Verification is not required.
- find_eligible_donors: the compatible-donor directory shown to users.
  Only verified donors are listed.

Geography is a filter, not a requirement: without a center point the
search covers every compatible donor regardless of distance.
"""
import logging

from algorithms.blood_compatibility import compatible_donor_types
from algorithms.haversine import bounding_box, find_nearby_donors, is_valid_coordinate
from pulseplush.exceptions import InvalidLocation

logger = logging.getLogger(__name__)


def validate_center(center):
    """
    Normalize an optional (latitude, longitude) pair.

    Returns:
        (lat, lon) as floats, or None when no center was given

    Raises:
        InvalidLocation: coordinates are partial, non-numeric, non-finite or out of range
    """
    if center is None:
        return None

    try:
        latitude, longitude = center
    except (TypeError, ValueError):
        raise InvalidLocation(reason="expected a (latitude, longitude) pair")

    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise InvalidLocation(latitude, longitude, reason="both latitude and longitude are required")
    if not is_valid_coordinate(latitude, longitude):
        raise InvalidLocation(latitude, longitude, reason="coordinates must be finite and within range")

    return float(latitude), float(longitude)


def search_radius_km(urgency_level, policy=None):
    """Critical requests search wider (50 km) than all others (25 km) by default."""
    from notifications.config import get_dispatch_policy

    policy = policy or get_dispatch_policy()
    return policy.radius_for(urgency_level)


def compatible_donor_queryset(blood_type, require_verified=False, district=None):
    """
    Active, available donors whose blood type can supply blood_type.
    """
    from donors.models import DonorProfile

    queryset = DonorProfile.objects.select_related('user').filter(
        blood_type__in=compatible_donor_types(blood_type),
        is_available=True,
        user__is_active=True,
    )
    if require_verified:
        queryset = queryset.filter(is_verified=True)
    if district:
        queryset = queryset.filter(district__icontains=district)
    return queryset


def find_candidates(blood_type, center=None, urgency_level=None, require_verified=False,
                    district=None, policy=None, exclude_user_ids=None):
    """
    Find donors for a blood request.

    Args:
        blood_type: Requested (recipient) blood type
        center: Optional (latitude, longitude) of the request
        urgency_level: Urgency of the request, picks the search radius
        require_verified: Only verified donors (directory search)
        district: Optional district substring filter
        policy: DispatchPolicy override
        exclude_user_ids: User ids never returned (e.g. the requester)

    Returns:
        List of DonorProfile objects, each with a `distance` attribute (km,
        None without a center). Sorted nearest first when a center is given.

    Raises:
        InvalidLocation: center is malformed
    """
    center = validate_center(center)
    queryset = compatible_donor_queryset(blood_type, require_verified=require_verified, district=district)
    if exclude_user_ids:
        queryset = queryset.exclude(user_id__in=list(exclude_user_ids))

    if center is None:
        donors = list(queryset)
        for donor in donors:
            donor.distance = None
        logger.info(f"{len(donors)} candidates for {blood_type} (no location filter)")
        return donors

    radius = search_radius_km(urgency_level, policy)
    min_lat, max_lat, min_lon, max_lon = bounding_box(center[0], center[1], radius)
    queryset = queryset.filter(
        latitude__isnull=False,
        longitude__isnull=False,
        latitude__gte=min_lat,
        latitude__lte=max_lat,
        longitude__gte=min_lon,
        longitude__lte=max_lon,
    )

    donors = []
    for donor, distance in find_nearby_donors(center[0], center[1], queryset, max_distance=radius):
        donor.distance = round(distance, 2)
        donors.append(donor)

    logger.info(f"{len(donors)} candidates for {blood_type} within {radius}km of {center}")
    return donors


def find_dispatch_candidates(blood_request, policy=None):
    """Donors to notify about blood_request; verification not required."""
    center = (blood_request.latitude, blood_request.longitude) if blood_request.has_location else None
    return find_candidates(
        blood_request.blood_type,
        center=center,
        urgency_level=blood_request.urgency_level,
        require_verified=False,
        policy=policy,
        exclude_user_ids=[blood_request.requester_id],
    )


def find_eligible_donors(blood_type, center=None, urgency_level=None, district=None, policy=None):
    """Compatible-donor directory search; verified donors only."""
    return find_candidates(
        blood_type,
        center=center,
        urgency_level=urgency_level,
        require_verified=True,
        district=district,
        policy=policy,
    )
