import pytest

from algorithms.eligibility import (
    find_candidates,
    find_dispatch_candidates,
    find_eligible_donors,
    search_radius_km,
    validate_center,
)
from notifications.config import DispatchPolicy
from pulseplush.exceptions import InvalidLocation

KTM = (27.7172, 85.3240)
# ~40 km north of Kathmandu
FORTY_KM_NORTH = 27.7172 + 0.36


def test_search_radius_by_urgency():
    assert search_radius_km("Critical") == 50
    assert search_radius_km("High") == 25
    assert search_radius_km("Medium") == 25
    assert search_radius_km("Low") == 25


def test_search_radius_policy_override():
    policy = DispatchPolicy().with_overrides({"search_radius_km": {"High": 30}})
    assert search_radius_km("High", policy) == 30
    assert search_radius_km("Critical", policy) == 50


@pytest.mark.parametrize("center", [(None, None), None])
def test_missing_center_means_no_geo_filter(center):
    assert validate_center(center) is None


@pytest.mark.parametrize("center", [(27.7, None), (None, 85.3), (95, 85.3), (27.7, float("nan")), ("x", "y"), (1, 2, 3)])
def test_malformed_center_raises(center):
    with pytest.raises(InvalidLocation):
        validate_center(center)


@pytest.mark.django_db
def test_critical_request_reaches_donor_forty_km_away(create_donor):
    donor = create_donor(blood_type="O+", latitude=FORTY_KM_NORTH, longitude=KTM[1])

    critical = find_candidates("A+", center=KTM, urgency_level="Critical")
    medium = find_candidates("A+", center=KTM, urgency_level="Medium")

    assert [d.pk for d in critical] == [donor.pk]
    assert 39 < critical[0].distance < 41
    assert medium == []


@pytest.mark.django_db
def test_candidates_sorted_nearest_first(create_donor):
    far = create_donor(blood_type="A+", latitude=27.7172 + 0.15, longitude=KTM[1])
    near = create_donor(blood_type="A-", latitude=27.7172 + 0.01, longitude=KTM[1])

    donors = find_candidates("A+", center=KTM, urgency_level="High")

    assert [d.pk for d in donors] == [near.pk, far.pk]
    assert donors[0].distance <= donors[1].distance


@pytest.mark.django_db
def test_incompatible_and_unavailable_donors_are_skipped(create_donor):
    create_donor(blood_type="B+")
    create_donor(blood_type="A+", is_available=False)
    inactive = create_donor(blood_type="A+")
    inactive.user.is_active = False
    inactive.user.save()
    match = create_donor(blood_type="O-")

    assert [d.pk for d in find_candidates("A+", center=KTM, urgency_level="Medium")] == [match.pk]


@pytest.mark.django_db
def test_without_center_distance_is_ignored(create_donor):
    far_away = create_donor(blood_type="A+", latitude=40.0, longitude=-74.0)
    no_location = create_donor(blood_type="A+", latitude=None, longitude=None)

    donors = find_candidates("A+", center=(None, None), urgency_level="Low")

    assert {d.pk for d in donors} == {far_away.pk, no_location.pk}
    assert all(d.distance is None for d in donors)


@pytest.mark.django_db
def test_donor_without_coordinates_excluded_from_geo_search(create_donor):
    create_donor(blood_type="A+", latitude=None, longitude=None)
    assert find_candidates("A+", center=KTM, urgency_level="Critical") == []


@pytest.mark.django_db
def test_directory_requires_verification_but_dispatch_does_not(create_donor, create_request):
    unverified = create_donor(blood_type="A+", is_verified=False)
    verified = create_donor(blood_type="A+", is_verified=True)
    blood_request = create_request(blood_type="A+")

    directory = find_eligible_donors("A+", center=KTM, urgency_level="Medium")
    dispatch = find_dispatch_candidates(blood_request)

    assert [d.pk for d in directory] == [verified.pk]
    assert {d.pk for d in dispatch} == {verified.pk, unverified.pk}


@pytest.mark.django_db
def test_directory_district_filter(create_donor):
    create_donor(blood_type="A+", district="Lalitpur")
    ktm = create_donor(blood_type="A+", district="Kathmandu")

    assert [d.pk for d in find_eligible_donors("A+", district="kathmandu")] == [ktm.pk]


@pytest.mark.django_db
def test_requester_is_not_a_dispatch_candidate(create_donor, create_request):
    donor = create_donor(blood_type="A+")
    blood_request = create_request(blood_type="A+", requester=donor.user)

    assert find_dispatch_candidates(blood_request) == []
