from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from blood_requests.models import RequestStatus
from notifications.config import DispatchPolicy
from notifications.dispatch import dispatch
from notifications.models import Notification, NotificationStatus, NotificationType

pytestmark = pytest.mark.django_db

# ~5.5 km north of Kathmandu
NEARBY_LAT = 27.7172 + 0.05


def test_no_compatible_donors_is_a_successful_empty_dispatch(create_request, create_donor):
    # AB+ donors cannot give to AB- recipients
    blood_request = create_request(blood_type="AB-", urgency_level="Critical")
    create_donor(blood_type="AB+")

    result = dispatch(blood_request)

    assert result.donors_found == 0
    assert result.notifications_created == 0
    assert result.success
    assert result.partial_failure is None
    assert Notification.objects.count() == 0
    blood_request.refresh_from_db()
    assert blood_request.status == RequestStatus.PENDING


def test_no_donors_in_radius_is_a_successful_empty_dispatch(create_request, create_donor):
    # Compatible, but ~111 km north: outside the 25 km default radius
    create_donor(blood_type="AB+", latitude=27.7172 + 1.0)
    blood_request = create_request(blood_type="AB+", urgency_level="Medium")

    result = dispatch(blood_request)

    assert result.donors_found == 0
    assert result.notifications_created == 0
    assert result.notification_ids == []
    assert result.success
    assert Notification.objects.count() == 0
    blood_request.refresh_from_db()
    assert blood_request.status == RequestStatus.PENDING


def test_critical_request_notification(create_request, create_donor):
    donor = create_donor(blood_type="O-", latitude=NEARBY_LAT, notify_by_email=True)
    blood_request = create_request(blood_type="A+", urgency_level="Critical")
    now = timezone.now()

    result = dispatch(blood_request, now=now)

    assert result.notifications_created == 1
    assert result.notification_ids
    notification = Notification.objects.get()
    assert notification.recipient == donor.user
    assert notification.type == NotificationType.BLOOD_REQUEST
    assert notification.status == NotificationStatus.PENDING
    assert notification.title == "URGENT: Blood Needed: A+"
    assert notification.message.startswith("Someone 6km away needs A+ blood")
    assert notification.priority == "Critical"
    assert notification.related_request == blood_request
    assert notification.blood_type_needed == "A+"
    assert 5 < notification.distance < 6
    assert notification.expires_at == now + timedelta(hours=24)
    assert notification.channels["email"]["enabled"] is True
    assert notification.channels["sms"]["enabled"] is False
    assert notification.channels["in_app"]["enabled"] is True
    assert [b["label"] for b in notification.action_buttons] == ["I can donate", "View details"]


def test_non_critical_request_notification(create_request, create_donor):
    create_donor(blood_type="A+")
    blood_request = create_request(blood_type="A+", urgency_level="Medium")

    dispatch(blood_request)

    notification = Notification.objects.get()
    assert notification.title == "Blood Needed: A+"
    assert notification.priority == "High"
    assert "nearby" in notification.message
    assert notification.channels["email"]["enabled"] is False


def test_request_without_location_notifies_all_compatible_donors(create_request, create_donor):
    create_donor(blood_type="B-", latitude=40.0, longitude=-74.0)
    create_donor(blood_type="B-", latitude=None, longitude=None)
    blood_request = create_request(blood_type="B+", latitude=None, longitude=None)

    result = dispatch(blood_request)

    assert result.notifications_created == 2
    assert set(Notification.objects.values_list("distance", flat=True)) == {0}


def test_priority_mapping_is_injectable(create_request, create_donor):
    create_donor(blood_type="A+")
    blood_request = create_request(blood_type="A+", urgency_level="Low")
    policy = DispatchPolicy().with_overrides({"dispatch_priority": {"Low": "Low"}})

    dispatch(blood_request, policy=policy)

    assert Notification.objects.get().priority == "Low"


def test_failed_batch_is_reported_not_raised(create_request, create_donor, monkeypatch):
    create_donor(blood_type="A+")
    create_donor(blood_type="A+")
    blood_request = create_request(blood_type="A+")

    real_bulk_create = Notification.objects.bulk_create
    calls = []

    def flaky_bulk_create(objs, *args, **kwargs):
        calls.append(len(objs))
        if len(calls) == 1:
            raise DatabaseError("disk full")
        return real_bulk_create(objs, *args, **kwargs)

    monkeypatch.setattr(Notification.objects, "bulk_create", flaky_bulk_create)

    result = dispatch(blood_request, policy=DispatchPolicy(batch_size=1))

    assert calls == [1, 1]
    assert result.notifications_attempted == 2
    assert result.notifications_created == 1
    assert not result.success
    assert result.partial_failure.created == 1
    assert result.partial_failure.attempted == 2
    assert Notification.objects.count() == 1
