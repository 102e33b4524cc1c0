from datetime import timedelta

import pytest
from django.utils import timezone

from notifications import services
from notifications.dispatch import build_notification
from notifications.models import CHANNELS, Notification, NotificationStatus, NotificationType, default_channels
from pulseplush.exceptions import NotFound

pytestmark = pytest.mark.django_db


@pytest.fixture()
def recipient(create_user):
    return create_user(full_name="Donor")


@pytest.fixture()
def make_notification(recipient):
    def _make(now=None, notification_type=NotificationType.BLOOD_REQUEST, priority="High", user=None):
        notification = build_notification(
            user or recipient,
            title="Blood Needed: A+",
            message="Someone nearby needs A+ blood.",
            priority=priority,
            notification_type=notification_type,
            now=now or timezone.now(),
        )
        notification.save()
        return notification

    return _make


def test_mark_read_is_idempotent(recipient, make_notification):
    notification = make_notification()
    now = timezone.now()

    first = services.mark_read(notification.pk, recipient, now=now)
    second = services.mark_read(notification.pk, recipient, now=now + timedelta(minutes=5))

    assert first.status == NotificationStatus.READ
    assert second.is_read
    assert second.read_at == now


def test_click_also_marks_read(recipient, make_notification):
    notification = make_notification()

    clicked = services.mark_clicked(notification.pk, recipient)

    assert clicked.status == NotificationStatus.CLICKED
    assert clicked.is_read
    assert clicked.read_at is not None
    assert clicked.clicked_at is not None


def test_dismissed_notification_is_terminal(recipient, make_notification):
    notification = make_notification()

    services.dismiss(notification.pk, recipient)
    after_read = services.mark_read(notification.pk, recipient)

    assert after_read.status == NotificationStatus.DISMISSED
    assert not after_read.is_read
    assert after_read.dismissed_at is not None


def test_other_users_notification_is_not_found(create_user, make_notification):
    notification = make_notification()

    with pytest.raises(NotFound):
        services.mark_read(notification.pk, create_user())


def test_unread_count_honours_expiry(recipient, make_notification):
    created = timezone.now()
    make_notification(now=created)

    assert services.get_unread_count(recipient, now=created + timedelta(hours=23)) == 1
    assert services.get_unread_count(recipient, now=created + timedelta(hours=25)) == 0


def test_transition_after_expiry_only_expires(recipient, make_notification):
    created = timezone.now()
    notification = make_notification(now=created)

    result = services.mark_read(notification.pk, recipient, now=created + timedelta(hours=25))

    assert result.status == NotificationStatus.EXPIRED
    assert not result.is_read
    assert result.read_at is None


def test_non_request_notifications_live_a_week(recipient, make_notification):
    created = timezone.now()
    notification = make_notification(now=created, notification_type=NotificationType.SYSTEM_ALERT)

    assert notification.expires_at == created + timedelta(hours=168)


def test_mark_all_read_skips_terminal(recipient, make_notification):
    make_notification()
    make_notification()
    dismissed = make_notification()
    services.dismiss(dismissed.pk, recipient)

    updated = services.mark_all_read(recipient)

    assert updated == 2
    assert services.get_unread_count(recipient) == 1  # the dismissed one is still unread
    assert Notification.objects.filter(status=NotificationStatus.READ).count() == 2


def test_mark_sent_moves_pending_to_sent(make_notification):
    notification = make_notification()

    services.mark_sent(notification, ["in_app"])
    notification.refresh_from_db()

    assert notification.status == NotificationStatus.SENT
    assert notification.sent_at is not None
    assert notification.channels["in_app"]["sent"] is True
    assert notification.channels["email"]["sent"] is False


def test_delivery_keeps_read_made_after_load(recipient, make_notification):
    notification = make_notification()
    loaded = Notification.objects.get(pk=notification.pk)

    services.mark_read(notification.pk, recipient)
    services.mark_sent(loaded, ["in_app"])
    notification.refresh_from_db()

    assert notification.status == NotificationStatus.READ
    assert notification.is_read
    assert notification.read_at is not None
    assert notification.channels["in_app"]["sent"] is True


def test_delivery_keeps_dismissal_made_after_load(recipient, make_notification):
    notification = make_notification()
    loaded = Notification.objects.get(pk=notification.pk)

    services.dismiss(notification.pk, recipient)
    delivered = services.mark_sent(loaded, ["in_app"])
    notification.refresh_from_db()

    assert delivered.status == NotificationStatus.DISMISSED
    assert notification.status == NotificationStatus.DISMISSED
    assert notification.dismissed_at is not None
    assert notification.sent_at is None


def test_list_and_stats(recipient, make_notification):
    make_notification(priority="Critical")
    make_notification(priority="Low")
    read = make_notification(notification_type=NotificationType.SYSTEM_ALERT, priority="Medium")
    services.mark_read(read.pk, recipient)

    assert services.list_notifications(recipient).count() == 3
    assert services.list_notifications(recipient, is_read=False).count() == 2
    assert services.list_notifications(recipient, notification_type=NotificationType.SYSTEM_ALERT).count() == 1

    stats = services.notification_stats(recipient)
    by_type = {row["type"]: row for row in stats["by_type"]}
    assert stats["total_unread"] == 2
    assert by_type["BloodRequest"]["total"] == 2
    assert by_type["BloodRequest"]["high_priority"] == 1
    assert by_type["SystemAlert"]["unread"] == 0


def test_expire_stale_and_cleanup(recipient, make_notification):
    old = make_notification()
    fresh = make_notification()
    Notification.objects.filter(pk=old.pk).update(expires_at=timezone.now() - timedelta(hours=1))

    assert services.expire_stale() == 1
    old.refresh_from_db()
    assert old.status == NotificationStatus.EXPIRED

    assert services.cleanup_expired() == 1
    assert list(Notification.objects.values_list("pk", flat=True)) == [fresh.pk]


def test_default_channels_cover_every_channel():
    channels = default_channels()

    assert list(channels) == list(CHANNELS)
    assert [name for name, state in channels.items() if state["enabled"]] == ["in_app", "push"]


def test_delivery_over_unknown_channel_is_rejected(make_notification):
    notification = make_notification()

    with pytest.raises(ValueError):
        services.mark_sent(notification, ["pager"])

    notification.refresh_from_db()
    assert notification.status == NotificationStatus.PENDING
    assert "pager" not in notification.channels
