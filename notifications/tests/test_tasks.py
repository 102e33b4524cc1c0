import pytest
from django.core.management import call_command

from notifications.models import Notification, NotificationStatus
from notifications.tasks import dispatch_blood_request
from pulseplush import celery_app

pytestmark = pytest.mark.django_db


def test_tasks_run_inline_without_a_broker():
    assert celery_app.conf.task_always_eager is True
    assert celery_app.conf.task_eager_propagates is True


def test_dispatch_task_runs_once_per_request(create_request, create_donor):
    create_donor(blood_type="A+")
    blood_request = create_request(blood_type="A+")

    first = dispatch_blood_request(blood_request.pk)
    second = dispatch_blood_request(blood_request.pk)

    assert first["notifications_created"] == 1
    assert second == {"request_id": blood_request.pk, "skipped": True}
    assert Notification.objects.count() == 1
    blood_request.refresh_from_db()
    assert blood_request.dispatched_at is not None


def test_dispatch_task_for_missing_request():
    result = dispatch_blood_request(424242)
    assert result["success"] is False


def test_delivery_sends_opted_in_email(create_request, create_donor, mailoutbox):
    emailed = create_donor(blood_type="A+", notify_by_email=True)
    create_donor(blood_type="A+", notify_by_email=False)
    blood_request = create_request(blood_type="A+", urgency_level="Critical")

    dispatch_blood_request.delay(blood_request.pk)

    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == [emailed.user.email]
    assert mailoutbox[0].subject == "URGENT: Blood Needed: A+"

    for notification in Notification.objects.all():
        assert notification.status == NotificationStatus.SENT
        assert notification.channels["in_app"]["sent"] is True
        assert notification.channels["email"]["sent"] is (notification.recipient == emailed.user)


def test_cleanup_command(capsys):
    call_command("cleanup_notifications")
    assert "Deleted: 0" in capsys.readouterr().out
