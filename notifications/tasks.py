# notifications/tasks.py
"""
Celery tasks for donor notification fan-out, delivery and housekeeping
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from blood_requests.models import BloodRequest
from notifications import services
from notifications.dispatch import dispatch
from notifications.models import Notification

logger = logging.getLogger(__name__)


@shared_task
def dispatch_blood_request(blood_request_id):
    """
    Notify nearby compatible donors about a newly created blood request.
    Triggered once per request by the post_save signal.

    The request's dispatched_at is claimed first, so a redelivered task
    message does not notify the same donors twice.
    """
    claimed = BloodRequest.objects.filter(
        pk=blood_request_id,
        dispatched_at__isnull=True,
    ).update(dispatched_at=timezone.now())
    if not claimed:
        if BloodRequest.objects.filter(pk=blood_request_id).exists():
            logger.warning(f"Request {blood_request_id} already dispatched; skipping")
            return {'request_id': blood_request_id, 'skipped': True}
        logger.error(f"Blood request {blood_request_id} not found")
        return {'request_id': blood_request_id, 'errors': ['Blood request not found'], 'success': False}

    blood_request = BloodRequest.objects.select_related('requester').get(pk=blood_request_id)
    result = dispatch(blood_request)
    logger.info(f"Donor notification result: {result.as_dict()}")

    if result.notification_ids:
        deliver_notifications.delay(result.notification_ids)
    return result.as_dict()


@shared_task
def deliver_notifications(notification_ids):
    """
    Push stored notifications out over their enabled channels.
    In-app delivery is the stored row itself; email goes through Django mail.
    SMS and push have no provider yet and are left unsent.
    """
    delivered = 0
    notifications = Notification.objects.select_related('recipient', 'related_request').filter(pk__in=notification_ids)
    for notification in notifications:
        channels = ['in_app']
        if notification.channel_enabled('email') and send_notification_email(notification):
            channels.append('email')
        services.mark_sent(notification, channels)
        delivered += 1
    return delivered


def send_notification_email(notification):
    """Send one notification by email. Returns True when the mail went out."""
    recipient = notification.recipient
    if not recipient.email:
        return False

    message = f"""
{notification.message}

Open PulsePlush to respond: {settings.SITE_URL}/notifications/{notification.pk}

PulsePlush Blood Donation
    """.strip()

    try:
        send_mail(
            subject=notification.title,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient.email],
            fail_silently=False,
        )
    except Exception as exc:
        logger.error(f"Email for notification {notification.pk} to {recipient.email} failed: {exc}")
        return False
    return True


@shared_task
def expire_stale_notifications():
    return services.expire_stale()


@shared_task
def cleanup_expired_notifications():
    return services.cleanup_expired()


def schedule_delivery(notification_ids):
    """Queue delivery of stored notifications; a broker failure is logged, not raised."""
    if not notification_ids:
        return
    try:
        deliver_notifications.delay(list(notification_ids))
    except Exception as exc:
        # Rows stay Pending and can be re-delivered later
        logger.error(f"Could not schedule delivery of notifications {notification_ids}: {exc}")
