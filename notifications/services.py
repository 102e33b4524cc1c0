"""
Notification lifecycle - read / click / dismiss / expire, unread counts

States: Pending -> Sent -> Read -> Clicked, with Dismissed and Expired
terminal. Every write first checks the expiry instant: a notification past
``expires_at`` is forced to Expired and stays there. Transitions on a
terminal notification leave it unchanged.

All functions take the acting recipient; a notification that belongs to
someone else is reported as not found.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from notifications.models import (
    TERMINAL_STATUSES,
    Notification,
    NotificationStatus,
)
from pulseplush.choices import Priority
from pulseplush.exceptions import NotFound
from pulseplush.transactions import store_guard

logger = logging.getLogger(__name__)

_LIFECYCLE_FIELDS = [
    'status', 'is_read', 'read_at', 'clicked_at', 'dismissed_at', 'sent_at', 'channels', 'updated_at',
]
# Delivery never touches read/click/dismiss state
_DELIVERY_FIELDS = ['status', 'sent_at', 'channels', 'updated_at']


def get_notification(notification_id, recipient, for_update=False):
    queryset = Notification.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=notification_id, recipient=recipient)
    except (Notification.DoesNotExist, ValueError, TypeError):
        raise NotFound("Notification not found.")


def _transition(notification_id, recipient, apply, now=None):
    now = now or timezone.now()
    with store_guard("notification update"), transaction.atomic():
        notification = get_notification(notification_id, recipient, for_update=True)
        if notification.expire_if_due(now):
            logger.info(f"Notification {notification.pk} expired at {notification.expires_at}")
        elif not notification.is_terminal:
            apply(notification, now)
        notification.save(update_fields=_LIFECYCLE_FIELDS)
    return notification


def mark_read(notification_id, recipient, now=None):
    """Idempotent: a notification already read keeps its first read_at."""
    return _transition(notification_id, recipient, lambda n, at: n.mark_as_read(at), now)


def mark_clicked(notification_id, recipient, now=None):
    """Records the click; an unread notification is also marked read."""
    return _transition(notification_id, recipient, lambda n, at: n.mark_as_clicked(at), now)


def dismiss(notification_id, recipient, now=None):
    return _transition(notification_id, recipient, lambda n, at: n.dismiss(at), now)


def mark_sent(notification, channels, now=None):
    """
    Record delivery over the given channels; Pending becomes Sent.
    Called by the delivery task, not by recipients.

    The row is re-read under lock, so a read or dismiss that landed after
    the caller loaded ``notification`` is kept. Returns the fresh row.
    """
    now = now or timezone.now()
    with store_guard("notification delivery"), transaction.atomic():
        try:
            current = Notification.objects.select_for_update().get(pk=notification.pk)
        except Notification.DoesNotExist:
            raise NotFound("Notification not found.")
        if not current.expire_if_due(now):
            for channel in channels:
                current.mark_channel_sent(channel, now)
            if current.status == NotificationStatus.PENDING:
                current.status = NotificationStatus.SENT
                current.sent_at = now
        current.save(update_fields=_DELIVERY_FIELDS)
    return current


def mark_all_read(recipient, now=None):
    """
    Mark every live unread notification of recipient as read in one UPDATE.

    Returns:
        Number of notifications updated
    """
    now = now or timezone.now()
    with store_guard("mark all notifications read"):
        updated = (
            Notification.objects
            .filter(recipient=recipient, is_read=False, expires_at__gt=now)
            .exclude(status__in=TERMINAL_STATUSES)
            .update(is_read=True, read_at=now, status=NotificationStatus.READ, updated_at=now)
        )
    logger.info(f"Marked {updated} notifications read for user {recipient.pk}")
    return updated


def unread_queryset(recipient, now=None):
    now = now or timezone.now()
    return Notification.objects.filter(recipient=recipient, is_read=False, expires_at__gt=now)


def get_unread_count(recipient, now=None):
    """
    Unread notifications that have not reached their expiry instant.
    Expired-but-unread ones are not counted even if never dismissed.
    """
    with store_guard("unread count"):
        return unread_queryset(recipient, now).count()


def list_notifications(recipient, notification_type=None, status=None, is_read=None, now=None):
    """Live (not yet expired) notifications of recipient, newest first."""
    now = now or timezone.now()
    queryset = (
        Notification.objects
        .filter(recipient=recipient, expires_at__gt=now)
        .select_related('related_request', 'related_user')
    )
    if notification_type:
        queryset = queryset.filter(type=notification_type)
    if status:
        queryset = queryset.filter(status=status)
    if is_read is not None:
        queryset = queryset.filter(is_read=is_read)
    return queryset.order_by('-created_at')


def notification_stats(recipient, now=None):
    """Per-type totals, unread and high-priority counts of live notifications."""
    now = now or timezone.now()
    with store_guard("notification statistics"):
        by_type = list(
            Notification.objects
            .filter(recipient=recipient, expires_at__gt=now)
            .values('type')
            .annotate(
                total=Count('id'),
                unread=Count('id', filter=Q(is_read=False)),
                high_priority=Count('id', filter=Q(priority__in=[Priority.HIGH, Priority.CRITICAL])),
            )
            .order_by('type')
        )
        total_unread = unread_queryset(recipient, now).count()
    return {'by_type': by_type, 'total_unread': total_unread}


# ---------------------------
# Housekeeping
# ---------------------------
def expire_stale(now=None):
    """Force Expired on every non-terminal notification past its expiry."""
    now = now or timezone.now()
    with store_guard("expire notifications"):
        expired = (
            Notification.objects
            .filter(expires_at__lte=now)
            .exclude(status__in=TERMINAL_STATUSES)
            .update(status=NotificationStatus.EXPIRED, updated_at=now)
        )
    if expired:
        logger.info(f"Expired {expired} stale notifications")
    return expired


def cleanup_expired(now=None):
    """Delete notifications that are past expiry and Dismissed or Expired."""
    now = now or timezone.now()
    with store_guard("cleanup notifications"):
        deleted, _ = (
            Notification.objects
            .filter(expires_at__lt=now, status__in=TERMINAL_STATUSES)
            .delete()
        )
    if deleted:
        logger.info(f"Deleted {deleted} expired notifications")
    return deleted
