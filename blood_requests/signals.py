# blood_requests/signals.py
"""
Signals to automatically notify donors when a blood request is created
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from blood_requests.models import BloodRequest, RequestStatus
from notifications.tasks import dispatch_blood_request

logger = logging.getLogger(__name__)


@receiver(post_save, sender=BloodRequest)
def auto_dispatch_blood_request(sender, instance, created, **kwargs):
    """
    Schedule donor notification for a new pending request once the creating
    transaction commits. The creator never waits for the fan-out.
    """
    if created and instance.status == RequestStatus.PENDING:
        request_id = instance.pk
        transaction.on_commit(lambda: _schedule_dispatch(request_id))


def _schedule_dispatch(request_id):
    try:
        dispatch_blood_request.delay(request_id)
    except Exception as exc:
        # Broker down: the request stays valid, dispatch can be re-queued later
        logger.error(f"Could not schedule dispatch for BloodRequest #{request_id}: {exc}")
        return
    logger.info(f"Auto-notification triggered for BloodRequest #{request_id}")
