"""
Notification dispatch - fan a new blood request out to nearby donors

``dispatch`` finds candidates, builds one notification per donor and stores
them in batches. It runs once per request from ``notifications.tasks``; it
is not idempotent, a second call for the same request creates duplicates.

The ``build_*`` helpers only construct unsaved ``Notification`` objects and
are shared with response reconciliation.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from algorithms.eligibility import find_dispatch_candidates
from algorithms.haversine import haversine_distance
from notifications.config import get_dispatch_policy
from notifications.models import Notification, NotificationType, default_channels
from pulseplush.exceptions import DispatchPartialFailure, DomainError, StoreUnavailable

logger = logging.getLogger(__name__)

TITLE_MAX = 100
MESSAGE_MAX = 500


@dataclass
class DispatchResult:
    request_id: int
    donors_found: int = 0
    notifications_attempted: int = 0
    notifications_created: int = 0
    notification_ids: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and self.notifications_created == self.notifications_attempted

    @property
    def partial_failure(self):
        """DispatchPartialFailure describing lost notifications, or None."""
        if self.notifications_created < self.notifications_attempted:
            return DispatchPartialFailure(self.notifications_attempted, self.notifications_created, self.errors)
        return None

    def as_dict(self):
        data = asdict(self)
        data['success'] = self.success
        return data


def _truncate(text, limit):
    text = ' '.join(str(text).split())
    if len(text) <= limit:
        return text
    return text[:limit - 1].rstrip() + '…'


def request_url(blood_request):
    return f"/blood-requests/{blood_request.pk}"


def expiry_for(notification_type, now=None, policy=None):
    policy = policy or get_dispatch_policy()
    now = now or timezone.now()
    return now + timedelta(hours=policy.expiry_hours_for(notification_type))


def donor_distance(blood_request, donor):
    """Km between request and donor; 0 unless both have coordinates."""
    if not (blood_request.has_location and donor.has_location):
        return 0.0
    distance = haversine_distance(
        blood_request.latitude,
        blood_request.longitude,
        donor.latitude,
        donor.longitude,
    )
    return max(0.0, distance)


# ---------------------------
# Construction primitives
# ---------------------------
def build_notification(recipient, *, title, message, priority, blood_request=None,
                       related_user=None, notification_type=NotificationType.BLOOD_REQUEST,
                       action_buttons=None, channels=None, now=None, policy=None):
    """Unsaved Notification with expiry, channels and request snapshot filled in."""
    notification = Notification(
        recipient=recipient,
        type=notification_type,
        title=_truncate(title, TITLE_MAX),
        message=_truncate(message, MESSAGE_MAX),
        priority=priority,
        related_request=blood_request,
        related_user=related_user,
        action_buttons=list(action_buttons or []),
        channels=channels or default_channels(),
        expires_at=expiry_for(notification_type, now, policy),
    )
    if blood_request is not None:
        notification.blood_type_needed = blood_request.blood_type
        notification.urgency_level = blood_request.urgency_level
    return notification


def build_blood_request_notification(donor, blood_request, distance=0, now=None, policy=None):
    """
    Notification asking one candidate donor to help with blood_request.

    Args:
        donor: DonorProfile of the recipient
        blood_request: The request being dispatched
        distance: Km from donor to request (0 when unknown)
    """
    policy = policy or get_dispatch_policy()
    rounded = round(distance) if distance else 0
    urgent_prefix = 'URGENT: ' if blood_request.is_critical else ''
    where = f"{rounded}km away" if rounded else 'nearby'
    url = request_url(blood_request)

    channels = default_channels()
    channels['email']['enabled'] = bool(donor.notify_by_email)
    channels['sms']['enabled'] = bool(donor.notify_by_sms)

    notification = build_notification(
        donor.user,
        title=f"{urgent_prefix}Blood Needed: {blood_request.blood_type}",
        message=f"Someone {where} needs {blood_request.blood_type} blood. Your donation could save a life!",
        priority=policy.priority_for(blood_request.urgency_level),
        blood_request=blood_request,
        related_user=blood_request.requester,
        action_buttons=[
            {'label': 'I can donate', 'action': 'donate', 'url': f"{url}/respond", 'style': 'primary'},
            {'label': 'View details', 'action': 'view', 'url': url, 'style': 'secondary'},
        ],
        channels=channels,
        now=now,
        policy=policy,
    )
    notification.request_latitude = blood_request.latitude
    notification.request_longitude = blood_request.longitude
    notification.distance = round(max(0.0, distance or 0.0), 2)
    return notification


_REACTION_TEXT = {
    'interested': (
        "Donor Interested in Your Request",
        "{donor} is interested in donating {blood_type} blood for your request at {hospital}.",
    ),
    'confirmed': (
        "Donor Confirmed for Your Request",
        "Great news! {donor} has confirmed to donate {blood_type} blood for your request at {hospital}.",
    ),
    'declined': (
        "Donor Declined Your Request",
        "{donor} is unable to donate for your {blood_type} blood request at this time.",
    ),
}


def build_response_notification(blood_request, donor_user, reaction, message='', now=None, policy=None):
    """Tell the requester how a donor reacted to their request."""
    policy = policy or get_dispatch_policy()
    title, template = _REACTION_TEXT[reaction]
    text = template.format(
        donor=donor_user.display_name,
        blood_type=blood_request.blood_type,
        hospital=blood_request.hospital_name,
    )
    if message:
        text += f' Message: "{message}"'

    url = request_url(blood_request)
    if reaction == 'confirmed':
        buttons = [
            {'label': 'Contact Donor', 'action': 'contact', 'url': f"/donors/{donor_user.pk}/contact", 'style': 'primary'},
            {'label': 'View Request', 'action': 'view', 'url': url, 'style': 'secondary'},
        ]
    else:
        buttons = [{'label': 'View Request', 'action': 'view', 'url': url, 'style': 'primary'}]

    channels = default_channels()
    channels['email']['enabled'] = True

    return build_notification(
        blood_request.requester,
        title=title,
        message=text,
        priority=policy.priority_for_reaction(reaction),
        blood_request=blood_request,
        related_user=donor_user,
        action_buttons=buttons,
        channels=channels,
        now=now,
        policy=policy,
    )


def build_acknowledgment_notification(blood_request, donor_user, reaction, now=None, policy=None):
    """Confirm to the donor that their response was recorded."""
    policy = policy or get_dispatch_policy()
    return build_notification(
        donor_user,
        title=f"Response Recorded: {reaction.capitalize()}",
        message=(
            f"Your response to the {blood_request.blood_type} blood request "
            f"at {blood_request.hospital_name} has been recorded."
        ),
        priority=policy.acknowledgment_priority,
        blood_request=blood_request,
        related_user=blood_request.requester,
        action_buttons=[
            {'label': 'View Request', 'action': 'view', 'url': request_url(blood_request), 'style': 'primary'},
        ],
        now=now,
        policy=policy,
    )


# ---------------------------
# Batch persistence
# ---------------------------
def persist_batch(notifications, batch_size=500):
    """
    Store notifications in chunks, each chunk in its own transaction.

    A failing chunk is logged and skipped; earlier and later chunks are kept.

    Returns:
        (created_notifications, error_messages)
    """
    created = []
    errors = []
    for start in range(0, len(notifications), batch_size):
        chunk = notifications[start:start + batch_size]
        try:
            with transaction.atomic():
                created.extend(Notification.objects.bulk_create(chunk))
        except DatabaseError as exc:
            message = f"chunk {start}-{start + len(chunk) - 1}: {exc}"
            logger.error(f"Failed to store notification {message}")
            errors.append(message)
    return created, errors


# ---------------------------
# Engine
# ---------------------------
def dispatch(blood_request, now=None, policy=None):
    """
    Notify every dispatch candidate about blood_request.

    Never raises for dispatch problems: invalid locations, store outages and
    partial batch failures are logged and reported on the result.

    Returns:
        DispatchResult
    """
    policy = policy or get_dispatch_policy()
    now = now or timezone.now()
    result = DispatchResult(request_id=blood_request.pk)

    try:
        candidates = find_dispatch_candidates(blood_request, policy=policy)
    except DomainError as exc:
        logger.error(f"Dispatch for request {blood_request.pk} aborted: {exc}")
        result.errors.append(str(exc))
        return result
    except DatabaseError as exc:
        error = StoreUnavailable(f"Candidate search failed: {exc}")
        logger.error(f"Dispatch for request {blood_request.pk} aborted: {error}")
        result.errors.append(str(error))
        return result

    result.donors_found = len(candidates)
    logger.info(f"Found {len(candidates)} potential donors for blood type {blood_request.blood_type} (request {blood_request.pk})")

    notifications = [
        build_blood_request_notification(
            donor,
            blood_request,
            distance=donor_distance(blood_request, donor),
            now=now,
            policy=policy,
        )
        for donor in candidates
    ]
    result.notifications_attempted = len(notifications)
    if not notifications:
        return result

    created, errors = persist_batch(notifications, batch_size=policy.batch_size)
    result.notifications_created = len(created)
    result.notification_ids = [n.pk for n in created if n.pk is not None]
    result.errors.extend(errors)

    failure = result.partial_failure
    if failure is not None:
        logger.warning(f"Request {blood_request.pk}: {failure}")
    else:
        logger.info(f"Sent {len(created)} notifications to nearby donors for request {blood_request.pk}")
    return result
