"""
Blood request services: creation, donor responses, status updates.

``record_response`` is the reconciliation step: a donor's reaction is
upserted into the request's matched-donor ledger (one entry per donor,
last write wins) and both parties get a notification, queued for
delivery once the transaction commits. The request row is
locked for the read-modify-write, so concurrent responses to the same
request serialize.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from algorithms.blood_compatibility import BLOOD_TYPES, normalize_blood_type
from algorithms.eligibility import validate_center
from blood_requests.models import BloodRequest, LedgerStatus, MatchedDonor, RequestStatus
from notifications.config import REACTIONS, get_dispatch_policy
from notifications.dispatch import build_acknowledgment_notification, build_response_notification
from notifications.models import Notification
from notifications.tasks import schedule_delivery
from pulseplush.choices import Urgency
from pulseplush.exceptions import InvalidReaction, NotFound, PermissionDenied, ValidationError
from pulseplush.transactions import lock_for_update, store_guard

logger = logging.getLogger(__name__)

User = get_user_model()

REACTION_TO_LEDGER = {
    'interested': LedgerStatus.CONTACTED,
    'confirmed': LedgerStatus.CONFIRMED,
    'declined': LedgerStatus.DECLINED,
}

REQUIRED_FIELDS = ('blood_type', 'units_needed', 'appointment_date', 'phone_number',
                   'district', 'hospital_name', 'description')


@dataclass
class AcknowledgmentSummary:
    reaction: str
    ledger_status: str
    blood_request: dict
    donor: dict
    notification_ids: list = field(default_factory=list)

    def as_dict(self):
        return asdict(self)


# ---------------------------
# Creation
# ---------------------------
def create_blood_request(requester, **data):
    """
    Validate and store a new request. Donor dispatch is scheduled by the
    post_save signal after commit; this returns without waiting for it.

    Raises:
        ValidationError: missing or malformed fields
        InvalidLocation: coordinates given but malformed
    """
    missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, '')]
    if missing:
        raise ValidationError(f"All required fields must be provided (missing: {', '.join(missing)}).")

    blood_type = normalize_blood_type(data['blood_type'])
    if blood_type not in BLOOD_TYPES:
        raise ValidationError(f"Unsupported blood type '{data['blood_type']}'.")

    try:
        units_needed = int(data['units_needed'])
    except (TypeError, ValueError):
        raise ValidationError("Units needed must be a whole number.")
    if not 1 <= units_needed <= 10:
        raise ValidationError("Between 1 and 10 units can be requested.")

    appointment_date = data['appointment_date']
    if appointment_date <= timezone.now():
        raise ValidationError("Appointment date must be in the future.")

    urgency_level = data.get('urgency_level') or Urgency.MEDIUM
    if urgency_level not in Urgency.values:
        raise ValidationError(f"Unsupported urgency level '{urgency_level}'.")

    description = str(data['description'])
    if len(description) > 1000:
        raise ValidationError("Description cannot exceed 1000 characters.")

    center = validate_center((data.get('latitude'), data.get('longitude')))

    with store_guard("create blood request"), transaction.atomic():
        blood_request = BloodRequest.objects.create(
            requester=requester,
            blood_type=blood_type,
            units_needed=units_needed,
            appointment_date=appointment_date,
            urgency_level=urgency_level,
            phone_number=data['phone_number'],
            district=str(data['district']).strip(),
            hospital_name=str(data['hospital_name']).strip(),
            description=description,
            is_emergency=bool(data.get('is_emergency', False)),
            latitude=center[0] if center else None,
            longitude=center[1] if center else None,
        )

    logger.info(f"Blood request {blood_request.pk} created by user {requester.pk} ({blood_type}, {urgency_level})")
    return blood_request


def list_requests(status=None, blood_type=None, district=None, urgency_level=None, requester=None):
    queryset = BloodRequest.objects.select_related('requester')
    if status:
        queryset = queryset.filter(status=status)
    if blood_type:
        queryset = queryset.filter(blood_type=normalize_blood_type(blood_type))
    if district:
        queryset = queryset.filter(district__icontains=district)
    if urgency_level:
        queryset = queryset.filter(urgency_level=urgency_level)
    if requester is not None:
        queryset = queryset.filter(requester=requester)
    return queryset.order_by('-created_at')


def get_request(request_id):
    try:
        return BloodRequest.objects.select_related('requester', 'fulfilled_by').get(pk=request_id)
    except (BloodRequest.DoesNotExist, ValueError, TypeError):
        raise NotFound("Blood request not found.")


# ---------------------------
# Response reconciliation
# ---------------------------
def record_response(request_id, donor_id, reaction, message='', now=None, policy=None):
    """
    Record a donor's reaction to a request.

    Args:
        request_id: BloodRequest pk
        donor_id: pk of the responding user
        reaction: 'interested', 'confirmed' or 'declined'
        message: Optional note forwarded to the requester

    Returns:
        AcknowledgmentSummary

    Raises:
        InvalidReaction: reaction is not one of the three values
        NotFound: request or donor does not exist
        StoreUnavailable: the database failed; nothing was written
    """
    if reaction not in REACTIONS:
        raise InvalidReaction(reaction)

    now = now or timezone.now()
    policy = policy or get_dispatch_policy()
    ledger_status = REACTION_TO_LEDGER[reaction]
    message = (message or '').strip()

    with store_guard("record donor response"), transaction.atomic():
        blood_request = lock_for_update(BloodRequest, request_id, label="Blood request")
        try:
            donor = User.objects.get(pk=donor_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound("Donor not found.")

        entry, created = MatchedDonor.objects.update_or_create(
            blood_request=blood_request,
            donor=donor,
            defaults={'status': ledger_status, 'contacted_at': now, 'message': message},
        )
        # Ledger changes count as request updates
        blood_request.save(update_fields=['updated_at'])

        stored = Notification.objects.bulk_create([
            build_response_notification(blood_request, donor, reaction, message, now=now, policy=policy),
            build_acknowledgment_notification(blood_request, donor, reaction, now=now, policy=policy),
        ])
        notification_ids = [n.pk for n in stored if n.pk is not None]
        transaction.on_commit(lambda: schedule_delivery(notification_ids))

    logger.info(
        f"{'Added' if created else 'Updated'} ledger entry: donor {donor.pk} "
        f"{ledger_status} on request {blood_request.pk}"
    )

    return AcknowledgmentSummary(
        reaction=reaction,
        ledger_status=entry.status,
        blood_request={
            'id': blood_request.pk,
            'blood_type': blood_request.blood_type,
            'hospital_name': blood_request.hospital_name,
            'urgency_level': blood_request.urgency_level,
            'status': blood_request.status,
        },
        donor={'id': donor.pk, 'name': donor.display_name},
        notification_ids=notification_ids,
    )


def request_responses(request_id, user):
    """
    Ledger of a request with per-status counts. Only the requester may look.
    """
    blood_request = get_request(request_id)
    if blood_request.requester_id != user.pk:
        raise PermissionDenied("You can only view responses to your own blood requests.")

    entries = list(blood_request.matched_donors.select_related('donor').order_by('id'))
    return {
        'blood_request': blood_request,
        'responses': entries,
        'summary': {
            'total': len(entries),
            'confirmed': sum(1 for e in entries if e.status == LedgerStatus.CONFIRMED),
            'interested': sum(1 for e in entries if e.status == LedgerStatus.CONTACTED),
            'declined': sum(1 for e in entries if e.status == LedgerStatus.DECLINED),
        },
    }


# ---------------------------
# Status updates
# ---------------------------
def update_request_status(request_id, user, status, notes=None, now=None):
    """
    Requester (or staff) moves a request to a new status.
    Fulfilled records who fulfilled it and when.
    """
    if status not in RequestStatus.values:
        raise ValidationError(f"Unsupported status '{status}'.")

    with store_guard("update request status"), transaction.atomic():
        blood_request = lock_for_update(BloodRequest, request_id, label="Blood request")
        if blood_request.requester_id != user.pk and not user.is_staff:
            raise PermissionDenied("You are not authorized to update this request.")

        blood_request.status = status
        if notes:
            blood_request.notes = notes
        if status == RequestStatus.FULFILLED:
            blood_request.fulfilled_by = user
            blood_request.fulfilled_at = now or timezone.now()
        blood_request.save()

    logger.info(f"Blood request {blood_request.pk} moved to {status} by user {user.pk}")
    return blood_request
