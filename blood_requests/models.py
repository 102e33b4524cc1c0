# blood_requests/models.py
from django.conf import settings
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from pulseplush.choices import BloodType, Urgency


class RequestStatus(models.TextChoices):
    PENDING = 'Pending', 'Pending'
    APPROVED = 'Approved', 'Approved'
    FULFILLED = 'Fulfilled', 'Fulfilled'
    CANCELLED = 'Cancelled', 'Cancelled'
    EXPIRED = 'Expired', 'Expired'


class LedgerStatus(models.TextChoices):
    CONTACTED = 'Contacted', 'Contacted'
    CONFIRMED = 'Confirmed', 'Confirmed'
    DECLINED = 'Declined', 'Declined'


class BloodRequest(models.Model):
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='blood_requests'
    )
    blood_type = models.CharField(max_length=3, choices=BloodType.choices)
    units_needed = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    appointment_date = models.DateTimeField()
    urgency_level = models.CharField(max_length=10, choices=Urgency.choices, default=Urgency.MEDIUM)

    phone_number = models.CharField(max_length=20)
    district = models.CharField(max_length=100)
    hospital_name = models.CharField(max_length=200)
    description = models.TextField(validators=[MaxLengthValidator(1000)])
    is_emergency = models.BooleanField(default=False)

    # Geolocation (optional)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    status = models.CharField(max_length=10, choices=RequestStatus.choices, default=RequestStatus.PENDING)
    notes = models.TextField(blank=True)
    fulfilled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='fulfilled_requests'
    )
    fulfilled_at = models.DateTimeField(null=True, blank=True)

    # Set once by the dispatch task; guards against duplicate fan-out
    dispatched_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.hospital_name} - {self.blood_type} ({self.urgency_level})"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_critical(self) -> bool:
        return self.urgency_level == Urgency.CRITICAL

    @property
    def ledger(self):
        """Matched donors keyed by donor id, in insertion order."""
        return {entry.donor_id: entry for entry in self.matched_donors.order_by('id')}

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blood Request'
        verbose_name_plural = 'Blood Requests'
        indexes = [
            models.Index(fields=['blood_type', 'status']),
            models.Index(fields=['district', 'status']),
            models.Index(fields=['appointment_date']),
        ]


class MatchedDonor(models.Model):
    """One ledger entry per (request, donor): the donor's latest reaction."""
    blood_request = models.ForeignKey(
        BloodRequest,
        on_delete=models.CASCADE,
        related_name='matched_donors'
    )
    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='request_responses'
    )
    status = models.CharField(max_length=10, choices=LedgerStatus.choices, default=LedgerStatus.CONTACTED)
    message = models.TextField(blank=True)
    contacted_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.donor} → {self.status} (request #{self.blood_request_id})"

    class Meta:
        ordering = ['id']
        verbose_name = 'Matched Donor'
        verbose_name_plural = 'Matched Donors'
        constraints = [
            models.UniqueConstraint(
                fields=['blood_request', 'donor'],
                name='unique_ledger_entry_per_donor',
            ),
        ]
