# notifications/models.py
from datetime import timedelta

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from pulseplush.choices import BloodType, Priority, Urgency

CHANNELS = ('in_app', 'push', 'email', 'sms')
DEFAULT_ENABLED_CHANNELS = ('in_app', 'push')


def default_channels():
    return {
        channel: {'enabled': channel in DEFAULT_ENABLED_CHANNELS, 'sent': False, 'sent_at': None}
        for channel in CHANNELS
    }


class NotificationType(models.TextChoices):
    BLOOD_REQUEST = 'BloodRequest', 'Blood Request'
    DONATION_REMINDER = 'DonationReminder', 'Donation Reminder'
    PROFILE_UPDATE = 'ProfileUpdate', 'Profile Update'
    SYSTEM_ALERT = 'SystemAlert', 'System Alert'
    BLOOD_BANK_ALERT = 'BloodBankAlert', 'Blood Bank Alert'
    EMERGENCY_REQUEST = 'EmergencyRequest', 'Emergency Request'


class NotificationStatus(models.TextChoices):
    PENDING = 'Pending', 'Pending'
    SENT = 'Sent', 'Sent'
    READ = 'Read', 'Read'
    CLICKED = 'Clicked', 'Clicked'
    DISMISSED = 'Dismissed', 'Dismissed'
    EXPIRED = 'Expired', 'Expired'


TERMINAL_STATUSES = (NotificationStatus.DISMISSED, NotificationStatus.EXPIRED)


class Notification(models.Model):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=20, choices=NotificationType.choices)
    title = models.CharField(max_length=100)
    message = models.CharField(max_length=500)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)

    related_request = models.ForeignKey(
        'blood_requests.BloodRequest',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications'
    )
    related_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Snapshot of the request at dispatch time
    request_latitude = models.FloatField(null=True, blank=True)
    request_longitude = models.FloatField(null=True, blank=True)
    distance = models.FloatField(default=0, validators=[MinValueValidator(0)], help_text="Distance in km")
    blood_type_needed = models.CharField(max_length=3, choices=BloodType.choices, blank=True)
    urgency_level = models.CharField(max_length=10, choices=Urgency.choices, blank=True)

    # Status tracking
    status = models.CharField(
        max_length=10,
        choices=NotificationStatus.choices,
        default=NotificationStatus.PENDING,
        db_index=True
    )
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    clicked_at = models.DateTimeField(null=True, blank=True)
    dismissed_at = models.DateTimeField(null=True, blank=True)

    channels = models.JSONField(default=default_channels)
    # [{'label', 'action', 'url', 'style'}]
    action_buttons = models.JSONField(default=list, blank=True)

    expires_at = models.DateTimeField(db_index=True)
    source = models.CharField(max_length=30, default='system')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"[{self.recipient}] {self.title} ({self.status})"

    # ---------------------------
    # Lifecycle
    # ---------------------------
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return self.expires_at is not None and now >= self.expires_at

    def expire_if_due(self, now=None) -> bool:
        """Force Expired once past expires_at, unless already terminal."""
        if self.is_expired(now) and not self.is_terminal:
            self.status = NotificationStatus.EXPIRED
            return True
        return False

    def mark_as_read(self, now=None):
        now = now or timezone.now()
        if not self.is_read:
            self.is_read = True
            self.read_at = now
            self.status = NotificationStatus.READ

    def mark_as_clicked(self, now=None):
        now = now or timezone.now()
        self.clicked_at = now
        self.status = NotificationStatus.CLICKED
        if not self.is_read:
            self.is_read = True
            self.read_at = now

    def dismiss(self, now=None):
        self.status = NotificationStatus.DISMISSED
        self.dismissed_at = now or timezone.now()

    def mark_channel_sent(self, channel, now=None):
        now = now or timezone.now()
        if channel not in CHANNELS:
            raise ValueError(f"Unknown notification channel '{channel}'")
        state = self.channels.setdefault(channel, {'enabled': False, 'sent': False, 'sent_at': None})
        state['sent'] = True
        state['sent_at'] = now.isoformat()

    def channel_enabled(self, channel) -> bool:
        return bool(self.channels.get(channel, {}).get('enabled'))

    def save(self, *args, **kwargs):
        if self.expires_at is None:
            from notifications.config import get_dispatch_policy
            hours = get_dispatch_policy().expiry_hours_for(self.type)
            self.expires_at = timezone.now() + timedelta(hours=hours)
        if self.expire_if_due() and kwargs.get('update_fields') is not None:
            kwargs['update_fields'] = set(kwargs['update_fields']) | {'status'}
        super().save(*args, **kwargs)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', '-created_at']),
            models.Index(fields=['type', 'status']),
            models.Index(fields=['priority', '-created_at']),
            models.Index(fields=['recipient', 'is_read']),
        ]
