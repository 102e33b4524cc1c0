from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from pulseplush.choices import BloodType


# ---------------------------
# Donor Profile
# ---------------------------
class DonorProfile(models.Model):
    """
    Donor side of a user account: the fields candidate search and
    notification dispatch read.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='donor_profile'
    )

    blood_type = models.CharField(max_length=3, choices=BloodType.choices, db_index=True)
    district = models.CharField(max_length=100, blank=True, db_index=True)
    address = models.TextField(blank=True)

    # Geolocation (optional)
    latitude = models.FloatField(
        null=True, blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        null=True, blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )

    is_available = models.BooleanField(default=True)
    is_verified = models.BooleanField(default=False)
    last_donation_date = models.DateField(null=True, blank=True)

    # Channel opt-ins; in-app and push are always on
    notify_by_email = models.BooleanField(default=False)
    notify_by_sms = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.display_name} ({self.blood_type})"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    class Meta:
        verbose_name = "Donor Profile"
        verbose_name_plural = "Donor Profiles"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_type', 'is_available']),
            models.Index(fields=['latitude', 'longitude']),
        ]
