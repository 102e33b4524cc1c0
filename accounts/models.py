from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    """
    Any person using the platform. Requesters and donors are both users;
    a user is a donor when they have a ``donor_profile``.
    """
    full_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return self.full_name or self.get_full_name() or self.username

    @property
    def is_donor(self):
        return hasattr(self, 'donor_profile')
