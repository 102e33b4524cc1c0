"""
Tunable matching and notification policy.

Defaults live here; ``settings.PULSEPLUSH_DISPATCH`` overrides any field.
Every dispatch/lifecycle entry point accepts an explicit ``policy`` so tests
and callers can inject their own without touching settings.

    PULSEPLUSH_DISPATCH = {
        'search_radius_km': {'Critical': 80},
        'default_radius_km': 30,
    }
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Mapping

from django.conf import settings

from pulseplush.choices import Priority, Urgency

REACTIONS = ('interested', 'confirmed', 'declined')


@dataclass(frozen=True)
class DispatchPolicy:
    # Urgency -> search radius in km
    search_radius_km: Mapping[str, float] = field(
        default_factory=lambda: {Urgency.CRITICAL.value: 50.0}
    )
    default_radius_km: float = 25.0

    # Urgency -> priority of the notification sent to candidate donors
    dispatch_priority: Mapping[str, str] = field(
        default_factory=lambda: {Urgency.CRITICAL.value: Priority.CRITICAL.value}
    )
    default_dispatch_priority: str = Priority.HIGH.value

    # Donor reaction -> priority of the notification sent to the requester
    reaction_priority: Mapping[str, str] = field(
        default_factory=lambda: {
            'confirmed': Priority.CRITICAL.value,
            'interested': Priority.HIGH.value,
            'declined': Priority.MEDIUM.value,
        }
    )
    acknowledgment_priority: str = Priority.MEDIUM.value

    # Notification type -> hours until expiry
    expiry_hours: Mapping[str, int] = field(
        default_factory=lambda: {'BloodRequest': 24}
    )
    default_expiry_hours: int = 168

    # Rows per bulk insert during dispatch
    batch_size: int = 500

    def radius_for(self, urgency) -> float:
        return float(self.search_radius_km.get(urgency, self.default_radius_km))

    def priority_for(self, urgency) -> str:
        return self.dispatch_priority.get(urgency, self.default_dispatch_priority)

    def priority_for_reaction(self, reaction) -> str:
        return self.reaction_priority[reaction]

    def expiry_hours_for(self, notification_type) -> int:
        return int(self.expiry_hours.get(notification_type, self.default_expiry_hours))

    def with_overrides(self, overrides: Mapping | None) -> DispatchPolicy:
        """
        New policy with ``overrides`` applied. Mapping fields are merged
        key by key; scalar fields are replaced. Unknown keys are ignored.
        """
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        changes = {}
        for name, value in overrides.items():
            if name not in known:
                continue
            current = getattr(self, name)
            if isinstance(current, Mapping) and isinstance(value, Mapping):
                merged = dict(current)
                merged.update(value)
                changes[name] = merged
            else:
                changes[name] = value
        return replace(self, **changes)


def get_dispatch_policy() -> DispatchPolicy:
    """Default policy with ``settings.PULSEPLUSH_DISPATCH`` applied."""
    return DispatchPolicy().with_overrides(getattr(settings, 'PULSEPLUSH_DISPATCH', None))
