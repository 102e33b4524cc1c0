from django.contrib import admin
from django.utils import timezone

from . import services
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display  = ['recipient', 'type', 'title', 'priority', 'status', 'is_read', 'created_at', 'expires_at']
    list_filter   = ['type', 'status', 'priority', 'is_read']
    search_fields = ['recipient__email', 'recipient__full_name', 'title']
    ordering      = ['-created_at']
    readonly_fields = ['created_at', 'updated_at', 'read_at', 'sent_at', 'clicked_at', 'dismissed_at']

    actions = ['expire_now']

    @admin.action(description='Expire selected notifications now')
    def expire_now(self, request, queryset):
        now = timezone.now()
        updated = queryset.update(expires_at=now)
        services.expire_stale(now)
        self.message_user(request, f'{updated} notification(s) expired.')
