from django.contrib import admin
from .models import DonorProfile


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display   = ['donor_name', 'blood_type', 'district', 'is_available', 'is_verified', 'has_location_display']
    list_filter    = ['blood_type', 'is_available', 'is_verified']
    search_fields  = ['user__full_name', 'user__username', 'user__phone', 'district']
    ordering       = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Donor', {
            'fields': ('user', 'blood_type', 'district', 'address')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude')
        }),
        ('Availability', {
            'fields': ('is_available', 'is_verified', 'last_donation_date')
        }),
        ('Notification Channels', {
            'fields': ('notify_by_email', 'notify_by_sms'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(description='Donor')
    def donor_name(self, obj):
        return obj.user.display_name

    @admin.display(boolean=True, description='Has Location')
    def has_location_display(self, obj):
        return obj.has_location

    actions = ['mark_verified']

    @admin.action(description='Mark selected donors as verified')
    def mark_verified(self, request, queryset):
        updated = queryset.update(is_verified=True)
        self.message_user(request, f'{updated} donor(s) marked as verified.')
