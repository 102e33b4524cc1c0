# blood_requests/admin.py
from django.contrib import admin
from django.utils.html import format_html

from .models import BloodRequest, LedgerStatus, MatchedDonor


class MatchedDonorInline(admin.TabularInline):
    model = MatchedDonor
    extra = 0
    fields = ['donor', 'status', 'message', 'contacted_at']
    readonly_fields = ['contacted_at']


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'hospital_name',
        'requester',
        'blood_type',
        'units_needed',
        'urgency_level',
        'status',
        'response_counts',
        'created_at',
    ]
    list_filter = ['status', 'urgency_level', 'blood_type', 'is_emergency', 'created_at']
    search_fields = ['hospital_name', 'district', 'requester__full_name', 'requester__email']
    readonly_fields = ['created_at', 'updated_at', 'dispatched_at', 'fulfilled_at']
    inlines = [MatchedDonorInline]

    fieldsets = (
        ('Request Information', {
            'fields': ('requester', 'blood_type', 'units_needed', 'urgency_level', 'is_emergency',
                       'appointment_date', 'description', 'notes', 'status')
        }),
        ('Hospital & Contact', {
            'fields': ('hospital_name', 'district', 'phone_number', 'latitude', 'longitude')
        }),
        ('Fulfilment', {
            'fields': ('fulfilled_by', 'fulfilled_at', 'dispatched_at'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def response_counts(self, obj):
        entries = obj.matched_donors.all()
        confirmed = entries.filter(status=LedgerStatus.CONFIRMED).count()
        contacted = entries.filter(status=LedgerStatus.CONTACTED).count()
        declined = entries.filter(status=LedgerStatus.DECLINED).count()

        return format_html(
            '<span style="color: green;">Confirmed: {}</span> | '
            '<span style="color: orange;">Interested: {}</span> | '
            '<span style="color: red;">Declined: {}</span>',
            confirmed, contacted, declined
        )
    response_counts.short_description = 'Responses'


@admin.register(MatchedDonor)
class MatchedDonorAdmin(admin.ModelAdmin):
    list_display = ['blood_request', 'donor', 'status', 'contacted_at']
    list_filter = ['status']
    search_fields = ['donor__full_name', 'donor__email', 'blood_request__hospital_name']
    ordering = ['-contacted_at']
