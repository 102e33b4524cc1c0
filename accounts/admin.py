from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'full_name', 'phone', 'donor_blood_type', 'is_staff', 'is_active')
    search_fields = ('username', 'email', 'full_name', 'phone')
    fieldsets = UserAdmin.fieldsets + (
        ('Contact', {'fields': ('full_name', 'phone')}),
    )

    @admin.display(description='Donor Blood Type')
    def donor_blood_type(self, obj):
        return obj.donor_profile.blood_type if obj.is_donor else '-'
