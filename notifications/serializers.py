# notifications/serializers.py
from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    related_user_name = serializers.CharField(source='related_user.display_name', read_only=True, default=None)
    hospital_name = serializers.CharField(source='related_request.hospital_name', read_only=True, default=None)
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            'id',
            'type',
            'title',
            'message',
            'priority',
            'status',
            'related_request',
            'hospital_name',
            'related_user',
            'related_user_name',
            'blood_type_needed',
            'urgency_level',
            'distance',
            'request_latitude',
            'request_longitude',
            'is_read',
            'read_at',
            'sent_at',
            'clicked_at',
            'dismissed_at',
            'channels',
            'action_buttons',
            'expires_at',
            'is_expired',
            'created_at',
        ]
        read_only_fields = fields

    def get_is_expired(self, obj):
        return obj.is_expired()
