# blood_requests/serializers.py
from rest_framework import serializers

from notifications.config import REACTIONS
from pulseplush.choices import Urgency
from .models import BloodRequest, MatchedDonor, RequestStatus


class BloodRequestSerializer(serializers.ModelSerializer):
    """
    Serializer for BloodRequest with requester details
    """
    requester_name = serializers.CharField(source='requester.display_name', read_only=True)
    fulfilled_by_name = serializers.CharField(source='fulfilled_by.display_name', read_only=True, default=None)
    response_count = serializers.SerializerMethodField()

    class Meta:
        model = BloodRequest
        fields = [
            'id',
            'requester',
            'requester_name',
            'blood_type',
            'units_needed',
            'appointment_date',
            'urgency_level',
            'phone_number',
            'district',
            'hospital_name',
            'description',
            'is_emergency',
            'latitude',
            'longitude',
            'status',
            'notes',
            'fulfilled_by',
            'fulfilled_by_name',
            'fulfilled_at',
            'response_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_response_count(self, obj):
        return obj.matched_donors.count()


class BloodRequestCreateSerializer(serializers.Serializer):
    """Shape of a create call; business rules are checked by the service."""
    blood_type = serializers.CharField(max_length=3)
    units_needed = serializers.IntegerField()
    appointment_date = serializers.DateTimeField()
    urgency_level = serializers.ChoiceField(choices=Urgency.choices, required=False)
    phone_number = serializers.CharField(max_length=20)
    district = serializers.CharField(max_length=100)
    hospital_name = serializers.CharField(max_length=200)
    description = serializers.CharField()
    is_emergency = serializers.BooleanField(required=False, default=False)
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)


class MatchedDonorSerializer(serializers.ModelSerializer):
    donor_name = serializers.CharField(source='donor.display_name', read_only=True)
    donor_email = serializers.EmailField(source='donor.email', read_only=True)
    donor_phone = serializers.CharField(source='donor.phone', read_only=True)

    class Meta:
        model = MatchedDonor
        fields = ['id', 'donor', 'donor_name', 'donor_email', 'donor_phone', 'status', 'message', 'contacted_at']


class RespondSerializer(serializers.Serializer):
    # Unknown reactions reach the service so they surface as InvalidReaction
    response = serializers.CharField(help_text=f"One of: {', '.join(REACTIONS)}")
    message = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=RequestStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
