# donors/serializers.py
from rest_framework import serializers
from .models import DonorProfile


class DonorSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source='user.display_name', read_only=True)
    phone = serializers.CharField(source='user.phone', read_only=True)
    email = serializers.SerializerMethodField()

    class Meta:
        model = DonorProfile
        fields = [
            'id', 'full_name', 'email', 'phone', 'blood_type', 'district',
            'address', 'latitude', 'longitude', 'is_available', 'is_verified',
            'last_donation_date',
        ]

    def get_email(self, obj):
        return obj.user.email if obj.user else "N/A"


class DonorMatchSerializer(DonorSerializer):
    """Directory search result; distance is set by the candidate search."""
    distance = serializers.SerializerMethodField()

    class Meta(DonorSerializer.Meta):
        fields = DonorSerializer.Meta.fields + ['distance']

    def get_distance(self, obj):
        return getattr(obj, 'distance', None)
