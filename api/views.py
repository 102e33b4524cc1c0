# api/views.py

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from algorithms.eligibility import find_eligible_donors
from blood_requests import services as request_services
from blood_requests.serializers import (
    BloodRequestCreateSerializer,
    BloodRequestSerializer,
    MatchedDonorSerializer,
    RespondSerializer,
    StatusUpdateSerializer,
)
from donors.serializers import DonorMatchSerializer
from notifications import services as notification_services
from notifications.serializers import NotificationSerializer
from pulseplush.exceptions import ValidationError


def _query_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('1', 'true', 'yes')


# ========================================
# BLOOD REQUESTS
# ========================================
class BloodRequestViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          viewsets.GenericViewSet):
    """API endpoint for creating blood requests and responding to them"""
    serializer_class = BloodRequestSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        params = self.request.query_params
        return request_services.list_requests(
            status=params.get('status'),
            blood_type=params.get('blood_type'),
            district=params.get('district'),
            urgency_level=params.get('urgency'),
        )

    def create(self, request):
        serializer = BloodRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        blood_request = request_services.create_blood_request(request.user, **serializer.validated_data)
        return Response({
            'success': True,
            'message': 'Blood request created. Nearby compatible donors are being notified.',
            'data': BloodRequestSerializer(blood_request).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        """Requests created by the current user"""
        queryset = request_services.list_requests(requester=request.user)
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        """Donor reacts to a request: interested, confirmed or declined"""
        serializer = RespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        summary = request_services.record_response(
            pk,
            request.user.pk,
            serializer.validated_data['response'],
            serializer.validated_data.get('message', ''),
        )
        return Response({
            'success': True,
            'message': f"Response '{summary.reaction}' recorded successfully",
            'data': summary.as_dict(),
        })

    @action(detail=True, methods=['get'])
    def responses(self, request, pk=None):
        """Ledger of donor responses; requester only"""
        result = request_services.request_responses(pk, request.user)
        return Response({
            'success': True,
            'data': {
                'blood_request': BloodRequestSerializer(result['blood_request']).data,
                'responses': MatchedDonorSerializer(result['responses'], many=True).data,
                'summary': result['summary'],
            },
        })

    @action(detail=True, methods=['put'], url_path='status')
    def update_status(self, request, pk=None):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        blood_request = request_services.update_request_status(
            pk,
            request.user,
            serializer.validated_data['status'],
            serializer.validated_data.get('notes'),
        )
        return Response({
            'success': True,
            'message': f"Blood request status updated to {blood_request.status}",
            'data': BloodRequestSerializer(blood_request).data,
        })

    @action(detail=False, methods=['get'], url_path='search-donors')
    def search_donors(self, request):
        """Verified compatible donors, nearest first when lat/lon are given"""
        params = request.query_params
        blood_type = params.get('blood_type')
        if not blood_type:
            raise ValidationError("blood_type is required.")

        center = (params.get('lat'), params.get('lon'))
        donors = find_eligible_donors(
            blood_type,
            center=center,
            urgency_level=params.get('urgency'),
            district=params.get('district'),
        )
        return Response({
            'success': True,
            'count': len(donors),
            'data': DonorMatchSerializer(donors, many=True).data,
        })


# ========================================
# NOTIFICATIONS
# ========================================
class NotificationViewSet(viewsets.GenericViewSet):
    """The current user's notifications and their lifecycle"""
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        params = self.request.query_params
        return notification_services.list_notifications(
            self.request.user,
            notification_type=params.get('type'),
            status=params.get('status'),
            is_read=_query_bool(params.get('is_read')),
        )

    def list(self, request):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def retrieve(self, request, pk=None):
        notification = notification_services.get_notification(pk, request.user)
        return Response(self.get_serializer(notification).data)

    @action(detail=True, methods=['put'])
    def read(self, request, pk=None):
        notification = notification_services.mark_read(pk, request.user)
        return Response(self.get_serializer(notification).data)

    @action(detail=True, methods=['put'])
    def click(self, request, pk=None):
        notification = notification_services.mark_clicked(pk, request.user)
        return Response(self.get_serializer(notification).data)

    @action(detail=True, methods=['put'])
    def dismiss(self, request, pk=None):
        notification = notification_services.dismiss(pk, request.user)
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['put'], url_path='mark-all-read')
    def mark_all_read(self, request):
        updated = notification_services.mark_all_read(request.user)
        return Response({'success': True, 'updated': updated})

    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        return Response({'unread_count': notification_services.get_unread_count(request.user)})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(notification_services.notification_stats(request.user))
