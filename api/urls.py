# api/urls.py

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

# Create router and register viewsets
router = DefaultRouter()
router.register(r'blood-requests', views.BloodRequestViewSet, basename='blood-request')
router.register(r'notifications', views.NotificationViewSet, basename='notification')

app_name = 'api'

urlpatterns = [
    path('', include(router.urls)),
]

# Available endpoints:
# POST /api/blood-requests/                        - Create a request (dispatch runs in the background)
# GET  /api/blood-requests/                        - List requests (?status=&blood_type=&district=&urgency=)
# GET  /api/blood-requests/{id}/                   - Get specific request
# GET  /api/blood-requests/mine/                   - Requests of the current user
# POST /api/blood-requests/{id}/respond/           - Donor response (interested / confirmed / declined)
# GET  /api/blood-requests/{id}/responses/         - Response ledger (requester only)
# PUT  /api/blood-requests/{id}/status/            - Update request status
# GET  /api/blood-requests/search-donors/          - Verified compatible donors (?blood_type=&lat=&lon=&urgency=&district=)
#
# GET  /api/notifications/                         - Live notifications (?type=&status=&is_read=)
# GET  /api/notifications/{id}/                    - Get specific notification
# PUT  /api/notifications/{id}/read/               - Mark as read
# PUT  /api/notifications/{id}/click/              - Mark as clicked
# PUT  /api/notifications/{id}/dismiss/            - Dismiss
# PUT  /api/notifications/mark-all-read/           - Mark all as read
# GET  /api/notifications/unread-count/            - Unread count
# GET  /api/notifications/stats/                   - Per-type statistics
