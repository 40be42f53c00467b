"""
URL configuration for the collaboration app.

- /api/v1/announcements/            - Announcements (+ {id}/interest/, {id}/interests/)
- /api/v1/announcement-interests/   - Interests (+ approve, reject)
- /api/v1/messages/                 - Messages (+ mark_read, unread_count)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import AnnouncementInterestViewSet, AnnouncementViewSet, MessageViewSet

router = DefaultRouter()
router.register(r'announcements', AnnouncementViewSet, basename='announcement')
router.register(r'announcement-interests', AnnouncementInterestViewSet, basename='announcement-interest')
router.register(r'messages', MessageViewSet, basename='message')

urlpatterns = [
    path('', include(router.urls)),
]
