"""
Announcement API URLs, mounted at /api/announcements/ in main urls.py.
"""

from django.urls import path, include
from config.routers import SafeDefaultRouter
from .views import AnnouncementViewSet

app_name = 'announcements'

router = SafeDefaultRouter()
router.register(r'', AnnouncementViewSet, basename='announcement')

urlpatterns = [
    path('', include(router.urls)),
]
