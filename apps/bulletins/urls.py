"""
Bulletin API URLs, mounted at /api/bulletins/ in main urls.py.
"""

from django.urls import path, include
from config.routers import SafeDefaultRouter
from .views import BulletinViewSet

app_name = 'bulletins'

router = SafeDefaultRouter()
router.register(r'', BulletinViewSet, basename='bulletin')

urlpatterns = [
    path('', include(router.urls)),
]
