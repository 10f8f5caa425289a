"""
Story API URLs, mounted at /api/ in main urls.py.
"""

from django.urls import path, include
from config.routers import SafeDefaultRouter
from .views import (
    StoryViewSet,
    CategoryViewSet,
    TagViewSet,
    ClassificationViewSet,
)

app_name = 'stories'

router = SafeDefaultRouter()
router.register(r'stories', StoryViewSet, basename='story')
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'tags', TagViewSet, basename='tag')
router.register(r'classifications', ClassificationViewSet, basename='classification')

urlpatterns = [
    path('', include(router.urls)),
]
