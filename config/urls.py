"""
URL configuration for Newsdesk.
"""

from django.contrib import admin
from django.urls import path, include

from apps.core.urls import auth_urlpatterns

urlpatterns = [
    path('admin/', admin.site.urls),
    # Auth endpoints
    path('api/auth/', include((auth_urlpatterns, 'auth'))),
    # Workflow (capabilities); per-entity routes live on the viewsets
    path('api/workflow/', include('apps.workflow.urls')),
    path('api/bulletins/', include('apps.bulletins.urls')),
    path('api/announcements/', include('apps.announcements.urls')),
    # Stories and taxonomy: /api/stories/, /api/categories/, /api/tags/, /api/classifications/
    path('api/', include('apps.stories.urls')),
    # Observability endpoints
    path('', include('apps.core.urls')),
]

# Customize admin site
admin.site.site_header = "Newsdesk Administration"
admin.site.site_title = "Newsdesk Admin Portal"
admin.site.index_title = "Welcome to Newsdesk Administration"
