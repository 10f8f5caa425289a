"""
Workflow API URLs, mounted at /api/workflow/ in main urls.py.

Per-entity workflow routes (transition, transitions, history) live on the
story and bulletin viewsets through WorkflowActionsMixin.
"""

from django.urls import path
from .views import CapabilitiesView

app_name = 'workflow'

urlpatterns = [
    path('capabilities/', CapabilitiesView.as_view(), name='capabilities'),
]
