"""
Rate Limiting / Throttling for Newsdesk.

Custom DRF throttle classes for different endpoint types.

Usage in views:
    from apps.core.throttling import StateChangeThrottle

    @action(detail=True, methods=['post'], throttle_classes=[StateChangeThrottle])
    def transition(self, request, pk=None):
        ...

Usage in settings:
    REST_FRAMEWORK = {
        'DEFAULT_THROTTLE_RATES': {
            'burst': '100/minute',
            'state_change': '30/minute',
            'destructive': '20/minute',
        }
    }
"""

from rest_framework.throttling import UserRateThrottle
import logging

logger = logging.getLogger(__name__)


class BurstThrottle(UserRateThrottle):
    """
    Burst throttle to prevent rapid-fire requests.

    Default: 100 requests/minute
    """
    scope = 'burst'

    def get_rate(self):
        try:
            return super().get_rate()
        except Exception:
            return '100/minute'


class StateChangeThrottle(UserRateThrottle):
    """
    Throttle for workflow transitions and other state changes.

    Applies to:
    - POST /api/stories/{id}/transition/
    - POST /api/bulletins/{id}/transition/
    - POST/DELETE /api/announcements/{id}/dismiss/

    Default: 30 requests/minute
    """
    scope = 'state_change'

    def get_rate(self):
        try:
            return super().get_rate()
        except Exception:
            return '30/minute'


class DestructiveActionThrottle(UserRateThrottle):
    """
    Throttle for DELETE on stories, bulletins and taxonomy.

    Default: 20 requests/minute
    """
    scope = 'destructive'

    def get_rate(self):
        try:
            return super().get_rate()
        except Exception:
            return '20/minute'


# Default throttle rates to add to settings
DEFAULT_THROTTLE_RATES = {
    'burst': '100/minute',
    'state_change': '30/minute',
    'destructive': '20/minute',
}
