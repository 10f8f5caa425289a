"""
Prometheus Metrics for Newsdesk.

Provides application-level metrics for monitoring.

Metrics included:
- workflow_transitions_total: Counter of transition attempts by outcome
- workflow_transition_duration_seconds: Histogram of engine time per attempt
- workflow_cas_conflicts_total: Counter of compare-and-set misses
- workflow_retries_total: Counter of caller-side retries by reason
- notifications_dispatched_total: Counter of notification deliveries
- announcements_dismissed_total: Counter of dismissals
- http_responses_total: Counter of API responses by status class

Cardinality Guidelines:
- All labels MUST be low-cardinality (small, bounded set of values)
- ALLOWED label values: entity types, action names, error codes, status classes
- FORBIDDEN label values: entity IDs, user IDs, usernames, comments
- If per-entity metrics are needed, read the transition history instead

Usage:
    from apps.core.metrics import increment_transition, observe_transition_duration

    with observe_transition_duration('story'):
        result = engine.request_transition(request)
    increment_transition('story', 'approve', 'success')

Setup:
    Add to urls.py:
        from apps.core.metrics import metrics_view
        urlpatterns = [
            path('metrics/', metrics_view, name='prometheus-metrics'),
        ]
"""

import time
from contextlib import contextmanager
import logging

from django.http import HttpResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

workflow_transitions_total = Counter(
    'newsdesk_workflow_transitions_total',
    'Total workflow transition attempts',
    ['entity_type', 'action', 'outcome']  # outcome: success or an error code
)

workflow_transition_duration_seconds = Histogram(
    'newsdesk_workflow_transition_duration_seconds',
    'Time spent in the workflow engine per attempt',
    ['entity_type'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

workflow_cas_conflicts_total = Counter(
    'newsdesk_workflow_cas_conflicts_total',
    'Compare-and-set misses (concurrent modification)',
    ['entity_type']
)

workflow_retries_total = Counter(
    'newsdesk_workflow_retries_total',
    'Caller-side transition retries',
    ['entity_type', 'reason']  # reason: concurrent_modification/database
)

notifications_dispatched_total = Counter(
    'newsdesk_notifications_dispatched_total',
    'Notification deliveries attempted',
    ['type', 'status']  # status: sent/skipped/error
)

announcements_dismissed_total = Counter(
    'newsdesk_announcements_dismissed_total',
    'Announcement dismissals',
    ['action']  # action: dismiss/undismiss
)

http_responses_total = Counter(
    'newsdesk_http_responses_total',
    'API responses by status class',
    ['status_class']  # status_class: 2xx, 3xx, 4xx, 5xx
)


# ============================================================================
# Helper Functions
# ============================================================================

def increment_transition(entity_type, action='unknown', outcome='success'):
    """Count one transition attempt."""
    workflow_transitions_total.labels(
        entity_type=entity_type, action=action or 'unknown', outcome=outcome,
    ).inc()


def increment_cas_conflict(entity_type):
    workflow_cas_conflicts_total.labels(entity_type=entity_type).inc()


def increment_retry(entity_type, reason):
    workflow_retries_total.labels(entity_type=entity_type, reason=reason).inc()


def increment_notification(notification_type, status='sent'):
    notifications_dispatched_total.labels(type=notification_type, status=status).inc()


def increment_dismissal(action='dismiss'):
    announcements_dismissed_total.labels(action=action).inc()


def _status_code_to_class(status_code) -> str:
    """Convert status code to class label (2xx, 3xx, etc.)."""
    try:
        code = int(status_code)
        if 200 <= code < 300:
            return '2xx'
        elif 300 <= code < 400:
            return '3xx'
        elif 400 <= code < 500:
            return '4xx'
        elif 500 <= code < 600:
            return '5xx'
        else:
            return 'other'
    except (ValueError, TypeError):
        return 'error'


def increment_http_response(status_code):
    """
    Increment API response counter.

    Status codes are grouped into classes (2xx, 3xx, 4xx, 5xx).
    """
    http_responses_total.labels(status_class=_status_code_to_class(status_code)).inc()


# ============================================================================
# Context Managers
# ============================================================================

@contextmanager
def observe_transition_duration(entity_type):
    """Context manager to time a transition attempt."""
    start = time.time()
    try:
        yield
    finally:
        workflow_transition_duration_seconds.labels(entity_type=entity_type).observe(
            time.time() - start
        )


# ============================================================================
# Metrics View
# ============================================================================

def metrics_view(request):
    """
    Django view to expose Prometheus metrics.

    Returns metrics in Prometheus text format.
    """
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
