"""
Request ID Middleware for Newsdesk.

Every API request gets an id that follows it into logs, into the
transition history (``details.request_id``) and into Celery notification
tasks, so one editorial action can be traced end to end.

Usage:
    MIDDLEWARE = [
        ...
        'apps.core.middleware.RequestIDMiddleware',
        ...
    ]

    from apps.core.middleware import get_request_id
    request_id = get_request_id()
"""

import uuid
import threading
import logging
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

# Thread-local storage for request context
_request_context = threading.local()


def get_request_id():
    """
    Current request ID, or None outside of a request (or task) context.
    """
    return getattr(_request_context, 'request_id', None)


def set_request_context(request_id, user_id=None, path=None):
    """Set request context in thread-local storage (also used by Celery tasks)."""
    _request_context.request_id = request_id
    _request_context.user_id = user_id
    _request_context.path = path


def clear_request_context():
    _request_context.request_id = None
    _request_context.user_id = None
    _request_context.path = None


class RequestIDMiddleware(MiddlewareMixin):
    """
    Accepts a valid incoming X-Request-ID or generates one, exposes it as
    ``request.request_id`` and echoes it on the response.
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    RESPONSE_HEADER = 'X-Request-ID'

    def process_request(self, request):
        request_id = request.META.get(self.REQUEST_ID_HEADER)

        if request_id:
            try:
                uuid.UUID(request_id)
            except (ValueError, TypeError):
                request_id = str(uuid.uuid4())
        else:
            request_id = str(uuid.uuid4())

        user_id = None
        if hasattr(request, 'user') and request.user.is_authenticated:
            user_id = str(request.user.id)
        set_request_context(request_id, user_id=user_id, path=request.path)

        request.request_id = request_id
        return None

    def process_response(self, request, response):
        request_id = getattr(request, 'request_id', None)

        if request_id:
            response[self.RESPONSE_HEADER] = request_id

        if request.path.startswith('/api/'):
            from apps.core.metrics import increment_http_response
            increment_http_response(response.status_code)

        clear_request_context()
        return response


class RequestIDFilter(logging.Filter):
    """
    Logging filter that adds request_id to log records.

    Referenced from LOGGING['filters'] in config/settings/base.py.
    """

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        return True


def celery_request_id_headers():
    """
    Headers to pass to Celery tasks for correlation.

        deliver_notification.apply_async(args=[...], headers=celery_request_id_headers())
    """
    request_id = get_request_id()
    if request_id:
        return {'request_id': request_id}
    return {}


def setup_celery_request_context(headers):
    """Set up request context in a Celery task from its headers."""
    request_id = headers.get('request_id')
    if request_id:
        set_request_context(request_id)
    else:
        set_request_context(str(uuid.uuid4()))
