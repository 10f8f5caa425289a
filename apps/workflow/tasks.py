"""
Celery tasks for workflow notifications.
"""

import logging

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from apps.core.metrics import increment_notification

logger = logging.getLogger(__name__)

SUBJECTS = {
    'assigned': 'A {entity_type} has been assigned to you',
    'revision_requested': 'Revisions requested on your {entity_type}',
    'approved': 'Your {entity_type} has been approved',
    'published': 'Your {entity_type} has been published',
}


def render_notification(intent: dict, recipient) -> tuple:
    entity_type = intent.get('entity_type', 'item')
    template = SUBJECTS.get(intent.get('type'), 'Update on a {entity_type}')
    subject = template.format(entity_type=entity_type)
    body = (
        f"Hello {recipient.get_full_name() or recipient.get_username()},\n\n"
        f"{subject}.\n"
        f"Reference: {entity_type} {intent.get('entity_id')}\n"
    )
    return subject, body


@shared_task(bind=True, max_retries=2)
def deliver_notification(self, intent: dict):
    """Email one notification intent to its recipient."""
    notification_type = intent.get('type', 'unknown')
    User = get_user_model()
    try:
        recipient = User.objects.get(pk=intent['recipient_id'])
    except User.DoesNotExist:
        logger.error(f"Notification recipient {intent.get('recipient_id')} not found")
        increment_notification(notification_type, status='skipped')
        return {"error": "not_found", "recipient_id": intent.get('recipient_id')}

    if not recipient.email or not recipient.is_active:
        increment_notification(notification_type, status='skipped')
        return {"status": "skipped", "recipient_id": recipient.pk}

    subject, body = render_notification(intent, recipient)
    try:
        send_mail(
            subject,
            body,
            getattr(settings, 'DEFAULT_FROM_EMAIL', None),
            [recipient.email],
        )
    except Exception as exc:
        logger.error(f"Notification delivery to {recipient.pk} failed: {exc}")
        increment_notification(notification_type, status='error')
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    increment_notification(notification_type, status='sent')
    return {"status": "sent", "recipient_id": recipient.pk, "type": notification_type}
