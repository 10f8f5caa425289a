"""
Caller service around the workflow engine.

This is what views (and anything else acting on behalf of a user) call.
It owns the retry policy the engine deliberately lacks:

- ConcurrentModification: one transparent retry, only when the caller did
  not pin ``expected_version`` (a pinned version means "exactly what I saw").
- OperationalError: retried up to WORKFLOW_DB_RETRY_LIMIT times, then
  re-raised for the API layer to render as 503.

Reassignments (perform_reassignment) go through the same policy.

On success it queues notification intents for delivery once the
transaction commits and drops the invalidated read-model cache keys.
"""

import logging
from functools import partial

from django.conf import settings
from django.core.cache import cache
from django.db import OperationalError, transaction

from apps.core.metrics import (
    increment_cas_conflict,
    increment_retry,
    increment_transition,
    observe_transition_duration,
)
from apps.core.middleware import celery_request_id_headers
from apps.workflow.engine import ReassignmentRequest, TransitionRequest, TransitionResult, WorkflowEngine
from apps.workflow.errors import ConcurrentModification

logger = logging.getLogger(__name__)


def _run_engine(operation, request) -> TransitionResult:
    retry_limit = getattr(settings, 'WORKFLOW_DB_RETRY_LIMIT', 2)
    attempt = 0
    while True:
        try:
            with observe_transition_duration(request.entity_type):
                return operation(request)
        except OperationalError:
            if attempt >= retry_limit:
                logger.exception(
                    f"Storage failure on {request.entity_type} {request.entity_id} "
                    f"after {attempt + 1} attempts"
                )
                increment_transition(request.entity_type, outcome='DATABASE_ERROR')
                raise
            attempt += 1
            increment_retry(request.entity_type, 'database')
            logger.warning(
                f"Storage failure on {request.entity_type} {request.entity_id}, "
                f"retry {attempt}/{retry_limit}"
            )


def perform_transition(
    request: TransitionRequest,
    *,
    transparent_retry=None,
    engine: WorkflowEngine = None,
) -> TransitionResult:
    """Run a transition with retries, dispatch its effects, and return the result."""
    engine = engine or WorkflowEngine()
    return _perform(engine.request_transition, request, transparent_retry)


def perform_reassignment(
    request: ReassignmentRequest,
    *,
    transparent_retry=None,
    engine: WorkflowEngine = None,
) -> TransitionResult:
    """Swap a reviewer or approver under the same retry and dispatch policy."""
    engine = engine or WorkflowEngine()
    return _perform(engine.reassign, request, transparent_retry)


def _perform(operation, request, transparent_retry) -> TransitionResult:
    if transparent_retry is None:
        transparent_retry = getattr(settings, 'WORKFLOW_TRANSPARENT_RETRY', True)

    result = _run_engine(operation, request)

    if isinstance(result.error, ConcurrentModification):
        increment_cas_conflict(request.entity_type)
        if transparent_retry and request.expected_version is None:
            increment_retry(request.entity_type, 'concurrent_modification')
            logger.info(f"Retrying {request.entity_type} {request.entity_id} after concurrent modification")
            result = _run_engine(operation, request)
            if isinstance(result.error, ConcurrentModification):
                increment_cas_conflict(request.entity_type)

    action = result.entry.action if result.entry else 'rejected'
    increment_transition(
        request.entity_type,
        action=action,
        outcome='success' if result.ok else result.error.code,
    )

    if result.ok:
        dispatch_effects(result)
        invalidate_read_models(result.invalidates)
    return result


def dispatch_effects(result: TransitionResult):
    """Queue notification intents; delivery never blocks the transition."""
    if not result.effects:
        return
    from apps.workflow.tasks import deliver_notification

    headers = celery_request_id_headers()
    for intent in result.effects:
        transaction.on_commit(partial(
            deliver_notification.apply_async,
            args=[intent.to_dict()],
            headers=headers,
        ))


def invalidate_read_models(keys):
    if keys:
        cache.delete_many(list(keys))
        logger.debug(f"Invalidated read models: {', '.join(keys)}")
