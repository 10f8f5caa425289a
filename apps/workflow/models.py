"""
Workflow models for Newsdesk.
The transition history: the only record of who moved what, and when.
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.workflow.transitions import EntityType


class ImmutableHistoryError(Exception):
    """Raised on any attempt to change or remove a history entry."""


class TransitionHistoryQuerySet(models.QuerySet):
    """History rows are append-only; bulk mutation is refused."""

    def update(self, **kwargs):
        raise ImmutableHistoryError("Transition history entries cannot be updated")

    def delete(self):
        raise ImmutableHistoryError("Transition history entries cannot be deleted")


class TransitionHistory(models.Model):
    """
    One committed workflow transition.

    ``sequence`` is 1-based and strictly increasing per entity.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name='ID'
    )

    entity_type = models.CharField(
        max_length=20,
        choices=EntityType.choices,
        verbose_name='Entity Type'
    )

    entity_id = models.UUIDField(
        verbose_name='Entity ID',
        help_text='Primary key of the story or bulletin'
    )

    sequence = models.PositiveIntegerField(
        verbose_name='Sequence',
        help_text='Position of this entry in the entity history'
    )

    action = models.CharField(
        max_length=50,
        verbose_name='Action',
        help_text='Transition action name (e.g. submit_for_review)'
    )

    from_status = models.CharField(max_length=30)
    to_status = models.CharField(max_length=30)
    from_stage = models.CharField(max_length=40, blank=True)
    to_stage = models.CharField(max_length=40, blank=True)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='transition_history',
        verbose_name='Actor'
    )

    comment = models.TextField(blank=True)

    details = models.JSONField(
        default=dict,
        blank=True,
        verbose_name='Details',
        help_text='Assignment, request id and other transition context'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        db_index=True,
        verbose_name='Created At'
    )

    objects = TransitionHistoryQuerySet.as_manager()

    class Meta:
        db_table = 'workflow_transition_history'
        verbose_name = 'Transition History Entry'
        verbose_name_plural = 'Transition History'
        ordering = ['entity_type', 'entity_id', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['entity_type', 'entity_id', 'sequence'],
                name='unique_history_sequence_per_entity',
            ),
        ]
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='history_entity_idx'),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} #{self.sequence}: {self.from_status} → {self.to_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableHistoryError("Transition history entries cannot be updated")
        kwargs['force_insert'] = True
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableHistoryError("Transition history entries cannot be deleted")
