"""
Announcement models for Newsdesk.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.core.models import BaseModel


class AnnouncementQuerySet(models.QuerySet):

    def visible(self, audiences=None, now=None):
        """Active, unexpired announcements for the given audiences."""
        now = now or timezone.now()
        queryset = self.filter(is_active=True).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gt=now)
        )
        if audiences:
            queryset = queryset.filter(target_audience__in=audiences)
        return queryset

    def by_priority(self):
        """HIGH first, then MEDIUM, then LOW; newest first within a priority."""
        rank = models.Case(
            models.When(priority=Announcement.Priority.HIGH, then=models.Value(0)),
            models.When(priority=Announcement.Priority.MEDIUM, then=models.Value(1)),
            default=models.Value(2),
            output_field=models.IntegerField(),
        )
        return self.annotate(priority_rank=rank).order_by('priority_rank', '-created_at')


class Announcement(BaseModel):
    """A notice shown to staff until it expires or they dismiss it."""

    class Priority(models.TextChoices):
        LOW = 'LOW', 'Low'
        MEDIUM = 'MEDIUM', 'Medium'
        HIGH = 'HIGH', 'High'

    class Audience(models.TextChoices):
        NEWSROOM = 'NEWSROOM', 'Newsroom'
        RADIO = 'RADIO', 'Radio'
        ALL = 'ALL', 'All'

    title = models.CharField(max_length=255)
    message = models.TextField()

    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        db_index=True,
    )

    target_audience = models.CharField(
        max_length=10,
        choices=Audience.choices,
        default=Audience.NEWSROOM,
        db_index=True,
    )

    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='announcements',
    )

    objects = AnnouncementQuerySet.as_manager()

    class Meta:
        db_table = 'announcements'
        ordering = ['-created_at']

    def __str__(self):
        return f"[{self.priority}] {self.title}"

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= timezone.now()


class AnnouncementDismissal(models.Model):
    """A user's dismissal of one announcement."""

    announcement = models.ForeignKey(Announcement, on_delete=models.CASCADE, related_name='dismissals')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='announcement_dismissals',
    )
    dismissed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'announcement_dismissals'
        constraints = [
            models.UniqueConstraint(fields=['announcement', 'user'], name='unique_announcement_dismissal'),
        ]

    def __str__(self):
        return f"{self.user_id} dismissed {self.announcement_id}"
