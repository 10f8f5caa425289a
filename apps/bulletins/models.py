"""
Bulletin models for Newsdesk.
A bulletin is an ordered list of stories with an intro and an outro.
"""

from django.conf import settings
from django.db import models

from apps.core.models import BaseModel
from apps.workflow.transitions import BulletinStatus


class Bulletin(BaseModel):
    """
    Radio bulletin.

    ``status``, ``reviewer``, ``publisher``, ``published_at`` and ``version``
    are owned by the workflow engine.
    """

    title = models.CharField(max_length=500)
    intro = models.TextField(blank=True)
    outro = models.TextField(blank=True)

    status = models.CharField(
        max_length=30,
        choices=BulletinStatus.choices,
        default=BulletinStatus.DRAFT,
        db_index=True,
        verbose_name='Status'
    )

    version = models.PositiveIntegerField(
        default=1,
        verbose_name='Version',
        help_text='Incremented on every workflow transition'
    )

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='authored_bulletins',
    )

    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bulletins_to_review',
    )

    publisher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='published_bulletins',
    )

    published_at = models.DateTimeField(null=True, blank=True, db_index=True)

    stories = models.ManyToManyField(
        'stories.Story',
        through='BulletinStory',
        blank=True,
        related_name='bulletins',
    )

    class Meta:
        db_table = 'bulletins'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='bulletin_status_created_idx'),
        ]

    def __str__(self):
        return self.title

    def ordered_stories(self):
        return [item.story for item in self.bulletin_stories.select_related('story').order_by('order')]


class BulletinStory(models.Model):
    """Position of a story within a bulletin."""

    bulletin = models.ForeignKey(Bulletin, on_delete=models.CASCADE, related_name='bulletin_stories')
    story = models.ForeignKey('stories.Story', on_delete=models.CASCADE, related_name='bulletin_links')
    order = models.PositiveIntegerField()

    class Meta:
        db_table = 'bulletin_stories'
        ordering = ['order']
        constraints = [
            models.UniqueConstraint(fields=['bulletin', 'order'], name='unique_bulletin_order'),
            models.UniqueConstraint(fields=['bulletin', 'story'], name='unique_bulletin_story'),
        ]

    def __str__(self):
        return f"{self.bulletin_id} #{self.order}: {self.story_id}"
