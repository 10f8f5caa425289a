"""
Story models for Newsdesk.
Stories, their taxonomy, audio clips and revision requests.
"""

from django.conf import settings
from django.db import models
from django.utils.text import slugify

from apps.core.models import BaseModel
from apps.workflow.transitions import StoryStage, StoryStatus


class Category(BaseModel):
    """Editorial category (e.g. News, Sport). May be nested one level."""

    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        'self',
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='children',
    )

    class Meta:
        db_table = 'story_categories'
        ordering = ['name']
        verbose_name_plural = 'Categories'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class Tag(BaseModel):
    """Free-form topic tag."""

    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    color = models.CharField(max_length=7, blank=True, help_text='Hex colour, e.g. #3B82F6')

    class Meta:
        db_table = 'story_tags'
        ordering = ['name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class Classification(BaseModel):
    """
    Station-facing classification. Approval requires one LANGUAGE and one
    RELIGION classification on the story.
    """

    class Type(models.TextChoices):
        LANGUAGE = 'LANGUAGE', 'Language'
        RELIGION = 'RELIGION', 'Religion'
        LOCALITY = 'LOCALITY', 'Locality'

    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, blank=True)
    type = models.CharField(max_length=20, choices=Type.choices, db_index=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'story_classifications'
        ordering = ['type', 'name']
        constraints = [
            models.UniqueConstraint(fields=['type', 'name'], name='unique_classification_per_type'),
        ]

    def __str__(self):
        return f"{self.get_type_display()}: {self.name}"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class AudioClip(BaseModel):
    """Audio file stored externally; only its URL is kept here."""

    filename = models.CharField(max_length=255)
    url = models.URLField(max_length=1000)
    duration = models.PositiveIntegerField(null=True, blank=True, help_text='Duration in seconds')
    file_size = models.PositiveIntegerField(null=True, blank=True, help_text='Size in bytes')
    mime_type = models.CharField(max_length=100, blank=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='uploaded_clips',
    )

    class Meta:
        db_table = 'audio_clips'

    def __str__(self):
        return self.filename


class Story(BaseModel):
    """
    A newsroom story moving through the editorial workflow.

    ``status``, ``stage``, the assignment columns and ``version`` are owned
    by the workflow engine and never written by the content API.
    """

    title = models.CharField(max_length=500)
    slug = models.SlugField(max_length=520, blank=True)
    body = models.TextField(blank=True)

    status = models.CharField(
        max_length=30,
        choices=StoryStatus.choices,
        default=StoryStatus.DRAFT,
        db_index=True,
        verbose_name='Status'
    )

    stage = models.CharField(
        max_length=40,
        choices=StoryStage.choices,
        default=StoryStage.DRAFT,
        db_index=True,
        verbose_name='Stage',
        help_text='Derived from status; used for "assigned to me" views'
    )

    version = models.PositiveIntegerField(
        default=1,
        verbose_name='Version',
        help_text='Incremented on every workflow transition'
    )

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='authored_stories',
    )

    assigned_reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stories_to_review',
    )

    assigned_approver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stories_to_approve',
    )

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stories',
    )

    tags = models.ManyToManyField(Tag, blank=True, related_name='stories')
    classifications = models.ManyToManyField(Classification, blank=True, related_name='stories')
    audio_clips = models.ManyToManyField(
        AudioClip,
        through='StoryAudioClip',
        blank=True,
        related_name='stories',
    )

    # Translations
    language = models.CharField(
        max_length=20,
        default='ENGLISH',
        verbose_name='Language',
        help_text='Language the story is written in'
    )

    is_translation = models.BooleanField(default=False, db_index=True)

    original_story = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='translations',
    )

    # Publishing
    published_at = models.DateTimeField(null=True, blank=True, db_index=True)
    published_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='published_stories',
    )

    class Meta:
        db_table = 'stories'
        ordering = ['-created_at']
        verbose_name_plural = 'Stories'
        indexes = [
            models.Index(fields=['status', '-created_at'], name='story_status_created_idx'),
            models.Index(fields=['stage', 'assigned_reviewer'], name='story_stage_reviewer_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['original_story', 'language'],
                condition=models.Q(is_translation=True),
                name='unique_translation_language',
            ),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.title)[:520]
        super().save(*args, **kwargs)

    def has_classification_type(self, classification_type) -> bool:
        return self.classifications.filter(type=classification_type).exists()

    @property
    def open_revision_requests(self):
        return self.revision_requests.filter(resolved_at__isnull=True)


class StoryAudioClip(models.Model):
    """Link between a story and a clip, with provenance."""

    story = models.ForeignKey(Story, on_delete=models.CASCADE, related_name='story_clips')
    audio_clip = models.ForeignKey(AudioClip, on_delete=models.CASCADE, related_name='story_links')
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'story_audio_clips'
        constraints = [
            models.UniqueConstraint(fields=['story', 'audio_clip'], name='unique_story_audio_clip'),
        ]


class RevisionRequest(BaseModel):
    """A reviewer's or approver's request for changes to a story."""

    story = models.ForeignKey(Story, on_delete=models.CASCADE, related_name='revision_requests')
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='revision_requests_made',
    )
    requested_by_role = models.CharField(max_length=20, blank=True)
    comment = models.TextField()
    resolved_at = models.DateTimeField(null=True, blank=True, db_index=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='revision_requests_resolved',
    )

    class Meta:
        db_table = 'story_revision_requests'
        ordering = ['-created_at']

    def __str__(self):
        state = 'resolved' if self.resolved_at else 'open'
        return f"Revision on {self.story_id} ({state})"

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None
