"""
Core models for Newsdesk.
Base classes and the staff profile that carries each user's newsroom role.
"""

import uuid
from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone

from apps.workflow.roles import StaffRole


class BaseModel(models.Model):
    """
    Abstract base model with common fields for all Newsdesk models.
    Provides UUID primary key and timestamp tracking.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name='ID',
        help_text='Unique identifier (UUID)'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name='Created At',
        help_text='Timestamp when record was created'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Updated At',
        help_text='Timestamp when record was last updated'
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        """
        Default string representation.
        Should be overridden in child classes.
        """
        return f"{self.__class__.__name__} ({self.id})"


class StaffProfile(BaseModel):
    """
    Newsroom profile for a staff member.
    Linked 1:1 with Django User model; holds exactly one StaffRole.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='staff_profile',
        verbose_name='User',
        help_text='The associated Django user account'
    )

    role = models.CharField(
        max_length=20,
        choices=StaffRole.choices,
        default=StaffRole.INTERN,
        db_index=True,
        verbose_name='Role',
        help_text='Newsroom role determining workflow permissions'
    )

    # Preferred working language for translation assignments
    language = models.CharField(
        max_length=20,
        blank=True,
        verbose_name='Language',
        help_text='Preferred working language (e.g. ENGLISH, AFRIKAANS, XHOSA)'
    )

    timezone = models.CharField(
        max_length=50,
        default='UTC',
        verbose_name='Timezone',
        help_text='User preferred timezone'
    )

    last_active_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Last Active',
        help_text='When user was last active in the newsroom'
    )

    class Meta:
        db_table = 'staff_profiles'
        verbose_name = 'Staff Profile'
        verbose_name_plural = 'Staff Profiles'

    def __str__(self):
        return f"{self.user.username} ({self.role})"

    @property
    def staff_role(self) -> StaffRole:
        return StaffRole(self.role)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_staff_profile(sender, instance, created, **kwargs):
    """Auto-create StaffProfile when a new User is created."""
    if created:
        StaffProfile.objects.create(user=instance)
