"""
Admin interface for stories and their taxonomy.

Workflow columns are read-only here; status changes go through the
transition endpoint so that history is always written.
"""

from django.contrib import admin
from .models import (
    AudioClip,
    Category,
    Classification,
    RevisionRequest,
    Story,
    StoryAudioClip,
    Tag,
)


class StoryAudioClipInline(admin.TabularInline):
    model = StoryAudioClip
    extra = 0
    raw_id_fields = ['audio_clip', 'added_by']
    readonly_fields = ['added_at']


class RevisionRequestInline(admin.TabularInline):
    model = RevisionRequest
    extra = 0
    fields = ['requested_by', 'requested_by_role', 'comment', 'resolved_at', 'resolved_by']
    readonly_fields = fields
    can_delete = False


@admin.register(Story)
class StoryAdmin(admin.ModelAdmin):
    list_display = [
        'title',
        'status',
        'stage',
        'language',
        'is_translation',
        'author',
        'assigned_reviewer',
        'assigned_approver',
        'created_at',
    ]

    list_filter = [
        'status',
        'stage',
        'language',
        'is_translation',
        'category',
    ]

    search_fields = ['title', 'body', 'author__username']

    readonly_fields = [
        'id',
        'status',
        'stage',
        'version',
        'assigned_reviewer',
        'assigned_approver',
        'is_translation',
        'original_story',
        'published_at',
        'published_by',
        'created_at',
        'updated_at',
    ]

    raw_id_fields = ['author', 'category']
    filter_horizontal = ['tags', 'classifications']
    inlines = [StoryAudioClipInline, RevisionRequestInline]
    date_hierarchy = 'created_at'


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'parent']
    search_fields = ['name']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'color']
    search_fields = ['name']


@admin.register(Classification)
class ClassificationAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'is_active']
    list_filter = ['type', 'is_active']
    search_fields = ['name']


@admin.register(AudioClip)
class AudioClipAdmin(admin.ModelAdmin):
    list_display = ['filename', 'mime_type', 'duration', 'uploaded_by', 'created_at']
    search_fields = ['filename']
