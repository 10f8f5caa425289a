"""
Story API serializers.

Workflow-owned fields (status, stage, assignments, version, publishing)
are read-only here; they change only through the transition endpoint.
"""

from django.db import transaction
from rest_framework import serializers

from .models import (
    AudioClip,
    Category,
    Classification,
    RevisionRequest,
    Story,
    StoryAudioClip,
    Tag,
)


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'description', 'parent', 'created_at']
        read_only_fields = ['id', 'created_at']


class TagSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ['id', 'name', 'slug', 'color', 'created_at']
        read_only_fields = ['id', 'created_at']


class ClassificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Classification
        fields = ['id', 'name', 'slug', 'type', 'is_active']
        read_only_fields = fields


class AudioClipSerializer(serializers.ModelSerializer):
    class Meta:
        model = AudioClip
        fields = ['id', 'filename', 'url', 'duration', 'mime_type']
        read_only_fields = fields


class StaffSummarySerializer(serializers.Serializer):
    """Compact user reference."""
    id = serializers.IntegerField()
    username = serializers.CharField()
    name = serializers.SerializerMethodField()

    def get_name(self, user):
        return user.get_full_name() or user.get_username()


class StoryListSerializer(serializers.ModelSerializer):
    """Compact serializer for story lists."""

    author = StaffSummarySerializer(read_only=True)
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)

    class Meta:
        model = Story
        fields = [
            'id',
            'title',
            'status',
            'stage',
            'version',
            'author',
            'assigned_reviewer',
            'assigned_approver',
            'category_name',
            'language',
            'is_translation',
            'original_story',
            'published_at',
            'created_at',
            'updated_at',
        ]


class StorySerializer(serializers.ModelSerializer):
    """Full story; writable content fields only."""

    author = StaffSummarySerializer(read_only=True)
    assigned_reviewer = StaffSummarySerializer(read_only=True)
    assigned_approver = StaffSummarySerializer(read_only=True)
    published_by = StaffSummarySerializer(read_only=True)
    category = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), required=False, allow_null=True,
    )
    tags = serializers.PrimaryKeyRelatedField(
        queryset=Tag.objects.all(), many=True, required=False,
    )
    classifications = serializers.PrimaryKeyRelatedField(
        queryset=Classification.objects.filter(is_active=True), many=True, required=False,
    )
    audio_clips = AudioClipSerializer(many=True, read_only=True)
    audio_clip_ids = serializers.PrimaryKeyRelatedField(
        queryset=AudioClip.objects.all(), many=True, required=False, write_only=True,
    )
    translations = serializers.SerializerMethodField()
    open_revision_requests = serializers.SerializerMethodField()

    class Meta:
        model = Story
        fields = [
            'id',
            'title',
            'slug',
            'body',
            'status',
            'stage',
            'version',
            'author',
            'assigned_reviewer',
            'assigned_approver',
            'category',
            'tags',
            'classifications',
            'audio_clips',
            'audio_clip_ids',
            'language',
            'is_translation',
            'original_story',
            'translations',
            'open_revision_requests',
            'published_at',
            'published_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'slug',
            'status',
            'stage',
            'version',
            'is_translation',
            'original_story',
            'published_at',
            'created_at',
            'updated_at',
        ]

    def get_translations(self, story):
        return [
            {'id': str(t.id), 'language': t.language, 'status': t.status, 'author_id': t.author_id}
            for t in story.translations.all()
        ]

    def get_open_revision_requests(self, story):
        return story.revision_requests.filter(resolved_at__isnull=True).count()

    def validate_language(self, value):
        return value.strip().upper()

    def _set_clips(self, story, clips):
        user = self.context['request'].user
        StoryAudioClip.objects.filter(story=story).exclude(audio_clip__in=clips).delete()
        existing = set(StoryAudioClip.objects.filter(story=story).values_list('audio_clip_id', flat=True))
        StoryAudioClip.objects.bulk_create([
            StoryAudioClip(story=story, audio_clip=clip, added_by=user)
            for clip in clips
            if clip.pk not in existing
        ])

    @transaction.atomic
    def create(self, validated_data):
        clips = validated_data.pop('audio_clip_ids', None)
        story = super().create(validated_data)
        if clips:
            self._set_clips(story, clips)
        return story

    @transaction.atomic
    def update(self, instance, validated_data):
        clips = validated_data.pop('audio_clip_ids', None)
        relations = {
            name: validated_data.pop(name)
            for name in ('tags', 'classifications')
            if name in validated_data
        }
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        # Workflow columns are owned by the engine; write content columns only
        instance.save(update_fields=[*validated_data, 'updated_at'])
        for name, value in relations.items():
            getattr(instance, name).set(value)
        if clips is not None:
            self._set_clips(instance, clips)
        return instance


class RevisionRequestSerializer(serializers.ModelSerializer):
    requested_by = StaffSummarySerializer(read_only=True)
    resolved_by = StaffSummarySerializer(read_only=True)
    is_resolved = serializers.BooleanField(read_only=True)

    class Meta:
        model = RevisionRequest
        fields = [
            'id',
            'story',
            'requested_by',
            'requested_by_role',
            'comment',
            'is_resolved',
            'resolved_at',
            'resolved_by',
            'created_at',
        ]
        read_only_fields = fields
