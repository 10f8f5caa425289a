"""
Bulletin API serializers.
"""

from rest_framework import serializers

from apps.stories.models import Story
from apps.stories.serializers import StaffSummarySerializer
from .models import Bulletin


class BulletinStoryItemSerializer(serializers.Serializer):
    order = serializers.IntegerField(read_only=True)
    story_id = serializers.UUIDField(source='story.id', read_only=True)
    title = serializers.CharField(source='story.title', read_only=True)
    status = serializers.CharField(source='story.status', read_only=True)
    language = serializers.CharField(source='story.language', read_only=True)


class BulletinListSerializer(serializers.ModelSerializer):
    author = StaffSummarySerializer(read_only=True)
    story_count = serializers.SerializerMethodField()

    class Meta:
        model = Bulletin
        fields = [
            'id',
            'title',
            'status',
            'version',
            'author',
            'reviewer',
            'story_count',
            'published_at',
            'created_at',
            'updated_at',
        ]

    def get_story_count(self, bulletin):
        return len(bulletin.bulletin_stories.all())


class BulletinSerializer(serializers.ModelSerializer):
    """Full bulletin; title, intro and outro are writable."""

    author = StaffSummarySerializer(read_only=True)
    reviewer = StaffSummarySerializer(read_only=True)
    publisher = StaffSummarySerializer(read_only=True)
    stories = serializers.SerializerMethodField()

    class Meta:
        model = Bulletin
        fields = [
            'id',
            'title',
            'intro',
            'outro',
            'status',
            'version',
            'author',
            'reviewer',
            'publisher',
            'published_at',
            'stories',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'status',
            'version',
            'published_at',
            'created_at',
            'updated_at',
        ]

    def get_stories(self, bulletin):
        items = sorted(bulletin.bulletin_stories.all(), key=lambda item: item.order)
        return BulletinStoryItemSerializer(items, many=True).data

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        # reviewer, publisher and status belong to the workflow engine
        instance.save(update_fields=[*validated_data, 'updated_at'])
        return instance


class BulletinStoriesSerializer(serializers.Serializer):
    """Body of PUT /api/bulletins/{id}/stories/: the full ordered list."""

    story_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)

    def validate_story_ids(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("A story can appear only once in a bulletin")
        found = set(Story.objects.filter(pk__in=value).values_list('id', flat=True))
        missing = [str(pk) for pk in value if pk not in found]
        if missing:
            raise serializers.ValidationError(f"Unknown stories: {', '.join(missing)}")
        return value
