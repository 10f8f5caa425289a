"""
Announcement API serializers.
"""

from rest_framework import serializers

from apps.stories.serializers import StaffSummarySerializer
from .models import Announcement


class AnnouncementSerializer(serializers.ModelSerializer):
    author = StaffSummarySerializer(read_only=True)
    is_dismissed = serializers.SerializerMethodField()

    class Meta:
        model = Announcement
        fields = [
            'id',
            'title',
            'message',
            'priority',
            'target_audience',
            'expires_at',
            'is_active',
            'author',
            'is_dismissed',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_is_dismissed(self, announcement):
        # Annotated by AnnouncementViewSet.get_queryset
        return bool(getattr(announcement, 'is_dismissed', False))

    def to_internal_value(self, data):
        # Normalise case before choice validation
        if hasattr(data, 'copy'):
            data = data.copy()
            for key in ('priority', 'target_audience'):
                if isinstance(data.get(key), str):
                    data[key] = data[key].upper()
        return super().to_internal_value(data)
