"""
Admin interface for bulletins.
"""

from django.contrib import admin
from .models import Bulletin, BulletinStory


class BulletinStoryInline(admin.TabularInline):
    model = BulletinStory
    extra = 0
    raw_id_fields = ['story']
    ordering = ['order']


@admin.register(Bulletin)
class BulletinAdmin(admin.ModelAdmin):
    list_display = ['title', 'status', 'author', 'reviewer', 'publisher', 'published_at', 'created_at']
    list_filter = ['status']
    search_fields = ['title', 'intro', 'outro', 'author__username']
    readonly_fields = [
        'id',
        'status',
        'version',
        'reviewer',
        'publisher',
        'published_at',
        'created_at',
        'updated_at',
    ]
    raw_id_fields = ['author']
    inlines = [BulletinStoryInline]
