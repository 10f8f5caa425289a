"""
Admin interface for the transition history (read-only).
"""

from django.contrib import admin
from .models import TransitionHistory


@admin.register(TransitionHistory)
class TransitionHistoryAdmin(admin.ModelAdmin):
    list_display = [
        'entity_type',
        'entity_id',
        'sequence',
        'action',
        'from_status',
        'to_status',
        'actor',
        'created_at',
    ]

    list_filter = ['entity_type', 'action', 'to_status']
    search_fields = ['entity_id', 'actor__username', 'comment']
    date_hierarchy = 'created_at'

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
