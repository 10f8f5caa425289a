"""
Story API views.

GET    /api/stories/                    - List stories (filters below)
POST   /api/stories/                    - Create a DRAFT story
GET    /api/stories/{id}/               - Story detail
PATCH  /api/stories/{id}/               - Edit content (subject to edit lock)
DELETE /api/stories/{id}/               - Delete (editors and above)
POST   /api/stories/{id}/transition/    - Workflow transition
POST   /api/stories/{id}/reassign/      - Swap reviewer or approver (sub-editors and above)
GET    /api/stories/{id}/transitions/   - Moves available to the caller
GET    /api/stories/{id}/history/       - Transition history
GET    /api/stories/{id}/revisions/     - Revision requests (?unresolved=true)
GET    /api/stories/summary/            - Counts by status (cached)

Filters: ?status=, ?stage=, ?language=, ?is_translation=, ?original_story=,
?mine=true (authored by me), ?assigned_to_me=true
"""

import logging

from django.core.cache import cache
from django.db import transaction
from django.db.models import Count, Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.exceptions import EditLockedError, PermissionDeniedError
from apps.core.permissions import CapabilityPermission, ReadOnlyOrCapability, get_capabilities
from apps.core.throttling import BurstThrottle, DestructiveActionThrottle, StateChangeThrottle
from apps.workflow.serializers import HistoryEntrySerializer, ReassignmentRequestSerializer
from apps.workflow.services import perform_reassignment
from apps.workflow.transitions import EntityType
from apps.workflow.views import WorkflowActionsMixin

from .models import Category, Classification, Story, Tag
from .serializers import (
    CategorySerializer,
    ClassificationSerializer,
    RevisionRequestSerializer,
    StoryListSerializer,
    StorySerializer,
    TagSerializer,
)

logger = logging.getLogger(__name__)

SUMMARY_CACHE_KEY = 'stories'
SUMMARY_CACHE_TTL = 300

TRUTHY = ('true', '1', 'yes')


class StoryViewSet(WorkflowActionsMixin, viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, CapabilityPermission]
    throttle_classes = [BurstThrottle]
    workflow_entity_type = EntityType.STORY
    required_capabilities = {
        'create': 'can_create_story',
        'destroy': 'can_delete_story',
    }
    queryset = (
        Story.objects
        .select_related('author', 'assigned_reviewer', 'assigned_approver', 'category', 'published_by')
        .prefetch_related('tags', 'classifications', 'audio_clips', 'translations')
    )

    def get_serializer_class(self):
        if self.action == 'list':
            return StoryListSerializer
        return StorySerializer

    def get_throttles(self):
        if self.action == 'destroy':
            return [DestructiveActionThrottle()]
        return super().get_throttles()

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        if params.get('status'):
            queryset = queryset.filter(status=params['status'].upper())
        if params.get('stage'):
            queryset = queryset.filter(stage=params['stage'].upper())
        if params.get('language'):
            queryset = queryset.filter(language=params['language'].upper())
        if params.get('is_translation'):
            queryset = queryset.filter(is_translation=params['is_translation'].lower() in TRUTHY)
        if params.get('original_story'):
            queryset = queryset.filter(original_story_id=params['original_story'])
        if params.get('mine', '').lower() in TRUTHY:
            queryset = queryset.filter(author=self.request.user)
        if params.get('assigned_to_me', '').lower() in TRUTHY:
            user = self.request.user
            queryset = queryset.filter(Q(assigned_reviewer=user) | Q(assigned_approver=user))
        return queryset

    def retrieve(self, request, *args, **kwargs):
        story = self.get_object()
        key = f"story:{story.pk}"
        data = cache.get(key)
        if data is None:
            data = self.get_serializer(story).data
            cache.set(key, data, SUMMARY_CACHE_TTL)
        return Response(data)

    def perform_create(self, serializer):
        story = serializer.save(author=self.request.user)
        cache.delete(SUMMARY_CACHE_KEY)
        logger.info(f"Story {story.id} created by {self.request.user.pk}")

    def _check_editable(self, story):
        capabilities = get_capabilities(self.request.user)
        is_author = story.author_id == self.request.user.pk
        if not capabilities.can_edit_story(story.status, is_author):
            reason = capabilities.edit_lock_reason(story.status)
            if reason:
                raise EditLockedError(reason)
            raise PermissionDeniedError("Only the author or an editor can edit this story")

    def perform_update(self, serializer):
        with transaction.atomic():
            # Re-check the edit lock on the locked row, not the fetched copy
            story = Story.objects.select_for_update().get(pk=serializer.instance.pk)
            self._check_editable(story)
            serializer.instance = story
            serializer.save()
        cache.delete(f'story:{story.pk}')

    def perform_destroy(self, instance):
        if instance.status == 'PUBLISHED':
            raise EditLockedError("Published stories must be archived, not deleted")
        story_id = instance.pk
        instance.delete()
        cache.delete_many([SUMMARY_CACHE_KEY, f'story:{story_id}'])
        logger.info(f"Story {story_id} deleted by {self.request.user.pk}")

    @action(detail=True, methods=['post'], throttle_classes=[StateChangeThrottle])
    def reassign(self, request, pk=None):
        story = self.get_object()
        serializer = ReassignmentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = perform_reassignment(
            serializer.to_reassignment_request(EntityType.STORY, story.pk, request.user.pk)
        )
        result.raise_for_error()

        refreshed = self.get_queryset().get(pk=story.pk)
        return Response({
            'story': self.get_serializer(refreshed).data,
            'history': HistoryEntrySerializer(result.history, many=True).data,
            'invalidates': result.invalidates,
        })

    @action(detail=True, methods=['get'])
    def revisions(self, request, pk=None):
        story = self.get_object()
        queryset = story.revision_requests.select_related('requested_by', 'resolved_by')
        if request.query_params.get('unresolved', '').lower() in TRUTHY:
            queryset = queryset.filter(resolved_at__isnull=True)
        return Response({
            'count': queryset.count(),
            'results': RevisionRequestSerializer(queryset, many=True).data,
        })

    @action(detail=False, methods=['get'])
    def summary(self, request):
        data = cache.get(SUMMARY_CACHE_KEY)
        if data is None:
            rows = Story.objects.values('status').annotate(count=Count('id'))
            data = {row['status']: row['count'] for row in rows}
            cache.set(SUMMARY_CACHE_KEY, data, SUMMARY_CACHE_TTL)
        return Response({'by_status': data, 'total': sum(data.values())})


class CategoryViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, ReadOnlyOrCapability]
    throttle_classes = [BurstThrottle]
    serializer_class = CategorySerializer
    queryset = Category.objects.all()
    required_capabilities = {
        'create': 'can_manage_categories',
        'update': 'can_manage_categories',
        'partial_update': 'can_manage_categories',
        'destroy': 'can_manage_categories',
    }


class TagViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, ReadOnlyOrCapability]
    throttle_classes = [BurstThrottle]
    serializer_class = TagSerializer
    queryset = Tag.objects.all()
    required_capabilities = {
        'create': 'can_create_tag',
        'update': 'can_edit_tag',
        'partial_update': 'can_edit_tag',
        'destroy': 'can_delete_tag',
    }


class ClassificationViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    throttle_classes = [BurstThrottle]
    serializer_class = ClassificationSerializer
    queryset = Classification.objects.filter(is_active=True)

    def get_queryset(self):
        queryset = super().get_queryset()
        classification_type = self.request.query_params.get('type')
        if classification_type:
            queryset = queryset.filter(type=classification_type.upper())
        return queryset
