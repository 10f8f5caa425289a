"""
Bulletin API views.

GET    /api/bulletins/                    - List bulletins (?status=, ?mine=true)
POST   /api/bulletins/                    - Create a DRAFT bulletin
GET    /api/bulletins/{id}/               - Bulletin detail with ordered stories
PATCH  /api/bulletins/{id}/               - Edit title, intro, outro
DELETE /api/bulletins/{id}/               - Delete a DRAFT bulletin
PUT    /api/bulletins/{id}/stories/       - Replace the ordered story list
POST   /api/bulletins/{id}/transition/    - Workflow transition
GET    /api/bulletins/{id}/transitions/   - Moves available to the caller
GET    /api/bulletins/{id}/history/       - Transition history
"""

import logging

from django.core.cache import cache
from django.db import transaction
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.exceptions import EditLockedError, PermissionDeniedError
from apps.core.permissions import get_capabilities
from apps.core.throttling import BurstThrottle, DestructiveActionThrottle
from apps.workflow.transitions import BulletinStatus, EntityType
from apps.workflow.views import WorkflowActionsMixin

from .models import Bulletin, BulletinStory
from .serializers import BulletinListSerializer, BulletinSerializer, BulletinStoriesSerializer

logger = logging.getLogger(__name__)

LIST_CACHE_KEY = 'bulletins'


class BulletinViewSet(WorkflowActionsMixin, viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated]
    throttle_classes = [BurstThrottle]
    workflow_entity_type = EntityType.BULLETIN
    queryset = (
        Bulletin.objects
        .select_related('author', 'reviewer', 'publisher')
        .prefetch_related('bulletin_stories__story')
    )

    def get_serializer_class(self):
        if self.action == 'list':
            return BulletinListSerializer
        return BulletinSerializer

    def get_throttles(self):
        if self.action == 'destroy':
            return [DestructiveActionThrottle()]
        return super().get_throttles()

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        if params.get('status'):
            queryset = queryset.filter(status=params['status'].upper())
        if params.get('mine', '').lower() in ('true', '1', 'yes'):
            queryset = queryset.filter(author=self.request.user)
        return queryset

    def _check_editable(self, bulletin):
        capabilities = get_capabilities(self.request.user)
        user_id = self.request.user.pk
        if not capabilities.can_edit_bulletin(
            bulletin.status,
            is_author=bulletin.author_id == user_id,
            is_reviewer=bulletin.reviewer_id == user_id,
        ):
            if bulletin.status in (BulletinStatus.APPROVED, BulletinStatus.PUBLISHED, BulletinStatus.ARCHIVED):
                raise EditLockedError(f"Bulletin is {bulletin.status.lower()} and cannot be edited")
            raise PermissionDeniedError("You cannot edit this bulletin")

    def _lock(self, bulletin):
        """Re-read the bulletin under a row lock and check it is still editable."""
        locked = Bulletin.objects.select_for_update().get(pk=bulletin.pk)
        self._check_editable(locked)
        return locked

    def perform_create(self, serializer):
        bulletin = serializer.save(author=self.request.user)
        cache.delete(LIST_CACHE_KEY)
        logger.info(f"Bulletin {bulletin.id} created by {self.request.user.pk}")

    def perform_update(self, serializer):
        with transaction.atomic():
            serializer.instance = self._lock(serializer.instance)
            serializer.save()
        cache.delete_many([LIST_CACHE_KEY, f'bulletin:{serializer.instance.pk}'])

    def perform_destroy(self, instance):
        user = self.request.user
        if instance.status != BulletinStatus.DRAFT:
            raise EditLockedError("Only draft bulletins can be deleted")
        if instance.author_id != user.pk and not get_capabilities(user).can_archive:
            raise PermissionDeniedError("Only the author or an editor can delete this bulletin")
        bulletin_id = instance.pk
        instance.delete()
        cache.delete_many([LIST_CACHE_KEY, f'bulletin:{bulletin_id}'])
        logger.info(f"Bulletin {bulletin_id} deleted by {user.pk}")

    @action(detail=True, methods=['put'])
    def stories(self, request, pk=None):
        bulletin = self.get_object()

        serializer = BulletinStoriesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        story_ids = serializer.validated_data['story_ids']

        with transaction.atomic():
            bulletin = self._lock(bulletin)
            BulletinStory.objects.filter(bulletin=bulletin).delete()
            BulletinStory.objects.bulk_create([
                BulletinStory(bulletin=bulletin, story_id=story_id, order=position)
                for position, story_id in enumerate(story_ids, start=1)
            ])

        cache.delete_many([LIST_CACHE_KEY, f'bulletin:{bulletin.pk}'])
        logger.info(f"Bulletin {bulletin.pk} story list set to {len(story_ids)} stories")
        refreshed = self.get_queryset().get(pk=bulletin.pk)
        return Response(BulletinSerializer(refreshed, context=self.get_serializer_context()).data)
