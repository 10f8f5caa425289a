"""
Announcement API views.

GET    /api/announcements/                - Active, unexpired, HIGH first
POST   /api/announcements/                - Create (editors and above)
GET    /api/announcements/{id}/           - Detail
PATCH  /api/announcements/{id}/           - Edit (editors and above)
DELETE /api/announcements/{id}/           - Delete (editors and above)
POST   /api/announcements/{id}/dismiss/   - Dismiss for the current user
DELETE /api/announcements/{id}/dismiss/   - Undo a dismissal

Filters: ?dismissed=false hides dismissed announcements; ?all=true lists
inactive and expired ones too (announcement managers only).
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Exists, OuterRef
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.exceptions import DuplicateError, NotFoundError, PermissionDeniedError
from apps.core.metrics import increment_dismissal
from apps.core.permissions import CapabilityPermission, get_capabilities
from apps.core.throttling import BurstThrottle, StateChangeThrottle

from .models import Announcement, AnnouncementDismissal
from .serializers import AnnouncementSerializer

logger = logging.getLogger(__name__)

STAFF_AUDIENCES = (Announcement.Audience.NEWSROOM, Announcement.Audience.ALL)
TRUTHY = ('true', '1', 'yes')


class AnnouncementViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, CapabilityPermission]
    throttle_classes = [BurstThrottle]
    serializer_class = AnnouncementSerializer
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    required_capabilities = {
        'create': 'can_create_announcement',
        'partial_update': 'can_create_announcement',
        'destroy': 'can_create_announcement',
    }

    def get_queryset(self):
        user = self.request.user
        queryset = Announcement.objects.select_related('author').annotate(
            is_dismissed=Exists(
                AnnouncementDismissal.objects.filter(announcement=OuterRef('pk'), user=user)
            )
        )
        params = self.request.query_params
        show_all = params.get('all', '').lower() in TRUTHY
        if not (show_all and get_capabilities(user).can_create_announcement):
            queryset = queryset.visible(audiences=STAFF_AUDIENCES)
        if params.get('dismissed', '').lower() in ('false', '0', 'no'):
            queryset = queryset.filter(is_dismissed=False)
        return queryset.by_priority()

    def _check_priority(self, priority):
        capabilities = get_capabilities(self.request.user)
        if not capabilities.can_set_announcement_priority(priority):
            raise PermissionDeniedError(
                f"Your role cannot create {priority} priority announcements", field='priority',
            )

    def perform_create(self, serializer):
        priority = serializer.validated_data.get('priority', Announcement.Priority.MEDIUM)
        self._check_priority(priority)
        announcement = serializer.save(author=self.request.user)
        logger.info(f"Announcement {announcement.id} ({priority}) created by {self.request.user.pk}")

    def perform_update(self, serializer):
        if 'priority' in serializer.validated_data:
            self._check_priority(serializer.validated_data['priority'])
        serializer.save()

    @action(detail=True, methods=['post', 'delete'], throttle_classes=[StateChangeThrottle])
    def dismiss(self, request, pk=None):
        announcement = self.get_object()
        if request.method == 'DELETE':
            deleted, _ = AnnouncementDismissal.objects.filter(
                announcement=announcement, user=request.user,
            ).delete()
            if not deleted:
                raise NotFoundError("Announcement has not been dismissed")
            increment_dismissal('undismiss')
            return Response(status=status.HTTP_204_NO_CONTENT)

        try:
            with transaction.atomic():
                dismissal = AnnouncementDismissal.objects.create(
                    announcement=announcement, user=request.user,
                )
        except IntegrityError:
            raise DuplicateError("Announcement already dismissed")
        increment_dismissal('dismiss')
        return Response({
            'announcement_id': str(announcement.pk),
            'dismissed_at': dismissal.dismissed_at,
        }, status=status.HTTP_201_CREATED)
