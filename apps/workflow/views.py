"""
Workflow API views.

WorkflowActionsMixin adds the workflow routes to an entity viewset:

    POST /api/<entities>/{id}/transition/   - Request a status change
    GET  /api/<entities>/{id}/transitions/  - Moves available to the caller
    GET  /api/<entities>/{id}/history/      - Ledger entries (?after=<sequence>)

CapabilitiesView serves the caller's capability set so the UI renders from
the same predicates the engine enforces.
"""

import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import ValidationError
from apps.core.permissions import get_capabilities
from apps.core.throttling import BurstThrottle, StateChangeThrottle
from apps.workflow import ledger
from apps.workflow.engine import WorkflowEngine
from apps.workflow.serializers import (
    AvailableTransitionSerializer,
    HistoryEntrySerializer,
    TransitionRequestSerializer,
)
from apps.workflow.services import perform_transition

logger = logging.getLogger(__name__)


class WorkflowActionsMixin:
    """Mix into a ModelViewSet; set ``workflow_entity_type``."""

    workflow_entity_type = None

    @action(detail=True, methods=['post'], throttle_classes=[StateChangeThrottle])
    def transition(self, request, pk=None):
        entity = self.get_object()
        serializer = TransitionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = perform_transition(
            serializer.to_transition_request(self.workflow_entity_type, entity.pk, request.user.pk)
        )
        result.raise_for_error()

        refreshed = self.get_queryset().get(pk=entity.pk)
        return Response({
            self.workflow_entity_type: self.get_serializer(refreshed).data,
            'history': HistoryEntrySerializer(result.history, many=True).data,
            'invalidates': result.invalidates,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def transitions(self, request, pk=None):
        entity = self.get_object()
        rules = WorkflowEngine().available_transitions(
            self.workflow_entity_type, entity, request.user.pk,
        )
        return Response({
            'status': entity.status,
            'version': entity.version,
            'transitions': AvailableTransitionSerializer(rules, many=True).data,
        })

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        entity = self.get_object()
        after = request.query_params.get('after', '0')
        try:
            after_sequence = int(after)
        except (TypeError, ValueError):
            raise ValidationError("after must be an integer", field='after')
        entries = ledger.history_for(self.workflow_entity_type, entity.pk, after_sequence=after_sequence)
        return Response({
            'count': len(entries),
            'results': HistoryEntrySerializer(entries, many=True).data,
        })


class CapabilitiesView(APIView):
    """
    GET /api/workflow/capabilities/

    The current user's role and capability predicates.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [BurstThrottle]

    def get(self, request):
        capabilities = get_capabilities(request.user)
        return Response(capabilities.as_dict())
