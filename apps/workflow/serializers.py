"""
Workflow API serializers.
"""

from rest_framework import serializers

from apps.workflow.engine import ReassignmentRequest, TranslationAssignment, TransitionRequest
from apps.workflow.transitions import AssignmentField


class TranslationAssignmentSerializer(serializers.Serializer):
    language = serializers.CharField(max_length=20)
    translator_id = serializers.IntegerField()

    def validate_language(self, value):
        return value.strip().upper()


class TransitionRequestSerializer(serializers.Serializer):
    """
    Body of POST /api/<entities>/{id}/transition/.

    Only shape is validated here; whether the move is allowed is the
    engine's decision.
    """
    target_status = serializers.CharField(max_length=30)
    assignee_id = serializers.IntegerField(required=False, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True, default='')
    expected_version = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    translations = TranslationAssignmentSerializer(many=True, required=False)

    def validate_target_status(self, value):
        return value.strip().upper()

    def to_transition_request(self, entity_type, entity_id, actor_id) -> TransitionRequest:
        data = self.validated_data
        return TransitionRequest(
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            target_status=data['target_status'],
            assignee_id=data.get('assignee_id'),
            comment=data.get('comment') or '',
            expected_version=data.get('expected_version'),
            translations=tuple(
                TranslationAssignment(item['language'], item['translator_id'])
                for item in data.get('translations', [])
            ),
        )


class ReassignmentRequestSerializer(serializers.Serializer):
    """Body of POST /api/stories/{id}/reassign/."""
    assignment = serializers.ChoiceField(choices=[
        AssignmentField.REVIEWER.value,
        AssignmentField.APPROVER.value,
    ])
    assignee_id = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, default='')
    expected_version = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def to_reassignment_request(self, entity_type, entity_id, actor_id) -> ReassignmentRequest:
        data = self.validated_data
        return ReassignmentRequest(
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            assignment=data['assignment'],
            assignee_id=data['assignee_id'],
            comment=data.get('comment') or '',
            expected_version=data.get('expected_version'),
        )


class HistoryEntrySerializer(serializers.Serializer):
    """Read-only view of a ledger HistoryEntry."""
    id = serializers.UUIDField(read_only=True)
    sequence = serializers.IntegerField(read_only=True)
    action = serializers.CharField(read_only=True)
    from_status = serializers.CharField(read_only=True)
    to_status = serializers.CharField(read_only=True)
    from_stage = serializers.CharField(read_only=True)
    to_stage = serializers.CharField(read_only=True)
    actor_id = serializers.IntegerField(read_only=True)
    comment = serializers.CharField(read_only=True)
    details = serializers.JSONField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class AvailableTransitionSerializer(serializers.Serializer):
    """One move the current user may make, for the UI to render as a button."""
    target_status = serializers.CharField(source='to_status')
    action = serializers.CharField()
    assignment = serializers.SerializerMethodField()
    assignee_roles = serializers.SerializerMethodField()
    comment_required = serializers.BooleanField()

    def get_assignment(self, rule):
        return rule.assignment.field.value if rule.assignment else None

    def get_assignee_roles(self, rule):
        if not rule.assignment:
            return []
        return sorted(role.value for role in rule.assignment.assignee_roles)
