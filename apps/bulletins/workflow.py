"""
Bulletin workflow definition.

Registered in settings.WORKFLOW_ENTITIES['bulletin'].
"""

from apps.workflow.definitions import TransitionContext, WorkflowDefinition
from apps.workflow.errors import PreconditionFailed
from apps.workflow.transitions import AssignmentField, BulletinStatus, EntityType

# Statuses a bulletin cannot enter with an empty story list
NEEDS_STORIES = frozenset({
    BulletinStatus.IN_REVIEW,
    BulletinStatus.APPROVED,
    BulletinStatus.PUBLISHED,
})


class BulletinWorkflow(WorkflowDefinition):
    entity_type = EntityType.BULLETIN
    model = 'bulletins.Bulletin'
    assignment_columns = {
        AssignmentField.REVIEWER: 'reviewer',
    }
    required_assignments = {
        BulletinStatus.IN_REVIEW: 'reviewer',
    }
    revision_status = BulletinStatus.NEEDS_REVISION

    def transition_fields(self, entity, rule, actor, now):
        if rule.to_status == BulletinStatus.PUBLISHED:
            return {'published_at': now, 'publisher_id': actor.id}
        return {}

    def check_preconditions(self, entity, rule, request):
        if rule.to_status in NEEDS_STORIES and not entity.bulletin_stories.exists():
            raise PreconditionFailed(
                f"Add at least one story before moving the bulletin to {rule.to_status}",
                field='stories',
            )

    def notifications(self, context: TransitionContext):
        super().notifications(context)
        author_id = self.author_id(context.entity)
        if context.to_status == BulletinStatus.NEEDS_REVISION:
            context.notify('revision_requested', author_id)
        elif context.to_status == BulletinStatus.APPROVED:
            context.notify('approved', author_id)
        elif context.to_status == BulletinStatus.PUBLISHED:
            context.notify('published', author_id)

    def invalidation_keys(self, entity):
        return ['bulletins', f'bulletin:{entity.pk}']
