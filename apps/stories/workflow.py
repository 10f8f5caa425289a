"""
Story workflow definition.

Registered in settings.WORKFLOW_ENTITIES['story']. Supplies the story
columns, approval gates and after-transition hooks:

- entering NEEDS_REVISION opens a RevisionRequest
- resubmitting resolves every open RevisionRequest
- entering PENDING_TRANSLATION creates one translation per language
- the last translation approved marks the original ready to publish
- publishing the original publishes its approved translations
"""

import logging

from apps.workflow.definitions import TransitionContext, WorkflowDefinition
from apps.workflow.errors import PreconditionFailed
from apps.workflow.transitions import AssignmentField, EntityType, StoryStatus, stage_for

logger = logging.getLogger(__name__)

TRANSLATION_DONE_STATUSES = frozenset({
    StoryStatus.APPROVED,
    StoryStatus.READY_TO_PUBLISH,
    StoryStatus.PUBLISHED,
})


class StoryWorkflow(WorkflowDefinition):
    entity_type = EntityType.STORY
    model = 'stories.Story'
    assignment_columns = {
        AssignmentField.REVIEWER: 'assigned_reviewer',
        AssignmentField.APPROVER: 'assigned_approver',
    }
    required_assignments = {
        StoryStatus.IN_REVIEW: 'assigned_reviewer',
        StoryStatus.PENDING_APPROVAL: 'assigned_approver',
    }
    revision_status = StoryStatus.NEEDS_REVISION
    has_stage = True

    def register_hooks(self):
        self.on_enter(StoryStatus.NEEDS_REVISION, open_revision_request)
        self.after(StoryStatus.NEEDS_REVISION, StoryStatus.IN_REVIEW, resolve_revision_requests)
        self.on_enter(StoryStatus.PENDING_TRANSLATION, create_translations)
        self.after(StoryStatus.PENDING_APPROVAL, StoryStatus.APPROVED, complete_translation)
        self.on_enter(StoryStatus.PUBLISHED, publish_translations)

    def is_translation(self, entity) -> bool:
        return bool(entity.is_translation)

    def derive_stage(self, status, entity):
        return str(stage_for(status, entity.is_translation))

    def transition_fields(self, entity, rule, actor, now):
        if rule.to_status == StoryStatus.PUBLISHED:
            return {'published_at': now, 'published_by_id': actor.id}
        return {}

    def check_preconditions(self, entity, rule, request):
        if rule.action == 'approve':
            check_ready_for_approval(entity)
        elif rule.action == 'mark_ready' and rule.from_status == StoryStatus.PENDING_TRANSLATION:
            pending = entity.translations.exclude(status__in=TRANSLATION_DONE_STATUSES)
            if pending.exists():
                raise PreconditionFailed(
                    "All translations must be approved before the story is ready to publish",
                    pending=[str(pk) for pk in pending.values_list('id', flat=True)],
                )
        elif rule.action == 'send_for_translation':
            existing = set(entity.translations.values_list('language', flat=True))
            for item in request.translations:
                language = str(item.language).strip().upper()
                if language == entity.language.upper():
                    raise PreconditionFailed(
                        f"Story is already written in {language}", field='translations',
                    )
                if language in existing:
                    raise PreconditionFailed(
                        f"A {language} translation already exists", field='translations',
                    )

    def notifications(self, context: TransitionContext):
        super().notifications(context)
        author_id = self.author_id(context.entity)
        if context.to_status == StoryStatus.NEEDS_REVISION:
            context.notify('revision_requested', author_id)
        elif context.to_status == StoryStatus.APPROVED:
            context.notify('approved', author_id)
        elif context.to_status == StoryStatus.PUBLISHED:
            context.notify('published', author_id)

    def invalidation_keys(self, entity):
        keys = ['stories', f'story:{entity.pk}', 'translation_tasks']
        if entity.original_story_id:
            keys.append(f'story:{entity.original_story_id}')
        return keys


def check_ready_for_approval(story):
    """Approval gate: a category plus LANGUAGE and RELIGION classifications."""
    from apps.stories.models import Classification

    if not story.category_id:
        raise PreconditionFailed("Story must have a category before approval", field='category')
    if not story.has_classification_type(Classification.Type.LANGUAGE):
        raise PreconditionFailed(
            "Story must have a language classification before approval", field='classifications',
        )
    if not story.has_classification_type(Classification.Type.RELIGION):
        raise PreconditionFailed(
            "Story must have a religion classification before approval", field='classifications',
        )


# =============================================================================
# Hooks
# =============================================================================

def open_revision_request(context: TransitionContext):
    from apps.stories.models import RevisionRequest

    RevisionRequest.objects.create(
        story_id=context.entity.pk,
        requested_by_id=context.actor.id,
        requested_by_role=context.actor.role.value,
        comment=context.request.comment.strip(),
    )


def resolve_revision_requests(context: TransitionContext):
    from apps.stories.models import RevisionRequest

    resolved = RevisionRequest.objects.filter(
        story_id=context.entity.pk, resolved_at__isnull=True,
    ).update(resolved_at=context.now, resolved_by_id=context.actor.id)
    context.metadata['resolved_revision_requests'] = resolved


def create_translations(context: TransitionContext):
    """One DRAFT child per requested language, authored by its translator."""
    from apps.stories.models import Classification, Story, StoryAudioClip

    original = context.entity
    shared_classifications = list(
        original.classifications.exclude(type=Classification.Type.LANGUAGE)
    )
    tags = list(original.tags.all())
    clip_ids = list(original.story_clips.values_list('audio_clip_id', flat=True))

    for language, translator in context.translators:
        child = Story.objects.create(
            title=original.title,
            body=original.body,
            author_id=translator.id,
            category_id=original.category_id,
            language=language,
            is_translation=True,
            original_story=original,
        )
        child.tags.set(tags)
        language_classification = Classification.objects.filter(
            type=Classification.Type.LANGUAGE, name__iexact=language, is_active=True,
        ).first()
        classifications = list(shared_classifications)
        if language_classification is not None:
            classifications.append(language_classification)
        child.classifications.set(classifications)
        StoryAudioClip.objects.bulk_create([
            StoryAudioClip(story=child, audio_clip_id=clip_id, added_by_id=context.actor.id)
            for clip_id in clip_ids
        ])
        context.notify('assigned', translator.id, entity=child)
        context.invalidate(f'story:{child.pk}')
        logger.info(f"Translation {child.pk} ({language}) created for story {original.pk}")


def complete_translation(context: TransitionContext):
    """When the last translation is approved, the original becomes ready."""
    from apps.stories.models import Story

    story = context.entity
    if not story.is_translation or not story.original_story_id:
        return
    # Serializes concurrent final approvals of sibling translations
    original = Story.objects.select_for_update().get(pk=story.original_story_id)
    if original.status != StoryStatus.PENDING_TRANSLATION:
        return
    if original.translations.exclude(status__in=TRANSLATION_DONE_STATUSES).exists():
        return
    context.cascade(original, StoryStatus.READY_TO_PUBLISH, 'auto_mark_ready')
    context.invalidate(f'story:{original.pk}')


def publish_translations(context: TransitionContext):
    """Publishing an original publishes every translation that is ready."""
    story = context.entity
    if story.is_translation:
        return
    ready = story.translations.filter(
        status__in=[StoryStatus.APPROVED, StoryStatus.READY_TO_PUBLISH],
    )
    for translation in ready:
        context.cascade(
            translation,
            StoryStatus.PUBLISHED,
            'auto_publish',
            fields={'published_at': context.now, 'published_by_id': context.actor.id},
        )
        context.notify('published', translation.author_id, entity=translation)
        context.invalidate(f'story:{translation.pk}')
