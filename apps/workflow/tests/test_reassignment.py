"""
Tests for reviewer and approver reassignment.

Tests cover:
- Sub-editors and above swap the reviewer of an IN_REVIEW story
  or the approver of a PENDING_APPROVAL story
- The status never changes; version, history and notifications do
- Assignee role and status checks
- Compare-and-set against a concurrent transition
- POST /api/stories/{id}/reassign/
"""

from unittest.mock import patch

import pytest

from apps.stories.models import Story
from apps.workflow import ledger
from apps.workflow.engine import ReassignmentRequest, TransitionRequest, WorkflowEngine
from apps.workflow.errors import (
    ConcurrentModification,
    IllegalTransition,
    InvalidAssignee,
    MissingAssignment,
    RoleMismatch,
)
from apps.workflow.models import TransitionHistory
from apps.workflow.roles import capabilities_for
from apps.workflow.services import perform_reassignment
from apps.workflow.store import DjangoEntityStore
from apps.workflow.transitions import EntityType, StoryStatus


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def story_in_review(make_story, intern, journalist):
    return make_story(
        intern,
        status=StoryStatus.IN_REVIEW,
        stage='NEEDS_JOURNALIST_REVIEW',
        assigned_reviewer=journalist,
    )


@pytest.fixture
def story_pending_approval(make_classified_story, journalist, sub_editor):
    return make_classified_story(
        journalist,
        status=StoryStatus.PENDING_APPROVAL,
        stage='NEEDS_SUB_EDITOR_APPROVAL',
        assigned_approver=sub_editor,
    )


def reassign(story, actor, assignment, assignee, engine=None, **kwargs):
    return (engine or WorkflowEngine()).reassign(ReassignmentRequest(
        entity_type=EntityType.STORY,
        entity_id=story.pk,
        actor_id=actor.pk,
        assignment=assignment,
        assignee_id=assignee.pk if assignee is not None else None,
        **kwargs,
    ))


def history_count(story):
    return TransitionHistory.objects.filter(entity_id=story.pk).count()


# ============================================================================
# Engine
# ============================================================================

@pytest.mark.django_db
class TestReassignment:

    def test_sub_editor_swaps_reviewer(self, story_in_review, sub_editor, journalist, other_journalist):
        result = reassign(story_in_review, sub_editor, 'reviewer', other_journalist, comment='Away today')

        assert result.ok, result.error
        story_in_review.refresh_from_db()
        assert story_in_review.status == StoryStatus.IN_REVIEW
        assert story_in_review.stage == 'NEEDS_JOURNALIST_REVIEW'
        assert story_in_review.assigned_reviewer_id == other_journalist.pk
        assert story_in_review.version == 2

        entry = result.entry
        assert entry.action == 'reassign'
        assert entry.from_status == entry.to_status == StoryStatus.IN_REVIEW
        assert entry.comment == 'Away today'
        assert entry.details['assignment'] == 'reviewer'
        assert entry.details['previous_assignee_id'] == journalist.pk
        assert entry.details['assignee_id'] == other_journalist.pk
        assert [(e.type, e.recipient_id) for e in result.effects] == [('assigned', other_journalist.pk)]
        assert f'story:{story_in_review.pk}' in result.invalidates

    def test_editor_swaps_approver(self, story_pending_approval, editor, make_user):
        replacement = make_user('SUB_EDITOR')

        result = reassign(story_pending_approval, editor, 'approver', replacement)

        assert result.ok, result.error
        assert result.entity.status == StoryStatus.PENDING_APPROVAL
        assert result.entity.assigned_approver_id == replacement.pk
        assert ledger.history_for(EntityType.STORY, story_pending_approval.pk)[-1].action == 'reassign'

    def test_new_reviewer_can_then_review(self, story_in_review, sub_editor, journalist, other_journalist):
        assert reassign(story_in_review, sub_editor, 'reviewer', other_journalist).ok

        stale_reviewer = WorkflowEngine().request_transition(TransitionRequest(
            EntityType.STORY, story_in_review.pk, journalist.pk, 'NEEDS_REVISION', comment='Fix it',
        ))
        new_reviewer = WorkflowEngine().request_transition(TransitionRequest(
            EntityType.STORY, story_in_review.pk, other_journalist.pk, 'NEEDS_REVISION', comment='Fix it',
        ))

        assert isinstance(stale_reviewer.error, IllegalTransition)
        assert new_reviewer.ok, new_reviewer.error

    @pytest.mark.parametrize('role', ['INTERN', 'JOURNALIST'])
    def test_below_sub_editor_cannot_reassign(self, story_in_review, make_user, other_journalist, role):
        actor = make_user(role)

        result = reassign(story_in_review, actor, 'reviewer', other_journalist)

        assert isinstance(result.error, IllegalTransition)
        assert not capabilities_for(role).can_reassign
        assert history_count(story_in_review) == 0

    def test_assigned_reviewer_cannot_hand_off(self, story_in_review, journalist, other_journalist):
        result = reassign(story_in_review, journalist, 'reviewer', other_journalist)
        assert isinstance(result.error, IllegalTransition)

    def test_reviewer_must_be_journalist(self, story_in_review, sub_editor, editor):
        result = reassign(story_in_review, sub_editor, 'reviewer', editor)

        assert isinstance(result.error, RoleMismatch)
        story_in_review.refresh_from_db()
        assert story_in_review.version == 1

    def test_approver_must_be_sub_editor_or_above(self, story_pending_approval, editor, other_journalist):
        result = reassign(story_pending_approval, editor, 'approver', other_journalist)
        assert isinstance(result.error, RoleMismatch)

    def test_reviewer_only_while_in_review(self, story_pending_approval, editor, other_journalist):
        result = reassign(story_pending_approval, editor, 'reviewer', other_journalist)
        assert isinstance(result.error, IllegalTransition)

    def test_draft_has_nothing_to_reassign(self, make_story, intern, sub_editor, journalist):
        story = make_story(intern)
        result = reassign(story, sub_editor, 'reviewer', journalist)
        assert isinstance(result.error, IllegalTransition)

    def test_assignee_required(self, story_in_review, sub_editor):
        result = reassign(story_in_review, sub_editor, 'reviewer', None)
        assert isinstance(result.error, MissingAssignment)

    def test_same_assignee_rejected(self, story_in_review, sub_editor, journalist):
        result = reassign(story_in_review, sub_editor, 'reviewer', journalist)

        assert isinstance(result.error, InvalidAssignee)
        assert history_count(story_in_review) == 0

    def test_author_cannot_approve_own_story(self, make_classified_story, editor, sub_editor):
        story = make_classified_story(
            sub_editor, status=StoryStatus.PENDING_APPROVAL, assigned_approver=editor,
        )
        result = reassign(story, editor, 'approver', sub_editor)
        assert isinstance(result.error, InvalidAssignee)

    def test_pinned_stale_version_rejected(self, story_in_review, sub_editor, other_journalist):
        result = reassign(story_in_review, sub_editor, 'reviewer', other_journalist, expected_version=7)
        assert isinstance(result.error, ConcurrentModification)


# ============================================================================
# Racing A Transition
# ============================================================================

class CompetingStore(DjangoEntityStore):
    """Lets ``competitor`` commit right after the first snapshot is read."""

    def __init__(self, competitor):
        self.competitor = competitor
        self.fired = False

    def load_entity(self, entity_type, entity_id):
        entity = super().load_entity(entity_type, entity_id)
        if not self.fired:
            self.fired = True
            self.competitor()
        return entity


@pytest.mark.django_db
class TestReassignmentRace:

    def test_loses_to_concurrent_approval(self, story_pending_approval, sub_editor, editor, make_user):
        replacement = make_user('SUB_EDITOR')

        def competitor():
            assert WorkflowEngine().request_transition(TransitionRequest(
                EntityType.STORY, story_pending_approval.pk, sub_editor.pk, 'APPROVED',
            )).ok

        engine = WorkflowEngine(store=CompetingStore(competitor))
        result = reassign(story_pending_approval, editor, 'approver', replacement, engine=engine)

        assert isinstance(result.error, ConcurrentModification)
        fresh = Story.objects.get(pk=story_pending_approval.pk)
        assert fresh.status == StoryStatus.APPROVED
        assert fresh.assigned_approver_id == sub_editor.pk
        assert [e.action for e in ledger.history_for(EntityType.STORY, fresh.pk)] == ['approve']

    def test_service_retry_sees_new_status(self, story_pending_approval, sub_editor, editor, make_user):
        replacement = make_user('SUB_EDITOR')

        def competitor():
            WorkflowEngine().request_transition(TransitionRequest(
                EntityType.STORY, story_pending_approval.pk, sub_editor.pk, 'APPROVED',
            ))

        engine = WorkflowEngine(store=CompetingStore(competitor))
        result = perform_reassignment(ReassignmentRequest(
            EntityType.STORY, story_pending_approval.pk, editor.pk, 'approver', replacement.pk,
        ), engine=engine)

        # The retry reloads an APPROVED story, where nothing can be reassigned
        assert isinstance(result.error, IllegalTransition)
        assert Story.objects.get(pk=story_pending_approval.pk).assigned_approver_id == sub_editor.pk


# ============================================================================
# API
# ============================================================================

def reassign_url(story):
    return f'/api/stories/{story.pk}/reassign/'


@pytest.mark.django_db
class TestReassignEndpoint:

    def test_reassign_reviewer(
        self, client_for, story_in_review, sub_editor, other_journalist, django_capture_on_commit_callbacks,
    ):
        with patch('apps.workflow.tasks.deliver_notification.apply_async') as deliver:
            with django_capture_on_commit_callbacks(execute=True):
                response = client_for(sub_editor).post(reassign_url(story_in_review), {
                    'assignment': 'reviewer',
                    'assignee_id': other_journalist.pk,
                    'comment': 'Covering for a sick colleague',
                }, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['story']['status'] == 'IN_REVIEW'
        assert body['story']['assigned_reviewer']['id'] == other_journalist.pk
        assert body['history'][0]['action'] == 'reassign'
        assert f'story:{story_in_review.pk}' in body['invalidates']
        assert deliver.call_args.kwargs['args'][0]['recipient_id'] == other_journalist.pk

    def test_journalist_forbidden(self, client_for, story_in_review, journalist, other_journalist):
        response = client_for(journalist).post(reassign_url(story_in_review), {
            'assignment': 'reviewer', 'assignee_id': other_journalist.pk,
        }, format='json')

        assert response.status_code == 403
        assert response.json()['error']['code'] == 'ILLEGAL_TRANSITION'

    def test_role_mismatch(self, client_for, story_in_review, sub_editor, editor):
        response = client_for(sub_editor).post(reassign_url(story_in_review), {
            'assignment': 'reviewer', 'assignee_id': editor.pk,
        }, format='json')

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'ROLE_MISMATCH'

    def test_unknown_assignment_kind(self, client_for, story_in_review, sub_editor, other_journalist):
        response = client_for(sub_editor).post(reassign_url(story_in_review), {
            'assignment': 'translator', 'assignee_id': other_journalist.pk,
        }, format='json')

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'

    def test_stale_version_conflict(self, client_for, story_in_review, sub_editor, other_journalist):
        response = client_for(sub_editor).post(reassign_url(story_in_review), {
            'assignment': 'reviewer', 'assignee_id': other_journalist.pk, 'expected_version': 9,
        }, format='json')

        assert response.status_code == 409
        assert response.json()['error']['code'] == 'CONCURRENT_MODIFICATION'

    def test_capability_advertised(self, client_for, sub_editor, journalist):
        assert client_for(sub_editor).get('/api/workflow/capabilities/').json()['can_reassign'] is True
        assert client_for(journalist).get('/api/workflow/capabilities/').json()['can_reassign'] is False
