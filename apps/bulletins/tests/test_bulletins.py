"""
Tests for bulletins.

Tests cover:
- Bulletin workflow (submit, review, revision, approval, publish)
- Ordered story list replacement
- Edit and delete rights
"""

from unittest.mock import patch

import pytest

from apps.bulletins.models import Bulletin, BulletinStory
from apps.bulletins.serializers import BulletinSerializer
from apps.bulletins.views import BulletinViewSet
from apps.workflow import ledger
from apps.workflow.engine import TransitionRequest, WorkflowEngine
from apps.workflow.errors import IllegalTransition, MissingAssignment, PreconditionFailed, RoleMismatch
from apps.workflow.transitions import BulletinStatus, EntityType


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def bulletin(db, journalist):
    return Bulletin.objects.create(title='Midday bulletin', intro='Good afternoon.', author=journalist)


@pytest.fixture
def bulletin_with_story(bulletin, make_story, journalist):
    story = make_story(journalist, status='APPROVED')
    BulletinStory.objects.create(bulletin=bulletin, story=story, order=1)
    return bulletin


def move(bulletin, actor, target, **kwargs):
    return WorkflowEngine().request_transition(TransitionRequest(
        entity_type=EntityType.BULLETIN,
        entity_id=bulletin.pk,
        actor_id=actor.pk,
        target_status=target,
        **kwargs,
    ))


# ============================================================================
# Workflow
# ============================================================================

@pytest.mark.django_db
class TestBulletinWorkflow:

    def test_submit_without_reviewer(self, bulletin_with_story, journalist):
        result = move(bulletin_with_story, journalist, 'IN_REVIEW')
        assert isinstance(result.error, MissingAssignment)

    def test_missing_reviewer_reported_before_empty_bulletin(self, bulletin, journalist):
        result = move(bulletin, journalist, 'IN_REVIEW')
        assert isinstance(result.error, MissingAssignment)

    def test_empty_bulletin_cannot_be_submitted(self, bulletin, journalist, sub_editor):
        result = move(bulletin, journalist, 'IN_REVIEW', assignee_id=sub_editor.pk)
        assert isinstance(result.error, PreconditionFailed)
        assert result.error.field == 'stories'

    def test_reviewer_must_be_sub_editor_or_above(self, bulletin_with_story, journalist, other_journalist):
        result = move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=other_journalist.pk)
        assert isinstance(result.error, RoleMismatch)

    def test_non_author_journalist_cannot_submit(self, bulletin_with_story, other_journalist, sub_editor):
        result = move(bulletin_with_story, other_journalist, 'IN_REVIEW', assignee_id=sub_editor.pk)
        assert isinstance(result.error, IllegalTransition)

    def test_full_lifecycle(self, bulletin_with_story, journalist, sub_editor, editor):
        submitted = move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=sub_editor.pk)
        assert submitted.ok, submitted.error
        assert submitted.entity.reviewer_id == sub_editor.pk

        revised = move(bulletin_with_story, sub_editor, 'NEEDS_REVISION', comment='Lead with the storm')
        assert revised.ok, revised.error
        assert revised.entity.reviewer_id is None

        resubmitted = move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=editor.pk)
        assert resubmitted.ok, resubmitted.error

        approved = move(bulletin_with_story, editor, 'APPROVED')
        assert approved.ok, approved.error
        assert [(e.type, e.recipient_id) for e in approved.effects] == [('approved', journalist.pk)]

        published = move(bulletin_with_story, editor, 'PUBLISHED')
        assert published.ok, published.error
        assert published.entity.publisher_id == editor.pk
        assert published.entity.published_at is not None
        assert set(published.invalidates) == {'bulletins', f'bulletin:{bulletin_with_story.pk}'}

        actions = [e.action for e in ledger.history_for(EntityType.BULLETIN, bulletin_with_story.pk)]
        assert actions == ['submit_for_review', 'request_revision', 'resubmit', 'approve', 'publish']
        assert published.entity.version == 6

    def test_publish_roles_configurable(self, bulletin, sub_editor, settings):
        settings.WORKFLOW_PUBLISH_ROLES = ['EDITOR', 'ADMIN', 'SUPERADMIN']
        Bulletin.objects.filter(pk=bulletin.pk).update(status=BulletinStatus.APPROVED)

        result = move(bulletin, sub_editor, 'PUBLISHED')

        assert isinstance(result.error, IllegalTransition)

    def test_emptied_bulletin_cannot_be_approved_or_published(self, bulletin_with_story, journalist, sub_editor, editor):
        assert move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=sub_editor.pk).ok
        BulletinStory.objects.filter(bulletin=bulletin_with_story).delete()

        approved = move(bulletin_with_story, sub_editor, 'APPROVED')
        assert isinstance(approved.error, PreconditionFailed)
        assert approved.error.field == 'stories'

        Bulletin.objects.filter(pk=bulletin_with_story.pk).update(status=BulletinStatus.APPROVED)
        published = move(bulletin_with_story, editor, 'PUBLISHED')
        assert isinstance(published.error, PreconditionFailed)
        assert published.error.field == 'stories'

        bulletin_with_story.refresh_from_db()
        assert bulletin_with_story.publisher_id is None
        assert bulletin_with_story.published_at is None


# ============================================================================
# API
# ============================================================================

@pytest.mark.django_db
class TestBulletinAPI:

    def test_create(self, client_for, journalist):
        response = client_for(journalist).post('/api/bulletins/', {
            'title': 'Evening bulletin',
            'intro': 'Good evening.',
        }, format='json')

        assert response.status_code == 201
        bulletin = Bulletin.objects.get(pk=response.json()['id'])
        assert bulletin.author == journalist
        assert bulletin.status == BulletinStatus.DRAFT

    def test_set_stories_in_order(self, client_for, bulletin, make_story, journalist):
        first, second = make_story(journalist, title='First'), make_story(journalist, title='Second')

        response = client_for(journalist).put(
            f'/api/bulletins/{bulletin.pk}/stories/',
            {'story_ids': [str(second.pk), str(first.pk)]},
            format='json',
        )

        assert response.status_code == 200
        stories = response.json()['stories']
        assert [s['title'] for s in stories] == ['Second', 'First']
        assert [s['order'] for s in stories] == [1, 2]

    def test_replacing_stories(self, client_for, bulletin_with_story, make_story, journalist):
        replacement = make_story(journalist, title='Replacement')

        response = client_for(journalist).put(
            f'/api/bulletins/{bulletin_with_story.pk}/stories/',
            {'story_ids': [str(replacement.pk)]},
            format='json',
        )

        assert response.status_code == 200
        assert list(bulletin_with_story.ordered_stories()) == [replacement]

    def test_duplicate_story_rejected(self, client_for, bulletin, make_story, journalist):
        story = make_story(journalist)
        response = client_for(journalist).put(
            f'/api/bulletins/{bulletin.pk}/stories/',
            {'story_ids': [str(story.pk), str(story.pk)]},
            format='json',
        )
        assert response.status_code == 400

    def test_unknown_story_rejected(self, client_for, bulletin, journalist):
        response = client_for(journalist).put(
            f'/api/bulletins/{bulletin.pk}/stories/',
            {'story_ids': ['6b1f1e9e-0000-4000-8000-000000000000']},
            format='json',
        )
        assert response.status_code == 400

    def test_non_author_cannot_edit(self, client_for, bulletin, other_journalist):
        response = client_for(other_journalist).patch(
            f'/api/bulletins/{bulletin.pk}/', {'title': 'Mine now'}, format='json',
        )
        assert response.status_code == 403
        assert response.json()['error']['code'] == 'PERMISSION_DENIED'

    def test_approved_bulletin_locked(self, client_for, bulletin, journalist):
        Bulletin.objects.filter(pk=bulletin.pk).update(status=BulletinStatus.APPROVED)
        response = client_for(journalist).patch(
            f'/api/bulletins/{bulletin.pk}/', {'title': 'Too late'}, format='json',
        )
        assert response.status_code == 403
        assert response.json()['error']['code'] == 'EDIT_LOCKED'

    def test_reviewer_edits_in_review(self, client_for, bulletin, sub_editor):
        Bulletin.objects.filter(pk=bulletin.pk).update(status=BulletinStatus.IN_REVIEW, reviewer=sub_editor)
        response = client_for(sub_editor).patch(
            f'/api/bulletins/{bulletin.pk}/', {'outro': 'That was the news.'}, format='json',
        )
        assert response.status_code == 200

    def test_transition_endpoint(self, client_for, bulletin_with_story, journalist, sub_editor):
        response = client_for(journalist).post(
            f'/api/bulletins/{bulletin_with_story.pk}/transition/',
            {'target_status': 'IN_REVIEW', 'assignee_id': sub_editor.pk},
            format='json',
        )

        assert response.status_code == 200
        body = response.json()
        assert body['bulletin']['status'] == 'IN_REVIEW'
        assert body['bulletin']['reviewer']['id'] == sub_editor.pk

    def test_transition_endpoint_missing_reviewer(self, client_for, bulletin_with_story, journalist):
        response = client_for(journalist).post(
            f'/api/bulletins/{bulletin_with_story.pk}/transition/',
            {'target_status': 'IN_REVIEW'},
            format='json',
        )

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'MISSING_ASSIGNMENT'

    def test_author_deletes_draft(self, client_for, bulletin, journalist):
        assert client_for(journalist).delete(f'/api/bulletins/{bulletin.pk}/').status_code == 204
        assert not Bulletin.objects.filter(pk=bulletin.pk).exists()

    def test_only_drafts_deleted(self, client_for, bulletin, editor):
        Bulletin.objects.filter(pk=bulletin.pk).update(status=BulletinStatus.PUBLISHED)
        assert client_for(editor).delete(f'/api/bulletins/{bulletin.pk}/').status_code == 403

    def test_list_counts_stories(self, client_for, bulletin_with_story, journalist):
        results = client_for(journalist).get('/api/bulletins/?mine=true').json()['results']
        assert results[0]['story_count'] == 1


# ============================================================================
# Edits Racing Transitions
# ============================================================================

@pytest.mark.django_db
class TestStaleBulletinEdits:
    """A content edit made from an out-of-date copy never rewrites workflow columns."""

    def test_serializer_writes_content_columns_only(self, bulletin_with_story, journalist, sub_editor):
        stale = Bulletin.objects.get(pk=bulletin_with_story.pk)
        assert move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=sub_editor.pk).ok

        serializer = BulletinSerializer(stale, data={'title': 'Typo fixed'}, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        fresh = Bulletin.objects.get(pk=bulletin_with_story.pk)
        assert fresh.title == 'Typo fixed'
        assert fresh.status == BulletinStatus.IN_REVIEW
        assert fresh.reviewer_id == sub_editor.pk
        assert fresh.version == 2

    def test_editor_patch_from_stale_copy(self, client_for, bulletin_with_story, journalist, sub_editor, editor):
        stale = Bulletin.objects.get(pk=bulletin_with_story.pk)
        assert move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=sub_editor.pk).ok

        with patch.object(BulletinViewSet, 'get_object', return_value=stale):
            response = client_for(editor).patch(
                f'/api/bulletins/{stale.pk}/', {'intro': 'Good evening.'}, format='json',
            )

        assert response.status_code == 200
        assert response.json()['status'] == 'IN_REVIEW'
        fresh = Bulletin.objects.get(pk=stale.pk)
        assert fresh.intro == 'Good evening.'
        assert fresh.status == BulletinStatus.IN_REVIEW
        assert fresh.reviewer_id == sub_editor.pk

    def test_author_locked_out_once_submitted(self, client_for, bulletin_with_story, journalist, sub_editor):
        stale = Bulletin.objects.get(pk=bulletin_with_story.pk)
        assert move(bulletin_with_story, journalist, 'IN_REVIEW', assignee_id=sub_editor.pk).ok

        with patch.object(BulletinViewSet, 'get_object', return_value=stale):
            response = client_for(journalist).patch(
                f'/api/bulletins/{stale.pk}/', {'title': 'Sneaky edit'}, format='json',
            )

        assert response.status_code == 403
        fresh = Bulletin.objects.get(pk=stale.pk)
        assert fresh.title == 'Midday bulletin'
        assert fresh.status == BulletinStatus.IN_REVIEW
