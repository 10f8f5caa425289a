"""
Tests for the workflow HTTP surface.

Tests cover:
- POST /api/stories/{id}/transition/ success and error envelopes
- GET /api/stories/{id}/transitions/
- GET /api/stories/{id}/history/
- GET /api/workflow/capabilities/
"""

import pytest

from apps.workflow.transitions import StoryStatus


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def draft_story(make_story, intern):
    return make_story(intern)


def transition_url(story):
    return f'/api/stories/{story.pk}/transition/'


# ============================================================================
# Transition Endpoint
# ============================================================================

@pytest.mark.django_db
class TestTransitionEndpoint:

    def test_submit_for_review(self, client_for, draft_story, intern, journalist):
        response = client_for(intern).post(
            transition_url(draft_story),
            {'target_status': 'in_review', 'assignee_id': journalist.pk},
            format='json',
        )

        assert response.status_code == 200
        body = response.json()
        assert body['story']['status'] == 'IN_REVIEW'
        assert body['story']['assigned_reviewer']['id'] == journalist.pk
        assert body['story']['version'] == 2
        assert len(body['history']) == 1
        assert body['history'][0]['action'] == 'submit_for_review'
        assert f'story:{draft_story.pk}' in body['invalidates']

    def test_illegal_transition(self, client_for, draft_story, intern):
        response = client_for(intern).post(
            transition_url(draft_story), {'target_status': 'PUBLISHED'}, format='json',
        )

        assert response.status_code == 403
        assert response.json()['error']['code'] == 'ILLEGAL_TRANSITION'
        draft_story.refresh_from_db()
        assert draft_story.status == StoryStatus.DRAFT

    def test_missing_assignment(self, client_for, draft_story, intern):
        response = client_for(intern).post(
            transition_url(draft_story), {'target_status': 'IN_REVIEW'}, format='json',
        )

        assert response.status_code == 400
        error = response.json()['error']
        assert error['code'] == 'MISSING_ASSIGNMENT'
        assert error['field'] == 'assignee_id'

    def test_role_mismatch(self, client_for, draft_story, intern, editor):
        response = client_for(intern).post(
            transition_url(draft_story),
            {'target_status': 'IN_REVIEW', 'assignee_id': editor.pk},
            format='json',
        )

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'ROLE_MISMATCH'

    def test_missing_comment(self, client_for, make_classified_story, journalist, sub_editor):
        story = make_classified_story(
            journalist, status=StoryStatus.PENDING_APPROVAL, assigned_approver=sub_editor,
        )
        response = client_for(sub_editor).post(
            transition_url(story), {'target_status': 'NEEDS_REVISION'}, format='json',
        )

        assert response.status_code == 400
        error = response.json()['error']
        assert error['code'] == 'MISSING_FIELD'
        assert error['field'] == 'comment'

    def test_precondition_failed(self, client_for, make_story, journalist, sub_editor):
        story = make_story(journalist, status=StoryStatus.PENDING_APPROVAL, assigned_approver=sub_editor)
        response = client_for(sub_editor).post(
            transition_url(story), {'target_status': 'APPROVED'}, format='json',
        )

        assert response.status_code == 422
        assert response.json()['error']['code'] == 'PRECONDITION_FAILED'

    def test_stale_expected_version(self, client_for, draft_story, intern, journalist):
        response = client_for(intern).post(
            transition_url(draft_story),
            {'target_status': 'IN_REVIEW', 'assignee_id': journalist.pk, 'expected_version': 3},
            format='json',
        )

        assert response.status_code == 409
        assert response.json()['error']['code'] == 'CONCURRENT_MODIFICATION'

    def test_target_status_required(self, client_for, draft_story, intern):
        response = client_for(intern).post(transition_url(draft_story), {}, format='json')

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'

    def test_unknown_story(self, client_for, intern):
        response = client_for(intern).post(
            '/api/stories/6b1f1e9e-0000-4000-8000-000000000000/transition/',
            {'target_status': 'IN_REVIEW'},
            format='json',
        )
        assert response.status_code == 404

    def test_requires_authentication(self, api_client, draft_story):
        response = api_client.post(transition_url(draft_story), {'target_status': 'IN_REVIEW'}, format='json')
        assert response.status_code == 401
        assert response.json()['error']['code'] == 'AUTHENTICATION_REQUIRED'

    def test_send_for_translation(self, client_for, make_classified_story, journalist, sub_editor, other_journalist):
        story = make_classified_story(journalist, status=StoryStatus.APPROVED)
        response = client_for(sub_editor).post(
            transition_url(story),
            {
                'target_status': 'PENDING_TRANSLATION',
                'translations': [{'language': 'afrikaans', 'translator_id': other_journalist.pk}],
            },
            format='json',
        )

        assert response.status_code == 200, response.json()
        translations = response.json()['story']['translations']
        assert len(translations) == 1
        assert translations[0]['language'] == 'AFRIKAANS'
        assert translations[0]['author_id'] == other_journalist.pk


# ============================================================================
# Available Transitions Endpoint
# ============================================================================

@pytest.mark.django_db
class TestTransitionsEndpoint:

    def test_author_sees_submit(self, client_for, draft_story, intern):
        response = client_for(intern).get(f'/api/stories/{draft_story.pk}/transitions/')

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'DRAFT'
        assert body['version'] == 1
        assert body['transitions'] == [{
            'target_status': 'IN_REVIEW',
            'action': 'submit_for_review',
            'assignment': 'reviewer',
            'assignee_roles': ['JOURNALIST'],
            'comment_required': False,
        }]

    def test_bystander_sees_nothing(self, client_for, draft_story, make_user):
        response = client_for(make_user('INTERN')).get(f'/api/stories/{draft_story.pk}/transitions/')
        assert response.json()['transitions'] == []


# ============================================================================
# History Endpoint
# ============================================================================

@pytest.mark.django_db
class TestHistoryEndpoint:

    def walk_to_review(self, client, story, journalist):
        response = client.post(
            transition_url(story),
            {'target_status': 'IN_REVIEW', 'assignee_id': journalist.pk},
            format='json',
        )
        assert response.status_code == 200

    def test_history_lists_entries(self, client_for, draft_story, intern, journalist):
        client = client_for(intern)
        self.walk_to_review(client, draft_story, journalist)

        response = client.get(f'/api/stories/{draft_story.pk}/history/')

        assert response.status_code == 200
        body = response.json()
        assert body['count'] == 1
        entry = body['results'][0]
        assert entry['sequence'] == 1
        assert entry['from_status'] == 'DRAFT'
        assert entry['to_status'] == 'IN_REVIEW'
        assert entry['actor_id'] == intern.pk
        assert entry['details']['request_id']

    def test_history_after(self, client_for, draft_story, intern, journalist):
        client = client_for(intern)
        self.walk_to_review(client, draft_story, journalist)

        response = client.get(f'/api/stories/{draft_story.pk}/history/?after=1')
        assert response.json()['count'] == 0

    def test_history_after_must_be_integer(self, client_for, draft_story, intern):
        response = client_for(intern).get(f'/api/stories/{draft_story.pk}/history/?after=abc')

        assert response.status_code == 400
        assert response.json()['error']['field'] == 'after'


# ============================================================================
# Capabilities Endpoint
# ============================================================================

@pytest.mark.django_db
class TestCapabilitiesEndpoint:

    def test_journalist_capabilities(self, client_for, journalist):
        response = client_for(journalist).get('/api/workflow/capabilities/')

        assert response.status_code == 200
        body = response.json()
        assert body['role'] == 'JOURNALIST'
        assert body['can_review'] is True
        assert body['can_approve'] is False

    def test_publish_follows_settings(self, client_for, sub_editor, settings):
        settings.WORKFLOW_PUBLISH_ROLES = ['EDITOR', 'ADMIN', 'SUPERADMIN']
        response = client_for(sub_editor).get('/api/workflow/capabilities/')
        assert response.json()['can_publish'] is False

    def test_anonymous_rejected(self, api_client, db):
        assert api_client.get('/api/workflow/capabilities/').status_code == 401
