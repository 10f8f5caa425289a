"""
Tests for JWT authentication and the current-user endpoints.

Tests cover:
- Login returns tokens plus the user's role
- GET/PATCH /api/auth/me/
- Logout blacklists the refresh token
- Role lookup and capability permissions
"""

from unittest.mock import MagicMock

import pytest
from django.contrib.auth.models import AnonymousUser

from apps.core.permissions import CapabilityPermission, ReadOnlyOrCapability, get_user_role
from apps.workflow.roles import StaffRole


def login(api_client, username, password='secret-pass-123'):
    return api_client.post('/api/auth/login/', {'username': username, 'password': password}, format='json')


# ============================================================================
# Login / Logout
# ============================================================================

@pytest.mark.django_db
class TestLogin:

    def test_login_returns_tokens_and_role(self, api_client, sub_editor):
        response = login(api_client, 'sub_editor')

        assert response.status_code == 200
        body = response.json()
        assert body['access']
        assert body['refresh']
        assert body['user']['username'] == 'sub_editor'
        assert body['user']['role'] == 'SUB_EDITOR'
        assert body['user']['profile']['role'] == 'SUB_EDITOR'

    def test_bad_password(self, api_client, journalist):
        response = login(api_client, 'journalist', password='wrong')

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'AUTHENTICATION_REQUIRED'

    def test_access_token_authenticates(self, api_client, journalist):
        access = login(api_client, 'journalist').json()['access']
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')

        response = api_client.get('/api/auth/me/')

        assert response.status_code == 200
        assert response.json()['role'] == 'JOURNALIST'

    def test_logout_blacklists_refresh(self, api_client, journalist):
        tokens = login(api_client, 'journalist').json()
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        assert api_client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json').status_code == 200

        api_client.credentials()
        refreshed = api_client.post('/api/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        assert refreshed.status_code == 401

    def test_logout_requires_refresh(self, client_for, journalist):
        response = client_for(journalist).post('/api/auth/logout/', {}, format='json')

        assert response.status_code == 400
        error = response.json()['error']
        assert error['code'] == 'MISSING_FIELD'
        assert error['field'] == 'refresh'

    def test_logout_rejects_garbage_token(self, client_for, journalist):
        response = client_for(journalist).post('/api/auth/logout/', {'refresh': 'nonsense'}, format='json')
        assert response.status_code == 400
        assert response.json()['error']['field'] == 'refresh'


# ============================================================================
# Current User
# ============================================================================

@pytest.mark.django_db
class TestCurrentUser:

    def test_get_me(self, client_for, editor):
        body = client_for(editor).get('/api/auth/me/').json()
        assert body['id'] == editor.pk
        assert body['role'] == 'EDITOR'

    def test_anonymous_rejected(self, api_client, db):
        response = api_client.get('/api/auth/me/')
        assert response.status_code == 401

    def test_patch_name_and_profile(self, client_for, journalist):
        response = client_for(journalist).patch('/api/auth/me/', {
            'first_name': 'Thandi',
            'profile': {'language': ' xhosa ', 'timezone': 'Africa/Johannesburg'},
        }, format='json')

        assert response.status_code == 200
        journalist.refresh_from_db()
        journalist.staff_profile.refresh_from_db()
        assert journalist.first_name == 'Thandi'
        assert journalist.staff_profile.language == 'XHOSA'
        assert journalist.staff_profile.timezone == 'Africa/Johannesburg'
        assert journalist.staff_profile.last_active_at is not None

    def test_role_cannot_be_self_assigned(self, client_for, journalist):
        client_for(journalist).patch('/api/auth/me/', {'profile': {'role': 'SUPERADMIN'}}, format='json')

        journalist.staff_profile.refresh_from_db()
        assert journalist.staff_profile.role == StaffRole.JOURNALIST

    def test_invalid_email(self, client_for, journalist):
        response = client_for(journalist).patch('/api/auth/me/', {'email': 'not-an-email'}, format='json')

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'


# ============================================================================
# Roles and Permissions
# ============================================================================

def view_for(action, required):
    view = MagicMock()
    view.action = action
    view.required_capabilities = required
    return view


@pytest.mark.django_db
class TestPermissions:

    def test_new_user_defaults_to_intern(self, django_user_model):
        user = django_user_model.objects.create_user(username='newbie', password='x')
        assert get_user_role(user) == StaffRole.INTERN

    def test_anonymous_has_no_role(self):
        assert get_user_role(AnonymousUser()) is None

    def test_unlisted_action_allowed(self, rf, journalist):
        request = rf.get('/')
        request.user = journalist
        assert CapabilityPermission().has_permission(request, view_for('list', {'create': 'can_create_tag'}))

    def test_capability_enforced(self, rf, journalist, sub_editor):
        request = rf.post('/')
        view = view_for('create', {'create': 'can_create_tag'})

        request.user = journalist
        assert not CapabilityPermission().has_permission(request, view)

        request.user = sub_editor
        assert CapabilityPermission().has_permission(request, view)

    def test_read_only_for_all_staff(self, rf, intern):
        request = rf.get('/')
        request.user = intern
        view = view_for('retrieve', {'retrieve': 'can_delete_tag'})
        assert ReadOnlyOrCapability().has_permission(request, view)

    def test_anonymous_denied(self, rf):
        request = rf.get('/')
        request.user = AnonymousUser()
        assert not ReadOnlyOrCapability().has_permission(request, view_for('list', {}))
