"""
Shared pytest fixtures for Newsdesk.

Staff users come one per role; stories and bulletins are created directly
through the ORM in DRAFT so each test drives the workflow itself.
"""

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.workflow.roles import StaffRole


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    """Factory: make_user('JOURNALIST', username='jo')."""
    User = get_user_model()
    counter = {'n': 0}

    def _make_user(role=StaffRole.INTERN, username=None, is_active=True, email=None):
        counter['n'] += 1
        username = username or f"{str(role).lower()}{counter['n']}"
        user = User.objects.create_user(
            username=username,
            email=email if email is not None else f'{username}@newsdesk.test',
            password='secret-pass-123',
            is_active=is_active,
        )
        user.staff_profile.role = StaffRole(role)
        user.staff_profile.save()
        return user

    return _make_user


@pytest.fixture
def intern(make_user):
    return make_user(StaffRole.INTERN, username='intern')


@pytest.fixture
def journalist(make_user):
    return make_user(StaffRole.JOURNALIST, username='journalist')


@pytest.fixture
def other_journalist(make_user):
    return make_user(StaffRole.JOURNALIST, username='other_journalist')


@pytest.fixture
def sub_editor(make_user):
    return make_user(StaffRole.SUB_EDITOR, username='sub_editor')


@pytest.fixture
def editor(make_user):
    return make_user(StaffRole.EDITOR, username='editor')


@pytest.fixture
def admin_user(make_user):
    return make_user(StaffRole.ADMIN, username='admin')


@pytest.fixture
def make_story(db):
    from apps.stories.models import Story

    def _make_story(author, **fields):
        fields.setdefault('title', 'Council approves water budget')
        fields.setdefault('body', 'The council voted on Tuesday.')
        return Story.objects.create(author=author, **fields)

    return _make_story


@pytest.fixture
def taxonomy(db):
    """A category plus the LANGUAGE and RELIGION classifications approval needs."""
    from apps.stories.models import Category, Classification

    return {
        'category': Category.objects.create(name='News'),
        'english': Classification.objects.create(name='English', type=Classification.Type.LANGUAGE),
        'afrikaans': Classification.objects.create(name='Afrikaans', type=Classification.Type.LANGUAGE),
        'christian': Classification.objects.create(name='Christian', type=Classification.Type.RELIGION),
    }


@pytest.fixture
def make_classified_story(make_story, taxonomy):
    """A story that passes the approval gate."""

    def _make_classified_story(author, **fields):
        story = make_story(author, category=taxonomy['category'], **fields)
        story.classifications.set([taxonomy['english'], taxonomy['christian']])
        return story

    return _make_classified_story


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    """Authenticate the shared APIClient as ``user``."""

    def _client_for(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _client_for
