"""
Tests for announcements.

Tests cover:
- Creation rights and priority limits per role
- Visibility (active, unexpired, staff audiences) and priority ordering
- Per-user dismissal and undo
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.announcements.models import Announcement, AnnouncementDismissal


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def make_announcement(db, editor):
    def _make(title='Notice', **fields):
        fields.setdefault('message', 'Please read.')
        fields.setdefault('author', editor)
        return Announcement.objects.create(title=title, **fields)
    return _make


def titles(response):
    return [item['title'] for item in response.json()['results']]


# ============================================================================
# Create
# ============================================================================

@pytest.mark.django_db
class TestAnnouncementCreate:

    def test_journalist_cannot_create(self, client_for, journalist):
        response = client_for(journalist).post(
            '/api/announcements/', {'title': 'Hi', 'message': 'All'}, format='json',
        )
        assert response.status_code == 403

    def test_editor_creates_medium(self, client_for, editor):
        response = client_for(editor).post('/api/announcements/', {
            'title': 'Studio maintenance',
            'message': 'Studio B is closed on Friday.',
            'priority': 'MEDIUM',
        }, format='json')

        assert response.status_code == 201
        announcement = Announcement.objects.get(pk=response.json()['id'])
        assert announcement.author == editor
        assert announcement.target_audience == Announcement.Audience.NEWSROOM

    def test_editor_cannot_create_high(self, client_for, editor):
        response = client_for(editor).post('/api/announcements/', {
            'title': 'Evacuate',
            'message': 'Fire drill at noon.',
            'priority': 'HIGH',
        }, format='json')

        assert response.status_code == 403
        assert response.json()['error']['field'] == 'priority'
        assert not Announcement.objects.exists()

    def test_admin_creates_high(self, client_for, admin_user):
        response = client_for(admin_user).post('/api/announcements/', {
            'title': 'Evacuate',
            'message': 'Fire drill at noon.',
            'priority': 'HIGH',
        }, format='json')
        assert response.status_code == 201

    def test_priority_case_insensitive(self, client_for, editor):
        response = client_for(editor).post('/api/announcements/', {
            'title': 'Quiet week',
            'message': 'Nothing planned.',
            'priority': 'low',
            'target_audience': 'all',
        }, format='json')

        assert response.status_code == 201
        body = response.json()
        assert body['priority'] == 'LOW'
        assert body['target_audience'] == 'ALL'

    def test_editor_cannot_raise_to_high(self, client_for, editor, make_announcement):
        announcement = make_announcement()
        response = client_for(editor).patch(
            f'/api/announcements/{announcement.pk}/', {'priority': 'HIGH'}, format='json',
        )
        assert response.status_code == 403
        announcement.refresh_from_db()
        assert announcement.priority == Announcement.Priority.MEDIUM


# ============================================================================
# List
# ============================================================================

@pytest.mark.django_db
class TestAnnouncementList:

    def test_high_priority_first(self, client_for, journalist, make_announcement):
        make_announcement('Low', priority=Announcement.Priority.LOW)
        make_announcement('High', priority=Announcement.Priority.HIGH)
        make_announcement('Medium', priority=Announcement.Priority.MEDIUM)

        response = client_for(journalist).get('/api/announcements/')

        assert response.status_code == 200
        assert titles(response) == ['High', 'Medium', 'Low']

    def test_hidden_announcements(self, client_for, journalist, make_announcement):
        make_announcement('Current')
        make_announcement('Everyone', target_audience=Announcement.Audience.ALL)
        make_announcement('Expired', expires_at=timezone.now() - timedelta(hours=1))
        make_announcement('Withdrawn', is_active=False)
        make_announcement('Radio only', target_audience=Announcement.Audience.RADIO)

        response = client_for(journalist).get('/api/announcements/')

        assert sorted(titles(response)) == ['Current', 'Everyone']

    def test_future_expiry_visible(self, client_for, journalist, make_announcement):
        make_announcement('Soon', expires_at=timezone.now() + timedelta(days=1))
        assert titles(client_for(journalist).get('/api/announcements/')) == ['Soon']

    def test_all_for_managers_only(self, client_for, journalist, editor, make_announcement):
        make_announcement('Current')
        make_announcement('Withdrawn', is_active=False)

        assert len(titles(client_for(journalist).get('/api/announcements/?all=true'))) == 1
        assert len(titles(client_for(editor).get('/api/announcements/?all=true'))) == 2

    def test_dismissed_filter(self, client_for, journalist, make_announcement):
        seen = make_announcement('Seen')
        make_announcement('Unseen')
        AnnouncementDismissal.objects.create(announcement=seen, user=journalist)
        client = client_for(journalist)

        everything = client.get('/api/announcements/').json()['results']
        assert {item['title']: item['is_dismissed'] for item in everything} == {
            'Seen': True, 'Unseen': False,
        }
        assert titles(client.get('/api/announcements/?dismissed=false')) == ['Unseen']

    def test_dismissal_is_per_user(self, client_for, journalist, other_journalist, make_announcement):
        seen = make_announcement('Seen')
        AnnouncementDismissal.objects.create(announcement=seen, user=journalist)

        response = client_for(other_journalist).get('/api/announcements/?dismissed=false')

        assert titles(response) == ['Seen']


# ============================================================================
# Dismiss
# ============================================================================

@pytest.mark.django_db
class TestDismiss:

    def test_dismiss_once(self, client_for, journalist, make_announcement):
        announcement = make_announcement()
        client = client_for(journalist)
        url = f'/api/announcements/{announcement.pk}/dismiss/'

        first = client.post(url)
        assert first.status_code == 201
        assert first.json()['announcement_id'] == str(announcement.pk)

        second = client.post(url)
        assert second.status_code == 409
        assert second.json()['error']['code'] == 'ALREADY_EXISTS'
        assert AnnouncementDismissal.objects.filter(user=journalist).count() == 1

    def test_undo_dismissal(self, client_for, journalist, make_announcement):
        announcement = make_announcement()
        AnnouncementDismissal.objects.create(announcement=announcement, user=journalist)
        client = client_for(journalist)
        url = f'/api/announcements/{announcement.pk}/dismiss/'

        assert client.delete(url).status_code == 204
        assert not AnnouncementDismissal.objects.exists()

        missing = client.delete(url)
        assert missing.status_code == 404
        assert missing.json()['error']['code'] == 'NOT_FOUND'

    def test_expired_announcement_not_found(self, client_for, journalist, make_announcement):
        announcement = make_announcement(expires_at=timezone.now() - timedelta(minutes=5))
        response = client_for(journalist).post(f'/api/announcements/{announcement.pk}/dismiss/')
        assert response.status_code == 404
