from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_clock
from app.config import settings
from app.core.clock import FixedClock
from app.core.exceptions import PersistenceFailure
from app.core.security import create_access_token
from app.database import get_db
from app.main import app
from app.models import ScheduledReminder
from app.services.subscription_repository import SubscriptionRepository

UTC = timezone.utc


def parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 10, 12, tzinfo=UTC))


@pytest.fixture
def client(db_session, clock):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    return {'Authorization': f'Bearer {create_access_token(user.id)}'}


def _create(client, headers, **overrides):
    payload = {
        'name': 'Netflix',
        'price': 15.99,
        'billing_cycle': 'monthly',
        'category': 'Streaming',
        'start_date': '2025-01-31T00:00:00Z',
        'reminder_days_before': 2,
    }
    payload.update(overrides)
    response = client.post('/api/v1/subscriptions/', json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_register_login_and_me(client):
    response = client.post(
        '/api/v1/auth/register',
        json={'email': ' New@Example.com ', 'password': 'long-enough', 'display_name': 'New User'},
    )
    assert response.status_code == 201
    assert response.json()['user']['email'] == 'new@example.com'

    duplicate = client.post(
        '/api/v1/auth/register',
        json={'email': 'new@example.com', 'password': 'long-enough', 'display_name': 'Again'},
    )
    assert duplicate.status_code == 409

    bad = client.post('/api/v1/auth/login', json={'email': 'new@example.com', 'password': 'wrong-pass'})
    assert bad.status_code == 401

    login = client.post('/api/v1/auth/login', json={'email': 'new@example.com', 'password': 'long-enough'})
    assert login.status_code == 200
    token = login.json()['access_token']

    me = client.get('/api/v1/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.json()['display_name'] == 'New User'


def test_requests_without_token_are_rejected(client):
    assert client.get('/api/v1/subscriptions/').status_code == 401


def test_profile_update_registers_push_token(client, auth_headers, db_session, user):
    response = client.patch(
        '/api/v1/auth/profile',
        json={'push_token': 'ExponentPushToken[new]', 'notifications_enabled': False},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()['notifications_enabled'] is False
    db_session.refresh(user)
    assert user.push_token == 'ExponentPushToken[new]'


def test_create_rolls_first_payment_forward_and_schedules_reminder(client, auth_headers, db_session):
    body = _create(client, auth_headers)

    assert parse(body['next_payment_date']) == datetime(2025, 3, 28, tzinfo=UTC)
    assert body['days_until_payment'] == 18
    assert body['icon_key'] == 'netflix'
    reminder = db_session.query(ScheduledReminder).filter(
        ScheduledReminder.id == body['notification_id']
    ).one()
    assert reminder.status == 'scheduled'
    assert reminder.title == 'Netflix renewal soon'


def test_invalid_cycle_is_rejected(client, auth_headers):
    response = client.post(
        '/api/v1/subscriptions/',
        json={'name': 'X', 'price': 1, 'billing_cycle': 'fortnightly'},
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_listing_resyncs_stale_subscriptions(client, auth_headers, clock, db_session):
    created = _create(client, auth_headers)
    clock.instant = datetime(2025, 6, 1, tzinfo=UTC)

    listed = client.get('/api/v1/subscriptions/', headers=auth_headers).json()

    assert len(listed) == 1
    assert parse(listed[0]['next_payment_date']) == datetime(2025, 6, 28, tzinfo=UTC)
    assert listed[0]['notification_id'] != created['notification_id']
    statuses = {r.id: r.status for r in db_session.query(ScheduledReminder).all()}
    assert statuses[created['notification_id']] == 'cancelled'
    assert statuses[listed[0]['notification_id']] == 'scheduled'

    again = client.get('/api/v1/subscriptions/', headers=auth_headers).json()
    assert again[0]['notification_id'] == listed[0]['notification_id']


def test_listing_sorts(client, auth_headers):
    _create(client, auth_headers, name='Cheap', price=1.0, start_date='2025-03-01T00:00:00Z')
    _create(client, auth_headers, name='Pricey', price=50.0, start_date='2024-12-20T00:00:00Z')

    by_price = client.get('/api/v1/subscriptions/?sort_by=price', headers=auth_headers).json()
    assert [s['name'] for s in by_price] == ['Pricey', 'Cheap']
    by_start = client.get('/api/v1/subscriptions/?sort_by=start_date', headers=auth_headers).json()
    assert [s['name'] for s in by_start] == ['Pricey', 'Cheap']
    by_next = client.get('/api/v1/subscriptions/', headers=auth_headers).json()
    assert [s['name'] for s in by_next] == ['Pricey', 'Cheap']


def test_update_rearms_reminder(client, auth_headers, db_session):
    created = _create(client, auth_headers)
    response = client.put(
        f"/api/v1/subscriptions/{created['id']}",
        json={'name': 'Netflix', 'price': 17.99, 'billing_cycle': 'weekly',
              'start_date': '2025-03-01T00:00:00Z', 'reminder_days_before': 1},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body['price'] == pytest.approx(17.99)
    assert parse(body['next_payment_date']) == datetime(2025, 3, 15, tzinfo=UTC)
    old = db_session.query(ScheduledReminder).filter(
        ScheduledReminder.id == created['notification_id']
    ).one()
    assert old.status == 'cancelled'


def test_partial_update_keeps_omitted_fields(client, auth_headers):
    created = _create(client, auth_headers, category='Entertainment', currency='EUR', notes='family plan')
    response = client.put(
        f"/api/v1/subscriptions/{created['id']}",
        json={'name': 'Netflix', 'price': 12},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body['price'] == pytest.approx(12.0)
    assert body['category'] == 'Entertainment'
    assert body['currency'] == 'EUR'
    assert body['notes'] == 'family plan'
    assert body['reminder_days_before'] == 2


def test_create_fills_defaults(client, auth_headers):
    body = _create(client, auth_headers, category=None)
    assert body['category'] == 'Other'
    assert body['currency'] == 'USD'
    assert body['notes'] == ''


def test_persistence_failure_compensates_and_returns_503(client, auth_headers, clock, db_session, monkeypatch):
    _create(client, auth_headers)
    clock.instant = datetime(2025, 6, 1, tzinfo=UTC)

    async def failing_update(self, snapshot):
        raise PersistenceFailure('database unavailable')

    monkeypatch.setattr(SubscriptionRepository, 'update', failing_update)
    response = client.get('/api/v1/subscriptions/', headers=auth_headers)

    assert response.status_code == 503
    statuses = [r.status for r in db_session.query(ScheduledReminder).all()]
    assert statuses and 'scheduled' not in statuses


def test_delete_cancels_reminder(client, auth_headers, db_session):
    created = _create(client, auth_headers)
    response = client.delete(f"/api/v1/subscriptions/{created['id']}", headers=auth_headers)
    assert response.status_code == 204
    assert client.get(f"/api/v1/subscriptions/{created['id']}", headers=auth_headers).status_code == 404
    reminder = db_session.query(ScheduledReminder).filter(
        ScheduledReminder.id == created['notification_id']
    ).one()
    assert reminder.status == 'cancelled'


def test_unknown_subscription_is_404(client, auth_headers):
    assert client.get('/api/v1/subscriptions/nope', headers=auth_headers).status_code == 404
    assert client.delete('/api/v1/subscriptions/nope', headers=auth_headers).status_code == 404


def test_analytics_summary(client, auth_headers):
    _create(client, auth_headers, name='Spotify', price=120.0, billing_cycle='yearly', category='Music')
    _create(client, auth_headers, price=15.0)

    summary = client.get('/api/v1/analytics/summary', headers=auth_headers).json()
    assert summary['total_monthly'] == pytest.approx(25.0)
    assert summary['highest']['name'] == 'Netflix'
    assert [c['category'] for c in summary['categories']] == ['Streaming', 'Music']


def test_health(client):
    response = client.get('/api/v1/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'


def test_each_lifespan_gets_its_own_dispatcher(db_session, monkeypatch):
    monkeypatch.setattr(settings, 'reminder_dispatch_enabled', True)
    dispatchers = []
    for _ in range(2):
        with TestClient(app):
            dispatchers.append(app.state.reminder_dispatcher)
        assert dispatchers[-1]._task.done()
    assert dispatchers[0] is not dispatchers[1]
