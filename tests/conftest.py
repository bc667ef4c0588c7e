import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('SECRET_KEY', 'test-secret-key-with-enough-length')
os.environ.setdefault('REMINDER_DISPATCH_ENABLED', 'false')

from app.core.exceptions import PersistenceFailure  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.database import SessionLocal, engine  # noqa: E402
from app.models import Base, User  # noqa: E402
from app.models.subscription import SubscriptionSnapshot  # noqa: E402

UTC = timezone.utc


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


class RecordingNotifications:
    """In-memory reminder scheduler that records every call into a shared event log."""

    def __init__(self, events):
        self.events = events
        self.handles = ['H2', 'H3', 'H4', 'H5']
        self.deny = False
        self.fail_cancel = False

    async def schedule(self, title, body, fire_at):
        self.events.append(('schedule', title, body, fire_at))
        if self.deny:
            return None
        return self.handles.pop(0)

    async def cancel(self, handle):
        self.events.append(('cancel', handle))
        if self.fail_cancel:
            raise RuntimeError('handle already consumed')


class RecordingStore:
    """Subscription store double; ``fail_on`` lists subscription ids whose writes fail."""

    def __init__(self, events):
        self.events = events
        self.fail_on = set()
        self.saved = {}

    async def create(self, snapshot):
        self.events.append(('create', snapshot))
        self._maybe_fail(snapshot)
        self.saved[snapshot.id] = snapshot
        return snapshot

    async def update(self, snapshot):
        self.events.append(('update', snapshot))
        self._maybe_fail(snapshot)
        self.saved[snapshot.id] = snapshot
        return snapshot

    async def delete(self, snapshot):
        self.events.append(('delete', snapshot))
        self.saved.pop(snapshot.id, None)

    def _maybe_fail(self, snapshot):
        if snapshot.id in self.fail_on:
            raise PersistenceFailure(f'write failed for {snapshot.id}')


@pytest.fixture
def events():
    return []


@pytest.fixture
def notifications(events):
    return RecordingNotifications(events)


@pytest.fixture
def store(events):
    return RecordingStore(events)


@pytest.fixture
def make_snapshot():
    def _make(**overrides):
        values = {
            'id': 'sub-1',
            'user_id': 'user-1',
            'name': 'Netflix',
            'billing_cycle': 'monthly',
            'start_date': utc(2024, 1, 1),
            'next_payment_date': utc(2024, 1, 1),
            'price': 15.99,
            'reminder_days_before': 1,
            'notification_id': 'H1',
        }
        values.update(overrides)
        return SubscriptionSnapshot(**values)

    return _make


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user(db_session):
    account = User(
        email='owner@example.com',
        password_hash=hash_password('correct-horse'),
        display_name='Owner',
        push_token='ExponentPushToken[test-device]',
        notifications_enabled=True,
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account
