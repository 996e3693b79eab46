"""
Shared fixtures: a throwaway SQLite database per test, a controllable clock
and a notifier that records issued codes instead of sending them.
"""

from datetime import datetime, timedelta

import pytest

from allocator.core.db import Database
from allocator.models import EventStatus
from allocator.services.notifier import CodeNotifier
from allocator.services.repositories import SqlRepository
from allocator.utils.codes import generate_join_code
from allocator.utils.security import issue_admin_token


class FakeClock:
    """Returns a fixed time; optionally advances by ``tick`` on each call"""

    def __init__(self, start: datetime = datetime(2024, 6, 1, 9, 0, 0), tick: timedelta = timedelta(0)):
        self.now = start
        self.tick = tick

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.tick
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(CodeNotifier):
    def __init__(self):
        self.sent = []

    def send_code(self, recipient, code, expires_at):
        self.sent.append((recipient, code, expires_at))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def database(tmp_path):
    """Create test database"""
    db = Database(f"sqlite:///{tmp_path}/test_allocator.db")
    db.create_all()
    try:
        yield db
    finally:
        db.drop_all()
        db.dispose()


@pytest.fixture
def db_session(database):
    """Create test database session"""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(db_session):
    return SqlRepository(db_session)


@pytest.fixture
def clock():
    return FakeClock(tick=timedelta(seconds=1))


@pytest.fixture
def notifier():
    return RecordingNotifier()


def _make_event(repo, capacities=(1,), email_verification=False, status=EventStatus.OPEN.value, title="Workshop Sign-up"):
    _, digest = issue_admin_token()
    created_at = datetime(2024, 6, 1, 8, 0, 0)
    event, options = repo.create_event(
        title=title,
        description=None,
        join_code=_unique_code(repo),
        admin_token_hash=digest,
        email_verification=email_verification,
        created_at=created_at,
        expires_at=created_at + timedelta(days=30),
        options=[
            {"name": chr(ord("A") + i), "description": None, "capacity": cap}
            for i, cap in enumerate(capacities)
        ],
    )
    if status != EventStatus.OPEN.value:
        repo.update_event_status(event.id, EventStatus.OPEN.value, EventStatus.CLOSED.value)
    if status == EventStatus.ALLOCATED.value:
        repo.update_event_status(event.id, EventStatus.CLOSED.value, EventStatus.ALLOCATED.value)
    return repo.get_event(event.id), options


def _unique_code(repo):
    code = generate_join_code()
    while repo.get_event_by_join_code(code):
        code = generate_join_code()
    return code


@pytest.fixture
def make_event(repo):
    """Factory for events with one option per capacity, named A, B, C..."""
    def factory(capacities=(1,), email_verification=False, status=EventStatus.OPEN.value, title="Workshop Sign-up"):
        return _make_event(repo, capacities, email_verification, status, title)
    return factory
