"""Shared fixtures: an in-memory stand-in for the asyncpg pool and API clients."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

class FakeTransaction:
    """Async context manager recording commits and rollbacks."""

    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.conn.commits += 1
        else:
            self.conn.rollbacks += 1
        return False

class FakeConnection:
    """Connection whose query methods are AsyncMocks tests can script."""

    def __init__(self):
        self.fetchrow = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])
        self.fetchval = AsyncMock(return_value=None)
        self.execute = AsyncMock(return_value='UPDATE 0')
        self.transactions = 0
        self.commits = 0
        self.rollbacks = 0

    def transaction(self):
        return FakeTransaction(self)

    def queries(self, method='execute'):
        """SQL text of every call made through one of the query methods."""
        return [call.args[0] for call in getattr(self, method).call_args_list]

class FakeAcquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, exc_type, exc, tb):
        return False

class FakePool:
    """Pool that always hands out the same FakeConnection."""

    def __init__(self, conn):
        self.conn = conn

    def acquire(self):
        return FakeAcquire(self.conn)

def make_user_row(**overrides):
    row = {
        'id': uuid.uuid4(),
        'name': 'Alex Chen',
        'email': 'alex@example.com',
        'image': None,
        'created_at': datetime(2024, 1, 1, tzinfo=timezone.utc)
    }
    row.update(overrides)
    return row

def make_listing_row(**overrides):
    now = datetime(2024, 1, 2, tzinfo=timezone.utc)
    row = {
        'id': uuid.uuid4(),
        'title': 'Abbey Road',
        'artist': 'The Beatles',
        'description': 'Original UK pressing',
        'type': 'VINYL',
        'condition': 'LIGHTLY_USED',
        'price': 89.99,
        'images': '["https://img.example/abbey.png"]',
        'image_url': 'https://img.example/abbey.png',
        'year': 1969,
        'genre': 'Rock',
        'label': 'Apple Records',
        'is_sold': False,
        'is_verified': False,
        'verified_by_official': False,
        'authenticity_score': None,
        'views': 0,
        'seller_id': uuid.uuid4(),
        'created_at': now,
        'updated_at': now
    }
    row.update(overrides)
    return row

@pytest.fixture
def conn():
    return FakeConnection()

@pytest.fixture
def pool(conn):
    return FakePool(conn)

@pytest.fixture
def user_id():
    return uuid.uuid4()

@pytest.fixture
def client():
    """TestClient for the app without running the startup database hook."""
    from api import app
    return TestClient(app, raise_server_exceptions=False)

@pytest.fixture
def auth_client(client, user_id):
    """TestClient where every request is authenticated as user_id."""
    from api import app
    from auth import get_current_user

    async def override_current_user():
        return user_id

    app.dependency_overrides[get_current_user] = override_current_user
    yield client
    app.dependency_overrides.pop(get_current_user, None)
