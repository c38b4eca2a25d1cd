"""
Shared fixtures for the Quiz Arena test suite.

Server tests run against a throwaway SQLite file per test; engine tests use
an in-memory profile store and a manual scheduler so no real timers fire.
"""

import os
import random
import tempfile

import pytest

# Pin the app to SQLite before anything imports the database module
os.environ['DATABASE_URL'] = ''
os.environ.setdefault('DATABASE_PATH', os.path.join(tempfile.gettempdir(), 'quizarena-test.db'))
os.environ.setdefault('SECRET_KEY', 'test-secret-key')

import database  # noqa: E402
from app import app as flask_app  # noqa: E402
from match import ManualScheduler  # noqa: E402
from profile_store import ProfileStore, default_profile  # noqa: E402


# ============================================================================
# DATABASE & SERVER
# ============================================================================


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database with the full schema."""
    monkeypatch.setattr(database, 'DATABASE', str(tmp_path / 'quizarena.db'))
    database.init_db()
    return database


@pytest.fixture
def app(db):
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email, name, password='secret123'):
    response = client.post('/api/auth/register', json={
        'email': email,
        'password': password,
        'name': name,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['user']


@pytest.fixture
def make_player(app):
    """Factory: a logged-in test client plus the user it registered."""
    def _make(email, name):
        player_client = app.test_client()
        user = register(player_client, email, name)
        return player_client, user
    return _make


@pytest.fixture
def alice(make_player):
    return make_player('alice@example.com', 'Alice')


@pytest.fixture
def bob(make_player):
    return make_player('bob@example.com', 'Bob')


# ============================================================================
# ENGINE
# ============================================================================


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    """Profile store with no cache and no remote."""
    return ProfileStore(profile=default_profile())


@pytest.fixture
def rng():
    return random.Random(1234)
