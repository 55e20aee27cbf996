"""
Shared fixtures: an app on a throwaway SQLite file, its client and a connection.
"""
import pytest
from sqlalchemy.exc import OperationalError

from ryob import create_app, users

# Slow hashes make the suite crawl; this one is still salted.
FAST_HASH = "pbkdf2:sha256:1000"
CSRF_TOKEN = "test-csrf-token"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "DATABASE_URL": f"sqlite:///{tmp_path / 'forum.db'}",
        "SECRET_KEY": "test-secret-key-for-testing-only",
        "PASSWORD_HASH_METHOD": FAST_HASH,
        "TOPICS_PER_PAGE": 3,
        "POSTS_PER_PAGE": 3,
    })
    yield app
    app.database.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def csrf(client):
    """Seed the session with a known CSRF token and return it."""
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF_TOKEN
    return CSRF_TOKEN


@pytest.fixture
def conn(app):
    with app.database.connect() as conn:
        yield conn


@pytest.fixture
def ada(conn):
    return users.register(conn, "Ada", "correcthorse", method=FAST_HASH)


@pytest.fixture
def grace(conn):
    return users.register(conn, "Grace", "batteryst4ple", method=FAST_HASH)


class FailingConnection:
    """Stands in for a connection whose every statement errors out."""

    def __init__(self):
        self.rolled_back = False

    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

    def rollback(self):
        self.rolled_back = True


@pytest.fixture
def failing_conn():
    return FailingConnection()
