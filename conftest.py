import os

# Cheap hashes and quiet logs for the test run, must be set before cinerate is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from cinerate.api.main import build_store, create_app
from cinerate.live.relay import LiveUpdateRelay
from cinerate.services.auth import AuthGate
from cinerate.services.ratings import RatingAggregator
from cinerate.services.reviews import ReviewService


MOVIE_DATA = {
    "title": "Fight Club",
    "description": "An insomniac office worker and a soap salesman start an underground club.",
    "poster_path": "/a26cQPRhJPX6GbWfQbvZdrrp9j9.jpg",
    "year": 1999,
    "duration": 139,
    "genres": ["Drama", "Thriller"],
    "cast": ["Brad Pitt", "Edward Norton"],
    "director": "David Fincher",
}


class RecordingSubscriber:
    """Collects delivered events instead of sending them anywhere."""

    def __init__(self):
        self.events = []

    def deliver(self, event):
        self.events.append(event)


@pytest.fixture
def make_subscriber():
    return RecordingSubscriber


@pytest.fixture
def store():
    return build_store("sqlite+pysqlite:///:memory:")


@pytest.fixture
def movie(store):
    return store.create_movie(MOVIE_DATA)


@pytest.fixture
def relay():
    return LiveUpdateRelay()


@pytest.fixture
def aggregator(store):
    return RatingAggregator(store)


@pytest.fixture
def review_service(store, aggregator, relay):
    return ReviewService(store, aggregator, relay)


@pytest.fixture
def auth_gate(store):
    return AuthGate(store)


@pytest.fixture
def make_user(store):
    def _make_user(username, email=None):
        return store.create_user(username, email or f"{username}@mail.com", "not-a-real-hash")
    return _make_user


@pytest.fixture
def app(store, relay):
    return create_app(store=store, relay=relay)


@pytest.fixture
def client(app):
    # Context manager -> lifespan runs (catalog seed) and all requests share one event loop
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    def _register(username, email=None, password="secret-pw"):
        response = client.post(
            "/api/auth/register",
            json={"username": username, "email": email or f"{username}@mail.com", "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['access_token']}"}
    return _register
