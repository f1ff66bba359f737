from fastapi import Request

from cinerate.db.store import EntityStore
from cinerate.live.relay import LiveUpdateRelay
from cinerate.services.auth import AuthGate
from cinerate.services.reviews import ReviewService


# The collaborators are built once in create_app() and live on app.state

def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.reviews


def get_relay(request: Request) -> LiveUpdateRelay:
    return request.app.state.relay
