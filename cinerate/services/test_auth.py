from datetime import timedelta

import pytest

from cinerate.api.security import create_session_token
from cinerate.db.store import utcnow
from cinerate.errors import EmailTaken, InvalidCredentials, Unauthenticated, UsernameTaken
from cinerate.services.auth import AuthGate


def test_register_hashes_password_and_opens_session(auth_gate, store):
    user, token = auth_gate.register("alice", "a@x.com", "pw")

    stored = store.get_user_by_username("alice")
    assert stored.hashed_password != "pw"
    assert stored.hashed_password.startswith("$2")
    assert auth_gate.require_session(token) == user.id


def test_register_rejects_taken_username(auth_gate, store):
    auth_gate.register("alice", "a@x.com", "pw")

    with pytest.raises(UsernameTaken):
        auth_gate.register("alice", "b@y.com", "pw2")

    assert store.get_user_by_email("b@y.com") is None


def test_register_rejects_taken_email(auth_gate):
    auth_gate.register("alice", "a@x.com", "pw")

    with pytest.raises(EmailTaken):
        auth_gate.register("bob", "a@x.com", "pw2")


def test_usernames_are_case_sensitive(auth_gate):
    auth_gate.register("alice", "a@x.com", "pw")
    user, _ = auth_gate.register("Alice", "b@y.com", "pw")

    assert user.username == "Alice"


def test_login(auth_gate):
    registered, _ = auth_gate.register("alice", "a@x.com", "pw")

    user, token = auth_gate.login("alice", "pw")

    assert user.id == registered.id
    assert auth_gate.require_session(token) == registered.id


@pytest.mark.parametrize("username, password", [("alice", "wrong"), ("nobody", "pw")])
def test_login_failures_look_the_same(auth_gate, username, password):
    auth_gate.register("alice", "a@x.com", "pw")

    with pytest.raises(InvalidCredentials) as exc_info:
        auth_gate.login(username, password)

    assert exc_info.value.message == "Invalid credentials."


def test_logout_invalidates_session_and_is_idempotent(auth_gate):
    _, token = auth_gate.register("alice", "a@x.com", "pw")

    auth_gate.logout(token)
    auth_gate.logout(token)
    auth_gate.logout(None)
    auth_gate.logout("garbage")

    with pytest.raises(Unauthenticated):
        auth_gate.require_session(token)


def test_logout_only_ends_one_session(auth_gate):
    _, first = auth_gate.register("alice", "a@x.com", "pw")
    _, second = auth_gate.login("alice", "pw")

    auth_gate.logout(first)

    with pytest.raises(Unauthenticated):
        auth_gate.require_session(first)
    assert auth_gate.require_session(second)


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_require_session_rejects_bad_tokens(auth_gate, token):
    with pytest.raises(Unauthenticated):
        auth_gate.require_session(token)


def test_require_session_rejects_unknown_session(auth_gate, make_user):
    user = make_user("alice")
    token = create_session_token(user.id, "no-such-session", utcnow() + timedelta(hours=1))

    with pytest.raises(Unauthenticated):
        auth_gate.require_session(token)


def test_require_session_rejects_expired_session(store):
    gate = AuthGate(store, session_ttl=timedelta(seconds=-1))
    _, token = gate.register("alice", "a@x.com", "pw")

    with pytest.raises(Unauthenticated):
        gate.require_session(token)


def test_remember_me_extends_session(store):
    gate = AuthGate(store, session_ttl=timedelta(minutes=5), remember_me_ttl=timedelta(days=30))
    gate.register("alice", "a@x.com", "pw")

    assert gate.session_max_age() == 300
    assert gate.session_max_age(remember_me=True) == 30 * 24 * 3600


def test_current_user(auth_gate):
    user, token = auth_gate.register("alice", "a@x.com", "pw")

    assert auth_gate.current_user(token).username == "alice"
    assert auth_gate.current_user(token).id == user.id
