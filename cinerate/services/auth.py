import logging
from datetime import timedelta
from typing import Optional, Tuple

from jose import JWTError

from cinerate import config
from cinerate.api.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from cinerate.db.models.users import User
from cinerate.db.store import EntityStore, utcnow
from cinerate.errors import (
    CineRateError,
    EmailTaken,
    InvalidCredentials,
    Unauthenticated,
    UsernameTaken,
)
from cinerate.observability.metrics import AUTH_REQUESTS


logger = logging.getLogger(__name__)


class AuthGate:
    '''
    Establishes, validates and invalidates sessions.

    A session is a row in the store; the caller gets a signed token naming that
    row. Password hashing is slow on purpose and never runs while the store lock
    is held.
    '''

    def __init__(
        self,
        store: EntityStore,
        session_ttl: timedelta = timedelta(minutes=config.SESSION_TTL_MIN),
        remember_me_ttl: timedelta = timedelta(days=config.REMEMBER_ME_TTL_DAYS),
    ):
        self._store = store
        self._session_ttl = session_ttl
        self._remember_me_ttl = remember_me_ttl

    def _check_available(self, username: str, email: str) -> None:
        if self._store.get_user_by_username(username) is not None:
            raise UsernameTaken()
        if self._store.get_user_by_email(email) is not None:
            raise EmailTaken()

    def _establish_session(self, user: User, remember_me: bool = False) -> str:
        ttl = self._remember_me_ttl if remember_me else self._session_ttl
        record = self._store.create_session(user.id, utcnow() + ttl)
        return create_session_token(user.id, record.id, record.expires_at)

    def register(
        self,
        username: str,
        email: str,
        raw_password: str,
        remember_me: bool = False,
    ) -> Tuple[User, str]:
        '''
        Creates a user and logs it in.

        Returns
        -------
        (user, token): the new user and its session token.

        Raises
        ------
        UsernameTaken, EmailTaken
            Username or email already belong to a user (exact match). Nothing is
            stored in that case.
        '''
        try:
            # Fail fast before paying for the hash
            self._check_available(username, email)
            hashed = hash_password(raw_password)

            # Check again: another request may have taken the name while hashing
            with self._store.lock:
                self._check_available(username, email)
                user = self._store.create_user(username, email, hashed)
        except CineRateError as exc:
            AUTH_REQUESTS.labels(action="register", result=exc.kind).inc()
            raise

        AUTH_REQUESTS.labels(action="register", result="success").inc()
        logger.info("Registered user %s (%s).", user.username, user.id)
        return user, self._establish_session(user, remember_me)

    def login(self, username: str, raw_password: str, remember_me: bool = False) -> Tuple[User, str]:
        '''
        Checks the credentials and opens a new session.

        Raises
        ------
        InvalidCredentials
            Unknown user or wrong password. Both cases look the same to the caller
            so the endpoint does not reveal which usernames exist.
        '''
        user = self._store.get_user_by_username(username)
        if user is None or not verify_password(raw_password, user.hashed_password):
            AUTH_REQUESTS.labels(action="login", result=InvalidCredentials.kind).inc()
            logger.info("Failed login attempt for username %r.", username)
            raise InvalidCredentials()

        AUTH_REQUESTS.labels(action="login", result="success").inc()
        return user, self._establish_session(user, remember_me)

    def logout(self, token: Optional[str]) -> None:
        '''
        Invalidates the session named by the token. Missing, malformed, expired
        or already invalidated tokens are fine.
        '''
        AUTH_REQUESTS.labels(action="logout", result="success").inc()
        if not token:
            return
        try:
            payload = decode_session_token(token)
        except JWTError:
            # Expired or forged tokens cannot name a live session
            return
        if self._store.delete_session(payload["sid"]):
            logger.info("User %s logged out.", payload["sub"])

    def require_session(self, token: Optional[str]) -> str:
        '''
        Resolves a session token to the id of its user.

        Raises
        ------
        Unauthenticated
            No token, bad token, unknown or expired session, or the user is gone.
        '''
        if not token:
            raise Unauthenticated()
        try:
            payload = decode_session_token(token)
        except JWTError:
            raise Unauthenticated("Invalid or expired session.")

        record = self._store.get_session(payload["sid"])
        if record is None or record.user_id != payload["sub"]:
            raise Unauthenticated("Invalid or expired session.")
        if record.expires_at <= utcnow():
            self._store.delete_session(record.id)
            raise Unauthenticated("Invalid or expired session.")
        if self._store.get_user_by_id(record.user_id) is None:
            raise Unauthenticated("User not found.")

        return record.user_id

    def current_user(self, token: Optional[str]) -> User:
        user = self._store.get_user_by_id(self.require_session(token))
        if user is None:
            raise Unauthenticated("User not found.")
        return user

    def session_max_age(self, remember_me: bool = False) -> int:
        '''Cookie max-age in seconds, matching the session row.'''
        ttl = self._remember_me_ttl if remember_me else self._session_ttl
        return int(ttl.total_seconds())
