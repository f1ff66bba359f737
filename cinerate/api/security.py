from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyCookie, OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from cinerate import config


# Create configured hashing machine -> Hash pwd with this machine
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=config.BCRYPT_ROUNDS,
)

# The session token is accepted as bearer header or as cookie. auto_error=False,
# missing tokens are reported by the auth gate as Unauthenticated.
bearer_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)
cookie_scheme = APIKeyCookie(name=config.SESSION_COOKIE_NAME, auto_error=False)


def hash_password(pwd: str) -> str:
    '''
    Hashes the given password with the defined pwd_context manager (hashing machine).

    Parameters
    ----------
    pwd: str
        The password that will be hashed

    Returns
    -------
    The salted bcrypt hash of the password.
    '''
    return pwd_context.hash(pwd)


def verify_password(pwd: str, hashed_pwd: str) -> bool:
    '''
    Verifys if the given plain password corresponds to the given hashed pwd.

    Parameters
    ----------
    pwd: str
        Password in raw text.
    hashed_pwd: str
        Hashed password.

    Returns
    -------
    True if pwd and hashed password belong together, otherwise false.
    '''
    return pwd_context.verify(pwd, hashed_pwd)


def create_session_token(user_id: str, session_id: str, expires_at: datetime) -> str:
    '''
    Creates a signed JWT naming a server-side session.

    Parameters
    ----------
    user_id: str
        Owner of the session.
    session_id: str
        Id of the session row.
    expires_at: datetime
        Naive UTC expiry, same as the session row.

    Returns
    -------
    The encoded token.
    '''
    payload = {
        "sub": user_id,
        "sid": session_id,
        "exp": expires_at.replace(tzinfo=timezone.utc),
    }
    return jwt.encode(payload, config.SESSION_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Decodes a session token and checks its signature and expiry.

    Returns
    -------
    payload: dict
        The payload with keys sub, sid and exp.

    Raises
    ------
    JWTError
        If the token is malformed, badly signed, expired or misses a claim.
    """
    payload = jwt.decode(
        token=token,
        key=config.SESSION_SECRET,
        algorithms=[config.JWT_ALGORITHM],
    )

    if not payload.get("sub") or not payload.get("sid"):
        raise JWTError("Missing subject (sub) or session (sid) claim.")

    return payload


def get_session_token(
    bearer_token: Optional[str] = Security(bearer_scheme),
    cookie_token: Optional[str] = Security(cookie_scheme),
) -> Optional[str]:
    '''
    Returns the session token of the request. The Authorization header wins over
    the cookie.
    '''
    return bearer_token or cookie_token


def get_current_user_id(
    request: Request,
    token: Optional[str] = Depends(get_session_token),
) -> str:
    '''
    Gate for every mutating endpoint. Resolves the session token to the user id
    or raises Unauthenticated (-> 401) before the endpoint runs.
    '''
    return request.app.state.auth.require_session(token)
