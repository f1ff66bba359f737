from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from cinerate import config
from cinerate.api.dependencies import get_auth_gate
from cinerate.api.schemas import (
    LoginRequest,
    MessageResponse,
    SessionResponse,
    UserCreate,
    UserResponse,
)
from cinerate.api.security import get_session_token
from cinerate.services.auth import AuthGate


# Init route obj
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    response: Response,
    auth: AuthGate = Depends(get_auth_gate),
):
    """
    Creates a new user if username and email are still free and logs the user in.

    **Parameters**:\n
    `payload` (UserCreate): username, email and password.\n

    **Returns**:\n
    `SessionResponse`(response_model): the new user and its session token. The
    token is also set as HttpOnly cookie.
    """
    user, token = auth.register(payload.username, payload.email, payload.password)
    _set_session_cookie(response, token, auth.session_max_age())
    return SessionResponse(user=UserResponse.model_validate(user), access_token=token)


@router.post("/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    response: Response,
    auth: AuthGate = Depends(get_auth_gate),
):
    """
    Login endpoint. Returns the user and a session token if username and password
    are valid.

    **Returns**:\n
    `SessionResponse`(response_model):
    - `user` (UserResponse): the logged in user.\n
    - `access_token` (str): session token, also set as cookie.\n
    - `token_type` (str): "bearer".
    """
    user, token = auth.login(payload.username, payload.password, payload.remember_me)
    _set_session_cookie(response, token, auth.session_max_age(payload.remember_me))
    return SessionResponse(user=UserResponse.model_validate(user), access_token=token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    auth: AuthGate = Depends(get_auth_gate),
):
    """
    Ends the current session. Calling it without a valid session is not an error.
    """
    auth.logout(token)
    response.delete_cookie(key=config.SESSION_COOKIE_NAME)
    return MessageResponse(message="Logged out successfully.")


@router.get("/me", response_model=UserResponse)
def current_session(
    token: Optional[str] = Depends(get_session_token),
    auth: AuthGate = Depends(get_auth_gate),
):
    """
    Returns the user of the current session, 401 without a valid session.
    """
    return UserResponse.model_validate(auth.current_user(token))
