from fastapi import APIRouter, Depends

from cinerate.api.dependencies import get_store
from cinerate.api.schemas import AuthorResponse, ProfilePictureRequest, UserResponse
from cinerate.api.security import get_current_user_id
from cinerate.db.store import EntityStore
from cinerate.errors import NotFound


router = APIRouter(prefix="/api/users", tags=["users"])


@router.put("/me/profile-picture", response_model=UserResponse)
def set_profile_picture(
    payload: ProfilePictureRequest,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    """
    Records the url of an uploaded profile picture for the logged in user. The
    upload itself is handled elsewhere, only the url is stored.

    `Requires:` valid session
    """
    user = store.update_user(user_id, {"profile_picture": payload.profile_picture})
    if user is None:
        raise NotFound("User not found.")
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=AuthorResponse)
def get_user(user_id: str, store: EntityStore = Depends(get_store)):
    """
    Public profile of a user (no email, no credentials).
    """
    user = store.get_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found.")
    return AuthorResponse.model_validate(user)
