from typing import List

from fastapi import APIRouter, Depends, status

from cinerate.api.dependencies import get_review_service, get_store
from cinerate.api.schemas import MessageResponse, ReviewCreate, ReviewResponse, ReviewUpdate
from cinerate.api.security import get_current_user_id
from cinerate.db.store import EntityStore
from cinerate.errors import Forbidden, NotFound
from cinerate.services.reviews import ReviewService


router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.get("/user/{user_id}", response_model=List[ReviewResponse])
def get_user_reviews(user_id: str, store: EntityStore = Depends(get_store)):
    return [ReviewResponse.model_validate(r) for r in store.get_reviews_by_user(user_id)]


@router.get("/movie/{movie_id}", response_model=List[ReviewResponse])
def get_movie_reviews(movie_id: str, store: EntityStore = Depends(get_store)):
    return [ReviewResponse.model_validate(r) for r in store.get_reviews_by_movie(movie_id)]


@router.get("/user/{user_id}/movie/{movie_id}", response_model=ReviewResponse)
def get_user_review_for_movie(
    user_id: str,
    movie_id: str,
    store: EntityStore = Depends(get_store),
):
    review = store.get_user_review_for_movie(user_id, movie_id)
    if review is None:
        raise NotFound("Review not found.")
    return ReviewResponse.model_validate(review)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def submit_review(
    payload: ReviewCreate,
    user_id: str = Depends(get_current_user_id),
    reviews: ReviewService = Depends(get_review_service),
):
    """
    Submits the logged in user's review of a movie. Viewers of the movie page get
    the new review pushed over the live websocket.

    **Parameters**:\n
    `payload` (ReviewCreate): movie_id, rating (1-10) and optional review_text.
    A given user_id must be the logged in user.\n

    **Returns**:\n
    `ReviewResponse`(response_model): the stored review.

    `Requires:` valid session
    """
    if payload.user_id is not None and payload.user_id != user_id:
        raise Forbidden("Reviews can only be submitted for the logged in user.")

    review = reviews.submit_review(user_id, payload.movie_id, payload.rating, payload.review_text)
    return ReviewResponse.model_validate(review)


@router.put("/{review_id}", response_model=ReviewResponse)
def edit_review(
    review_id: str,
    payload: ReviewUpdate,
    user_id: str = Depends(get_current_user_id),
    reviews: ReviewService = Depends(get_review_service),
):
    """
    Changes rating and/or text of one of the logged in user's reviews. Fields left
    out of the body stay unchanged.

    `Requires:` valid session, author of the review
    """
    review = reviews.edit_review(review_id, user_id, payload.model_dump(exclude_unset=True))
    return ReviewResponse.model_validate(review)


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_review(
    review_id: str,
    user_id: str = Depends(get_current_user_id),
    reviews: ReviewService = Depends(get_review_service),
):
    """
    Deletes one of the logged in user's reviews.

    `Requires:` valid session, author of the review
    """
    if not reviews.remove_review(review_id, user_id):
        raise NotFound("Review not found.")
    return MessageResponse(message="Review deleted successfully.")
