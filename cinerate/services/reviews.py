import logging
from typing import Any, Mapping, Optional

from cinerate.db.models.reviews import Review
from cinerate.db.store import EntityStore, REVIEW_MUTABLE_FIELDS
from cinerate.errors import CineRateError, DuplicateReview, Forbidden, InvalidRating, NotFound
from cinerate.live.relay import LiveUpdateRelay
from cinerate.observability.metrics import REVIEW_OPERATIONS
from cinerate.services.ratings import RatingAggregator, is_valid_rating


logger = logging.getLogger(__name__)


def _validate_rating(rating: Any) -> None:
    if not is_valid_rating(rating):
        raise InvalidRating()


class ReviewService:
    '''
    Business rules around reviews: one review per user and movie, only the author
    may change or delete a review, ratings stay on the 1-10 scale. Every mutation
    recomputes the movie's rating aggregate once; new reviews are published to the
    live relay after they are stored.

    Check-then-write sequences run under the store lock, the relay is called after
    the lock is released.
    '''

    def __init__(
        self,
        store: EntityStore,
        aggregator: RatingAggregator,
        relay: Optional[LiveUpdateRelay] = None,
    ):
        self._store = store
        self._aggregator = aggregator
        self._relay = relay

    def submit_review(
        self,
        user_id: str,
        movie_id: str,
        rating: int,
        review_text: Optional[str] = None,
    ) -> Review:
        '''
        Stores a new review of the given movie by the given user.

        Raises
        ------
        NotFound
            The movie does not exist.
        DuplicateReview
            The user already reviewed this movie. The store is left untouched.
        InvalidRating
            The rating is not a whole number between 1 and 10.
        '''
        try:
            with self._store.lock:
                if self._store.get_movie_by_id(movie_id) is None:
                    raise NotFound("Movie not found.")
                if self._store.get_user_review_for_movie(user_id, movie_id) is not None:
                    raise DuplicateReview()
                _validate_rating(rating)

                review = self._store.create_review(user_id, movie_id, rating, review_text)
                self._aggregator.recompute_for_movie(movie_id)
        except CineRateError as exc:
            REVIEW_OPERATIONS.labels(operation="submit", result=exc.kind).inc()
            raise

        REVIEW_OPERATIONS.labels(operation="submit", result="success").inc()
        logger.info("User %s reviewed movie %s with rating %d.", user_id, movie_id, rating)

        if self._relay is not None:
            self._relay.publish_review_created(movie_id, review, self._store.get_user_by_id(user_id))
        return review

    def edit_review(self, review_id: str, caller_id: str, updates: Mapping[str, Any]) -> Review:
        '''
        Applies a partial update (rating and/or review_text) to a review owned by
        the caller.

        Raises
        ------
        NotFound
            The review does not exist.
        Forbidden
            The caller is not the author. The review is left untouched.
        InvalidRating
            A given rating is not a whole number between 1 and 10.
        '''
        changes = {field: value for field, value in updates.items() if field in REVIEW_MUTABLE_FIELDS}

        try:
            with self._store.lock:
                review = self._store.get_review_by_id(review_id)
                if review is None:
                    raise NotFound("Review not found.")
                if review.user_id != caller_id:
                    raise Forbidden("You can only edit your own reviews.")
                if "rating" in changes:
                    _validate_rating(changes["rating"])

                updated = self._store.update_review(review_id, changes)
                self._aggregator.recompute_for_movie(review.movie_id)
        except CineRateError as exc:
            REVIEW_OPERATIONS.labels(operation="edit", result=exc.kind).inc()
            raise

        REVIEW_OPERATIONS.labels(operation="edit", result="success").inc()
        logger.info("User %s edited review %s.", caller_id, review_id)
        return updated

    def remove_review(self, review_id: str, caller_id: str) -> bool:
        '''
        Deletes a review owned by the caller.

        Returns
        -------
        True if the review was deleted, False if it did not exist.

        Raises
        ------
        Forbidden
            The caller is not the author. The review is left untouched.
        '''
        try:
            with self._store.lock:
                review = self._store.get_review_by_id(review_id)
                if review is None:
                    REVIEW_OPERATIONS.labels(operation="remove", result="NotFound").inc()
                    return False
                if review.user_id != caller_id:
                    raise Forbidden("You can only delete your own reviews.")

                self._store.delete_review(review_id)
                self._aggregator.recompute_for_movie(review.movie_id)
        except CineRateError as exc:
            REVIEW_OPERATIONS.labels(operation="remove", result=exc.kind).inc()
            raise

        REVIEW_OPERATIONS.labels(operation="remove", result="success").inc()
        logger.info("User %s deleted review %s.", caller_id, review_id)
        return True
