"""
cinerate/services/ratings.py

Rating scale handling and the rating aggregator.

Canonical scale
---------------
Every rating inside the system is an integer between 1 and 10, where one unit is
half a star (1 == 0.5 stars, 10 == 5.0 stars). A movie's average rating uses the
same scale, 0 meaning "no reviews yet".

Older parts of the product used other representations. Each one has exactly one
conversion function here:

    stars (0.5 - 5.0, half steps)          stars_to_rating / rating_to_stars
    client storage 1-50 (stars * 10)       half_star_storage_to_rating
    vote average * 10 (84 == 8.4 of 10)    vote_average_to_rating

Rounding is always half away from zero, computed on exact fractions.
"""

import logging
from fractions import Fraction
from typing import Iterable, Optional, Union

from cinerate.db.models.movies import Movie
from cinerate.db.store import EntityStore


logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 10

Number = Union[int, float, Fraction]


def round_half_up(value: Number) -> int:
    '''
    Rounds to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3).
    Floats are converted through their decimal repr, so 4.35 * 2 style inputs do
    not suffer from binary noise.
    '''
    if isinstance(value, float):
        value = Fraction(repr(value))
    value = Fraction(value)
    sign = -1 if value < 0 else 1
    return sign * int(abs(value) + Fraction(1, 2))


def is_valid_rating(rating) -> bool:
    # bool is an int subclass, True must not count as a rating of 1
    return (
        isinstance(rating, int)
        and not isinstance(rating, bool)
        and MIN_RATING <= rating <= MAX_RATING
    )


def rating_to_stars(rating: int) -> float:
    return rating / 2


def stars_to_rating(stars: Number) -> int:
    '''
    Converts a star value (0.5 - 5.0 in half steps) to the canonical scale.

    Raises
    ------
    ValueError
        If the value is out of range or not a half step.
    '''
    doubled = Fraction(repr(stars)) * 2 if isinstance(stars, float) else Fraction(stars) * 2
    if doubled.denominator != 1 or not MIN_RATING <= doubled <= MAX_RATING:
        raise ValueError(f"{stars} is not a half-star value between 0.5 and 5.0.")
    return int(doubled)


def half_star_storage_to_rating(value: Number) -> int:
    '''
    Converts the legacy 1-50 client storage value (stars * 10) to the canonical
    scale, e.g. 5 -> 1, 25 -> 5, 50 -> 10.
    '''
    return min(MAX_RATING, max(MIN_RATING, round_half_up(Fraction(value) / 5)))


def vote_average_to_rating(value: Optional[Number]) -> Optional[int]:
    '''
    Converts an imported vote average stored as tenths (84 == 8.4 out of 10) to
    the canonical scale. None and 0 mean "no vote average".
    '''
    if not value:
        return None
    return min(MAX_RATING, max(0, round_half_up(Fraction(value) / 10)))


def mean_rating(ratings: Iterable[int]) -> int:
    '''
    Arithmetic mean of canonical ratings, rounded half up. 0 for no ratings.
    '''
    ratings = list(ratings)
    if not ratings:
        return 0
    return round_half_up(Fraction(sum(ratings), len(ratings)))


class RatingAggregator:
    '''
    Keeps a movie's average_rating and review_count in line with its reviews.
    The aggregate is always recomputed from scratch, never adjusted incrementally.
    '''

    def __init__(self, store: EntityStore):
        self._store = store

    def recompute_for_movie(self, movie_id: str) -> Optional[Movie]:
        '''
        Recomputes the aggregate of the given movie.

        Returns
        -------
        The updated movie, or None if the movie does not exist. A missing movie is
        not an error: this runs as a side effect of a review mutation that already
        succeeded.
        '''
        with self._store.lock:
            reviews = self._store.get_reviews_by_movie(movie_id)
            average = mean_rating(review.rating for review in reviews)
            movie = self._store.set_movie_aggregate(movie_id, average, len(reviews))

        if movie is None:
            logger.debug("Skipped rating aggregate for unknown movie %s.", movie_id)
        return movie
