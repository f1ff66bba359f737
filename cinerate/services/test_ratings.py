import pytest

from cinerate.services.ratings import (
    half_star_storage_to_rating,
    is_valid_rating,
    mean_rating,
    rating_to_stars,
    round_half_up,
    stars_to_rating,
    vote_average_to_rating,
)


@pytest.mark.parametrize("value, expected", [
    (2.5, 3), (3.5, 4), (2.4, 2), (-2.5, -3), (0, 0), (4.35 * 2, 9),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_mean_rating():
    assert mean_rating([]) == 0
    assert mean_rating([8]) == 8
    assert mean_rating([8, 4]) == 6
    # 7.5 rounds away from zero, unlike round()
    assert mean_rating([7, 8]) == 8
    assert mean_rating([1, 2, 2]) == 2


def test_is_valid_rating():
    assert is_valid_rating(1)
    assert is_valid_rating(10)
    assert not is_valid_rating(0)
    assert not is_valid_rating(11)
    assert not is_valid_rating(5.0)
    assert not is_valid_rating(True)
    assert not is_valid_rating("5")


def test_stars_round_trip():
    for rating in range(1, 11):
        assert stars_to_rating(rating_to_stars(rating)) == rating
    assert rating_to_stars(7) == 3.5


@pytest.mark.parametrize("stars", [0, 0.25, 5.5, 3.3])
def test_stars_to_rating_rejects_off_scale(stars):
    with pytest.raises(ValueError):
        stars_to_rating(stars)


def test_legacy_conversions():
    # 1-50 client storage (stars * 10)
    assert half_star_storage_to_rating(5) == 1
    assert half_star_storage_to_rating(25) == 5
    assert half_star_storage_to_rating(50) == 10
    # vote average in tenths
    assert vote_average_to_rating(84) == 8
    assert vote_average_to_rating(79) == 8
    assert vote_average_to_rating(75) == 8
    assert vote_average_to_rating(0) is None
    assert vote_average_to_rating(None) is None


def test_aggregator_without_reviews(aggregator, movie):
    updated = aggregator.recompute_for_movie(movie.id)

    assert updated.average_rating == 0
    assert updated.review_count == 0


def test_aggregator_is_idempotent(aggregator, store, movie, make_user):
    store.create_review(make_user("alice").id, movie.id, 7)
    store.create_review(make_user("bob").id, movie.id, 8)

    first = aggregator.recompute_for_movie(movie.id)
    second = aggregator.recompute_for_movie(movie.id)

    assert (first.average_rating, first.review_count) == (8, 2)
    assert (second.average_rating, second.review_count) == (8, 2)


def test_aggregator_ignores_unknown_movie(aggregator):
    assert aggregator.recompute_for_movie("missing") is None
