from datetime import timedelta

from cinerate.db.store import utcnow


def test_user_lookups(store):
    user = store.create_user("alice", "alice@mail.com", "hash")

    assert store.get_user_by_id(user.id).username == "alice"
    assert store.get_user_by_username("alice").id == user.id
    assert store.get_user_by_email("alice@mail.com").id == user.id


def test_user_lookups_return_none_when_absent(store):
    store.create_user("alice", "alice@mail.com", "hash")

    assert store.get_user_by_id("missing") is None
    assert store.get_user_by_email("bob@mail.com") is None
    # Usernames are case-sensitive
    assert store.get_user_by_username("Alice") is None


def test_create_user_assigns_fresh_ids(store):
    first = store.create_user("alice", "alice@mail.com", "hash")
    second = store.create_user("bob", "bob@mail.com", "hash")

    assert first.id != second.id
    assert first.profile_picture is None
    assert first.created_at is not None


def test_update_user_partial(store):
    user = store.create_user("alice", "alice@mail.com", "hash")

    updated = store.update_user(user.id, {"profile_picture": "/uploads/alice.png", "id": "hijack"})

    assert updated.id == user.id
    assert updated.profile_picture == "/uploads/alice.png"
    assert store.get_user_by_id(user.id).profile_picture == "/uploads/alice.png"
    assert store.update_user("missing", {"profile_picture": "x"}) is None


def test_create_movie_starts_without_aggregate(store):
    movie = store.create_movie({
        "title": "Joker",
        "description": "A failed comedian in Gotham City.",
        "poster_path": "/joker.jpg",
        "year": 2019,
        "genres": ["Crime", "Drama"],
        "cast": ["Joaquin Phoenix"],
        "average_rating": 84,
        "review_count": 12,
    })

    stored = store.get_movie_by_id(movie.id)
    assert stored.average_rating == 0
    assert stored.review_count == 0
    assert stored.genres == ["Crime", "Drama"]


def test_create_movie_keeps_given_id(store, movie):
    store.create_movie({**movie_data(movie), "title": "Avatar"}, movie_id="3")

    assert store.get_movie_by_id("3").title == "Avatar"
    assert store.get_movie_by_id("missing") is None


def movie_data(movie):
    return {
        "title": movie.title,
        "description": movie.description,
        "poster_path": movie.poster_path,
        "year": movie.year,
        "genres": movie.genres,
        "cast": movie.cast,
    }


def test_genre_match_is_case_insensitive_and_exact(store, movie):
    assert [m.id for m in store.get_movies_by_genre("drama")] == [movie.id]
    assert [m.id for m in store.get_movies_by_genre("THRILLER")] == [movie.id]
    # Exact tag match, no substring
    assert store.get_movies_by_genre("Dram") == []


def test_search_matches_any_field(store, movie):
    other = store.create_movie({
        "title": "Avatar",
        "description": "A marine on the moon Pandora.",
        "poster_path": "/avatar.jpg",
        "year": 2009,
        "genres": ["Sci-Fi"],
        "cast": ["Zoe Saldana"],
    })

    assert [m.id for m in store.search_movies("fight")] == [movie.id]
    assert [m.id for m in store.search_movies("PANDORA")] == [other.id]
    assert [m.id for m in store.search_movies("sci")] == [other.id]
    assert [m.id for m in store.search_movies("norton")] == [movie.id]
    assert store.search_movies("nothing like this") == []
    assert len(store.list_all_movies()) == 2


def test_review_queries(store, movie, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    first = store.create_review(alice.id, movie.id, 8, "Great")
    store.create_review(bob.id, movie.id, 4)

    assert store.get_review_by_id(first.id).review_text == "Great"
    assert [r.id for r in store.get_reviews_by_user(alice.id)] == [first.id]
    assert len(store.get_reviews_by_movie(movie.id)) == 2
    assert store.get_user_review_for_movie(alice.id, movie.id).id == first.id
    assert store.get_user_review_for_movie(alice.id, "other") is None


def test_review_misses_do_not_raise(store):
    assert store.get_review_by_id("missing") is None
    assert store.update_review("missing", {"rating": 5}) is None
    assert store.delete_review("missing") is False
    assert store.get_reviews_by_movie("missing") == []


def test_update_review_refreshes_updated_at(store, movie, make_user):
    alice = make_user("alice")
    review = store.create_review(alice.id, movie.id, 8)

    updated = store.update_review(review.id, {"rating": 6, "movie_id": "elsewhere"})

    assert updated.rating == 6
    assert updated.movie_id == movie.id
    assert updated.updated_at >= review.created_at
    assert store.get_review_by_id(review.id).rating == 6


def test_delete_review(store, movie, make_user):
    review = store.create_review(make_user("alice").id, movie.id, 8)

    assert store.delete_review(review.id) is True
    assert store.get_review_by_id(review.id) is None
    assert store.delete_review(review.id) is False


def test_set_movie_aggregate(store, movie):
    assert store.set_movie_aggregate(movie.id, 7, 3).average_rating == 7
    assert store.get_movie_by_id(movie.id).review_count == 3
    assert store.set_movie_aggregate("missing", 7, 3) is None


def test_sessions(store, make_user):
    user = make_user("alice")
    live = store.create_session(user.id, utcnow() + timedelta(hours=1))
    expired = store.create_session(user.id, utcnow() - timedelta(minutes=1))

    assert store.get_session(live.id).user_id == user.id
    assert store.purge_expired_sessions() == 1
    assert store.get_session(expired.id) is None

    assert store.delete_session(live.id) is True
    assert store.delete_session(live.id) is False
    assert store.get_session(live.id) is None
