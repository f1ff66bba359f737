import logging
import secrets
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import select, delete
from sqlalchemy.orm import Session, sessionmaker

from cinerate.db.models.users import User
from cinerate.db.models.movies import Movie
from cinerate.db.models.reviews import Review
from cinerate.db.models.sessions import UserSession


# Define logger for logging
logger = logging.getLogger(__name__)

# Fields a partial update may touch
USER_MUTABLE_FIELDS = ("username", "email", "hashed_password", "profile_picture")
REVIEW_MUTABLE_FIELDS = ("rating", "review_text")
MOVIE_FIELDS = (
    "title", "description", "poster_path", "trailer_url", "year",
    "duration", "genres", "cast", "director", "external_rating",
)


def utcnow() -> datetime:
    '''
    Naive UTC timestamp. SQLite drops tzinfo on the way back, so all stored
    timestamps are naive UTC to stay comparable.
    '''
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EntityStore:
    '''
    Data access for users, movies, reviews and sessions.

    Lookups return None, False or an empty list when nothing matches and never
    raise for a missing id. Business rules (uniqueness of usernames, one review per
    user and movie, ownership) live in the services, the store only reads and
    writes rows.

    Returned ORM objects are detached snapshots: mutating them does not write
    anything back.

    Every call takes ``lock``. The services hold the same (re-entrant) lock around
    their check-then-write sequences.
    '''

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self.lock = threading.RLock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self.lock:
            db = self._session_factory()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    # _____________________________________________________________________________________
    # Users
    # _____________________________________________________________________________________

    def create_user(self, username: str, email: str, hashed_password: str) -> User:
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            email=email,
            hashed_password=hashed_password,
            profile_picture=None,
            created_at=utcnow(),
        )
        with self._session() as db:
            db.add(user)
        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        with self._session() as db:
            return db.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as db:
            return db.scalars(select(User).where(User.username == username)).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._session() as db:
            return db.scalars(select(User).where(User.email == email)).first()

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        with self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            for field, value in changes.items():
                if field in USER_MUTABLE_FIELDS:
                    setattr(user, field, value)
            return user

    # _____________________________________________________________________________________
    # Movies
    # _____________________________________________________________________________________

    def create_movie(self, data: Mapping[str, Any], movie_id: Optional[str] = None) -> Movie:
        '''
        Inserts a movie. The derived rating fields always start at 0, whatever the
        given data says.
        '''
        fields = {k: v for k, v in data.items() if k in MOVIE_FIELDS}
        fields["genres"] = list(fields.get("genres") or [])
        fields["cast"] = list(fields.get("cast") or [])

        movie = Movie(
            id=movie_id or str(uuid.uuid4()),
            average_rating=0,
            review_count=0,
            **fields,
        )
        with self._session() as db:
            db.add(movie)
        return movie

    def get_movie_by_id(self, movie_id: str) -> Optional[Movie]:
        with self._session() as db:
            return db.get(Movie, movie_id)

    def list_all_movies(self) -> List[Movie]:
        with self._session() as db:
            return list(db.scalars(select(Movie)).all())

    def get_movies_by_genre(self, genre: str) -> List[Movie]:
        genre = genre.lower()
        return [
            movie for movie in self.list_all_movies()
            if any(tag.lower() == genre for tag in movie.genres)
        ]

    def search_movies(self, query: str) -> List[Movie]:
        query = query.lower()

        def matches(movie: Movie) -> bool:
            return (
                query in movie.title.lower()
                or query in movie.description.lower()
                or any(query in tag.lower() for tag in movie.genres)
                or any(query in name.lower() for name in movie.cast)
            )

        return [movie for movie in self.list_all_movies() if matches(movie)]

    def set_movie_aggregate(self, movie_id: str, average_rating: int, review_count: int) -> Optional[Movie]:
        with self._session() as db:
            movie = db.get(Movie, movie_id)
            if movie is None:
                return None
            movie.average_rating = average_rating
            movie.review_count = review_count
            return movie

    # _____________________________________________________________________________________
    # Reviews
    # _____________________________________________________________________________________

    def create_review(
        self,
        user_id: str,
        movie_id: str,
        rating: int,
        review_text: Optional[str] = None,
    ) -> Review:
        now = utcnow()
        review = Review(
            id=str(uuid.uuid4()),
            user_id=user_id,
            movie_id=movie_id,
            rating=rating,
            review_text=review_text,
            created_at=now,
            updated_at=now,
        )
        with self._session() as db:
            db.add(review)
        return review

    def get_review_by_id(self, review_id: str) -> Optional[Review]:
        with self._session() as db:
            return db.get(Review, review_id)

    def get_reviews_by_user(self, user_id: str) -> List[Review]:
        with self._session() as db:
            stmt = select(Review).where(Review.user_id == user_id).order_by(Review.created_at)
            return list(db.scalars(stmt).all())

    def get_reviews_by_movie(self, movie_id: str) -> List[Review]:
        with self._session() as db:
            stmt = select(Review).where(Review.movie_id == movie_id).order_by(Review.created_at)
            return list(db.scalars(stmt).all())

    def get_user_review_for_movie(self, user_id: str, movie_id: str) -> Optional[Review]:
        with self._session() as db:
            stmt = select(Review).where(Review.user_id == user_id, Review.movie_id == movie_id)
            return db.scalars(stmt).first()

    def update_review(self, review_id: str, changes: Mapping[str, Any]) -> Optional[Review]:
        with self._session() as db:
            review = db.get(Review, review_id)
            if review is None:
                return None
            for field, value in changes.items():
                if field in REVIEW_MUTABLE_FIELDS:
                    setattr(review, field, value)
            review.updated_at = utcnow()
            return review

    def delete_review(self, review_id: str) -> bool:
        with self._session() as db:
            review = db.get(Review, review_id)
            if review is None:
                return False
            db.delete(review)
            return True

    # _____________________________________________________________________________________
    # Sessions
    # _____________________________________________________________________________________

    def create_session(self, user_id: str, expires_at: datetime) -> UserSession:
        record = UserSession(
            id=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=utcnow(),
            expires_at=expires_at,
        )
        with self._session() as db:
            db.add(record)
        return record

    def get_session(self, session_id: str) -> Optional[UserSession]:
        with self._session() as db:
            return db.get(UserSession, session_id)

    def delete_session(self, session_id: str) -> bool:
        with self._session() as db:
            record = db.get(UserSession, session_id)
            if record is None:
                return False
            db.delete(record)
            return True

    def purge_expired_sessions(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        with self._session() as db:
            result = db.execute(delete(UserSession).where(UserSession.expires_at <= now))
            purged = result.rowcount or 0
        if purged:
            logger.info("Purged %d expired sessions.", purged)
        return purged

    def stats(self) -> Dict[str, int]:
        '''
        Row counts, used by the health endpoint.
        '''
        with self._session() as db:
            return {
                "users": len(db.scalars(select(User.id)).all()),
                "movies": len(db.scalars(select(Movie.id)).all()),
                "reviews": len(db.scalars(select(Review.id)).all()),
            }
