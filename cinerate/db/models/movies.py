from typing import List, Optional

from sqlalchemy import Integer, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from cinerate.db.database_session import Base


class Movie(Base):
    """
    ORM model for 'movies' table.

    Columns
    -------
    genres, cast : list of str
        Ordered tags and names, stored as JSON arrays.
    average_rating : int
        Mean of all review ratings on the canonical 1-10 scale, 0 without reviews.
        Written by the RatingAggregator only.
    review_count : int
        Number of reviews. Written by the RatingAggregator only.
    external_rating : int, optional
        Imported vote average on the canonical scale. Independent of user reviews.
    """

    __tablename__ = "movies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    poster_path: Mapped[str] = mapped_column(String(2048), nullable=False)
    trailer_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    genres: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    cast: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    director: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    average_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    external_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self):
        return f"<Movie {self.title} ({self.year})>"
