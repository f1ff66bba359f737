from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cinerate.db.database_session import Base


class Review(Base):
    """
    ORM model for 'reviews' table.

    There is deliberately no unique constraint on (user_id, movie_id): the
    one-review-per-movie rule is enforced by the ReviewService before insert.
    """

    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    movie_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("movies.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    # Canonical scale: 1-10, one unit = half a star
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Review {self.id} user={self.user_id} movie={self.movie_id} rating={self.rating}>"
