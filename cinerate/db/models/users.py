from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from cinerate.db.database_session import Base


class User(Base):
    """
    Table definition for table called "users".
    """
    __tablename__ = "users"

    # uuid4 string, assigned by the store
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(
        String(50),
        index=True,         # Login looks users up by username
        nullable=False,     # Uniqueness is checked by the auth gate, not by the table
    )
    email: Mapped[str] = mapped_column(
        String(320),        # Max length of a valid email address
        index=True,
        nullable=False,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),        # bcrypt hash, never the raw password
        nullable=False,
    )
    # Url of the uploaded picture, the file itself is handled by the upload service
    profile_picture: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self):
        return f"<User {self.username}>"
