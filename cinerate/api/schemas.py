from datetime import datetime
from typing import List, Literal, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from cinerate.services.ratings import MIN_RATING, MAX_RATING, rating_to_stars


# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def check_password_length(password: str) -> str:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long.")
    return password


#___________________________________________________________________________________________________
# Request schemas
#___________________________________________________________________________________________________

class UserCreate(BaseModel):
    """Request model used when registering a new user.

    Fields:
    - username: unique, case-sensitive user name
    - email: user's email address, stored exactly as sent
    - password: plain-text password (will be hashed before storage)
    """
    username: str = Field(..., min_length=1, max_length=50, description="Unique user name")
    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="Plain-text password (will be hashed)")

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, value: str) -> str:
        # Validate only, the normalized form would break exact-match lookups
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return check_password_length(value)


class LoginRequest(BaseModel):
    """Request model for the login endpoint."""
    username: str = Field(..., min_length=1, description="User name")
    password: str = Field(..., min_length=1, description="Plain-text password")
    remember_me: bool = Field(False, description="Keep the session alive for days instead of hours")

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return check_password_length(value)


class ReviewCreate(BaseModel):
    """Request model for submitting a review.

    Fields:
    - user_id: optional, must match the logged in user when given
    - movie_id: the reviewed movie
    - rating: 1-10, one unit is half a star
    - review_text: optional free text
    """
    user_id: Optional[str] = Field(None, description="Author id, defaults to the logged in user")
    movie_id: str = Field(..., description="ID of the reviewed movie")
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, description="Rating, 1-10 (half stars)")
    review_text: Optional[str] = Field(None, description="Optional review text")


class ReviewUpdate(BaseModel):
    """Request model for editing a review. Only the given fields change."""
    rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING, description="New rating, 1-10")
    review_text: Optional[str] = Field(None, description="New review text")


class ProfilePictureRequest(BaseModel):
    """Url of an already uploaded profile picture."""
    profile_picture: str = Field(..., min_length=1, max_length=2048, description="Stored file url")


#___________________________________________________________________________________________________
# Response schemas
#___________________________________________________________________________________________________

class UserResponse(BaseModel):
    """Private user projection, returned to the user itself. Never holds the hash."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="User ID")
    username: str = Field(..., description="User name")
    email: str = Field(..., description="User email address")
    profile_picture: Optional[str] = Field(None, description="Profile picture url")
    created_at: datetime = Field(..., description="Registration time (UTC)")


class AuthorResponse(BaseModel):
    """Public user projection shown to other users."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    profile_picture: Optional[str] = None


class SessionResponse(BaseModel):
    """Returned by register and login.

    Fields:
    - user: the logged in user
    - access_token: signed session token, also set as cookie
    - token_type: token type (usually "bearer")
    """
    user: UserResponse
    access_token: str = Field(..., description="Signed session token")
    token_type: str = Field("bearer", description="Token type (usually 'bearer')")


class MessageResponse(BaseModel):
    message: str


class MovieResponse(BaseModel):
    """Output schema for movies."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    poster_path: str
    trailer_url: Optional[str] = None
    year: int
    duration: Optional[int] = Field(None, description="Runtime in minutes")
    genres: List[str]
    cast: List[str]
    director: Optional[str] = None
    average_rating: int = Field(..., description="Mean review rating, 1-10 scale, 0 without reviews")
    review_count: int
    external_rating: Optional[int] = Field(None, description="Imported vote average, 1-10 scale")

    @computed_field
    @property
    def average_stars(self) -> float:
        return rating_to_stars(self.average_rating)


class ReviewResponse(BaseModel):
    """Output schema for reviews."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    movie_id: str
    rating: int = Field(..., description="1-10, one unit is half a star")
    review_text: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def stars(self) -> float:
        return rating_to_stars(self.rating)


class ReviewAddedEvent(BaseModel):
    """Live event pushed to everybody watching a movie page."""
    event: Literal["review-added"] = "review-added"
    movie_id: str
    review: ReviewResponse
    author: Optional[AuthorResponse] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    live_subscriptions: int
