"""
cinerate/errors.py

Error taxonomy shared by the services and the HTTP layer. Every error carries a
machine readable ``kind`` and the HTTP status it maps to, so main.py can turn any
of them into a JSON response with a single exception handler.
"""

from typing import Optional

from fastapi import status


class CineRateError(Exception):
    """Base class of all caller-visible errors."""
    kind: str = "Error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CineRateError):
    kind = "ValidationError"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input."


class InvalidRating(ValidationError):
    kind = "InvalidRating"
    default_message = "Rating must be a whole number between 1 and 10."


class DuplicateReview(CineRateError):
    kind = "DuplicateReview"
    default_message = "You have already reviewed this movie."


class NotFound(CineRateError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class Forbidden(CineRateError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permission."


class UsernameTaken(CineRateError):
    kind = "UsernameTaken"
    default_message = "Username already exists."


class EmailTaken(CineRateError):
    kind = "EmailTaken"
    default_message = "Email already exists."


class InvalidCredentials(CineRateError):
    kind = "InvalidCredentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials."


class Unauthenticated(CineRateError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated."
