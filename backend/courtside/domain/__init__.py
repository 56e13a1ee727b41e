"""
Business rules for bookings and reviews, kept free of FastAPI and SQLAlchemy.
Services load state, call these functions and persist what they return.
"""

from .results import ErrorKind, Failure, Success
from .actors import Actor, UserRole

__all__ = ["ErrorKind", "Failure", "Success", "Actor", "UserRole"]
