"""
User domain: the record, its store, and its validation rules.
"""

from .models import User, MalformedUserError
from .store import UserStore, DEFAULT_USERS, seeded_store
from .validation import validate_user

__all__ = [
    "User",
    "MalformedUserError",
    "UserStore",
    "DEFAULT_USERS",
    "seeded_store",
    "validate_user",
]
