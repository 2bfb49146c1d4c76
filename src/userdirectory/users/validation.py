"""
Pure validation of candidate users.

Checks run in a fixed order and the first failure wins:

    1. blank name              → NameEmpty
    2. trimmed length < 3      → NameTooShort
    3. any whitespace in name  → NameContainsWhitespace
    4. age outside 0..120      → AgeOutOfRange

Create and update call the same function.
"""

from typing import Optional

from ..errors import ValidationCode, ValidationError
from .models import User


MIN_NAME_LENGTH = 3
MIN_AGE = 0
MAX_AGE = 120

NAME_LENGTH_MESSAGE = "UserName must be at least 3 characters long and cannot be empty."
NAME_WHITESPACE_MESSAGE = "UserName cannot contain spaces."
AGE_RANGE_MESSAGE = "UserAge must be between 0 and 120."


def validate_user(candidate: User) -> Optional[ValidationError]:
    """
    Check name and age constraints.

    Returns:
        None when the candidate is valid, otherwise the first ValidationError.
    """
    name = candidate.user_name
    trimmed = name.strip()

    if not trimmed:
        return ValidationError(NAME_LENGTH_MESSAGE, ValidationCode.NAME_EMPTY)

    if len(trimmed) < MIN_NAME_LENGTH:
        return ValidationError(NAME_LENGTH_MESSAGE, ValidationCode.NAME_TOO_SHORT)

    if any(ch.isspace() for ch in name):
        return ValidationError(NAME_WHITESPACE_MESSAGE, ValidationCode.NAME_CONTAINS_WHITESPACE)

    if not MIN_AGE <= candidate.user_age <= MAX_AGE:
        return ValidationError(AGE_RANGE_MESSAGE, ValidationCode.AGE_OUT_OF_RANGE)

    return None
