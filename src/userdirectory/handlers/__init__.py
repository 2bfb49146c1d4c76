"""
Route handlers for the user directory.

- UserHandlers: list, get, create, update and delete over a UserStore
"""

from .users import UserHandlers

__all__ = ["UserHandlers"]
