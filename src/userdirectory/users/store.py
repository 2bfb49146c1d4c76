"""
=============================================================================
USER STORE
=============================================================================

Thread-safe, in-memory map from case-insensitive user name to ``User``.

=============================================================================
CONCURRENCY MODEL
=============================================================================

Every request runs on a worker thread of the hosting ThreadPool, so several
handlers can hit the store at once. One lock guards the map:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 insert("David", ...) from 3 threads                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Worker-0 ──► acquire ──► "david" absent ──► store ──► release     │
    │   Worker-1 ──► (waits) ──────────────► acquire ──► present ──► False│
    │   Worker-2 ──► (waits) ──────────────────────► acquire ──► False    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The existence check and the write happen under the same acquisition, so
check-then-insert, remove and rename are atomic. Readers get copies taken
under the lock, so they never observe a half-applied replace.

=============================================================================
OWNERSHIP
=============================================================================

The store owns its ``User`` objects. ``insert`` stores a copy of what it was
given and ``get``/``list`` hand out copies, so nothing outside the store can
mutate a stored record.

=============================================================================
"""

import logging
import threading
from dataclasses import replace as copy_user
from typing import Dict, Iterable, List, Optional

from ..errors import ConflictError, NotFoundError, ServiceError
from .models import User


logger = logging.getLogger(__name__)


def _key(name: str) -> str:
    return name.casefold()


class UserStore:
    """
    Case-insensitive user map.

        store = UserStore()
        store.insert("Alice", User("Alice", 25))    # True
        store.insert("ALICE", User("ALICE", 40))    # False, key taken
        store.get("alice")                          # User("Alice", 25)
    """

    def __init__(self, users: Optional[Iterable[User]] = None):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

        if users:
            self.seed(users)

    def seed(self, users: Iterable[User]) -> int:
        """Insert each user under its own name; returns how many were added."""
        added = 0
        for user in users:
            if self.insert(user.user_name, user):
                added += 1
        logger.debug(f"Seeded {added} users")
        return added

    def list(self) -> List[User]:
        """Snapshot of all users."""
        with self._lock:
            return [copy_user(user) for user in self._users.values()]

    def get(self, name: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(_key(name))
            return copy_user(user) if user else None

    def insert(self, name: str, user: User) -> bool:
        """
        Add ``user`` under ``name`` unless the key exists.

        Returns:
            False if a user with the same case-insensitive name exists.
        """
        key = _key(name)
        with self._lock:
            if key in self._users:
                return False
            self._users[key] = copy_user(user)
            return True

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._users.pop(_key(name), None) is not None

    def replace(self, name: str, user_name: str, user_age: int) -> Optional[ServiceError]:
        """
        Overwrite the fields of the user stored under ``name``.

        When ``user_name`` differs from ``name`` by more than case, the record
        moves to the new key so lookups by the new name find it and the old
        name stops resolving.

        Returns:
            None on success, NotFoundError if ``name`` is absent,
            ConflictError if ``user_name`` belongs to a different user.
        """
        old_key = _key(name)
        new_key = _key(user_name)

        with self._lock:
            user = self._users.get(old_key)
            if user is None:
                return NotFoundError()

            if new_key != old_key and new_key in self._users:
                return ConflictError()

            user.user_name = user_name
            user.user_age = user_age

            if new_key != old_key:
                del self._users[old_key]
                self._users[new_key] = user

            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return _key(name) in self._users


DEFAULT_USERS = (
    User("Alice", 25),
    User("Bob", 30),
    User("Charlie", 35),
)


def seeded_store() -> UserStore:
    """A store holding the three startup users."""
    return UserStore(DEFAULT_USERS)
