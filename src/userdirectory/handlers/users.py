"""
=============================================================================
USER ROUTES
=============================================================================

    ┌────────┬───────────────┬──────────────────────────┬──────────────────┐
    │ Method │ Path          │ Success                  │ Failure          │
    ├────────┼───────────────┼──────────────────────────┼──────────────────┤
    │ GET    │ /users        │ 200 [user, ...]          │                  │
    │ GET    │ /users/:name  │ 200 user                 │ 404 (empty)      │
    │ POST   │ /users        │ 201 user + Location      │ 400              │
    │ PUT    │ /users/:name  │ 204                      │ 400, 404 (empty) │
    │ DELETE │ /users/:name  │ 204                      │ 404 (empty)      │
    └────────┴───────────────┴──────────────────────────┴──────────────────┘

Expected failures come back from the store and the validator as error values
and are answered here. A body that does not bind to a user raises, and that
exception is left for the error handling stage.

=============================================================================
"""

import logging
from urllib.parse import quote

from ..errors import ConflictError, NotFoundError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, created, no_content, ok
from ..http.router import Router
from ..users.models import User
from ..users.store import UserStore
from ..users.validation import validate_user


logger = logging.getLogger(__name__)


class UserHandlers:
    """
    CRUD handlers over one ``UserStore``.

        handlers = UserHandlers(store)
        handlers.register(router)
    """

    def __init__(self, store: UserStore):
        self.store = store

    def register(self, router: Router) -> Router:
        router.get("/users", name="list_users")(self.list_users)
        router.get("/users/:name", name="get_user")(self.get_user)
        router.post("/users", name="create_user")(self.create_user)
        router.put("/users/:name", name="update_user")(self.update_user)
        router.delete("/users/:name", name="delete_user")(self.delete_user)
        return router

    def list_users(self, request: HTTPRequest) -> HTTPResponse:
        return ok([user.to_dict() for user in self.store.list()])

    def get_user(self, request: HTTPRequest) -> HTTPResponse:
        user = self.store.get(request.path_params["name"])
        if user is None:
            return NotFoundError().to_response()
        return ok(user.to_dict())

    def create_user(self, request: HTTPRequest) -> HTTPResponse:
        """
        Bind, validate, then insert.

        The insert is the store's atomic test-and-set, so of several
        concurrent creates for one name exactly one gets 201.
        """
        user = User.from_dict(request.json)

        error = validate_user(user)
        if error:
            return error.to_response()

        if not self.store.insert(user.user_name, user):
            logger.info(f"Create refused, {user.user_name!r} already exists")
            return ConflictError().to_response()

        logger.info(f"Created user {user.user_name!r}")
        location = f"/users/{quote(user.user_name, safe='')}"
        return created(user.to_dict(), location=location)

    def update_user(self, request: HTTPRequest) -> HTTPResponse:
        name = request.path_params["name"]
        user = User.from_dict(request.json)

        error = validate_user(user)
        if error:
            return error.to_response()

        error = self.store.replace(name, user.user_name, user.user_age)
        if error:
            return error.to_response()

        logger.info(f"Updated user {name!r}")
        return no_content()

    def delete_user(self, request: HTTPRequest) -> HTTPResponse:
        name = request.path_params["name"]

        if not self.store.remove(name):
            return NotFoundError().to_response()

        logger.info(f"Deleted user {name!r}")
        return no_content()
