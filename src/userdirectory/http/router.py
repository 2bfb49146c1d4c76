"""
=============================================================================
URL ROUTER
=============================================================================

Maps ``(method, path)`` to a handler and extracts ``:param`` segments.
The router is the innermost callable of the middleware chain:

    pipeline.wrap(router.handle)

=============================================================================
ROUTE TABLE FOR THE DIRECTORY
=============================================================================

    ┌────────┬───────────────┬────────────────────────────┐
    │ GET    │ /users        │ UserHandlers.list_users    │
    │ GET    │ /users/:name  │ UserHandlers.get_user      │
    │ POST   │ /users        │ UserHandlers.create_user   │
    │ PUT    │ /users/:name  │ UserHandlers.update_user   │
    │ DELETE │ /users/:name  │ UserHandlers.delete_user   │
    └────────┴───────────────┴────────────────────────────┘

=============================================================================
PATTERN COMPILATION
=============================================================================

    /users/:name   →   ^/users/(?P<name>[^/]+)$

Static segments are escaped, ``:param`` segments become named groups that
match exactly one path segment. First registered, first matched.

Matching runs on the path as sent, still percent-encoded, so an encoded
slash (``%2F``) stays inside one segment. Captured values are decoded
afterwards:

    GET /users/a%2Fb   →   path_params == {"name": "a/b"}

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
from urllib.parse import unquote
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A registered ``method + pattern → handler`` binding."""

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Decorator-style router.

        router = Router()

        @router.get("/users/:name", name="get_user")
        def get_user(request):
            name = request.path_params["name"]
            ...
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str,
        name: Optional[str] = None,
    ) -> Route:
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper(),
            handler=handler,
            name=name,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """Compile ``/users/:name`` into an anchored regex with named groups."""
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")
        regex_parts.append("$")

        return re.compile("".join(regex_parts)), param_names

    # =========================================================================
    # MATCHING
    # =========================================================================

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        path = self._normalize(path)

        for route in self._routes:
            if route.method != method.upper():
                continue

            match = route._pattern.match(path)
            if match:
                params = {k: unquote(v) for k, v in match.groupdict().items()}
                return RouteMatch(route=route, params=params)

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for ``path``; feeds the 405 Allow header."""
        path = self._normalize(path)
        return sorted({r.method for r in self._routes if r._pattern.match(path)})

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch ``request``.

        Injects ``path_params`` before calling the handler. Unknown paths get
        404, known paths with the wrong method get 405.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found(f"No route matches {request.path}")

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        method: str,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name)

    def put(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name)

    def delete(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name)

    def routes(self) -> List[Route]:
        return list(self._routes)
