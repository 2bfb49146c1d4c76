"""
Unit tests for URL router.
"""

from userdirectory.http.router import Router
from userdirectory.http.request import HTTPRequest
from userdirectory.http.response import HTTPResponse, ResponseBuilder
from userdirectory.http.status_codes import HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path, "params": request.path_params}).build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert len(router.routes()) == 1
        assert router.routes()[0].path == "/users"
        assert router.routes()[0].method == "GET"

    def test_match_with_method(self):
        """Same path, different methods."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")

        assert router.match("GET", "/users").route.method == "GET"
        assert router.match("POST", "/users").route.method == "POST"
        assert router.match("DELETE", "/users") is None

    def test_match_path_param(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET")

        match = router.match("GET", "/users/Alice")
        assert match is not None
        assert match.params == {"name": "Alice"}

    def test_param_does_not_span_segments(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET")

        assert router.match("GET", "/users/a/b") is None

    def test_trailing_slash_ignored(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("GET", "/users/") is not None

    def test_method_is_case_insensitive(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="get")

        assert router.match("GET", "/users") is not None

    def test_decorators(self):
        router = Router()

        @router.get("/users")
        def list_users(request):
            return dummy_handler(request)

        @router.put("/users/:name")
        def update_user(request):
            return dummy_handler(request)

        assert router.match("GET", "/users").route.handler is list_users
        assert router.match("PUT", "/users/Bob").route.handler is update_user

    def test_get_allowed_methods(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET")
        router.add_route("/users/:name", dummy_handler, method="DELETE")

        assert router.get_allowed_methods("/users/Bob") == ["DELETE", "GET"]
        assert router.get_allowed_methods("/nowhere") == []

    def test_named_route_with_name_param(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET", name="get_user")

        match = router.match("GET", "/users/Alice")
        assert match.route.name == "get_user"
        assert match.params == {"name": "Alice"}

    def test_encoded_slash_stays_in_one_segment(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET")

        match = router.match("GET", "/users/a%2Fb")
        assert match is not None
        assert match.params == {"name": "a/b"}

    def test_params_are_percent_decoded(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET")

        assert router.match("GET", "/users/Al%20ice").params == {"name": "Al ice"}


class TestRouterHandle:
    """Tests for dispatching through Router.handle."""

    def test_handle_injects_path_params(self):
        router = Router()
        router.add_route("/users/:name", dummy_handler, method="GET")

        request = make_request("GET", "/users/Charlie")
        response = router.handle(request)

        assert response.status == HTTPStatus.OK
        assert request.path_params == {"name": "Charlie"}
        assert response.json["params"] == {"name": "Charlie"}

    def test_handle_unknown_path(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        response = router.handle(make_request("GET", "/accounts"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.json == {"error": "No route matches /accounts"}

    def test_handle_wrong_method(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")

        response = router.handle(make_request("PATCH", "/users"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST"
