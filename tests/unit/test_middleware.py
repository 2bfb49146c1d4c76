"""
Unit tests for the error handling, authentication and logging stages.
"""

import json
import logging

import pytest

from userdirectory.http.request import HTTPRequest
from userdirectory.http.response import ok
from userdirectory.http.status_codes import HTTPStatus
from userdirectory.middleware import (
    DEFAULT_TOKEN,
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    LoggingMiddleware,
)


def request_with(auth=None, body: bytes = b"") -> HTTPRequest:
    headers = {"host": "localhost"}
    if auth is not None:
        headers["authorization"] = auth
    if body:
        headers["content-length"] = str(len(body))
    return HTTPRequest(method="POST", path="/users", headers=headers, body=body)


class CallCounter:
    """Terminal handler that records whether it was reached."""

    def __init__(self):
        self.calls = 0

    def __call__(self, request):
        self.calls += 1
        return ok({"reached": True})


class TestErrorHandlingMiddleware:
    """Tests for ErrorHandlingMiddleware."""

    def test_passes_responses_through(self):
        response = ErrorHandlingMiddleware()(request_with(), CallCounter())
        assert response.status == HTTPStatus.OK

    def test_exception_becomes_500(self):
        def boom(request):
            raise RuntimeError("store exploded")

        response = ErrorHandlingMiddleware()(request_with(), boom)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.json == {"error": "Internal server error.", "details": "store exploded"}

    def test_exception_is_logged(self, caplog):
        def boom(request):
            raise ValueError("bad")

        with caplog.at_level(logging.ERROR, logger="userdirectory.middleware.error_handling"):
            ErrorHandlingMiddleware()(request_with(), boom)

        assert "bad" in caplog.text
        assert caplog.records[-1].exc_info is not None

    def test_details_can_be_hidden(self):
        def boom(request):
            raise RuntimeError("secret")

        response = ErrorHandlingMiddleware(include_details=False)(request_with(), boom)

        assert response.json == {"error": "Internal server error."}

    def test_error_responses_are_not_faults(self):
        def unauthorized(request):
            return AuthenticationMiddleware()(request, CallCounter())

        response = ErrorHandlingMiddleware()(request_with(), unauthorized)

        assert response.status == HTTPStatus.UNAUTHORIZED


class TestAuthenticationMiddleware:
    """Tests for AuthenticationMiddleware in both modes."""

    def test_missing_header(self):
        handler = CallCounter()
        response = AuthenticationMiddleware()(request_with(auth=None), handler)

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.json == {"error": "Authorization token is missing."}
        assert handler.calls == 0

    def test_inverted_rejects_configured_token(self):
        handler = CallCounter()
        response = AuthenticationMiddleware()(request_with(auth=DEFAULT_TOKEN), handler)

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.json == {"error": "Invalid or expired token."}
        assert handler.calls == 0

    @pytest.mark.parametrize("auth", ["Bearer wrong", "", "my-secure-token"])
    def test_inverted_accepts_anything_else(self, auth):
        handler = CallCounter()
        response = AuthenticationMiddleware()(request_with(auth=auth), handler)

        assert response.status == HTTPStatus.OK
        assert handler.calls == 1

    def test_strict_accepts_token(self):
        handler = CallCounter()
        mw = AuthenticationMiddleware(invert_token_check=False)

        assert mw(request_with(auth=DEFAULT_TOKEN), handler).status == HTTPStatus.OK
        assert handler.calls == 1

    @pytest.mark.parametrize("auth", ["Bearer wrong", ""])
    def test_strict_rejects_others(self, auth):
        handler = CallCounter()
        mw = AuthenticationMiddleware(invert_token_check=False)
        response = mw(request_with(auth=auth), handler)

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.json == {"error": "Invalid or expired token."}
        assert handler.calls == 0

    def test_strict_missing_header(self):
        mw = AuthenticationMiddleware(invert_token_check=False)
        response = mw(request_with(auth=None), CallCounter())

        assert response.json == {"error": "Authorization token is missing."}

    def test_custom_token(self):
        mw = AuthenticationMiddleware(token="Bearer abc", invert_token_check=False)

        assert mw.is_allowed("Bearer abc")
        assert not mw.is_allowed(DEFAULT_TOKEN)

    def test_inverted_mode_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            AuthenticationMiddleware()
        assert "inverted" in caplog.text


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_logs_request_and_response(self, caplog):
        body = b'{"UserName": "David", "UserAge": 28}'

        with caplog.at_level(logging.INFO, logger="userdirectory.access"):
            LoggingMiddleware()(request_with(auth="x", body=body), CallCounter())

        assert "Incoming Request: Method=POST, Path=/users" in caplog.text
        assert "authorization: x" in caplog.text
        assert 'Request Body: {"UserName": "David", "UserAge": 28}' in caplog.text
        assert "Outgoing Response: StatusCode=200" in caplog.text
        assert 'Response Body: {"reached": true}' in caplog.text

    def test_rewinds_body_stream(self):
        request = request_with(body=b'{"UserName": "David", "UserAge": 28}')
        seen = {}

        def handler(req):
            seen["position"] = req.body_stream.tell()
            seen["json"] = req.json
            return ok({})

        LoggingMiddleware()(request, handler)

        assert seen["position"] == 0
        assert seen["json"] == {"UserName": "David", "UserAge": 28}

    def test_rewinds_partially_read_stream(self):
        request = request_with(body=b"abcdef")
        request.body_stream.read(3)

        LoggingMiddleware()(request, lambda req: ok({}))

        assert request.body_stream.read() == b"abcdef"

    def test_does_not_mutate_response(self):
        original = ok({"userName": "Alice", "userAge": 25})
        headers_before = dict(original.headers)
        body_before = original.body

        response = LoggingMiddleware()(request_with(), lambda req: original)

        assert response is original
        assert response.headers == headers_before
        assert response.body == body_before

    def test_reraises_handler_errors(self, caplog):
        def boom(request):
            raise RuntimeError("kaboom")

        with caplog.at_level(logging.INFO, logger="userdirectory.access"):
            with pytest.raises(RuntimeError):
                LoggingMiddleware()(request_with(), boom)

        assert "Request failed" in caplog.text
        assert "kaboom" in caplog.text

    def test_json_format(self, caplog):
        with caplog.at_level(logging.INFO, logger="userdirectory.access"):
            LoggingMiddleware(log_format="json")(request_with(body=b"{}"), CallCounter())

        entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "userdirectory.access"]

        assert [e["phase"] for e in entries] == ["request", "response"]
        assert entries[0]["method"] == "POST"
        assert entries[0]["body"] == "{}"
        assert entries[1]["status_code"] == 200
        assert entries[0]["request_id"] == entries[1]["request_id"]

    def test_no_body_line_without_body(self, caplog):
        with caplog.at_level(logging.INFO, logger="userdirectory.access"):
            LoggingMiddleware()(request_with(), CallCounter())

        assert "Request Body" not in caplog.text
