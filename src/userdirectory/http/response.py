"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Response objects, a fluent builder, and one-line helpers for the responses
the user directory sends.

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   UserHandlers / middleware                                          │
    │        │  created(user.to_dict(), location="/users/Alice")          │
    │        ▼                                                             │
    │   HTTPResponse(status=201, headers={...}, body=b'{"userName"...}')  │
    │        │  flows back out through Logging → Auth → ErrorHandling     │
    │        ▼                                                             │
    │   HTTPServer: response.to_bytes(server_name)                         │
    │        │  adds Content-Length, Date, Server                         │
    │        ▼                                                             │
    │   b"HTTP/1.1 201 Created\\r\\nLocation: /users/Alice\\r\\n..."          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ERROR BODIES
=============================================================================

Every JSON error body has the same shape:

    {"error": "<message>"}                       400, 401, router 404, 405
    {"error": "<message>", "details": "<...>"}   500 from the error boundary

The three "user not found" answers (get, update, delete) carry no body at
all; ``not_found()`` without a message builds that variant.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be serialized.

    Middleware receives the same instance the handler built. Stages that only
    observe (logging) must leave it untouched.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    @property
    def json(self) -> Any:
        """Decode a JSON body; None for an empty body."""
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = "UserDirectory/1.0") -> bytes:
        """
        Serialize for ``socket.sendall``.

        Content-Length, Date and Server are added to a copy of the headers
        when the handler did not set them; the response object itself is
        not modified.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for ``HTTPResponse``.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("Location", "/users/Alice")
            .json({"userName": "Alice", "userAge": 25})
            .build())

    Every method except ``build()`` returns ``self``.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Serialize ``data`` as compact JSON.

        ensure_ascii=False keeps non-ASCII user names readable on the wire.
        """
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """RFC 7231 HTTP-date, e.g. ``Wed, 01 Jan 2026 12:00:00 GMT``."""
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[dict, list]) -> HTTPResponse:
    """200 OK with a JSON body."""
    return ResponseBuilder().status(HTTPStatus.OK).json(body).build()


def created(body: Union[dict, list], location: Optional[str] = None) -> HTTPResponse:
    """201 Created with the new resource and, optionally, its Location."""
    builder = ResponseBuilder().status(HTTPStatus.CREATED).json(body)
    if location:
        builder.header("Location", location)
    return builder.build()


def no_content() -> HTTPResponse:
    """204 No Content."""
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


def json_error(status: HTTPStatus, message: str, **extra: Any) -> HTTPResponse:
    """``{"error": message, **extra}`` with the given status."""
    return ResponseBuilder().status(status).json({"error": message, **extra}).build()


def not_found(message: Optional[str] = None) -> HTTPResponse:
    """
    404 Not Found.

    Without a message the body is empty, matching the directory's answer for
    a missing user; the router passes a message for unknown paths.
    """
    if message is None:
        return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()
    return json_error(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def internal_error(
    message: str = "Internal server error.",
    details: Optional[str] = None
) -> HTTPResponse:
    """500 with ``{"error", "details"}``; details omitted when None."""
    if details is None:
        return json_error(HTTPStatus.INTERNAL_SERVER_ERROR, message)
    return json_error(HTTPStatus.INTERNAL_SERVER_ERROR, message, details=details)
