"""
=============================================================================
REQUEST CONTEXT AND PARSER
=============================================================================

Turns raw HTTP/1.1 bytes into an ``HTTPRequest``, the per-call context
object that travels through the middleware chain.

=============================================================================
THE REQUEST AS A SHARED CONTEXT
=============================================================================

Every stage of the pipeline receives the SAME ``HTTPRequest`` instance:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ONE REQUEST, MANY READERS                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RequestParser.parse(raw) ──► HTTPRequest                           │
    │                                   │                                  │
    │        ErrorHandlingMiddleware ◄──┤  (never reads the body)          │
    │        AuthenticationMiddleware ◄─┤  headers["authorization"]        │
    │        LoggingMiddleware ◄────────┤  method, path, headers, body     │
    │        Router ◄───────────────────┤  method, path → path_params      │
    │        UserHandlers ◄─────────────┘  json (reads body_stream)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The body is exposed twice:

    body         the raw bytes, immutable
    body_stream  a seekable stream over those bytes

Readers that consume ``body_stream`` must seek back to 0 when done so the
next stage sees an unread body. LoggingMiddleware does exactly that before
the handler parses JSON from the same stream.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import urlparse
import io
import json
import re


class HTTPParseError(Exception):
    """
    Raised when request bytes or a request body cannot be parsed.

    Carries the status the hosting layer should answer with when the failure
    happens before the pipeline runs:

        400 Bad Request                 malformed syntax, invalid JSON body
        405 Method Not Allowed          unknown method token
        413 Payload Too Large           request exceeds max_request_size
        505 HTTP Version Not Supported  anything but HTTP/1.0 and HTTP/1.1

    Raised from inside a handler (``request.json`` on a broken body) it is
    just another unexpected fault and ends at the error boundary as a 500.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         GET, POST, PUT, DELETE, ...
        path:           Path as sent, still percent-encoded, query dropped
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header name (lower-cased) → value
        body:           Raw body bytes
        path_params:    Filled in by the router (``/users/:name``)
        client_address: (ip, port) of the peer
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    _body_stream: Optional[io.BytesIO] = field(default=None, repr=False)
    _body_json: Optional[Any] = field(default=None, repr=False)

    @property
    def body_stream(self) -> io.BytesIO:
        """
        Seekable stream over ``body``, created on first access.

        Consumers that read it are expected to ``seek(0)`` afterwards.
        """
        if self._body_stream is None:
            self._body_stream = io.BytesIO(self.body)
        return self._body_stream

    @property
    def has_body(self) -> bool:
        return len(self.body) > 0

    @property
    def json(self) -> Any:
        """
        Parse the body as JSON.

        Reads from ``body_stream`` at its current position, so a stage that
        consumed the stream without rewinding it leaves nothing to parse.
        The result is cached after the first successful read.

        Returns:
            Parsed JSON value, or None when the stream yields no bytes.

        Raises:
            HTTPParseError: If the bytes are not valid UTF-8 JSON.
        """
        if self._body_json is None:
            raw = self.body_stream.read()
            if raw:
                try:
                    self._body_json = json.loads(raw.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless ``Connection: close``;
        HTTP/1.0 closes unless ``Connection: keep-alive``.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def has_header(self, name: str) -> bool:
        """Check header presence (case-insensitive), independent of its value."""
        return name.lower() in self.headers

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw request bytes into ``HTTPRequest`` objects.

        Raw bytes
            │
            ├── size check ............... 413 if over max_request_size
            ├── split at \\r\\n\\r\\n ........ 400 if no terminator
            ├── request line ............. 400 / 405 / 505
            ├── headers .................. lower-cased names
            └── body ..................... exactly Content-Length bytes
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Raw request bytes as read by ``Connection.read_request``.
            client_address: Peer (ip, port).

        Returns:
            The parsed request.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str]:
        """Split ``METHOD SP URI SP VERSION``; the query string is dropped."""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        # Left encoded; the router decodes path params.
        path = urlparse(uri).path or "/"

        return method, path, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse ``Name: value`` lines.

        Names are lower-cased; repeated headers are joined with ", " as
        RFC 7230 allows. Malformed lines are skipped. An empty value is kept
        as "" so presence checks (``Authorization:`` with no token) still see
        the header.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """One-shot helper around ``RequestParser``."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
