"""
pytest configuration and fixtures.
"""

import json
import socket
import threading
from typing import Callable, Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userdirectory import HTTPServer, ServiceConfig, create_app
from userdirectory.http import HTTPRequest
from userdirectory.middleware import DEFAULT_TOKEN
from userdirectory.users import UserStore, seeded_store


# With the default (inverted) check any value other than the configured token
# is let through.
PASSING_AUTH = "Bearer some-other-token"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users?limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Authorization: Bearer some-other-token\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a user body."""
    body = b'{"UserName": "David", "UserAge": 28}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n"
        b"Connection: close\r\n"
        b"\r\n" % len(body)
    ) + body


@pytest.fixture
def config() -> ServiceConfig:
    """Default test configuration."""
    return ServiceConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def strict_config(config: ServiceConfig) -> ServiceConfig:
    """Configuration with the conventional token check."""
    config.invert_token_check = False
    return config


@pytest.fixture
def store() -> UserStore:
    """Store holding Alice, Bob and Charlie."""
    return seeded_store()


@pytest.fixture
def app(config: ServiceConfig, store: UserStore) -> HTTPServer:
    """The full directory, driven in-process through ``app.handle``."""
    return create_app(config, store)


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """
    Factory for in-process requests.

        make_request("POST", "/users", body={"UserName": "Eve", "UserAge": 40})
        make_request("GET", "/users", auth=None)     # no Authorization header
    """
    def _make(
        method: str,
        path: str,
        body=None,
        auth: Optional[str] = PASSING_AUTH,
        headers: Optional[dict] = None,
    ) -> HTTPRequest:
        request_headers = {"host": "localhost"}
        if auth is not None:
            request_headers["authorization"] = auth
        if headers:
            request_headers.update({k.lower(): v for k, v in headers.items()})

        if body is None:
            raw = b""
        elif isinstance(body, bytes):
            raw = body
        else:
            raw = json.dumps(body).encode("utf-8")

        if raw:
            request_headers.setdefault("content-type", "application/json")
            request_headers["content-length"] = str(len(raw))

        return HTTPRequest(method=method, path=path, headers=request_headers, body=raw)

    return _make


@pytest.fixture
def valid_token() -> str:
    return DEFAULT_TOKEN


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class RunningServer:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def live_server(config: ServiceConfig, store: UserStore, free_port: int) -> Generator[RunningServer, None, None]:
    """The directory listening on a real socket."""
    config.port = free_port
    config.keep_alive_timeout = 1.0
    server = create_app(config, store)

    running = RunningServer(server, free_port)
    running.start()

    yield running

    running.stop()


@pytest.fixture
def single_worker_server(config: ServiceConfig, store: UserStore, free_port: int) -> Generator[RunningServer, None, None]:
    """One worker whose queued connections expire after a second."""
    config.port = free_port
    config.min_workers = 1
    config.max_workers = 1
    config.timeout = 1.0
    config.keep_alive_timeout = 3.0
    server = create_app(config, store)

    running = RunningServer(server, free_port)
    running.start()

    yield running

    running.stop()
