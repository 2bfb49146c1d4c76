"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Access log for the directory. Sits innermost, right around the router, so it
only sees requests that passed authentication and it sees the handler's
response before any outer stage does.

=============================================================================
WHAT GETS LOGGED
=============================================================================

    BEFORE next():
        Incoming Request: Method=POST, Path=/users
        Headers: host: localhost:8080, authorization: ..., content-type: ...
        Request Body: {"UserName": "David", "UserAge": 28}

    AFTER next():
        Outgoing Response: StatusCode=201 (1.42ms)
        Response Body: {"userName": "David", "userAge": 28}

    With log_format="json" each phase is one JSON object instead.

=============================================================================
BODY STREAM DISCIPLINE
=============================================================================

The request body is read through ``request.body_stream``, the same stream the
handler later parses JSON from. Reading it moves the position to the end, so
the stream is rewound to 0 afterwards:

    stream.seek(0) ─► read() ─► log ─► stream.seek(0) ─► next(request)

The response is read, never written. No headers are added and the body is
left as is.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Namespaced so the access log can be routed separately:
#   logging.getLogger("userdirectory.access").addHandler(file_handler)
logger = logging.getLogger("userdirectory.access")


@dataclass
class RequestLog:
    """One request/response exchange as seen by the logging stage."""

    request_id: str
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    request_body: Optional[str] = None
    status_code: Optional[int] = None
    response_body: Optional[str] = None
    duration_ms: Optional[float] = None

    def request_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "phase": "request",
            "method": self.method,
            "path": self.path,
            "headers": self.headers,
            "body": self.request_body,
        }

    def response_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "phase": "response",
            "method": self.method,
            "path": self.path,
            "status_code": self.status_code,
            "body": self.response_body,
            "duration_ms": round(self.duration_ms or 0.0, 2),
        }

    def request_lines(self) -> list[str]:
        headers = ", ".join(f"{name}: {value}" for name, value in self.headers.items())
        lines = [
            f"[{self.request_id}] Incoming Request: Method={self.method}, Path={self.path}",
            f"[{self.request_id}] Headers: {headers}",
        ]
        if self.request_body is not None:
            lines.append(f"[{self.request_id}] Request Body: {self.request_body}")
        return lines

    def response_lines(self) -> list[str]:
        return [
            f"[{self.request_id}] Outgoing Response: StatusCode={self.status_code} "
            f"({self.duration_ms:.2f}ms)",
            f"[{self.request_id}] Response Body: {self.response_body}",
        ]


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class LoggingMiddleware(Middleware):
    """
    Log each request before the handler runs and its response afterwards.

    Args:
        log_format: "text" (one line per field) or "json" (one object per phase).
        log_level: Level for the access entries.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        entry = RequestLog(
            request_id=uuid.uuid4().hex[:8],
            method=request.method,
            path=request.path,
            headers=dict(request.headers),
            request_body=self._read_request_body(request),
        )
        self._emit_request(entry)

        start_time = time.perf_counter()
        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{entry.request_id}] Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        entry.duration_ms = (time.perf_counter() - start_time) * 1000
        entry.status_code = int(response.status)
        entry.response_body = _decode(response.body)
        self._emit_response(entry)

        return response

    def _read_request_body(self, request: HTTPRequest) -> Optional[str]:
        """Read the whole body stream and rewind it for downstream readers."""
        if not request.has_body:
            return None

        stream = request.body_stream
        stream.seek(0)
        data = stream.read()
        stream.seek(0)
        return _decode(data)

    def _emit_request(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.request_dict()))
        else:
            for line in entry.request_lines():
                logger.log(self.log_level, line)

    def _emit_response(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.response_dict()))
        else:
            for line in entry.response_lines():
                logger.log(self.log_level, line)
