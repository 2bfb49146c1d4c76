"""
=============================================================================
HTTP LAYER
=============================================================================

Request context, response building, routing and status codes used by the
middleware chain and the user handlers.

    request.py       HTTPRequest (per-call context), RequestParser
    response.py      HTTPResponse, ResponseBuilder, ok/created/... helpers
    router.py        Router with :param segments and 404/405 fallbacks
    status_codes.py  HTTPStatus enum

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    no_content,
    json_error,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route, RouteMatch, Handler
from .status_codes import HTTPStatus

__all__ = [
    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "no_content",
    "json_error",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "Handler",

    # Status
    "HTTPStatus",
]
