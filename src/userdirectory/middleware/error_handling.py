"""
=============================================================================
ERROR HANDLING MIDDLEWARE
=============================================================================

The fault boundary. Registered first, so it is the outermost layer and
nothing runs outside it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   try:                                                              │
    │       response = next(request)     ◄── Auth, Logging, handler      │
    │   except Exception:                                                 │
    │       log message + traceback                                       │
    │       500 {"error": "Internal server error.", "details": str(e)}   │
    └─────────────────────────────────────────────────────────────────────┘

Responses produced by inner stages, including 401 short-circuits and 4xx
answers from handlers, pass through unchanged. Only exceptions are
converted, and each one is converted exactly once.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware(Middleware):
    """
    Convert any exception from inner stages into a 500 JSON response.

    Args:
        include_details: Put ``str(exception)`` in the ``details`` field.
            On by default, as the directory exposes it; turn it off to keep
            exception text out of responses.
    """

    ERROR_MESSAGE = "Internal server error."

    def __init__(self, include_details: bool = True):
        self.include_details = include_details

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            return next(request)
        except Exception as e:
            logger.exception(
                f"Unhandled exception for {request.method} {request.path}: {e}"
            )
            details = str(e) if self.include_details else None
            return internal_error(self.ERROR_MESSAGE, details)
