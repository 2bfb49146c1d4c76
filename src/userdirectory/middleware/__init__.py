"""
=============================================================================
MIDDLEWARE
=============================================================================

The directory's request pipeline, outermost first:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Incoming Request                                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   ErrorHandlingMiddleware   ──► any exception below becomes a 500   │
    │        │                                                             │
    │        ▼                                                             │
    │   AuthenticationMiddleware  ──► may answer 401 and stop here         │
    │        │                                                             │
    │        ▼                                                             │
    │   LoggingMiddleware         ──► logs request, then response         │
    │        │                                                             │
    │        ▼                                                             │
    │   Router → UserHandlers                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   Response flows back UP through the same stages                     │
    └─────────────────────────────────────────────────────────────────────┘

``userdirectory.server.create_app`` assembles exactly this order.

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    FunctionMiddleware,
    function_middleware,
)
from .error_handling import ErrorHandlingMiddleware
from .authentication import AuthenticationMiddleware, DEFAULT_TOKEN
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",

    # Directory stages
    "ErrorHandlingMiddleware",
    "AuthenticationMiddleware",
    "DEFAULT_TOKEN",
    "LoggingMiddleware",
    "RequestLog",
]
