"""
=============================================================================
USER DIRECTORY
=============================================================================

An in-memory user directory served over HTTP/1.1, with every request passing
through a fixed middleware pipeline:

    ErrorHandling → Authentication → Logging → Router → UserHandlers

=============================================================================
PACKAGE LAYOUT
=============================================================================

    userdirectory/
    ├── __init__.py          # Package exports
    ├── __main__.py          # python -m userdirectory
    ├── config.py            # ServiceConfig
    ├── errors.py            # Expected-failure values
    ├── server.py            # HTTPServer, create_app
    ├── core/                # Socket server, connection, thread pool
    ├── http/                # Request, response, router, status codes
    ├── middleware/          # Pipeline and the three stages
    ├── handlers/            # /users routes
    └── users/               # User model, store, validation

=============================================================================
QUICK START
=============================================================================

    from userdirectory import create_app, ServiceConfig

    app = create_app(ServiceConfig(port=3000))
    app.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServiceConfig
from .server import HTTPServer, create_app
from .users import User, UserStore

__all__ = [
    "ServiceConfig",
    "HTTPServer",
    "create_app",
    "User",
    "UserStore",
    "__version__",
]
