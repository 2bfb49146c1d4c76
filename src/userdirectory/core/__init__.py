"""
=============================================================================
HOSTING CORE
=============================================================================

The networking plumbing underneath the directory:

    SocketServer ──accept()──► Connection ──submit()──► ThreadPool worker
                                                           │
                                                           ▼
                                              HTTPServer._process_connection

- SocketServer: listening socket, accept loop, signal-driven shutdown
- Connection: buffered reads of whole requests, keep-alive, send, close
- ThreadPool: bounded worker threads that run one connection each

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
