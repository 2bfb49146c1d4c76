"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the hosting core to the directory's pipeline.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          Request Flow                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer.accept() ──► ThreadPool.submit(_process_connection)  │
    │                                     │                                │
    │                                     ▼                                │
    │   Connection.read_request() ──► RequestParser.parse()               │
    │                                     │        └─ HTTPParseError → 4xx │
    │                                     ▼                                │
    │   handle(request)                                                    │
    │     ErrorHandling → Authentication → Logging → Router → handler     │
    │                                     │                                │
    │                                     ▼                                │
    │   response.to_bytes() ──► Connection.send_response()                │
    │                                     │                                │
    │                          keep-alive? loop : close                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

``handle`` is also the in-process entry point: tests and embedders can push
an ``HTTPRequest`` through the full pipeline without a socket.

=============================================================================
"""

import logging
import threading
from typing import Optional

from .config import ServiceConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .handlers import UserHandlers
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    ResponseBuilder,
    Router,
    internal_error,
)
from .middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    NextHandler,
)
from .users import UserStore, seeded_store


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server around one middleware pipeline and router.

        server = HTTPServer(config)
        server.use(ErrorHandlingMiddleware())

        @server.get("/ping")
        def ping(request):
            return ok({"pong": True})

        server.run()

    The pipeline is composed on first use, so all ``use()`` calls must come
    before the first request.
    """

    def __init__(self, config: Optional[ServiceConfig] = None):
        self.config = config or ServiceConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[NextHandler] = None
        self._handler_lock = threading.Lock()
        self._running = False

        self.store: Optional[UserStore] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, *middleware: Middleware) -> "HTTPServer":
        """Append stages; the first one added is the outermost."""
        if self._handler is not None:
            raise RuntimeError("Middleware must be added before the first request")
        self._middleware.use(*middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def middleware(self) -> MiddlewarePipeline:
        return self._middleware

    @property
    def address(self):
        return self._socket_server.address

    def route(self, path: str, method: str, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    def put(self, path: str, **kwargs):
        return self._router.put(path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self._router.delete(path, **kwargs)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run ``request`` through the middleware pipeline and router."""
        if self._handler is None:
            with self._handler_lock:
                if self._handler is None:
                    self._handler = self._middleware.wrap(self._router.handle)
        return self._handler(request)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """Serve until SIGINT/SIGTERM or ``stop()``. Blocks."""
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True
        self._thread_pool.start()

        logger.info(
            f"{self.config.server_name} starting on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )
        for route in self._router.routes():
            logger.debug(f"Route {route.method} {route.path} ({route.name or route.handler.__name__})")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to shut down; ``run()`` then returns."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("userdirectory").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
            on_drop=lambda: self._reject(conn, "Server busy, request timed out in queue"),
            block=False,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._reject(conn, "Server overloaded")

    def _reject(self, conn: Connection, message: str):
        """503 and close, for connections no worker will serve."""
        try:
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, message)
        finally:
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one client; runs on a worker thread."""
        try:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                try:
                    response = self.handle(request)
                except Exception as e:
                    # Only reachable when no error handling stage is installed.
                    logger.exception(f"[{conn.id}] Unhandled error: {e}")
                    response = internal_error(details=str(e))

                keep_alive = request.is_keep_alive and self.config.keep_alive

                # Connection headers are added to a copy on the wire only.
                headers = dict(response.headers)
                if keep_alive:
                    headers.setdefault("Connection", "keep-alive")
                    headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
                else:
                    headers["Connection"] = "close"

                wire = HTTPResponse(
                    status=response.status,
                    headers=headers,
                    body=response.body,
                    version=response.version,
                )
                if not conn.send_response(wire.to_bytes(self.config.server_name)):
                    break

                if not keep_alive:
                    break
        except Exception as e:
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            conn.close()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer failures that happen before the pipeline runs."""
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(
    config: Optional[ServiceConfig] = None,
    store: Optional[UserStore] = None,
) -> HTTPServer:
    """
    Build the user directory: store, pipeline and routes.

    Args:
        config: Service configuration; defaults apply when omitted.
        store: The store to serve. When omitted a new one is created,
            seeded with the startup users if ``config.seed_users`` is set.

    Example:
        app = create_app(ServiceConfig(port=3000))
        app.run()
    """
    config = config or ServiceConfig()

    if store is None:
        store = seeded_store() if config.seed_users else UserStore()

    app = HTTPServer(config)
    app.store = store

    app.use(
        ErrorHandlingMiddleware(),
        AuthenticationMiddleware(config.auth_token, config.invert_token_check),
        LoggingMiddleware(config.log_format),
    )
    UserHandlers(store).register(app.router)

    return app
