"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the listener, the worker pool, the parser and the route table into
one server.

=============================================================================
ONE CONNECTION, START TO FINISH
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                     (listener thread)        │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool.submit(_process_connection)                             │
    │        │                                                             │
    │ ───────┼──────────────────────────────────────── (worker thread) ─── │
    │        ▼                                                             │
    │   conn.read_request()        bytes up to the blank line             │
    │        ▼                                                             │
    │   RequestParser.parse()      → HTTPRequest                           │
    │        ▼                                                             │
    │   Router.execute()           → handler(request, config)              │
    │        ▼                                                             │
    │   HTTPResponse.to_bytes()                                            │
    │        ▼                                                             │
    │   conn.send_response()       single write                           │
    │        ▼                                                             │
    │   conn.close()               via the 'with' block                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A connection that fails anywhere along the way (unreadable bytes,
malformed start-line, oversized head, socket error, crashing handler)
is logged and closed without a response. Nothing propagates back to
the accept loop or to other connections.

The router and config are shared by all workers and never modified
after run() starts, so no locking is needed.

=============================================================================
"""

import logging
import time
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, SocketError, ThreadPool
from .handlers import root, echo, user_agent, get_file
from .http import (
    HTTPRequest, HTTPResponse, RequestParser, HTTPParseError,
    Router, MatchMode,
)

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("minihttp.access")


class HTTPServer:
    """
    Minimal HTTP/1.1 server: one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=4221))

        @server.get("/")
        def index(request, config):
            return ok()

        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()

    create_app() returns a server with the standard routes registered.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration; defaults are used if omitted.
            router: Pre-built route table; a new empty one if omitted.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail fast, before binding anything

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(
            max_request_size=self.config.max_request_size,
            canonical_headers=self.config.canonical_headers,
        )
        self._router = router or Router()

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, **kwargs):
        """Register a route handler (see Router.route)."""
        return self._router.route(path, **kwargs)

    def get(self, path: str, mode: MatchMode = MatchMode.EXACT):
        """Register a GET route."""
        return self._router.get(path, mode)

    def post(self, path: str, mode: MatchMode = MatchMode.EXACT):
        """Register a POST route."""
        return self._router.post(path, mode)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) once listening, else None."""
        return self._socket_server.bound_address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. False on timeout."""
        return self._socket_server.ready.wait(timeout)

    def run(self):
        """
        Start the server (blocking).

        Freezes the route table, starts the worker pool, then runs the
        accept loop until shutdown() or a termination signal.

        Raises:
            OSError: The listen address could not be bound.
        """
        self._setup_logging()
        self._router.freeze()
        self._thread_pool.start()

        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port}")
        for line in self._router.describe():
            logger.info(f"  route {line}")
        if self.config.directory:
            logger.info(f"Serving files from: {self.config.directory}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        When every worker is busy and the queue is full, the accept loop
        waits here, up to config.timeout, before giving up on the
        connection.
        """
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            queue_timeout=self.config.timeout,
            on_discard=Connection.close,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] All workers busy, dropping connection from {conn.client_ip}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve exactly one request on conn (runs on a worker thread).

        read → parse → route → encode → write, then close.
        """
        start_time = time.time()

        with conn:
            try:
                raw_request = conn.read_request()
                if raw_request is None:
                    logger.debug(f"[{conn.id}] Client closed before sending a request")
                    return

                request = self._parser.parse(raw_request)

                conn.state = ConnectionState.PROCESSING
                response = self._router.execute(request, self.config)

                conn.send_response(response.to_bytes())

            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Dropping unparseable request from {conn.client_ip}: {e}")
                return
            except SocketError as e:
                logger.warning(f"[{conn.id}] Abandoning connection from {conn.client_ip}: {e}")
                return
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                return

        self._log_access(conn, request, response, start_time)

    def _log_access(
        self,
        conn: Connection,
        request: HTTPRequest,
        response: HTTPResponse,
        start_time: float,
    ):
        duration_ms = (time.time() - start_time) * 1000
        access_logger.info(
            f'{conn.client_ip} "{request.method.value} {request.path}" '
            f"{response.status.value} {len(response.body or b'')} {duration_ms:.2f}ms"
        )


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server with the standard routes:

        GET /             root
        GET /echo/...     echo
        GET /user-agent   user_agent
        GET /files/...    get_file (only when config.directory is set)

    Example:
        app = create_app(ServerConfig(directory="/tmp"))
        app.run()
    """
    app = HTTPServer(config)

    app.get("/")(root)
    app.get("/echo/", mode=MatchMode.PREFIX)(echo)
    app.get("/user-agent")(user_agent)

    if app.config.directory:
        app.get("/files/", mode=MatchMode.PREFIX)(get_file)

    return app
