"""
=============================================================================
TCP LISTENER
=============================================================================

Binds the listening socket and accepts connections until shut down.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Claim host:port
    3. listen()    Let the kernel queue incoming connections
    4. accept()    Take one connection; returns a NEW socket for that client
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
            ┌───────────────────┼───────────────────┐
            ▼                   ▼                   ▼
      client socket       client socket       client socket
      (Connection)        (Connection)        (Connection)
            │                   │                   │
            └─────── handed to connection_handler ──┘

=============================================================================
ERRORS
=============================================================================

A failed bind() is fatal and re-raised. Once listening, a failed
accept() (EMFILE, ECONNABORTED, ...) is logged and the loop carries on.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)


class SocketServer:
    """
    Listening socket plus accept loop.

        server = SocketServer(config)
        server.start(handle_connection)  # bind() + serve_forever()

    handle_connection(conn) runs on the accept thread and must return
    quickly; HTTPServer only queues the connection for a worker there.
    """

    # accept() wakes this often to look at the stop flag
    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None
        self._stop = threading.Event()
        self._saved_handlers: Dict[int, Any] = {}

        # Set once the socket is listening; tests wait on it
        self.ready = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._listener is not None and not self._stop.is_set()

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """(host, port) actually bound; shows the real port when port=0."""
        return self._bound_address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, then accept until shutdown(). Blocks.

        Raises:
            OSError: The address could not be bound.
        """
        self.bind()
        self.serve_forever(connection_handler)

    def bind(self) -> Tuple[str, int]:
        """
        Open the listening socket and return the bound address.

        Raises:
            OSError: bind() or listen() failed; nothing is left open.
        """
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Restarting right away must not trip over TIME_WAIT sockets
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.settimeout(self.ACCEPT_POLL_INTERVAL)

        address = (self.config.host, self.config.port)
        try:
            listener.bind(address)
            listener.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {address[0]}:{address[1]}: {e}")
            listener.close()
            raise

        self._listener = listener
        self._bound_address = listener.getsockname()[:2]
        self._stop.clear()
        logger.info(f"Listening on {self._bound_address[0]}:{self._bound_address[1]}")
        return self._bound_address

    def serve_forever(self, connection_handler: Callable[[Connection], None]):
        """Accept connections on the bound socket until shutdown()."""
        if self._listener is None:
            raise RuntimeError("bind() must be called before serve_forever()")

        self._install_signal_handlers()
        self.ready.set()
        try:
            while not self._stop.is_set():
                accepted = self._accept()
                if accepted is not None:
                    connection_handler(self._wrap(*accepted))
        finally:
            self._close()

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        if self.is_running:
            logger.info("Stopping accept loop")
        self._stop.set()

    # =========================================================================
    # ACCEPT LOOP INTERNALS
    # =========================================================================

    def _accept(self) -> Optional[Tuple[socket.socket, Tuple[str, int]]]:
        """One accept(); None on a poll tick or a transient error."""
        try:
            return self._listener.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if not self._stop.is_set():
                logger.error(f"accept() failed, continuing: {e}")
            return None

    def _wrap(self, client_socket: socket.socket, client_address) -> Connection:
        logger.debug(f"Accepted {client_address[0]}:{client_address[1]}")
        return Connection(
            socket=client_socket,
            address=client_address,
            recv_size=self.config.recv_size,
            timeout=self.config.timeout,
            max_request_size=self.config.max_request_size,
        )

    def _close(self):
        self._restore_signal_handlers()
        self.ready.clear()

        if self._listener is not None:
            try:
                self._listener.close()
            except OSError:
                pass
            self._listener = None

        self._stop.set()
        logger.info("Listener closed")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _install_signal_handlers(self):
        """
        SIGINT/SIGTERM call shutdown().

        Only the main thread may install handlers, so a server running
        on another thread (tests, embedding) leaves them alone.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._saved_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signal_handlers(self):
        for sig, previous in self._saved_handlers.items():
            signal.signal(sig, previous)
        self._saved_handlers.clear()
