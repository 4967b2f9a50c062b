"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket. A connection carries exactly one
request and one response, then closes.

=============================================================================
WHY BUFFER THE READ?
=============================================================================

TCP is a byte stream, not a message stream. One recv() may return
half a request line, or the whole request, depending on how the
packets happened to arrive:

    Client sends:   "GET /echo/abc HTTP/1.1\r\nHost: x\r\n\r\n"

    recv() #1  →    "GET /echo/ab"
    recv() #2  →    "c HTTP/1.1\r\nHost: x\r\n\r\n"

Parsing after the first recv() would see a truncated path. So we keep
reading until the blank line that ends the head has arrived, or until
the buffer passes the size ceiling:

    ┌─────────────────────────────────────────────────────────────────┐
    │                    read_request() Flow                           │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   while "\r\n\r\n" not in buffer:                                │
    │       chunk = recv(recv_size)                                    │
    │       ├── b""            → peer closed: return what we have     │
    │       ├── OSError        → SocketError                           │
    │       └── buffer too big → RequestTooLarge                       │
    │                                                                  │
    │   return buffer up to and including "\r\n\r\n"                   │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import RequestTooLarge

logger = logging.getLogger(__name__)


HEAD_TERMINATOR = b"\r\n\r\n"


class SocketError(Exception):
    """
    A read or write on the client socket failed (reset, timeout, ...).

    The original OSError is kept as __cause__.
    """


class ConnectionState(Enum):
    """Where a connection is in its single request/response cycle."""

    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Waiting for the request head
    PROCESSING = "processing"  # Request decoded, handler running
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The accepted client socket. Owned by this object only.
        address: Client's (ip, port) tuple.
        id: Short random identifier for log lines.
        state: Current ConnectionState.
        created_at: When the connection was accepted.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    recv_size: int = 2048
    timeout: Optional[float] = 30.0
    max_request_size: int = 64 * 1024

    def __post_init__(self):
        # Deadline for every recv()/sendall() on this socket
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one request head from the socket.

        Returns:
            The request bytes up to and including the blank line. If
            the client closed early, whatever arrived before that (may
            be incomplete). None if the client sent nothing at all.

        Raises:
            RequestTooLarge: max_request_size bytes arrived without a
                             blank line.
            SocketError: recv() failed or timed out.
        """
        self.state = ConnectionState.READING
        buffer = bytearray()

        while HEAD_TERMINATOR not in buffer:
            chunk = self._recv()
            if not chunk:
                # Client closed its side
                return bytes(buffer) if buffer else None

            buffer += chunk

            if len(buffer) > self.max_request_size and HEAD_TERMINATOR not in buffer:
                raise RequestTooLarge(
                    f"No end of headers within {self.max_request_size} bytes"
                )

        end = buffer.index(HEAD_TERMINATOR) + len(HEAD_TERMINATOR)
        return bytes(buffer[:end])

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.recv_size)
        except OSError as e:
            raise SocketError(f"Read failed: {e}") from e

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> None:
        """
        Send the whole response.

        sendall() keeps writing until every byte is out; send() may
        stop part-way.

        Raises:
            SocketError: The client went away or the write timed out.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise SocketError(f"Write failed: {e}") from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        shutdown(SHUT_WR) sends FIN first so the client sees a clean end
        of the response before the descriptor is released.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Client already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        """
        Use with 'with' so the socket is closed however handling ends:

            with conn:
                data = conn.read_request()
                conn.send_response(response_bytes)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
