"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP pipeline:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds host:port and runs the accept() loop                        │
    │  • Wraps every accepted socket in a Connection                       │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ hands off each Connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Bounded set of worker threads                                     │
    │  • Bounded queue of connections waiting for a worker                 │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker runs the pipeline
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Reads one request head, writes one response, closes               │
    │  • Socket failures surface as SocketError                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, SocketError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Accept loop
    "Connection",       # One client socket, one request
    "ConnectionState",  # Lifecycle states of a Connection
    "SocketError",      # Read/write failure on a client socket
    "ThreadPool",       # Bounded worker threads
]
