"""
=============================================================================
MINIHTTP - A Minimal HTTP/1.1 Server Built From Scratch
=============================================================================

A small HTTP server on raw Python sockets: no http.server, no
frameworks. It parses just enough HTTP/1.1 to route a handful of
endpoints and answers exactly one request per connection.

=============================================================================
ENDPOINTS
=============================================================================

    GET /              200 OK, empty
    GET /echo/<text>   <text> as text/plain
    GET /user-agent    the User-Agent header as text/plain
    GET /files/<name>  file bytes from --directory, or 404
    anything else      404 Not Found, empty

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttp)
    ├── server.py            # HTTPServer orchestrator + create_app()
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Sockets and threads
    │   ├── socket_server.py # Accept loop
    │   ├── connection.py    # One client socket, one request
    │   └── thread_pool.py   # Bounded worker threads
    ├── http/                # Protocol, no I/O
    │   ├── request.py       # bytes → HTTPRequest
    │   ├── response.py      # HTTPResponse → bytes
    │   ├── router.py        # First-match-wins route table
    │   └── status_codes.py  # 200 / 404
    └── handlers/            # Endpoint logic
        ├── basic.py         # root, echo, user_agent
        └── files.py         # get_file

=============================================================================
QUICK START
=============================================================================

    from minihttp import ServerConfig, create_app

    app = create_app(ServerConfig(directory="/tmp"))
    app.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
