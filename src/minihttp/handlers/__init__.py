"""
=============================================================================
HANDLERS MODULE
=============================================================================

The endpoints this server answers.

=============================================================================
WHAT IS A HANDLER?
=============================================================================

A handler is a function that turns a request into a response:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST → HANDLER → RESPONSE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTPRequest           handler(request, config)     HTTPResponse  │
    │   ┌─────────────┐           ┌─────────┐           ┌─────────────┐   │
    │   │ GET         │           │         │           │ 200 OK      │   │
    │   │ /echo/abc   │ ────────▶ │  echo   │ ────────▶ │ text/plain  │   │
    │   │             │           │         │           │ abc         │   │
    │   └─────────────┘           └─────────┘           └─────────────┘   │
    │                                                                      │
    │   The config argument is the shared, read-only ServerConfig.        │
    │   Handlers never touch the socket.                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BUILT-IN HANDLERS
=============================================================================

    root        GET /             200, empty
    echo        GET /echo/<s>     <s> as text/plain
    user_agent  GET /user-agent   User-Agent header as text/plain
    get_file    GET /files/<f>    <directory>/<f> as application/octet-stream

=============================================================================
"""

from .basic import root, echo, user_agent
from .files import get_file

__all__ = [
    "root",
    "echo",
    "user_agent",
    "get_file",
]
