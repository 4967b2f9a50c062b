"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Pure, I/O-free pieces of the request pipeline:

    request.py       bytes → HTTPRequest          (decode)
    router.py        HTTPRequest → handler         (first match wins)
    response.py      HTTPResponse → bytes          (encode)
    status_codes.py  200 OK / 404 Not Found

Nothing in this package touches a socket or the filesystem.

=============================================================================
"""

from .request import (
    HTTPMethod,
    HTTPRequest,
    RequestParser,
    parse_request,
    # Parse error taxonomy
    HTTPParseError,
    EncodingError,
    MalformedStartLine,
    RequestTooLarge,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,             # 200 OK, empty
    not_found,      # 404 Not Found, empty
    text_response,  # 200 OK, text/plain
)
from .router import Router, Route, MatchMode, Handler
from .status_codes import HTTPStatus

# Public API - what you get when you do:
# from minihttp.http import *
__all__ = [
    # Request parsing
    "HTTPMethod",
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "HTTPParseError",
    "EncodingError",
    "MalformedStartLine",
    "RequestTooLarge",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "not_found",
    "text_response",

    # Routing
    "Router",
    "Route",
    "MatchMode",
    "Handler",

    # Status codes
    "HTTPStatus",
]
