"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read off a socket into an HTTPRequest value.

=============================================================================
WHAT WE ACCEPT
=============================================================================

    GET /echo/abc HTTP/1.1\r\n          ← start-line
    Host: localhost:4221\r\n            ← header lines
    User-Agent: curl/8\r\n
    \r\n                                ← end of head
    (anything after this is ignored)

This is a small subset of RFC 7230, parsed leniently:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Input                          │ Result                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Unknown method "BREW /"        │ treated as GET                     │
    │ Missing version "GET /"        │ accepted, version is ignored       │
    │ Header line without ": "       │ line dropped, request still parses │
    │ Header sent twice              │ last value wins                    │
    │ Start-line with one token      │ MalformedStartLine                 │
    │ Bytes that are not UTF-8       │ EncodingError                      │
    │ Head larger than the limit     │ RequestTooLarge                    │
    └─────────────────────────────────────────────────────────────────────┘

Request bodies are never parsed. Header names keep the exact case the
client sent unless the parser is built with canonical_headers=True.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


HEAD_TERMINATOR = "\r\n\r\n"
LINE_TERMINATOR = "\r\n"
HEADER_SEPARATOR = ": "


# =============================================================================
# PARSE ERRORS
# =============================================================================

class HTTPParseError(Exception):
    """
    Raised when request bytes cannot be turned into an HTTPRequest.

    Carries the HTTP status a stricter server would answer with. This
    server drops the connection instead of answering, so the code is
    only used for logging.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class EncodingError(HTTPParseError):
    """The request bytes are not valid UTF-8."""


class MalformedStartLine(HTTPParseError):
    """The start-line has fewer than two space-separated tokens."""


class RequestTooLarge(HTTPParseError):
    """The request head does not fit under the size ceiling."""

    def __init__(self, message: str):
        super().__init__(message, status_code=413)


# =============================================================================
# REQUEST MODEL
# =============================================================================

class HTTPMethod(Enum):
    """Request methods the router can tell apart."""

    GET = "GET"
    POST = "POST"

    @classmethod
    def from_token(cls, token: str) -> "HTTPMethod":
        """
        Map a start-line token to a method.

        Anything unrecognized becomes GET. Tokens are compared as sent,
        so "get" is unrecognized too.
        """
        try:
            return cls(token)
        except ValueError:
            return cls.GET


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request. Built once per connection, never modified.

    Attributes:
        method:  HTTPMethod from the first start-line token
        path:    second start-line token, verbatim ("/echo/abc")
        headers: read-only mapping of header name → value
    """

    method: HTTPMethod
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the mapping so handlers cannot edit a shared request
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Look up a header by its exact name.

        "user-agent" does not find "User-Agent" unless the request was
        parsed with canonical header names.
        """
        return self.headers.get(name, default)


# =============================================================================
# PARSER
# =============================================================================

class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        raw bytes
            │
            ├─ 1. size check ───────────► RequestTooLarge
            ├─ 2. strict UTF-8 decode ──► EncodingError
            ├─ 3. cut head at \\r\\n\\r\\n (body discarded)
            ├─ 4. start-line ───────────► MalformedStartLine
            ├─ 5. header lines (lenient)
            ▼
        HTTPRequest

    ==========================================================================
    """

    def __init__(
        self,
        max_request_size: int = 64 * 1024,
        canonical_headers: bool = False,
    ):
        """
        Args:
            max_request_size: Largest accepted request, in bytes.
            canonical_headers: Rewrite header names to Title-Case
                               ("user-agent" → "User-Agent") so lookups
                               no longer depend on the client's casing.
        """
        self.max_request_size = max_request_size
        self.canonical_headers = canonical_headers

    def parse(self, data: bytes) -> HTTPRequest:
        """
        Parse one request.

        Raises:
            RequestTooLarge: data is over max_request_size.
            EncodingError: data is not UTF-8.
            MalformedStartLine: the start-line has fewer than two tokens.
        """
        if len(data) > self.max_request_size:
            raise RequestTooLarge(
                f"Request too large: {len(data)} bytes "
                f"(limit {self.max_request_size})"
            )

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"Request is not valid UTF-8: {e}") from e

        # Everything after the blank line is body, which we never read
        head = text.split(HEAD_TERMINATOR, 1)[0]
        lines = head.split(LINE_TERMINATOR)

        method, path = self._parse_start_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(method=method, path=path, headers=headers)

    def _parse_start_line(self, line: str) -> Tuple[HTTPMethod, str]:
        """
        Split "METHOD PATH [VERSION]" on single spaces.

        Only the first two tokens are used; the version is ignored.
        """
        tokens = line.split(" ")
        if len(tokens) < 2:
            raise MalformedStartLine(f"Invalid start-line: {line!r}")

        return HTTPMethod.from_token(tokens[0]), tokens[1]

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines.

        The value is everything after the first ": ", so
        "X-Time: 12: 30" gives "12: 30". Lines without the separator are
        skipped rather than failing the request.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            name, separator, value = line.partition(HEADER_SEPARATOR)
            if not separator:
                continue  # malformed, ignore

            if self.canonical_headers:
                name = canonical_header_name(name)

            headers[name] = value  # duplicates: last one wins

        return headers


def canonical_header_name(name: str) -> str:
    """
    Canonical form of a header name: "content-TYPE" → "Content-Type".
    """
    return "-".join(part.capitalize() for part in name.split("-"))


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    max_size: int = 64 * 1024,
    canonical_headers: bool = False,
) -> HTTPRequest:
    """
    Parse a request with a throwaway RequestParser.

    Use RequestParser directly to parse many requests with the same
    settings.
    """
    parser = RequestParser(
        max_request_size=max_size,
        canonical_headers=canonical_headers,
    )
    return parser.parse(data)
