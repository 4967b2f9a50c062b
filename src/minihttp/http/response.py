"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Response values produced by handlers, and their wire serialization.

=============================================================================
RESPONSE FORMAT
=============================================================================

    HTTP/1.1 200 OK\\r\\n                  ← status line
    Content-Type: text/plain\\r\\n         ← one line per header
    Content-Length: 3\\r\\n
    \\r\\n                                 ← blank line
    abc                                  ← body bytes, verbatim

to_bytes() writes exactly what the response holds. It does not add
Date, Server, Connection or Content-Length on its own; the connection
simply closes after the single write. Handlers that send a body set
Content-Length themselves, usually through ResponseBuilder.

=============================================================================
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"


@dataclass(frozen=True)
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns        to_bytes()          Connection sends
        HTTPResponse   ─────►  serializes  ─────►  raw bytes once

    A response is created once by a handler and consumed once by the
    encoder. headers=None and body=None mean "none at all", which is
    what root and the 404 fallback use.

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    body: Optional[bytes] = None
    headers: Optional[Mapping[str, str]] = None

    def __post_init__(self):
        if self.headers is not None:
            object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

        # Content-Length, when given, must describe the body we hold
        declared = self.header("Content-Length")
        if declared is not None and int(declared) != len(self.body or b""):
            raise ValueError(
                f"Content-Length {declared} does not match body length "
                f"{len(self.body or b'')}"
            )

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 200 OK"."""
        return f"{HTTP_VERSION} {self.status.status_text}"

    def header(self, name: str) -> Optional[str]:
        """Exact-case header lookup; None if absent."""
        if self.headers is None:
            return None
        return self.headers.get(name)

    def to_bytes(self) -> bytes:
        """
        Serialize for socket.sendall().

        Header order follows the mapping's iteration order and carries
        no meaning.
        """
        lines = [self.status_line]
        for name, value in (self.headers or {}).items():
            lines.append(f"{name}: {value}")

        # Trailing "" gives the blank line that ends the head
        lines.append("")
        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        return head + (self.body or b"")


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("abc")
            .build())

    text() and binary() set Content-Type and a matching Content-Length,
    so built responses always satisfy the Content-Length invariant.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Optional[bytes] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the body and its Content-Length.

        Strings are encoded as UTF-8; the length is the byte count, not
        the character count.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        self._headers["Content-Length"] = str(len(body))
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain-text body with Content-Type: text/plain."""
        self._headers["Content-Type"] = "text/plain"
        return self.body(text)

    def binary(self, content: bytes) -> "ResponseBuilder":
        """Opaque bytes with Content-Type: application/octet-stream."""
        self._headers["Content-Type"] = "application/octet-stream"
        return self.body(content)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            body=self._body,
            headers=self._headers or None,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok() -> HTTPResponse:
    """200 OK with no headers and no body."""
    return HTTPResponse(status=HTTPStatus.OK)


def not_found() -> HTTPResponse:
    """404 Not Found with no headers and no body."""
    return HTTPResponse(status=HTTPStatus.NOT_FOUND)


def text_response(text: str) -> HTTPResponse:
    """200 OK carrying text/plain content."""
    return ResponseBuilder().text(text).build()
