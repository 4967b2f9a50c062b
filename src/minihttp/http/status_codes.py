"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on the wire.

=============================================================================
THE STATUS LINE
=============================================================================

Every response starts with a status line:

    HTTP/1.1 404 Not Found\r\n
    ──┬───── ─┬─ ────┬────
      │       │      │
    Version  Code  Reason phrase

The set is deliberately small. The server only ever answers with
200 (a handler produced content) or 404 (nothing matched, or the file
could not be read). New members can be added here together with their
phrase in _STATUS_PHRASES.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum lets a status compare equal to its number:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.status_text
        '404 Not Found'
    """

    OK = 200            # A handler produced a response
    NOT_FOUND = 404     # No route matched, or the file is unavailable

    @property
    def phrase(self) -> str:
        """Reason phrase used after the code in the status line."""
        return _STATUS_PHRASES[self]

    @property
    def status_text(self) -> str:
        """Code and phrase as they appear on the wire: '200 OK'."""
        return f"{self.value} {self.phrase}"


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
}
