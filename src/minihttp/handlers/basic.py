"""
Stateless handlers: root, echo and user-agent reflection.

Each is a plain function (request, config) -> HTTPResponse. None of
them reads the config; they accept it so every route shares one
handler signature.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, text_response


ECHO_PREFIX = "/echo/"


def root(request: HTTPRequest, config=None) -> HTTPResponse:
    """GET / → 200 OK, nothing else."""
    return ok()


def echo(request: HTTPRequest, config=None) -> HTTPResponse:
    """
    GET /echo/<text> → <text> as text/plain.

    Only the leading "/echo/" is removed: "/echo/a/echo/b" echoes
    "a/echo/b".
    """
    return text_response(request.path.removeprefix(ECHO_PREFIX))


def user_agent(request: HTTPRequest, config=None) -> HTTPResponse:
    """
    GET /user-agent → the User-Agent header as text/plain.

    A request without the header still gets 200 OK, just with no body.
    The lookup is exact-case unless the server canonicalizes names.
    """
    value = request.get_header("User-Agent")
    if value is None:
        return ok()
    return text_response(value)
