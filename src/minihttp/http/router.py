"""
=============================================================================
ROUTE TABLE
=============================================================================

An ordered list of routes. The first route that matches a request
handles it.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /echo/abc                                                      │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌────────────────────────────────────────────────────────────┐    │
    │   │  Registered Routes (tried top to bottom)                   │    │
    │   │                                                            │    │
    │   │  GET  /             EXACT   → root                         │    │
    │   │  GET  /echo/        PREFIX  → echo        ← MATCH, stop    │    │
    │   │  GET  /user-agent   EXACT   → user_agent                   │    │
    │   │  GET  /files/       PREFIX  → get_file                     │    │
    │   └────────────────────────────────────────────────────────────┘    │
    │        │                                                             │
    │        ▼                                                             │
    │   echo(request, config) → HTTPResponse                               │
    │                                                                      │
    │   Nothing matched → 404 Not Found, no body                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCH MODES
=============================================================================

    EXACT   request.path == route.path
    PREFIX  request.path.startswith(route.path)

PREFIX is a raw string test, not a path-segment test: a route on
"/echo" also matches "/echoXYZ". Register prefixes with a trailing
slash ("/echo/") when only the segment should match.

=============================================================================
SHARING ACROSS THREADS
=============================================================================

Routes are added at startup. freeze() then turns the list into a
tuple and refuses further changes, so every worker thread can read the
table without locking.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from .request import HTTPMethod, HTTPRequest
from .response import HTTPResponse, not_found


# Handler: (request, shared config) -> response. The config is typed
# loosely here to keep the http package free of server imports.
Handler = Callable[[HTTPRequest, object], HTTPResponse]


class MatchMode(Enum):
    """How a route compares its path with the request path."""

    EXACT = "exact"
    PREFIX = "prefix"


@dataclass(frozen=True)
class Route:
    """
    One entry in the route table.

        Route(
            method=HTTPMethod.GET,
            path="/echo/",
            mode=MatchMode.PREFIX,
            handler=echo,
        )
    """

    method: HTTPMethod
    path: str
    mode: MatchMode
    handler: Handler

    def matches(self, request: HTTPRequest) -> bool:
        """Method must be equal; path is compared according to mode."""
        if request.method is not self.method:
            return False

        if self.mode is MatchMode.EXACT:
            return request.path == self.path
        return request.path.startswith(self.path)


class Router:
    """
    First-match-wins request router.

    =========================================================================
    USAGE
    =========================================================================

        router = Router()

        @router.get("/")
        def root(request, config):
            return ok()

        @router.get("/echo/", mode=MatchMode.PREFIX)
        def echo(request, config):
            ...

        router.freeze()
        response = router.execute(request, config)

    =========================================================================
    """

    def __init__(self):
        self._routes: Union[List[Route], tuple] = []

    @property
    def routes(self) -> Sequence[Route]:
        """Registered routes, in priority order."""
        return tuple(self._routes)

    @property
    def frozen(self) -> bool:
        return isinstance(self._routes, tuple)

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add(self, route: Route) -> Route:
        """
        Append a route. Earlier routes take priority over later ones.

        Raises:
            RuntimeError: The table was already frozen.
        """
        if self.frozen:
            raise RuntimeError("Route table is frozen; add routes before startup")

        self._routes.append(route)
        return route

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: HTTPMethod = HTTPMethod.GET,
        mode: MatchMode = MatchMode.EXACT,
    ) -> Route:
        """Build a Route and append it."""
        return self.add(Route(method=method, path=path, mode=mode, handler=handler))

    def freeze(self) -> "Router":
        """Make the table read-only. Safe to call more than once."""
        self._routes = tuple(self._routes)
        return self

    # ─────────────────────────────────────────────────────────────────────
    # Decorator-style registration
    # ─────────────────────────────────────────────────────────────────────

    def route(
        self,
        path: str,
        method: HTTPMethod = HTTPMethod.GET,
        mode: MatchMode = MatchMode.EXACT,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @router.route("/files/", mode=MatchMode.PREFIX)
            def get_file(request, config):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method=method, mode=mode)
            return handler  # unchanged, so decorators can stack

        return decorator

    def get(self, path: str, mode: MatchMode = MatchMode.EXACT) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, HTTPMethod.GET, mode)

    def post(self, path: str, mode: MatchMode = MatchMode.EXACT) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, HTTPMethod.POST, mode)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def match(self, request: HTTPRequest) -> Optional[Route]:
        """First route that matches the request, or None."""
        for route in self._routes:
            if route.matches(request):
                return route
        return None

    def execute(self, request: HTTPRequest, config: object = None) -> HTTPResponse:
        """
        Run the first matching handler and return its response.

        No later route is tried once one matches. With no match the
        result is a bare 404; that is a normal response, not an error.
        """
        route = self.match(request)
        if route is None:
            return not_found()
        return route.handler(request, config)

    def describe(self) -> List[str]:
        """One line per route, for the startup log."""
        return [
            f"{route.method.value:<5} {route.path:<15} {route.mode.value:<6} → "
            f"{getattr(route.handler, '__name__', repr(route.handler))}"
            for route in self._routes
        ]
