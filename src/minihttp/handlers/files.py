"""
=============================================================================
FILE HANDLER
=============================================================================

Serves files from the configured base directory:

    GET /files/report.txt  →  <directory>/report.txt as octet-stream

=============================================================================
FAILURE MODES
=============================================================================

Every way of not getting the file ends in the same bare 404:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Situation                              │ Response                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │ No directory configured                │ 404                        │
    │ Path does not start with /files/       │ 404                        │
    │ File missing, or a directory           │ 404                        │
    │ Permission denied / read error         │ 404                        │
    │ Name cannot be resolved (NUL byte)     │ 404                        │
    │ Name escapes the directory (.., /abs)  │ 404 (and a warning logged) │
    └─────────────────────────────────────────────────────────────────────┘

A client cannot tell "missing" from "forbidden".

=============================================================================
"""

import logging
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, not_found

logger = logging.getLogger(__name__)


FILES_PREFIX = "/files/"


def get_file(request: HTTPRequest, config) -> HTTPResponse:
    """
    GET /files/<name> → file bytes, or 404.

    Args:
        request: The parsed request.
        config: ServerConfig; config.directory is the base directory.
    """
    directory = getattr(config, "directory", None)
    if not directory:
        return not_found()

    if not request.path.startswith(FILES_PREFIX):
        return not_found()
    filename = request.path[len(FILES_PREFIX):]

    # ─────────────────────────────────────────────────────────────────
    # RESOLVE AND CONFINE TO THE BASE DIRECTORY
    # ─────────────────────────────────────────────────────────────────
    # resolve() collapses ".." and follows symlinks; the result must
    # still sit under the base directory.
    try:
        root = Path(directory).resolve()
        target = (root / filename).resolve()
    except (OSError, ValueError) as e:
        # ValueError: embedded NUL; OSError: symlink loop and the like
        logger.debug(f"Cannot resolve {filename!r}: {e}")
        return not_found()

    try:
        target.relative_to(root)
    except ValueError:
        logger.warning(f"Refusing file outside base directory: {filename!r}")
        return not_found()

    try:
        content = target.read_bytes()
    except OSError as e:
        logger.debug(f"Cannot read {target}: {e}")
        return not_found()

    return ResponseBuilder().binary(content).build()
