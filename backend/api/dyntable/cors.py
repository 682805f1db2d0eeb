# dyntable/cors.py

"""
CORS headers for the responses ``CORSMiddleware`` never sees.

``CORSMiddleware`` decorates ordinary responses, but OPTIONS requests are
answered before it (always 204, empty body) and the catch-all 500 response
is built by ``ServerErrorMiddleware`` outside it. Both use these helpers so
every response carries the same origin rules.
"""

from typing import Dict, Optional, Sequence

from fastapi import Request
from fastapi.responses import Response

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, X-Table-Name"


def allowed_origin(request_origin: Optional[str], allow_origins: Sequence[str]) -> Optional[str]:
    """Value for ``Access-Control-Allow-Origin``, or ``None`` to omit it.

    A wildcard (or an empty list) allows everyone with ``*``; otherwise the
    caller's origin is echoed only when it is listed.
    """
    if not allow_origins or "*" in allow_origins:
        return "*"
    if request_origin and request_origin in allow_origins:
        return request_origin
    return None


def cors_headers(request: Request, allow_origins: Sequence[str]) -> Dict[str, str]:
    origin = allowed_origin(request.headers.get("origin"), allow_origins)
    if origin is None:
        return {}
    headers = {"Access-Control-Allow-Origin": origin}
    if origin != "*":
        headers["Vary"] = "Origin"
    return headers


def preflight_response(request: Request, allow_origins: Sequence[str]) -> Response:
    """Empty 204 answer to any OPTIONS request, browser preflight or not."""
    headers = cors_headers(request, allow_origins)
    headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
    headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
    return Response(status_code=204, headers=headers)
