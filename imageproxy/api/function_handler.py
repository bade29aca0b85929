"""Function-style request handler (serverless surface).

Architectural role:
- Framework-neutral adapter for hosts that deliver one parsed request per
  function call and expect status, headers and body back.
- Adds the permissive cross-origin headers itself, answers `OPTIONS` on any
  path, and rejects methods other than `POST` on the generation routes.
- Delegates everything else to `routes.dispatch`, the same path the FastAPI
  server uses.
"""

import time

import requests

from imageproxy.api import routes
from imageproxy.config import ProxyConfig
from imageproxy.core.types import ProxyResponse


def _with_cors(result):
    headers = dict(routes.CORS_HEADERS)
    headers.update(result.headers or {})
    result.headers = headers
    return result


def handle(method, path, body, headers=None, *, config=None, session_factory=requests.Session, sleep=time.sleep):
    """Handle one request.

    Args:
        method: HTTP method name.
        path: Request path, for example `/api/generate-image`.
        body: Parsed JSON body (anything that is not a dict counts as `{}`).
        headers: Request headers; only `origin` is consulted.
        config: Resolved `ProxyConfig`; read from the environment when omitted.

    Returns:
        `ProxyResponse` carrying CORS headers.
    """
    method = (method or "").upper()
    headers = {k.lower(): v for k, v in (headers or {}).items()}

    if path == routes.HEALTH_PATH and method == "GET":
        return _with_cors(routes.health())

    if method == "OPTIONS":
        return _with_cors(ProxyResponse(status_code=200, body=b"", media_type="text/plain"))

    if path not in routes.POST_ROUTES:
        return _with_cors(routes.not_found(method, path))

    if method != "POST":
        return _with_cors(routes.method_not_allowed())

    config = config or ProxyConfig.from_env()
    result = routes.dispatch(
        path,
        body if isinstance(body, dict) else {},
        config,
        session_factory=session_factory,
        sleep=sleep,
        origin=headers.get("origin"),
    )
    return _with_cors(result)
