"""
FastAPI adapter for the image proxy (long-running server surface).

Architectural role:
- Expose the client-facing HTTP contract (`/api/generate-prompt`,
  `/api/generate-image`, `/api/test`).
- Apply permissive cross-origin headers and request logging.
- Delegate validation, provider selection and rendering to
  `imageproxy.core.orchestrator` through `routes.dispatch`.

API request lifecycle (`POST /api/generate-image`):
1. Parse the JSON body; anything that is not a JSON object counts as `{}`.
2. Run the orchestrator in the thread pool so blocking upstream I/O never
   stalls the event loop.
3. Emit raw image bytes with the provider content type, or `{error}`.

Error handling strategy:
- Unknown routes -> 404 `{"error": "Route not found: METHOD path"}`.
- Wrong method on a known route -> 405 `{"error": "Method not allowed"}`.
- Unhandled exceptions -> 500 `{"error": ...}`.

Side effects:
- Importing the module builds `app` via `create_app()`, which resolves
  `ProxyConfig.from_env()` and so reads `.env.local`/`.env`.
"""

import logging
import time

import requests
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from imageproxy.api import routes
from imageproxy.config import ProxyConfig


logger = logging.getLogger(__name__)


async def read_json_body(request: Request) -> dict:
    """Return the request JSON object, or `{}` for empty/invalid bodies."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def to_response(result) -> Response:
    """Convert a transport-neutral `ProxyResponse` to a Starlette response."""
    if result.is_json:
        return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )


def default_cors_headers(config) -> dict:
    """Cross-origin headers added to every response.

    `Access-Control-Allow-Origin` is only forced for wildcard deployments;
    restricted origin lists are answered by `CORSMiddleware` alone.
    """
    headers = dict(routes.CORS_HEADERS)
    if "*" not in config.cors_origins:
        headers.pop("Access-Control-Allow-Origin")
    return headers


def create_app(config=None, session_factory=requests.Session, sleep=time.sleep) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Resolved `ProxyConfig`; read from the environment when omitted.
        session_factory: Zero-argument callable returning a `requests.Session`
            (one per request).
        sleep: Delay function used between deferred-job polls.
    """
    config = config or ProxyConfig.from_env()

    app = FastAPI(title="imageproxy")
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=routes.ALLOWED_METHODS,
        allow_headers=routes.ALLOWED_HEADERS,
    )

    cors_headers = default_cors_headers(config)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
        for name, value in cors_headers.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            result = routes.not_found(request.method, request.url.path)
        elif exc.status_code == 405:
            result = routes.method_not_allowed()
        else:
            return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})
        return to_response(result)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "Internal server error"},
            headers=cors_headers,
        )

    async def run_route(request: Request, path: str) -> Response:
        body = await read_json_body(request)
        result = await run_in_threadpool(
            routes.dispatch,
            path,
            body,
            config,
            session_factory=session_factory,
            sleep=sleep,
            origin=request.headers.get("origin"),
        )
        return to_response(result)

    @app.get(routes.HEALTH_PATH)
    def health():
        return to_response(routes.health())

    @app.post(routes.GENERATE_PROMPT_PATH)
    async def generate_prompt(request: Request):
        return await run_route(request, routes.GENERATE_PROMPT_PATH)

    @app.post(routes.GENERATE_IMAGE_PATH)
    async def generate_image(request: Request):
        return await run_route(request, routes.GENERATE_IMAGE_PATH)

    @app.options(routes.GENERATE_PROMPT_PATH)
    @app.options(routes.GENERATE_IMAGE_PATH)
    def preflight():
        return Response(status_code=200)

    return app


app = create_app()
