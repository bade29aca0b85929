"""Route table and cross-origin policy shared by the transport adapters.

Both the FastAPI server and the function-style handler resolve paths through
`dispatch`, so they differ only in how requests arrive and responses leave.
"""

import time

import requests

from imageproxy.core import orchestrator
from imageproxy.core.types import ProxyResponse


GENERATE_PROMPT_PATH = "/api/generate-prompt"
GENERATE_IMAGE_PATH = "/api/generate-image"
HEALTH_PATH = "/api/test"

POST_ROUTES = (GENERATE_PROMPT_PATH, GENERATE_IMAGE_PATH)

ALLOWED_METHODS = ["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"]
ALLOWED_HEADERS = [
    "X-CSRF-Token",
    "X-Requested-With",
    "Accept",
    "Accept-Version",
    "Content-Length",
    "Content-MD5",
    "Content-Type",
    "Date",
    "X-Api-Version",
]

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}


def health():
    return ProxyResponse(status_code=200, body={"message": "Server is running!"})


def not_found(method, path):
    return ProxyResponse(status_code=404, body={"error": f"Route not found: {method} {path}"})


def method_not_allowed():
    return ProxyResponse(status_code=405, body={"error": "Method not allowed"})


def dispatch(path, body, config, *, session_factory=requests.Session, sleep=time.sleep, origin=None):
    """Run the orchestrator for a POST route with a request-scoped session."""
    with session_factory() as session:
        if path == GENERATE_PROMPT_PATH:
            return orchestrator.generate_prompt(body, config, session=session, origin=origin)
        if path == GENERATE_IMAGE_PATH:
            return orchestrator.generate_image(body, config, session=session, sleep=sleep)
    return not_found("POST", path)
