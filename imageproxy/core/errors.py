"""Upstream error normalization.

Architectural role:
    Single place where upstream status codes and error bodies are mapped to the
    small set of client-facing error kinds. The endpoint cascade, the job
    polling machine and the prompt-expansion client all delegate here instead of
    carrying their own status-to-message tables.

Classification precedence (`normalize`):
    1. 401/403 -> AUTH_FAILURE
    2. 410     -> ENDPOINT_GONE
    3. 503     -> TEMPORARILY_UNAVAILABLE
    4. 404     -> NOT_FOUND
    5. other   -> UPSTREAM_ERROR with a message extracted from the body

Body parsing strategy:
    The body is decoded once as JSON (when possible) and then offered to an
    ordered tuple of extractors, each returning a message or `None`. If no
    extractor matches, the raw text is used; if the body is empty, the
    context's fallback message is used.

Failure handling:
    `normalize` never raises. It always returns a `NormalizedError`.
"""

import enum
import json
from dataclasses import dataclass


MAX_RAW_MESSAGE_CHARS = 500


class ErrorKind(str, enum.Enum):
    VALIDATION_ERROR = "ValidationError"
    MISCONFIGURED = "Misconfigured"
    AUTH_FAILURE = "AuthFailure"
    ENDPOINT_GONE = "EndpointGone"
    TEMPORARILY_UNAVAILABLE = "TemporarilyUnavailable"
    NOT_FOUND = "NotFound"
    TIMED_OUT = "TimedOut"
    UPSTREAM_ERROR = "UpstreamError"


@dataclass(frozen=True)
class NormalizedError:
    """Canonical failure signal relayed to the caller.

    Attributes:
        kind: Error category.
        message: Human-readable text rendered as `{"error": message}`.
        http_status: Status code to relay to the caller.
    """

    kind: ErrorKind
    message: str
    http_status: int

    def to_payload(self):
        return {"error": self.message}


@dataclass(frozen=True)
class ErrorContext:
    """Labels used to phrase messages for one upstream provider."""

    provider: str = "upstream"
    fallback_message: str = "Upstream request failed"


# ============================================================
# Body message extraction
# ============================================================

def _nested_error_message(data):
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str):
            return message
    return None


def _error_string(data):
    error = data.get("error")
    return error if isinstance(error, str) else None


def _message_string(data):
    message = data.get("message")
    return message if isinstance(message, str) else None


def _detail_string(data):
    detail = data.get("detail")
    return detail if isinstance(detail, str) else None


def _first_of_errors(data):
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, str):
            return first
        if isinstance(first, dict) and isinstance(first.get("message"), str):
            return first["message"]
    return None


MESSAGE_EXTRACTORS = (
    _nested_error_message,
    _error_string,
    _message_string,
    _detail_string,
    _first_of_errors,
)


def _decode_text(raw_body):
    if raw_body is None:
        return ""
    if isinstance(raw_body, bytes):
        return raw_body.decode("utf-8", "replace")
    return str(raw_body)


def extract_message(raw_body, fallback):
    """Return the most specific error message carried by an upstream body.

    Args:
        raw_body: Response body as bytes or text (may be empty/None).
        fallback: Message used when the body carries nothing useful.
    """
    text = _decode_text(raw_body).strip()
    if not text:
        return fallback

    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if isinstance(data, dict):
        for extractor in MESSAGE_EXTRACTORS:
            message = extractor(data)
            if message and message.strip():
                return message.strip()
    elif isinstance(data, str) and data.strip():
        return data.strip()

    return text[:MAX_RAW_MESSAGE_CHARS]


# ============================================================
# Normalization
# ============================================================

def normalize(status, raw_body, context=None):
    """Map an upstream status code and body to a `NormalizedError`."""
    context = context or ErrorContext()

    if status in (401, 403):
        return NormalizedError(
            ErrorKind.AUTH_FAILURE,
            f"Authentication failed. Please verify your {context.provider} API key.",
            status,
        )
    if status == 410:
        return NormalizedError(
            ErrorKind.ENDPOINT_GONE,
            "The API endpoint is no longer available (410 Gone).",
            410,
        )
    if status == 503:
        return NormalizedError(
            ErrorKind.TEMPORARILY_UNAVAILABLE,
            f"{context.provider} is temporarily unavailable (503). Please try again shortly.",
            503,
        )
    if status == 404:
        return NormalizedError(
            ErrorKind.NOT_FOUND,
            f"The requested {context.provider} endpoint or model was not found (404).",
            404,
        )

    message = extract_message(raw_body, context.fallback_message)
    relayed = status if isinstance(status, int) and 400 <= status <= 599 else 500
    return NormalizedError(ErrorKind.UPSTREAM_ERROR, message, relayed)


def validation_error(message):
    return NormalizedError(ErrorKind.VALIDATION_ERROR, message, 400)


def misconfigured(message):
    return NormalizedError(ErrorKind.MISCONFIGURED, message, 500)


def timed_out(message="Image generation timed out"):
    return NormalizedError(ErrorKind.TIMED_OUT, message, 504)


def upstream_failure(message, http_status=500):
    """Build an UPSTREAM_ERROR that is not derived from a status code."""
    return NormalizedError(ErrorKind.UPSTREAM_ERROR, message, http_status)
