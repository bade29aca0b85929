"""Ranked-endpoint cascade for the immediate (synchronous) image provider.

Processing flow:
    1. Order candidates by rank once.
    2. POST `{"inputs": prompt}` with a bearer credential to each candidate.
    3. Stop at the first 2xx (result) or the first terminal failure.
    4. Advance past retryable statuses (404/410/503) and transport failures.
    5. When the list is exhausted, surface the last retryable outcome, or a
       connectivity error when no HTTP response was ever received.

Error handling strategy:
    Authentication and validation failures are endpoint-independent, so the
    cascade stops on them. Availability failures are endpoint-specific and are
    worked around. All failures are returned as `NormalizedError` values.

Ordering:
    Attempts are strictly sequential; candidates are never tried in parallel.
"""

import logging
from dataclasses import dataclass

import requests

from imageproxy.core.errors import ErrorContext, normalize, upstream_failure
from imageproxy.core.types import GeneratedImage


logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({404, 410, 503})
DEFAULT_CONTENT_TYPE = "image/png"

HUGGINGFACE_CONTEXT = ErrorContext(
    provider="Hugging Face",
    fallback_message="Failed to generate image",
)
CONNECTIVITY_MESSAGE = "Failed to connect to Hugging Face API"


@dataclass(frozen=True)
class EndpointCandidate:
    """One reachable instance of the immediate-provider API."""

    url: str
    display_name: str
    rank: int


@dataclass
class AttemptOutcome:
    """Result of one cascade attempt."""

    endpoint: EndpointCandidate
    status: int
    ok: bool
    retryable: bool
    body: bytes
    content_type: str | None = None


HUGGINGFACE_ENDPOINTS = (
    EndpointCandidate(
        url="https://router.huggingface.co/hf-inference/models/stabilityai/stable-diffusion-xl-base-1.0",
        display_name="Router API - SDXL",
        rank=0,
    ),
    EndpointCandidate(
        url="https://router.huggingface.co/hf-inference/models/runwayml/stable-diffusion-v1-5",
        display_name="Router API - SD v1.5",
        rank=1,
    ),
    EndpointCandidate(
        url="https://router.huggingface.co/hf-inference/models/stabilityai/stable-diffusion-2-1",
        display_name="Router API - SD 2.1",
        rank=2,
    ),
    EndpointCandidate(
        url="https://api-inference.huggingface.co/models/stabilityai/stable-diffusion-xl-base-1.0",
        display_name="Inference API - SDXL (fallback)",
        rank=3,
    ),
)


def classify(endpoint, response):
    """Build an `AttemptOutcome` from one HTTP response."""
    status = response.status_code
    ok = 200 <= status < 300
    return AttemptOutcome(
        endpoint=endpoint,
        status=status,
        ok=ok,
        retryable=not ok and status in RETRYABLE_STATUSES,
        body=response.content,
        content_type=response.headers.get("content-type"),
    )


def attempt(endpoint, prompt, api_key, *, session, timeout):
    """Issue one synchronous generation call against `endpoint`.

    Raises:
        requests.exceptions.RequestException: On transport failure.
    """
    response = session.post(
        endpoint.url,
        headers={
            "Authorization": f"Bearer {api_key.strip()}",
            "Content-Type": "application/json",
        },
        json={"inputs": prompt},
        timeout=timeout,
    )
    return classify(endpoint, response)


def try_cascade(prompt, candidates, api_key, *, session, timeout):
    """Try candidates in rank order until success or terminal failure.

    Args:
        prompt: Validated image prompt.
        candidates: Iterable of `EndpointCandidate`.
        api_key: Immediate-provider credential.
        session: `requests.Session`-like transport.
        timeout: Per-attempt timeout in seconds.

    Returns:
        `GeneratedImage` on first success, otherwise `NormalizedError`.
    """
    last_retryable = None
    last_transport_error = None

    for endpoint in sorted(candidates, key=lambda c: c.rank):
        logger.info("[Hugging Face] Trying: %s", endpoint.display_name)
        try:
            outcome = attempt(endpoint, prompt, api_key, session=session, timeout=timeout)
        except requests.exceptions.RequestException as err:
            logger.warning("[Hugging Face] Endpoint %s failed: %s", endpoint.display_name, err)
            last_transport_error = err
            continue

        logger.info("[Hugging Face] %s responded %s", endpoint.display_name, outcome.status)

        if outcome.ok:
            logger.info("[Hugging Face] Success with: %s", endpoint.display_name)
            return GeneratedImage(
                data=outcome.body,
                mime_type=outcome.content_type or DEFAULT_CONTENT_TYPE,
            )

        if outcome.retryable:
            last_retryable = outcome
            continue

        logger.warning(
            "[Hugging Face] Got status %s from %s, stopping",
            outcome.status,
            endpoint.display_name,
        )
        return normalize(outcome.status, outcome.body, HUGGINGFACE_CONTEXT)

    if last_retryable is not None:
        return normalize(last_retryable.status, last_retryable.body, HUGGINGFACE_CONTEXT)

    message = str(last_transport_error) if last_transport_error else ""
    return upstream_failure(message or CONNECTIVITY_MESSAGE)
