"""Transport client for the OpenAI-compatible chat-completion provider.

Architectural role:
    Executes one chat-completion request against OpenRouter and materializes the
    assistant text, or a `NormalizedError` describing why it could not.

Model invocation flow:
    `service.expand_prompt` -> `send_chat_completion(payload, ...)` ->
    `choices[0].message.content`.

Retry behavior:
    No retry loop is implemented. Each call is attempted once with the
    configured timeout.

Failure handling model:
    Failures are returned as values, never raised:
        - non-2xx status -> `errors.normalize` with the provider context
        - transport error -> UPSTREAM_ERROR (502)
        - unexpected response shape -> UPSTREAM_ERROR (500)
"""

import logging

import requests

from imageproxy.core.errors import ErrorContext, normalize, upstream_failure


logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_URL = "https://openrouter.ai/api/v1/chat/completions"

OPENROUTER_CONTEXT = ErrorContext(
    provider="OpenRouter",
    fallback_message="Failed to generate prompt",
)


def _extract_content(data):
    """Return `choices[0].message.content` or `None` for any other shape."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def send_chat_completion(payload, api_key, *, session, referer, title, timeout):
    """Send one chat-completion request and return the assistant text.

    Args:
        payload: OpenAI-compatible request body (`model`, `messages`, ...).
        api_key: OpenRouter credential.
        session: `requests.Session`-like object used for the call.
        referer: Value for the `HTTP-Referer` attribution header.
        title: Value for the `X-Title` attribution header.
        timeout: Request timeout in seconds.

    Returns:
        Assistant message text, or `NormalizedError`.
    """
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key.strip()}",
        "HTTP-Referer": referer,
        "X-Title": title,
    }

    try:
        response = session.post(
            CHAT_COMPLETIONS_URL,
            headers=headers,
            json=payload,
            timeout=timeout,
        )
    except requests.exceptions.RequestException as err:
        logger.warning("OpenRouter request failed: %s", err)
        return upstream_failure(str(err) or OPENROUTER_CONTEXT.fallback_message, 502)

    if not response.ok:
        logger.warning("OpenRouter returned status %s", response.status_code)
        return normalize(response.status_code, response.content, OPENROUTER_CONTEXT)

    try:
        data = response.json()
    except ValueError:
        data = None

    content = _extract_content(data)
    if content is None:
        return upstream_failure("Invalid response from prompt generation service")

    return content.strip()
