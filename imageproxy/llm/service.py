"""Prompt-expansion entrypoint.

Architectural role:
    Turns a short user phrase into a detailed image-generation prompt. This
    module only builds the chat payload; transport and response parsing live in
    `imageproxy.llm.client`.

Token behavior:
    Output is capped at `MAX_TOKENS` by the provider.
"""

from imageproxy.core.errors import misconfigured
from imageproxy.llm.client import send_chat_completion


MAX_TOKENS = 200

SYSTEM_MESSAGE = (
    "You are a prompt engineer. Convert the user's text into a detailed, "
    "descriptive prompt for image generation. Make it vivid and detailed, "
    "suitable for creating high-quality images."
)


def build_payload(text, model):
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_MESSAGE},
            {"role": "user", "content": f'Create a detailed image generation prompt for: "{text}"'},
        ],
        "max_tokens": MAX_TOKENS,
    }


def expand_prompt(text, config, *, session, origin=None):
    """Expand `text` into an image prompt.

    Args:
        text: Validated, non-empty user text.
        config: `ProxyConfig` holding the OpenRouter credential.
        session: `requests.Session`-like transport.
        origin: Caller origin forwarded as attribution referer, when known.

    Returns:
        Prompt string, or `NormalizedError` (MISCONFIGURED when no key is set,
        without any network call).
    """
    if not config.openrouter_api_key:
        return misconfigured("OpenRouter API key is not configured")

    return send_chat_completion(
        build_payload(text, config.prompt_model),
        config.openrouter_api_key,
        session=session,
        referer=origin or config.app_referer,
        title=config.app_title,
        timeout=config.request_timeout,
    )
