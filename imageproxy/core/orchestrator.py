"""Request orchestration for prompt expansion and image generation.

Architectural role:
    Shared by every transport adapter (FastAPI server, function-style handler,
    CLI). Adapters only parse the request body and emit the returned
    `ProxyResponse`; validation, provider selection and rendering live here.

Control-flow model (image generation):
    1. Validate `prompt` (400 before any network call).
    2. Select the provider family (500 MISCONFIGURED before any network call).
    3. Dispatch to the cascade or the polling machine.
    4. Render image bytes with the provider content type, or `{error}` with the
       normalized status.

Error handling strategy:
    Collaborators return `NormalizedError` values. Unexpected exceptions are
    logged and rendered as a 500 JSON error so that no request ends in an empty
    success.

Side effects:
    Network I/O happens only through the `session` passed in by the adapter.
"""

import logging
import time

from imageproxy.core.errors import NormalizedError, validation_error
from imageproxy.core.types import GeneratedImage, GenerationRequest, ProxyResponse
from imageproxy.image import service as image_service
from imageproxy.llm.service import expand_prompt


logger = logging.getLogger(__name__)

PROMPT_LOG_CHARS = 100


def _field(body, name):
    """Return a stripped string field from a request body, or `""`."""
    if not isinstance(body, dict):
        return ""
    value = body.get(name)
    if not isinstance(value, str):
        return ""
    return value.strip()


def render_error(error):
    return ProxyResponse(status_code=error.http_status, body=error.to_payload())


def render_image(image):
    return ProxyResponse(status_code=200, body=image.data, media_type=image.mime_type)


def _unexpected(fallback, err):
    return ProxyResponse(status_code=500, body={"error": str(err) or fallback})


def generate_prompt(body, config, *, session, origin=None):
    """Handle one prompt-expansion request body `{text}`."""
    text = _field(body, "text")
    if not text:
        return render_error(validation_error("Text is required"))

    try:
        result = expand_prompt(text, config, session=session, origin=origin)
    except Exception as err:
        logger.exception("Prompt expansion failed")
        return _unexpected("Failed to generate prompt", err)

    if isinstance(result, NormalizedError):
        logger.warning("Prompt expansion error (%s): %s", result.kind.value, result.message)
        return render_error(result)
    return ProxyResponse(status_code=200, body={"prompt": result})


def generate_image(body, config, *, session, sleep=time.sleep):
    """Handle one image-generation request body `{prompt}`."""
    prompt = _field(body, "prompt")
    if not prompt:
        logger.info("Image request rejected: prompt is missing")
        return render_error(validation_error("Prompt is required"))

    request = GenerationRequest(prompt=prompt)
    logger.info("Image prompt received: %s", request.prompt[:PROMPT_LOG_CHARS])

    plan = image_service.select_provider(config)
    if isinstance(plan, NormalizedError):
        logger.error("Image generation misconfigured: %s", plan.message)
        return render_error(plan)

    logger.info("Using image provider: %s", plan.kind.value)
    try:
        result = image_service.generate_image(request.prompt, plan, config, session=session, sleep=sleep)
    except Exception as err:
        logger.exception("Image generation failed")
        return _unexpected("Failed to generate image", err)

    if isinstance(result, GeneratedImage):
        return render_image(result)

    logger.warning("Image generation error (%s): %s", result.kind.value, result.message)
    return render_error(result)
