"""Image provider selection and dispatch.

Role in pipeline:
    - Receives a validated prompt and the resolved configuration.
    - Selects the provider family from the configured credentials.
    - Dispatches to the endpoint cascade or the job polling machine.

Selection policy:
    `PROVIDER_PRIORITY` is the single precedence rule. When both credentials
    are configured, the first family in that tuple is used for every request.
    With no credential at all, selection fails before any network call.
"""

import enum
import time
from dataclasses import dataclass

from imageproxy.core.errors import misconfigured
from imageproxy.image.cascade import HUGGINGFACE_ENDPOINTS, try_cascade
from imageproxy.image.jobs import PollPolicy, run_job


class ProviderKind(enum.Enum):
    IMMEDIATE = "huggingface"
    DEFERRED = "replicate"


PROVIDER_PRIORITY = (ProviderKind.IMMEDIATE, ProviderKind.DEFERRED)

MISSING_KEYS_MESSAGE = (
    "No image generation API key configured. "
    "Please set HUGGINGFACE_API_KEY or REPLICATE_API_KEY"
)


@dataclass(frozen=True)
class ProviderPlan:
    kind: ProviderKind
    api_key: str


def _credential_for(kind, config):
    if kind is ProviderKind.IMMEDIATE:
        return config.huggingface_api_key
    return config.replicate_api_key


def select_provider(config):
    """Return the `ProviderPlan` for this deployment, or a MISCONFIGURED error."""
    for kind in PROVIDER_PRIORITY:
        api_key = _credential_for(kind, config)
        if api_key:
            return ProviderPlan(kind=kind, api_key=api_key)
    return misconfigured(MISSING_KEYS_MESSAGE)


def generate_image(prompt, plan, config, *, session, sleep=time.sleep, endpoints=HUGGINGFACE_ENDPOINTS):
    """Generate an image with the provider named by `plan`.

    Returns:
        `GeneratedImage` or `NormalizedError`.
    """
    if plan.kind is ProviderKind.IMMEDIATE:
        return try_cascade(
            prompt,
            endpoints,
            plan.api_key,
            session=session,
            timeout=config.request_timeout,
        )

    return run_job(
        prompt,
        plan.api_key,
        PollPolicy(interval=config.poll_interval, max_attempts=config.poll_max_attempts),
        version=config.replicate_version,
        session=session,
        sleep=sleep,
        timeout=config.request_timeout,
    )
