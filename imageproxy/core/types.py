"""Value types shared by the orchestration layer and provider clients.

Architectural role:
    Defines the structural contracts passed between the orchestrator, the
    provider selector, and the cascade/polling components. All types are
    created per request and never shared across requests.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationRequest:
    """One user-initiated image request.

    Attributes:
        prompt: Non-empty, stripped prompt text.
    """

    prompt: str


@dataclass(frozen=True)
class GeneratedImage:
    """Binary image produced by a provider plus its content type."""

    data: bytes
    mime_type: str = "image/png"


@dataclass
class ProxyResponse:
    """Transport-neutral response rendered by the orchestrator.

    Attributes:
        status_code: HTTP status to relay to the caller.
        body: Raw bytes for images, or a JSON-serializable dict.
        media_type: Content type of `body`.
        headers: Extra headers that adapters must emit.
    """

    status_code: int
    body: object
    media_type: str = "application/json"
    headers: dict | None = None

    @property
    def is_json(self):
        return self.media_type == "application/json"
