"""Runtime configuration for the image proxy.

Architectural role:
    Centralizes provider credential lookup and tuning values consumed by the
    orchestrator, the provider selector, and the transport adapters. Values are
    resolved once per process (or per `ProxyConfig.from_env()` call) and passed
    explicitly into deeper components, which never read the environment.

Credential resolution:
    `load_key(name)` checks, in order:
        1. `<NAME>_API_KEY`
        2. `VITE_<NAME>_API_KEY` (alias used by browser builds of the client)
        3. raw contents of `config/<name>.key`

Determinism:
    Deterministic for a fixed process environment, `.env.local`/`.env` files and
    key files.

Failure behavior:
    Missing credentials are represented as `None`; the selector decides whether
    that is a configuration error. Malformed or out-of-range numeric values
    (negative poll interval, fewer than one poll attempt) fall back to the
    documented default and log a warning.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)

KEY_DIR = "config"

DEFAULT_PROMPT_MODEL = "openai/gpt-4o-mini"
DEFAULT_REFERER = "http://localhost:3000"
DEFAULT_TITLE = "Image Generator App"
DEFAULT_REPLICATE_VERSION = "db21e45d3f7023abc2a46ee38a23973f6dce16bb082a930b0c49861f96d1e5bf"

DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_MAX_ATTEMPTS = 60
MIN_REQUEST_TIMEOUT = 0.1

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3001


def load_environment():
    """Load `.env.local` and `.env` without overriding exported variables."""
    load_dotenv(".env.local")
    load_dotenv(find_dotenv(usecwd=True))


def load_key(name, key_dir=KEY_DIR):
    """Load an API key from the environment or a key file.

    Args:
        name: Provider stem, for example `"replicate"`.
        key_dir: Directory holding optional `<name>.key` files.

    Returns:
        Stripped key string, or `None` when not available or empty.
    """
    env_name = f"{name.upper()}_API_KEY"
    for candidate in (env_name, f"VITE_{env_name}"):
        value = (os.getenv(candidate) or "").strip()
        if value:
            return value

    path = os.path.join(key_dir, f"{name}.key")
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        value = f.read().strip()
    return value or None


def _env_number(name, default, cast, minimum=None):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("%s=%r is below %s, using default %s", name, raw, minimum, default)
        return default
    return value


def _env_float(name, default, minimum=None):
    return _env_number(name, default, float, minimum)


def _env_int(name, default, minimum=None):
    return _env_number(name, default, int, minimum)


def _env_list(name, default):
    raw = os.getenv(name)
    if not raw:
        return default
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class ProxyConfig:
    """Resolved, read-only configuration shared by all requests.

    Attributes:
        openrouter_api_key: Credential for prompt expansion.
        huggingface_api_key: Credential for the immediate image provider.
        replicate_api_key: Credential for the deferred image provider.
        api_base_url: External proxy URL used by the CLI client mode.
        request_timeout: Per-call timeout in seconds for upstream HTTP calls.
        poll_interval: Seconds between deferred-job status checks.
        poll_max_attempts: Ceiling on deferred-job status checks.
    """

    openrouter_api_key: str | None = None
    huggingface_api_key: str | None = None
    replicate_api_key: str | None = None
    api_base_url: str | None = None

    prompt_model: str = DEFAULT_PROMPT_MODEL
    app_referer: str = DEFAULT_REFERER
    app_title: str = DEFAULT_TITLE
    replicate_version: str = DEFAULT_REPLICATE_VERSION

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS

    cors_origins: tuple = field(default=("*",))
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_files=True):
        """Build a config from the process environment.

        Args:
            load_files: Whether to read `.env.local`/`.env` first.
        """
        if load_files:
            load_environment()

        api_base_url = (os.getenv("API_URL") or os.getenv("VITE_API_URL") or "").strip()

        return cls(
            openrouter_api_key=load_key("openrouter"),
            huggingface_api_key=load_key("huggingface"),
            replicate_api_key=load_key("replicate"),
            api_base_url=api_base_url.rstrip("/") or None,
            prompt_model=os.getenv("PROMPT_MODEL", DEFAULT_PROMPT_MODEL),
            app_referer=os.getenv("APP_REFERER", DEFAULT_REFERER),
            app_title=os.getenv("APP_TITLE", DEFAULT_TITLE),
            replicate_version=os.getenv("REPLICATE_MODEL_VERSION", DEFAULT_REPLICATE_VERSION),
            request_timeout=_env_float("IMAGE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, minimum=MIN_REQUEST_TIMEOUT),
            poll_interval=_env_float("REPLICATE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL, minimum=0),
            poll_max_attempts=_env_int("REPLICATE_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS, minimum=1),
            cors_origins=_env_list("CORS_ORIGINS", ("*",)),
            host=os.getenv("HOST", DEFAULT_HOST),
            port=_env_int("PORT", DEFAULT_PORT, minimum=1),
            debug=os.getenv("DEBUG") == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(config):
    """Configure root logging once for server and CLI entry points."""
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
