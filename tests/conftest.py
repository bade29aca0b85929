"""
Shared fixtures for imageproxy tests.

Provides:
1. `FakeResponse` / `FakeSession` stand-ins for `requests` transport
2. A no-op sleep that records requested delays
3. Config builders with and without provider credentials
"""

from __future__ import annotations

import json

import pytest
from requests.structures import CaseInsensitiveDict

from imageproxy.config import ProxyConfig


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"


class FakeResponse:
    """Minimal `requests.Response` replacement."""

    def __init__(self, status_code=200, content=b"", headers=None, json_data=None):
        self.status_code = status_code
        if json_data is not None:
            content = json.dumps(json_data).encode("utf-8")
            headers = {"content-type": "application/json", **(headers or {})}
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return self.content.decode("utf-8", "replace")

    def json(self):
        return json.loads(self.content.decode("utf-8"))


class FakeSession:
    """Scripted session returning queued responses in call order.

    Queue entries may be `FakeResponse` instances or exceptions to raise.
    Every call is recorded as `(method, url, kwargs)`.
    """

    def __init__(self, *responses):
        self.queue = list(responses)
        self.calls = []
        self.closed = False

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        if not self.queue:
            raise AssertionError(f"Unexpected {method} {url}")
        item = self.queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def urls(self, method=None):
        return [url for m, url, _ in self.calls if method is None or m == method]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def png_bytes():
    return PNG_BYTES


def make_config(**overrides):
    values = {
        "openrouter_api_key": None,
        "huggingface_api_key": None,
        "replicate_api_key": None,
        "poll_interval": 0.01,
        "poll_max_attempts": 5,
        "request_timeout": 5.0,
    }
    values.update(overrides)
    return ProxyConfig(**values)


@pytest.fixture
def empty_config():
    return make_config()


@pytest.fixture
def hf_config():
    return make_config(openrouter_api_key="or-key", huggingface_api_key="hf-key")


@pytest.fixture
def replicate_config():
    return make_config(openrouter_api_key="or-key", replicate_api_key="r8-key")
