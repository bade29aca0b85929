"""Tests for the immediate-provider endpoint cascade."""

import requests

from conftest import FakeResponse, FakeSession
from imageproxy.core.errors import ErrorKind, NormalizedError
from imageproxy.core.types import GeneratedImage
from imageproxy.image.cascade import HUGGINGFACE_ENDPOINTS, EndpointCandidate, try_cascade


CANDIDATES = [
    EndpointCandidate(url="https://a.example/model", display_name="A", rank=0),
    EndpointCandidate(url="https://b.example/model", display_name="B", rank=1),
    EndpointCandidate(url="https://c.example/model", display_name="C", rank=2),
]


def run(session, candidates=CANDIDATES):
    return try_cascade("a cat", candidates, " hf-key ", session=session, timeout=7)


def test_first_success_wins(png_bytes):
    session = FakeSession(FakeResponse(200, png_bytes, {"content-type": "image/png"}))

    result = run(session)

    assert result == GeneratedImage(data=png_bytes, mime_type="image/png")
    assert session.urls() == ["https://a.example/model"]


def test_request_shape(png_bytes):
    session = FakeSession(FakeResponse(200, png_bytes))

    run(session)

    _, _, kwargs = session.calls[0]
    assert kwargs["json"] == {"inputs": "a cat"}
    assert kwargs["headers"]["Authorization"] == "Bearer hf-key"
    assert kwargs["timeout"] == 7


def test_missing_content_type_defaults_to_png(png_bytes):
    session = FakeSession(FakeResponse(200, png_bytes))
    assert run(session).mime_type == "image/png"


def test_retryable_status_advances(png_bytes):
    session = FakeSession(
        FakeResponse(503, b'{"error": "loading"}'),
        FakeResponse(200, png_bytes, {"content-type": "image/jpeg"}),
    )

    result = run(session)

    assert result.data == png_bytes
    assert result.mime_type == "image/jpeg"
    assert session.urls() == ["https://a.example/model", "https://b.example/model"]


def test_terminal_status_short_circuits():
    session = FakeSession(FakeResponse(401, b'{"error": "Invalid credentials"}'))

    result = run(session)

    assert isinstance(result, NormalizedError)
    assert result.kind is ErrorKind.AUTH_FAILURE
    assert result.http_status == 401
    assert len(session.calls) == 1


def test_validation_failure_is_terminal():
    session = FakeSession(FakeResponse(400, b'{"error": "inputs must be a string"}'))

    result = run(session)

    assert result.kind is ErrorKind.UPSTREAM_ERROR
    assert result.message == "inputs must be a string"
    assert len(session.calls) == 1


def test_transport_error_advances(png_bytes):
    session = FakeSession(
        requests.exceptions.ConnectionError("refused"),
        FakeResponse(200, png_bytes),
    )

    result = run(session)

    assert isinstance(result, GeneratedImage)
    assert len(session.calls) == 2


def test_exhausted_surfaces_last_retryable():
    session = FakeSession(
        FakeResponse(503, b""),
        requests.exceptions.Timeout("slow"),
        FakeResponse(410, b""),
    )

    result = run(session)

    assert result.kind is ErrorKind.ENDPOINT_GONE
    assert result.http_status == 410


def test_exhausted_without_response_is_connectivity_error():
    session = FakeSession(*(requests.exceptions.ConnectionError() for _ in CANDIDATES))

    result = run(session)

    assert result.kind is ErrorKind.UPSTREAM_ERROR
    assert result.message == "Failed to connect to Hugging Face API"
    assert result.http_status == 500


def test_candidates_are_tried_by_rank(png_bytes):
    shuffled = [CANDIDATES[2], CANDIDATES[0], CANDIDATES[1]]
    session = FakeSession(FakeResponse(404, b""), FakeResponse(200, png_bytes))

    run(session, shuffled)

    assert session.urls() == ["https://a.example/model", "https://b.example/model"]


def test_default_endpoints_are_ranked_uniquely():
    ranks = [c.rank for c in HUGGINGFACE_ENDPOINTS]
    assert ranks == sorted(set(ranks))
    assert HUGGINGFACE_ENDPOINTS[0].display_name == "Router API - SDXL"
