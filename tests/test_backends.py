from __future__ import annotations

import asyncio

import httpx
import pytest

from canvas_relay.backends.base import TRUNCATION_MARKER, clamp_temperature, truncate_prompt
from canvas_relay.backends.ollama import OllamaBackend
from canvas_relay.backends.openai_chat import OpenAIChatBackend
from canvas_relay.common.errors import (
    BadRequest,
    InsufficientQuota,
    NotFound,
    RateLimited,
    Unauthorized,
    UpstreamError,
    UpstreamMalformedResponse,
)
from canvas_relay.common.schema import GenerateRequest


def test_truncate_prompt() -> None:
    assert truncate_prompt("short", 10) == "short"
    assert truncate_prompt("x" * 10, 10) == "x" * 10
    assert truncate_prompt("x" * 11, 10) == "x" * 10 + TRUNCATION_MARKER


def test_clamp_temperature() -> None:
    assert clamp_temperature(None, 0.7) == 0.7
    assert clamp_temperature(0, 0.7) == 0.0
    assert clamp_temperature(2.5, 0.7) == 2.0
    assert clamp_temperature(-0.1, 0.7) == 0.0


def test_openai_credential_checks() -> None:
    backend = OpenAIChatBackend("https://api.openai.com/v1")
    with pytest.raises(BadRequest):
        backend.validate_credential("")
    with pytest.raises(BadRequest):
        backend.validate_credential("abc")
    backend.validate_credential("sk-abc")


def test_openai_build_request() -> None:
    backend = OpenAIChatBackend("https://api.openai.com/v1/", max_tokens=200)
    req = GenerateRequest(model="gpt-4", prompt="Hi")
    out = backend.build_request(req, "gpt-4", 0.3, "sk-abc")
    assert out.url == "https://api.openai.com/v1/chat/completions"
    assert out.headers["Authorization"] == "Bearer sk-abc"
    assert out.json["max_tokens"] == 200
    assert out.json["messages"] == [{"role": "user", "content": "Hi"}]


def test_openai_parse_response_rejects_bad_shapes() -> None:
    backend = OpenAIChatBackend("https://api.openai.com/v1")
    assert backend.parse_response({"choices": [{"message": {"content": "ok"}}]}).response == "ok"
    for bad in ({}, {"choices": []}, {"choices": [{}]}, {"choices": [{"message": {"content": None}}]}, []):
        with pytest.raises(UpstreamMalformedResponse):
            backend.parse_response(bad)


@pytest.mark.parametrize(
    "status,kind",
    [
        (401, Unauthorized),
        (403, Unauthorized),
        (402, InsufficientQuota),
        (404, NotFound),
        (429, RateLimited),
        (400, BadRequest),
        (500, UpstreamError),
        (418, UpstreamError),
    ],
)
def test_error_from_response_kinds(status: int, kind: type) -> None:
    backend = OpenAIChatBackend("https://api.openai.com/v1")
    err = backend.error_from_response(httpx.Response(status, json={"error": {"message": "boom"}}))
    assert isinstance(err, kind)
    assert err.status_code == status


def test_error_message_falls_back_to_backend_text() -> None:
    backend = OllamaBackend("http://localhost:11434")
    err = backend.error_from_response(httpx.Response(418, json={"error": "model busy"}))
    assert err.message == "model busy"
    err = backend.error_from_response(httpx.Response(404, json={"error": "model 'x' not found"}))
    assert err.message == "model 'x' not found"


def test_ollama_model_mapping_and_parse() -> None:
    backend = OllamaBackend("http://localhost:11434")
    assert backend.map_model("") == "cogito:3b"
    assert backend.map_model("llama3:8b") == "llama3:8b"
    backend.validate_credential("")
    assert backend.parse_response({"response": "yo", "done": True}).response == "yo"
    with pytest.raises(UpstreamMalformedResponse):
        backend.parse_response({"done": True})


def _list_models(backend: OllamaBackend, response: httpx.Response):
    async def run():
        transport = httpx.MockTransport(lambda request: response)
        async with httpx.AsyncClient(transport=transport) as client:
            return await backend.list_models(client)

    return asyncio.run(run())


def test_ollama_list_models() -> None:
    backend = OllamaBackend("http://localhost:11434")
    models = _list_models(backend, httpx.Response(200, json={"models": [{"name": "cogito:3b"}]}))
    assert [m.name for m in models.models] == ["cogito:3b"]


def test_ollama_list_models_malformed() -> None:
    backend = OllamaBackend("http://localhost:11434")
    with pytest.raises(UpstreamMalformedResponse):
        _list_models(backend, httpx.Response(200, json={"tags": []}))
    with pytest.raises(UpstreamMalformedResponse):
        _list_models(backend, httpx.Response(200, text="<html>busy</html>"))
