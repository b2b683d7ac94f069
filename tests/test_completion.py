from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from services.completion import OpenAICompletionClient, build_default_completion
from services.errors import CompletionFailure
from settings import get_settings


def _client(handler, **kwargs) -> OpenAICompletionClient:
    transport = httpx.MockTransport(handler)
    http_client = httpx.Client(base_url="https://llm.test/v1", transport=transport)
    return OpenAICompletionClient(api_key="sk-test", client=http_client, **kwargs)


def test_complete_posts_chat_request_and_returns_content() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": "[1, 2]"}}]},
        )

    client = _client(handler, model="test-model")

    assert client("continue this") == "[1, 2]"

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/chat/completions"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert body["max_tokens"] == 400
    assert body["temperature"] == 0.2
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1] == {"role": "user", "content": "continue this"}
    client.close()


def test_error_status_raises_completion_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="rate limited")

    client = _client(handler)

    with pytest.raises(CompletionFailure) as excinfo:
        client.complete("prompt")

    assert "429" in str(excinfo.value)
    assert "rate limited" in str(excinfo.value)


def test_transport_error_raises_completion_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(CompletionFailure):
        client.complete("prompt")


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
    ],
)
def test_missing_content_raises_completion_failure(payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    client = _client(handler)

    with pytest.raises(CompletionFailure):
        client.complete("prompt")


def test_non_json_body_raises_completion_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    client = _client(handler)

    with pytest.raises(CompletionFailure):
        client.complete("prompt")


def test_empty_api_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        OpenAICompletionClient(api_key="")


def test_default_completion_requires_api_key(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_KEY", raising=False)
    get_settings.cache_clear()
    build_default_completion.cache_clear()

    try:
        assert build_default_completion() is None
    finally:
        build_default_completion.cache_clear()
        get_settings.cache_clear()


def test_default_completion_uses_legacy_key_and_settings(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_KEY", "sk-legacy")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("COMPLETION_MAX_TOKENS", "256")
    get_settings.cache_clear()
    build_default_completion.cache_clear()

    client = build_default_completion()
    try:
        assert client is not None
        assert client.model == "gpt-4o-mini"
        assert client.max_tokens == 256
    finally:
        if client is not None:
            client.close()
        build_default_completion.cache_clear()
        get_settings.cache_clear()
