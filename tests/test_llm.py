from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from panggap.config import AppConfig, SettingsStore
from panggap.errors import ConfigurationMissing, EnhancementFailed
from panggap.llm import TextEnhancer


def _store(tmp_path: Path, api_key: str = "sk-test") -> SettingsStore:
    store = SettingsStore(tmp_path / "config.toml")
    config = AppConfig()
    config.llm.api_key = api_key
    store.save(config)
    return store


def _reply(content: str | None) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_enhance_sends_chat_completion(tmp_path: Path) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=_reply("  Hello, world!\n"))

    enhancer = TextEnhancer(_store(tmp_path), transport=httpx.MockTransport(handler))

    assert enhancer.enhance("Hello world") == "Hello, world!"

    (request,) = requests
    assert str(request.url) == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o"
    assert body["temperature"] == 0.3
    assert body["max_tokens"] == 4000
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1] == {"role": "user", "content": "Hello world"}


def test_missing_api_key_raises_configuration_missing(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    enhancer = TextEnhancer(_store(tmp_path, api_key=""), transport=httpx.MockTransport(handler))

    with pytest.raises(ConfigurationMissing):
        enhancer.enhance("Hello world")


def test_blank_text_is_rejected(tmp_path: Path) -> None:
    enhancer = TextEnhancer(_store(tmp_path))

    with pytest.raises(EnhancementFailed, match="No text provided"):
        enhancer.enhance("   ")


def test_http_error_is_wrapped(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    enhancer = TextEnhancer(_store(tmp_path), transport=httpx.MockTransport(handler))

    with pytest.raises(EnhancementFailed) as excinfo:
        enhancer.enhance("Hello world")
    assert str(excinfo.value) == "Failed to enhance text: 500 Internal Server Error"


def test_request_timeout_is_wrapped(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    enhancer = TextEnhancer(_store(tmp_path), transport=httpx.MockTransport(handler))

    with pytest.raises(EnhancementFailed, match="timed out"):
        enhancer.enhance("Hello world")


@pytest.mark.parametrize("payload", [_reply(None), _reply("   "), {"choices": []}])
def test_empty_or_malformed_reply_fails(tmp_path: Path, payload: dict) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    enhancer = TextEnhancer(_store(tmp_path), transport=httpx.MockTransport(handler))

    with pytest.raises(EnhancementFailed, match="^Failed to enhance text: "):
        enhancer.enhance("Hello world")


def test_settings_are_read_for_every_request(tmp_path: Path) -> None:
    seen: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.headers["Authorization"], json.loads(request.content)["model"]))
        return httpx.Response(200, json=_reply("ok"))

    store = _store(tmp_path)
    enhancer = TextEnhancer(store, transport=httpx.MockTransport(handler))
    enhancer.enhance("first")

    config = store.load()
    config.llm.api_key = "sk-rotated"
    config.llm.model = "gpt-4o-mini"
    store.save(config)
    enhancer.enhance("second")
    enhancer.close()

    assert seen == [("Bearer sk-test", "gpt-4o"), ("Bearer sk-rotated", "gpt-4o-mini")]
