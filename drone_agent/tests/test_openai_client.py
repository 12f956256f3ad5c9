import asyncio

import httpx
import pytest

from drone_agent.domain.exceptions import (
    ApiError,
    ModelInvocationError,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from drone_agent.domain.models import ChatMessage, ChatRequest
from drone_agent.providers.base import invoke_model
from drone_agent.providers.embeddings import OpenAIEmbeddings
from drone_agent.providers.openai_client import OpenAICompatibleClient
from drone_agent.providers.registry import KIMI_CONFIG, OPENAI_CONFIG
from drone_agent.tools.drone_tools import default_registry


class SettingsStub:
    openai_api_key = "sk-test-0123456789"
    openai_base_url = "https://api.openai.com/v1"
    kimi_api_key = None
    kimi_base_url = "https://api.moonshot.cn/v1"
    embedding_model = "text-embedding-3-large"
    http_timeout = 1.0


class Resp:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


def _patch_client(monkeypatch, response=None, error=None):
    captured = {}

    class Client:
        def __init__(self, *a, **kw):
            captured["client_kwargs"] = kw

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, json=None, headers=None):
            captured["url"] = url
            captured["json"] = json
            captured["headers"] = headers
            if error is not None:
                raise error
            return response

    monkeypatch.setattr("httpx.AsyncClient", Client)
    return captured


def _request(**kw):
    return ChatRequest(provider="openai", model="drone-chat", messages=[ChatMessage(role="user", content="hi")], **kw)


def test_chat_parses_text(monkeypatch):
    data = {
        "choices": [{"message": {"role": "assistant", "content": "ok"}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
    }
    captured = _patch_client(monkeypatch, Resp(data=data))
    client = OpenAICompatibleClient(SettingsStub(), OPENAI_CONFIG)
    res = asyncio.run(client.chat(_request()))
    assert res.message.content == "ok"
    assert res.usage.total_tokens == 2
    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["json"]["model"] == "gpt-4.1-nano"
    assert captured["headers"]["Authorization"] == "Bearer sk-test-0123456789"
    assert captured["client_kwargs"]["trust_env"] is False


def test_chat_sends_tools_and_parses_tool_calls(monkeypatch):
    data = {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {"id": "c1", "type": "function", "function": {"name": "setWingSpan", "arguments": "{\"wingSpan\": 3}"}},
                        {"id": "c2", "type": "function", "function": {"name": "setDroneType", "arguments": "{not json"}},
                    ],
                },
                "finish_reason": "tool_calls",
            }
        ]
    }
    captured = _patch_client(monkeypatch, Resp(data=data))
    client = OpenAICompatibleClient(SettingsStub(), OPENAI_CONFIG)
    res = asyncio.run(client.chat(_request(tools=default_registry().definitions())))
    sent = {t["function"]["name"]: t["function"]["parameters"] for t in captured["json"]["tools"]}
    assert sent["setWingSpan"]["properties"]["wingSpan"]["maximum"] == 5
    assert captured["json"]["tool_choice"] == "auto"

    first, second = res.message.tool_calls
    assert (first.name, first.arguments, first.parse_error) == ("setWingSpan", {"wingSpan": 3}, None)
    assert second.arguments == {}
    assert second.parse_error


def test_missing_api_key(monkeypatch):
    _patch_client(monkeypatch, Resp(data={}))
    client = OpenAICompatibleClient(SettingsStub(), KIMI_CONFIG)
    with pytest.raises(ValidationError):
        asyncio.run(client.chat(_request()))


@pytest.mark.parametrize(
    "response,error,expected",
    [
        (Resp(status_code=429), None, RateLimitError),
        (Resp(status_code=500, text="boom"), None, ApiError),
        (Resp(data=None), None, ApiError),
        (None, httpx.ConnectError("refused"), NetworkError),
    ],
)
def test_error_mapping(monkeypatch, response, error, expected):
    _patch_client(monkeypatch, response, error)
    client = OpenAICompatibleClient(SettingsStub(), OPENAI_CONFIG)
    with pytest.raises(expected):
        asyncio.run(client.chat(_request()))


def test_invoke_model_wraps_provider_errors(monkeypatch):
    _patch_client(monkeypatch, Resp(status_code=429))
    client = OpenAICompatibleClient(SettingsStub(), OPENAI_CONFIG)
    with pytest.raises(ModelInvocationError) as exc:
        asyncio.run(invoke_model(client, _request()))
    assert exc.value.code == "RATE_LIMIT"
    assert exc.value.extra["provider"] == "openai"
    assert exc.value.extra["upstream_status"] == 429


def test_embeddings_sorted_by_index(monkeypatch):
    data = {"data": [{"index": 1, "embedding": [0.0, 1.0]}, {"index": 0, "embedding": [1.0, 0.0]}]}
    captured = _patch_client(monkeypatch, Resp(data=data))
    emb = OpenAIEmbeddings(SettingsStub())
    vectors = asyncio.run(emb.embed_documents(["a", "b"]))
    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    assert captured["url"].endswith("/embeddings")
    assert captured["json"]["model"] == "text-embedding-3-large"


def test_embeddings_count_mismatch(monkeypatch):
    _patch_client(monkeypatch, Resp(data={"data": []}))
    with pytest.raises(ApiError):
        asyncio.run(OpenAIEmbeddings(SettingsStub()).embed_query("a"))


@pytest.mark.parametrize("response", [Resp(data=None, text="<html></html>"), Resp(data=["not", "a", "dict"])])
def test_embeddings_bad_body_is_api_error(monkeypatch, response):
    _patch_client(monkeypatch, response)
    with pytest.raises(ApiError) as exc:
        asyncio.run(OpenAIEmbeddings(SettingsStub()).embed_documents(["a"]))
    assert exc.value.code == "BAD_RESPONSE"
    assert exc.value.http_status == 502
