import pytest

from drone_agent.providers import create_embeddings, create_provider
from drone_agent.providers.embeddings import OpenAIEmbeddings
from drone_agent.providers.openai_client import OpenAICompatibleClient
from drone_agent.providers.registry import get_provider_config


def test_create_provider_default(monkeypatch):
    class DummySettings:
        default_provider = "openai"
        openai_api_key = "sk-0123456789"
        openai_base_url = "https://api.openai.com/v1"
        http_timeout = 1.0
        kimi_api_key = None
        embedding_model = "text-embedding-3-large"

    monkeypatch.setattr("drone_agent.providers.settings", DummySettings())
    provider = create_provider()
    assert isinstance(provider, OpenAICompatibleClient)
    assert provider.name == "openai"
    assert isinstance(create_embeddings(), OpenAIEmbeddings)


def test_create_provider_explicit(monkeypatch):
    class DummySettings:
        default_provider = "openai"
        kimi_api_key = "k-0123456789"
        http_timeout = 1.0
        kimi_base_url = "https://api.moonshot.cn/v1"
        openai_api_key = None

    monkeypatch.setattr("drone_agent.providers.settings", DummySettings())
    provider = create_provider("Kimi")
    assert provider.name == "kimi"


def test_unknown_provider():
    with pytest.raises(KeyError):
        get_provider_config("glm")
