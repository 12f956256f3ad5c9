"""LLM Provider 集成层。

- base: Provider 协议。
- registry: Provider 与模型配置。
- openai_client / embeddings: OpenAI 风格的 HTTP 适配器。
"""

from typing import Optional

from drone_agent.config.settings import settings
from drone_agent.providers.base import EmbeddingClient, ProviderClient
from drone_agent.providers.embeddings import OpenAIEmbeddings
from drone_agent.providers.openai_client import OpenAICompatibleClient
from drone_agent.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None, config=None) -> ProviderClient:
    """按名称创建 Provider，未指定时使用 ``settings.default_provider``。"""

    cfg = config or settings
    provider_name = (name or getattr(cfg, "default_provider", "openai")).lower()
    return OpenAICompatibleClient(cfg, get_provider_config(provider_name))


def create_embeddings(config=None) -> EmbeddingClient:
    return OpenAIEmbeddings(config or settings)
