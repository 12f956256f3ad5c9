"""Agent 编排入口。

``build_context`` 一次性组装配置、Provider、对话存储、工具注册表与检索组件，
生成 ``AgentContext`` 并显式传给路由器。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from drone_agent.config.settings import Settings, settings as default_settings
from drone_agent.domain.conversation import ConversationStore
from drone_agent.flows.state import TurnResult
from drone_agent.flows.synthesizer import ResponseSynthesizer
from drone_agent.infrastructure.logging.logger import logger
from drone_agent.infrastructure.storage.memory_store import InMemoryConversationStore
from drone_agent.infrastructure.storage.sqlite_store import SqliteConversationStore
from drone_agent.providers import create_embeddings, create_provider
from drone_agent.providers.base import ProviderClient
from drone_agent.retrieval.augmentor import RetrievalAugmentor
from drone_agent.retrieval.vector_store import InMemoryVectorStore, VectorStore
from drone_agent.tools.drone_tools import default_registry
from drone_agent.tools.registry import ToolRegistry


@dataclass
class AgentContext:
    settings: Settings
    provider: ProviderClient
    store: ConversationStore
    registry: ToolRegistry
    augmentor: RetrievalAugmentor
    synthesizer: ResponseSynthesizer


def create_store(config: Settings) -> ConversationStore:
    if config.store_backend == "sqlite":
        return SqliteConversationStore(config.sqlite_path)
    return InMemoryConversationStore()


def build_context(
    config: Optional[Settings] = None,
    *,
    provider: Optional[ProviderClient] = None,
    store: Optional[ConversationStore] = None,
    vector_store: Optional[VectorStore] = None,
    registry: Optional[ToolRegistry] = None,
) -> AgentContext:
    """构建 AgentContext；任一依赖都可注入（测试中使用替身）。"""

    cfg = config or default_settings
    provider = provider or create_provider(config=cfg)
    if vector_store is None:
        vector_store = InMemoryVectorStore(create_embeddings(cfg))
    ctx = AgentContext(
        settings=cfg,
        provider=provider,
        store=store or create_store(cfg),
        registry=registry or default_registry(),
        augmentor=RetrievalAugmentor(vector_store, default_k=cfg.retrieval_k),
        synthesizer=ResponseSynthesizer(
            provider,
            model=cfg.default_model,
            window=cfg.synthesis_window,
            temperature=cfg.temperature,
        ),
    )
    logger.info(
        "context.built",
        extra={"extra": {
            "provider": getattr(provider, "name", "unknown"),
            "store": type(ctx.store).__name__,
            "tools": ctx.registry.names(),
        }},
    )
    return ctx


async def run_agent(user_message: str, *, thread_id: str = "default", ctx: Optional[AgentContext] = None) -> TurnResult:
    """执行单个回合。

    Args:
        user_message: 用户输入
        thread_id: 会话ID
        ctx: 已构建的上下文，不提供则按默认配置新建
    """

    from drone_agent.flows.router import TurnRouter

    router = TurnRouter(ctx or build_context())
    return await router.handle_turn(thread_id, user_message)
