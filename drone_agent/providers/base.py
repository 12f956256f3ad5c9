"""Provider 抽象接口。

回合路由器不直接依赖具体厂商的 HTTP SDK，而是依赖这里的协议：

- 每个厂商适配器负责把 ChatRequest 转成自己的 JSON，再把响应解析为 ChatResult。

这样可以在不改编排代码的前提下接入其他 OpenAI 风格的后端。
"""

from typing import List, Protocol

from drone_agent.domain.exceptions import BusinessError, ModelInvocationError
from drone_agent.domain.models import ChatRequest, ChatResult


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    - name: Provider 名称，用于日志。
    - chat(req): 执行一次非流式对话调用，返回统一的 ChatResult。
    """

    name: str

    async def chat(self, req: ChatRequest) -> ChatResult:
        ...


class EmbeddingClient(Protocol):
    """向量库使用的文本向量化客户端。"""

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        ...

    async def embed_query(self, text: str) -> List[float]:
        ...


async def invoke_model(provider: ProviderClient, req: ChatRequest) -> ChatResult:
    """调用 ``provider.chat``，并把 Provider 的业务异常统一包装为 ModelInvocationError。"""

    try:
        return await provider.chat(req)
    except ModelInvocationError:
        raise
    except BusinessError as e:
        raise ModelInvocationError(
            code=e.code,
            message=e.message,
            provider=getattr(provider, "name", "unknown"),
            upstream_status=e.http_status,
        )
