"""统一的对话、结果与检索数据模型。

本模块定义了 Provider 调用与检索之间共享的标准数据结构：

- ChatMessage: 一条发给 Provider 或从 Provider 收到的消息。
- ChatRequest: 发给 ProviderClient 的完整请求。
- ChatResult: 从 Provider 解析后的统一响应结果。
- RetrievedDocument: 检索层返回的一条文档片段。

所有 Provider 适配器都只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    from drone_agent.tools.definitions import ToolCall, ToolDef


# LLM 消息角色类型（与 OpenAI / Moonshot 的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。

    - tool_calls: 当 assistant 消息发起工具调用时，保存调用列表。
    - tool_call_id: 当 role 为 "tool" 时，用于关联某一次工具调用。
    - meta: 本地元数据，不发给 Provider。
    """

    role: Role
    content: str
    meta: Dict[str, Any] = field(default_factory=dict)
    tool_calls: Optional[List["ToolCall"]] = None
    tool_call_id: Optional[str] = None


@dataclass
class ChatRequest:
    """一次完整的对话请求。

    路由器负责组装消息窗口，Provider 适配器负责把它转成厂商请求体。
    """

    provider: str  # 逻辑 Provider 名，如 "openai"
    model: str  # 逻辑模型名，如 "drone-chat"
    messages: List[ChatMessage]
    temperature: float = 0.0
    top_p: float = 1.0
    max_tokens: Optional[int] = None
    tools: Optional[List["ToolDef"]] = None
    tool_choice: Literal["auto", "none", "required"] = "auto"


@dataclass
class ChatUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatChoice:
    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次非流式对话调用的结果。

    - raw: 厂商原始响应 JSON，便于调试。
    """

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None

    @property
    def message(self) -> ChatMessage:
        """第一个 choice 的消息；没有 choice 时返回空的 assistant 消息。"""
        if not self.choices:
            return ChatMessage(role="assistant", content="")
        return self.choices[0].message


@dataclass
class RetrievedDocument:
    """相似度检索返回的一条文档片段。"""

    source_id: str
    content: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)
