from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Protocol, Union
from uuid import uuid4

from drone_agent.tools.definitions import ToolCall


MessageRole = Literal["user", "assistant", "tool"]
MessageContent = Union[str, Dict[str, Any]]


@dataclass
class MessageRecord:
    """A persisted conversation message.

    ``sequence`` is assigned by the store on append and strictly increases
    within a thread. ``tool_result_of`` points at the assistant message whose
    ``tool_call`` this tool message answers.
    """

    id: str
    thread_id: str
    role: MessageRole
    content: MessageContent
    sequence: int = 0
    tool_call: Optional[ToolCall] = None
    tool_result_of: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_conversational(self) -> bool:
        """User text or assistant text that is not a tool proposal."""
        if self.role == "user":
            return True
        return self.role == "assistant" and self.tool_call is None

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return str(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "role": self.role,
            "content": self.content,
            "sequence": self.sequence,
            "tool_call": self.tool_call.to_dict() if self.tool_call else None,
            "tool_result_of": self.tool_result_of,
            "created_at": self.created_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            "meta": self.meta,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MessageRecord":
        tool_call = data.get("tool_call")
        return cls(
            id=data["id"],
            thread_id=data["thread_id"],
            role=data["role"],
            content=data.get("content") if data.get("content") is not None else "",
            sequence=int(data.get("sequence", 0)),
            tool_call=ToolCall.from_dict(tool_call) if tool_call else None,
            tool_result_of=data.get("tool_result_of"),
            created_at=datetime.fromisoformat(str(data["created_at"]).replace("Z", "+00:00")),
            meta=data.get("meta") or {},
        )


def new_message(
    thread_id: str,
    role: MessageRole,
    content: MessageContent,
    *,
    tool_call: Optional[ToolCall] = None,
    tool_result_of: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> MessageRecord:
    """Create an unsequenced record; the store numbers it on append."""
    return MessageRecord(
        id=f"m-{uuid4().hex}",
        thread_id=thread_id,
        role=role,
        content=content,
        tool_call=tool_call,
        tool_result_of=tool_result_of,
        meta=dict(meta or {}),
    )


def conversational_window(messages: List[MessageRecord], size: int) -> List[MessageRecord]:
    """Trailing ``size`` user/assistant text messages, tool traffic excluded."""
    convo = [m for m in messages if m.is_conversational and m.text]
    if size <= 0:
        return []
    return convo[-size:]


@dataclass
class Thread:
    id: str
    messages: List[MessageRecord] = field(default_factory=list)
    last_write_seq: int = 0


@dataclass
class Checkpoint:
    """Durable snapshot of one thread."""

    thread_id: str
    messages: List[MessageRecord]
    write_seq: int


class ConversationStore(Protocol):
    async def append(self, thread_id: str, messages: List[MessageRecord]) -> List[MessageRecord]:
        ...

    async def load(self, thread_id: str) -> List[MessageRecord]:
        ...

    async def load_thread(self, thread_id: str) -> Thread:
        ...

    async def delete_thread(self, thread_id: str) -> None:
        ...

    async def list_threads(self) -> List[str]:
        ...
