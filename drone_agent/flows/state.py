"""State and result types for the turn graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TypedDict, Union

from drone_agent.domain.conversation import MessageRecord
from drone_agent.domain.models import RetrievedDocument
from drone_agent.tools.definitions import ToolCall, ToolResult


Route = Literal["tool", "retrieve", "respond"]
TurnKind = Literal["tool", "answer", "validation_error", "failure"]


@dataclass
class TurnResult:
    """Structured outcome of one turn.

    kind:
        - "tool": a configuration tool was validated; ``tool_name``/``args``
          describe the action for the caller to apply.
        - "answer": plain-text reply (direct or grounded).
        - "validation_error": the proposed tool call was rejected.
        - "failure": the turn was aborted and nothing was persisted.
    """

    kind: TurnKind
    thread_id: str
    message: str = ""
    tool_name: Optional[str] = None
    args: Dict[str, Any] = field(default_factory=dict)
    action: Any = None
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind != "failure"

    def to_response(self) -> Union[Dict[str, Any], str, None]:
        """Wire form: ``{name, args, message}``, a plain string, or None."""
        if self.kind == "failure":
            return None
        if self.kind == "tool":
            return {"name": self.tool_name, "args": dict(self.args), "message": self.message}
        return self.message

    @classmethod
    def failure(cls, thread_id: str, code: str, message: str) -> "TurnResult":
        return cls(kind="failure", thread_id=thread_id, message=message, error_code=code)


class TurnState(TypedDict, total=False):
    """State shared across the turn graph nodes."""

    thread_id: str
    trace_id: str
    user_text: str
    # persisted history plus the new user message, used for prompting
    messages: List[MessageRecord]
    # everything this turn will append, user message first
    new_messages: List[MessageRecord]
    route: Route
    tool_call: Optional[ToolCall]
    discarded_calls: List[ToolCall]
    decision_text: str
    tool_result: Optional[ToolResult]
    documents: List[RetrievedDocument]
    result: Optional[TurnResult]
