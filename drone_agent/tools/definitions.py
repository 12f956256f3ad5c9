"""工具相关的数据结构。

- ToolDef / ToolParam: 提供给模型的工具定义。
- ToolCall: 模型发起的一次工具调用。
- ToolResult: 调用经校验后的结果。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass(frozen=True)
class ToolParam:
    """Definition of a single tool parameter.

    ``schema`` is a JSON-schema fragment. The dispatcher understands
    ``type``, ``enum``, ``minimum`` and ``maximum``.
    """

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass(frozen=True)
class ToolDef:
    """A tool the model may call.

    - build_action: turns validated arguments into the typed action value.
    - confirm: renders the confirmation sent back to the user.
    """

    name: str
    description: str
    params: Dict[str, ToolParam]
    build_action: Optional[Callable[[Dict[str, Any]], Any]] = None
    confirm: Optional[Callable[[Dict[str, Any]], str]] = None

    def to_json_schema(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            properties[name] = dict(param.schema or {"type": "string"})
            if param.description:
                properties[name]["description"] = param.description
            if param.required:
                required.append(name)
        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }


@dataclass
class ToolCall:
    """A tool invocation proposed by the model.

    ``parse_error`` is set when the provider returned arguments that are not a
    JSON object; the dispatcher reports it instead of guessing.
    """

    id: str
    name: str
    arguments: Dict[str, Any]
    parse_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name, "args": self.arguments}
        if self.parse_error:
            data["parse_error"] = self.parse_error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            arguments=dict(data.get("args") or {}),
            parse_error=data.get("parse_error"),
        )


@dataclass
class ToolResult:
    """Outcome of dispatching a ToolCall.

    On success ``validated_args`` holds the certified arguments and ``action``
    the typed action value; on failure ``error`` names the field and the
    violated constraint.
    """

    ok: bool
    name: str
    call_id: str = ""
    validated_args: Dict[str, Any] = field(default_factory=dict)
    action: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "name": self.name, "args": self.validated_args}
        return {"ok": False, "name": self.name, "error": self.error}
