"""Tool registry and dispatcher.

The dispatcher never performs a tool's effect. It certifies that a proposed
``(name, args)`` pair is well formed and hands back a typed action for the
caller to apply.

Checks run in a fixed order and stop at the first violation:
name exists -> arguments parsed -> required fields -> types -> enum -> bounds.
"""

import math
from typing import Any, Callable, Dict, Iterable, List, Optional

from drone_agent.tools.definitions import ToolCall, ToolDef, ToolParam, ToolResult


FieldCheck = Callable[[ToolParam, Any], Optional[str]]


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if value is None:
        return "null"
    return type(value).__name__


def _matches_type(expected: str, value: Any) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    return True


def check_type(param: ToolParam, value: Any) -> Optional[str]:
    expected = param.schema.get("type")
    if expected and not _matches_type(expected, value):
        return f"Field '{param.name}' must be of type {expected} (got {_type_name(value)})."
    return None


def check_enum(param: ToolParam, value: Any) -> Optional[str]:
    allowed = param.schema.get("enum")
    if allowed is not None and value not in allowed:
        options = ", ".join(repr(v) for v in allowed)
        return f"Field '{param.name}' must be one of {options} (got {value!r})."
    return None


def check_bounds(param: ToolParam, value: Any) -> Optional[str]:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None
    minimum = param.schema.get("minimum")
    maximum = param.schema.get("maximum")
    if minimum is not None and value < minimum:
        return f"Field '{param.name}' must be >= {minimum} (got {value})."
    if maximum is not None and value > maximum:
        return f"Field '{param.name}' must be <= {maximum} (got {value})."
    return None


FIELD_CHECKS: List[FieldCheck] = [check_type, check_enum, check_bounds]


def validate_arguments(tool: ToolDef, arguments: Dict[str, Any]) -> Optional[str]:
    """Return the first violation for ``arguments`` or None when they are valid."""
    for name, param in tool.params.items():
        if param.required and arguments.get(name) is None:
            return f"Field '{name}' is required for '{tool.name}'."
    for check in FIELD_CHECKS:
        for name, param in tool.params.items():
            if name not in arguments or arguments[name] is None:
                continue
            error = check(param, arguments[name])
            if error:
                return error
    return None


class ToolRegistry:
    """Immutable-after-startup set of ToolDefs keyed by unique name."""

    def __init__(self, tools: Optional[Iterable[ToolDef]] = None) -> None:
        self._tools: Dict[str, ToolDef] = {}
        self._frozen = False
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDef) -> None:
        if self._frozen:
            raise RuntimeError("Tool registry is frozen")
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name!r} is already registered")
        self._tools[tool.name] = tool

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    def get(self, name: str) -> Optional[ToolDef]:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def definitions(self) -> List[ToolDef]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def dispatch(self, call: ToolCall) -> ToolResult:
        tool = self._tools.get(call.name)
        if tool is None:
            return ToolResult(ok=False, name=call.name, call_id=call.id, error=f"Unknown tool '{call.name}'.")
        if call.parse_error:
            return ToolResult(
                ok=False,
                name=call.name,
                call_id=call.id,
                error=f"Arguments for '{call.name}' are not a valid JSON object: {call.parse_error}",
            )
        error = validate_arguments(tool, call.arguments)
        if error:
            return ToolResult(ok=False, name=call.name, call_id=call.id, error=error)
        validated = {name: call.arguments[name] for name in tool.params if call.arguments.get(name) is not None}
        action = tool.build_action(validated) if tool.build_action else None
        return ToolResult(ok=True, name=call.name, call_id=call.id, validated_args=validated, action=action)

    def confirmation(self, result: ToolResult) -> str:
        """Message shown to the user for a dispatched call."""
        if not result.ok:
            return f"I couldn't apply '{result.name}': {result.error}"
        tool = self._tools.get(result.name)
        if tool is not None and tool.confirm is not None:
            return tool.confirm(result.validated_args)
        return f"Applied {result.name}."
