"""OpenAI 兼容的 Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 转换成 OpenAI 风格的 ``/chat/completions`` 请求体。
3. 通过 ``httpx.AsyncClient`` 发送请求，并映射网络 / API 错误。
4. 将响应 JSON 解析回 ChatResult / ChatMessage（含工具调用）。

注册表中所有兼容 OpenAI 协议的厂商（OpenAI、Moonshot/Kimi）共用此适配器。
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx

from drone_agent.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from drone_agent.domain.models import ChatChoice, ChatMessage, ChatRequest, ChatResult, ChatUsage
from drone_agent.providers.registry import ModelConfig, ProviderConfig
from drone_agent.tools.definitions import ToolCall, ToolDef


class OpenAICompatibleClient:
    """Chat client for OpenAI-style endpoints."""

    def __init__(self, settings, config: ProviderConfig):
        self._settings = settings
        self._config = config
        self.name = config.name

    @property
    def _api_key(self) -> Optional[str]:
        return getattr(self._settings, self._config.api_key_setting, None)

    @property
    def _base_url(self) -> str:
        return getattr(self._settings, self._config.base_url_setting, None) or self._config.base_url

    async def chat(self, req: ChatRequest) -> ChatResult:
        """Run one non-streaming chat completion.

        Missing credentials and unknown logical models raise ValidationError;
        transport failures raise NetworkError, HTTP 429 RateLimitError and any
        other error status ApiError. Nothing is retried.
        """

        if not self._api_key:
            raise ValidationError(
                code="MISSING_API_KEY",
                message=f"{self._config.api_key_setting.upper()} not set",
            )
        model_cfg = self._config.models.get(req.model)
        if model_cfg is None:
            raise ValidationError(code="UNKNOWN_MODEL", message=f"Unknown model {req.model!r} for {self.name}")
        payload = self._build_payload(req, model_cfg)
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{self._base_url}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=f"{self.name} rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(code="BAD_RESPONSE", message=f"Response is not JSON: {e}", http_status=502)
        return self._parse_response(data, req)

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "temperature": req.temperature if req.temperature is not None else model_cfg.default_temperature,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
            "top_p": req.top_p,
        }
        if req.tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in req.tools]
            payload["tool_choice"] = req.tool_choice
        return payload

    def _parse_response(self, data: Dict[str, Any], req: ChatRequest) -> ChatResult:
        choices: List[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            choices.append(
                ChatChoice(index=i, message=self._build_chat_message(msg), finish_reason=ch.get("finish_reason"))
            )
        usage_raw = data.get("usage") or {}
        usage = ChatUsage(
            prompt_tokens=usage_raw.get("prompt_tokens", 0),
            completion_tokens=usage_raw.get("completion_tokens", 0),
            total_tokens=usage_raw.get("total_tokens", 0),
        )
        return ChatResult(provider=self.name, model=req.model, choices=choices, usage=usage, raw=data)

    @staticmethod
    def _serialize_tool(tool: ToolDef) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.to_json_schema(),
            },
        }

    def _build_chat_message(self, payload: Dict[str, Any]) -> ChatMessage:
        tool_calls: List[ToolCall] = []
        for idx, call in enumerate(payload.get("tool_calls") or []):
            func = call.get("function") or {}
            arguments, parse_error = self._parse_arguments(func.get("arguments"))
            tool_calls.append(
                ToolCall(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or call.get("name") or "",
                    arguments=arguments,
                    parse_error=parse_error,
                )
            )

        # legacy single function_call field
        function_call = payload.get("function_call")
        if function_call:
            arguments, parse_error = self._parse_arguments(function_call.get("arguments"))
            tool_calls.append(
                ToolCall(
                    id=function_call.get("id") or "function_call",
                    name=function_call.get("name") or "",
                    arguments=arguments,
                    parse_error=parse_error,
                )
            )
        return ChatMessage(
            role=payload.get("role") or "assistant",
            content=payload.get("content") or "",
            tool_calls=tool_calls or None,
            tool_call_id=payload.get("tool_call_id"),
        )

    @staticmethod
    def _parse_arguments(raw: Any) -> Tuple[Dict[str, Any], Optional[str]]:
        """Decode the ``arguments`` field, returning ``(args, parse_error)``."""

        if raw is None or raw == "":
            return {}, None
        if isinstance(raw, dict):
            return raw, None
        if isinstance(raw, str):
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                return {}, str(e)
            if isinstance(value, dict):
                return value, None
            return {}, f"expected an object, got {type(value).__name__}"
        return {}, f"unsupported arguments type {type(raw).__name__}"

    @staticmethod
    def _message_to_payload(message: ChatMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": message.role, "content": message.content or None}
        if message.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in message.tool_calls
            ]
        if message.tool_call_id:
            payload["tool_call_id"] = message.tool_call_id
        return payload
