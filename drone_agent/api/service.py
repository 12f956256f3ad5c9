"""对外 API 服务模块。

以异步方法提供聊天、历史查询与删除等接口，
HTTP 层根据 ``BusinessError.http_status`` 映射响应码。
"""

from typing import Any, Dict, List, Union

from drone_agent.domain.exceptions import TurnAbortedError, ValidationError
from drone_agent.flows.router import TurnRouter
from drone_agent.flows.runner import AgentContext
from drone_agent.infrastructure.logging.logger import logger


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            code="INVALID_REQUEST",
            message=f"'{name}' must be a non-empty string.",
            field=name,
        )
    return value


class ChatService:
    def __init__(self, context: AgentContext):
        self.context = context
        self.router = TurnRouter(context)

    async def chat(self, user_input: Any, conversation_id: Any) -> Dict[str, Union[Dict[str, Any], str]]:
        """运行一个对话回合。

        Args:
            user_input: 用户输入
            conversation_id: 会话ID

        Returns:
            配置类工具返回 ``{"response": {"name", "args", "message"}}``，
            其他情况返回 ``{"response": "<文本>"}``。

        Raises:
            ValidationError: ``user_input``/``conversation_id`` 缺失或为空。
            TurnAbortedError: 回合失败，未持久化任何内容。
        """
        text = _require_text("user_input", user_input)
        thread_id = _require_text("conversation_id", conversation_id)
        result = await self.router.handle_turn(thread_id, text)
        if not result.ok:
            raise TurnAbortedError(
                code=result.error_code or "TURN_ABORTED",
                message=result.message or "Error processing chat request",
                thread_id=thread_id,
            )
        return {"response": result.to_response()}

    async def history(self, conversation_id: Any) -> List[Dict[str, str]]:
        """按顺序返回用户与助手文本，助手消息以 ``system`` 角色返回，工具消息被过滤。"""
        thread_id = _require_text("conversation_id", conversation_id)
        messages = await self.context.store.load(thread_id)
        return [
            {"role": "user" if m.role == "user" else "system", "content": m.text}
            for m in messages
            if m.is_conversational and m.text
        ]

    async def delete_history(self, conversation_id: Any) -> None:
        thread_id = _require_text("conversation_id", conversation_id)
        await self.context.store.delete_thread(thread_id)
        logger.info("history.deleted", extra={"extra": {"thread_id": thread_id}})

    async def list_conversations(self) -> List[str]:
        return await self.context.store.list_threads()

