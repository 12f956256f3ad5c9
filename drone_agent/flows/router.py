"""Turn router: runs one chat turn end to end.

A turn either completes and appends all of its messages in a single store
call, or fails and leaves the thread untouched.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from uuid import uuid4

from drone_agent.domain.conversation import new_message
from drone_agent.domain.exceptions import BusinessError, TurnTimeoutError
from drone_agent.flows.graph import build_graph
from drone_agent.flows.state import TurnResult, TurnState
from drone_agent.infrastructure.logging.logger import logger

if TYPE_CHECKING:
    from drone_agent.flows.runner import AgentContext


class TurnRouter:
    def __init__(self, ctx: "AgentContext"):
        self.ctx = ctx
        self._graph = build_graph(ctx)

    async def handle_turn(self, thread_id: str, user_text: str) -> TurnResult:
        """Decide, act, persist and return the structured result of one turn."""
        trace_id = f"t-{uuid4().hex[:12]}"
        log_extra = {"thread_id": thread_id, "trace_id": trace_id}
        logger.info("turn.start", extra={"extra": dict(log_extra, user_text=user_text)})
        try:
            result = await self._run(thread_id, user_text, trace_id)
        except BusinessError as e:
            payload = dict(e.extra)
            payload.update(log_extra, code=e.code, error=e.message)
            logger.error("turn.failed", extra={"extra": payload})
            return TurnResult.failure(thread_id, e.code, e.message)
        except Exception as e:
            logger.exception("turn.crashed", extra={"extra": dict(log_extra, error=str(e))})
            return TurnResult.failure(thread_id, "INTERNAL_ERROR", "Unexpected error while handling the turn.")
        logger.info(
            "turn.end",
            extra={"extra": dict(log_extra, kind=result.kind, tool=result.tool_name)},
        )
        return result

    async def _run(self, thread_id: str, user_text: str, trace_id: str) -> TurnResult:
        history = await self.ctx.store.load(thread_id)
        user_msg = new_message(thread_id, "user", user_text)
        state: TurnState = {
            "thread_id": thread_id,
            "trace_id": trace_id,
            "user_text": user_text,
            "messages": history + [user_msg],
            "new_messages": [user_msg],
            "discarded_calls": [],
            "documents": [],
        }
        timeout = self.ctx.settings.turn_timeout
        try:
            final: TurnState = await asyncio.wait_for(self._graph.ainvoke(state), timeout=timeout)
        except asyncio.TimeoutError:
            raise TurnTimeoutError(
                code="TURN_TIMEOUT",
                message=f"Turn did not complete within {timeout:g}s.",
                thread_id=thread_id,
            )
        result = final.get("result")
        if result is None:
            raise BusinessError(code="NO_RESULT", message="Turn graph finished without a result.", http_status=500)
        await self.ctx.store.append(thread_id, final["new_messages"])
        return result
