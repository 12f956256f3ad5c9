"""LangGraph construction and node implementations for one chat turn.

decide -> dispatch_tool            -> END
       -> retrieve -> synthesize   -> END
       -> respond                  -> END
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from drone_agent.domain.conversation import Thread, conversational_window, new_message
from drone_agent.domain.exceptions import RetrievalError
from drone_agent.domain.models import ChatMessage, ChatRequest
from drone_agent.flows.state import Route, TurnResult, TurnState
from drone_agent.infrastructure.logging.logger import logger
from drone_agent.prompts import load_system_prompt
from drone_agent.providers.base import invoke_model
from drone_agent.retrieval.augmentor import format_context
from drone_agent.tools.definitions import ToolCall
from drone_agent.tools.drone_tools import RETRIEVE_TOOL

if TYPE_CHECKING:
    from drone_agent.flows.runner import AgentContext

# sent when the model returns neither text nor a tool call
CLARIFY_FALLBACK = (
    "Sorry, I'm not sure what you'd like to do. Could you say which part of the drone to change, "
    "or what you'd like to know?"
)


def select_tool_call(calls: List[ToolCall]) -> Tuple[Optional[ToolCall], List[ToolCall]]:
    """Pick the single call acted on this turn.

    A ``retrieve`` call always wins; otherwise the first proposed call is
    kept. Returns ``(kept, discarded)``.
    """
    if not calls:
        return None, []
    for idx, call in enumerate(calls):
        if call.name == RETRIEVE_TOOL:
            return call, calls[:idx] + calls[idx + 1:]
    return calls[0], calls[1:]


def _log_ctx(state: TurnState, **fields) -> dict:
    payload = {"thread_id": state.get("thread_id"), "trace_id": state.get("trace_id")}
    payload.update(fields)
    return {"extra": payload}


async def decide_node(state: TurnState, ctx: "AgentContext") -> TurnState:
    cfg = ctx.settings
    window = conversational_window(state["messages"], cfg.decision_window)
    prompt = [ChatMessage(role="system", content=load_system_prompt("decision_system"))]
    prompt.extend(ChatMessage(role=m.role, content=m.text) for m in window)
    req = ChatRequest(
        provider=getattr(ctx.provider, "name", "unknown"),
        model=cfg.default_model,
        messages=prompt,
        temperature=cfg.temperature,
        tools=ctx.registry.definitions(),
        tool_choice="auto",
    )
    logger.info("decide_node.start", extra=_log_ctx(state, window=len(window)))
    result = await invoke_model(ctx.provider, req)
    message = result.message
    kept, discarded = select_tool_call(list(message.tool_calls or []))
    route: Route = "respond"
    if kept is not None:
        route = "retrieve" if kept.name == RETRIEVE_TOOL else "tool"
    if discarded:
        logger.warning(
            "decide_node.discarded_tool_calls",
            extra=_log_ctx(state, kept=kept.name if kept else None, discarded=[c.name for c in discarded]),
        )
    logger.info("decide_node.end", extra=_log_ctx(state, route=route, tool=kept.name if kept else None))
    return {
        "route": route,
        "tool_call": kept,
        "discarded_calls": discarded,
        "decision_text": message.content or "",
    }


def route_after_decision(state: TurnState) -> Route:
    return state.get("route", "respond")


async def dispatch_tool_node(state: TurnState, ctx: "AgentContext") -> TurnState:
    thread_id = state["thread_id"]
    call = state["tool_call"]
    outcome = ctx.registry.dispatch(call)
    text = ctx.registry.confirmation(outcome)
    proposal = new_message(thread_id, "assistant", "", tool_call=call)
    tool_msg = new_message(thread_id, "tool", outcome.to_dict(), tool_result_of=proposal.id)
    reply = new_message(thread_id, "assistant", text, meta={"tool": call.name, "ok": outcome.ok})
    if outcome.ok:
        result = TurnResult(
            kind="tool",
            thread_id=thread_id,
            message=text,
            tool_name=outcome.name,
            args=dict(outcome.validated_args),
            action=outcome.action,
        )
        logger.info("dispatch_tool_node.ok", extra=_log_ctx(state, tool=call.name))
    else:
        result = TurnResult(kind="validation_error", thread_id=thread_id, message=text, tool_name=call.name)
        logger.info("dispatch_tool_node.rejected", extra=_log_ctx(state, tool=call.name, error=outcome.error))
    return {
        "tool_result": outcome,
        "new_messages": state["new_messages"] + [proposal, tool_msg, reply],
        "result": result,
    }


async def retrieve_node(state: TurnState, ctx: "AgentContext") -> TurnState:
    thread_id = state["thread_id"]
    call = state["tool_call"]
    checked = ctx.registry.dispatch(call)
    query = str(checked.validated_args.get("query") or "").strip() if checked.ok else ""
    if not query:
        query = state["user_text"]
    degraded = False
    try:
        documents = await ctx.augmentor.retrieve(query, ctx.settings.retrieval_k)
    except RetrievalError as e:
        logger.warning("retrieve_node.degraded", extra=_log_ctx(state, code=e.code, error=e.message))
        documents = []
        degraded = True
    proposal = new_message(thread_id, "assistant", "", tool_call=call)
    tool_msg = new_message(
        thread_id,
        "tool",
        format_context(documents),
        tool_result_of=proposal.id,
        meta={"query": query, "sources": [d.source_id for d in documents], "degraded": degraded},
    )
    return {
        "documents": documents,
        "new_messages": state["new_messages"] + [proposal, tool_msg],
    }


async def synthesize_node(state: TurnState, ctx: "AgentContext") -> TurnState:
    thread = Thread(id=state["thread_id"], messages=state["messages"])
    answer = await ctx.synthesizer.synthesize(thread, state.get("documents") or [])
    return {
        "new_messages": state["new_messages"] + [answer],
        "result": TurnResult(kind="answer", thread_id=thread.id, message=answer.text),
    }


async def respond_node(state: TurnState) -> TurnState:
    thread_id = state["thread_id"]
    text = (state.get("decision_text") or "").strip()
    if not text:
        logger.warning("respond_node.empty_reply", extra=_log_ctx(state))
        text = CLARIFY_FALLBACK
    reply = new_message(thread_id, "assistant", text)
    return {
        "new_messages": state["new_messages"] + [reply],
        "result": TurnResult(kind="answer", thread_id=thread_id, message=text),
    }


def build_graph(ctx: "AgentContext") -> CompiledStateGraph:
    async def _decide(state: TurnState) -> TurnState:
        return await decide_node(state, ctx)

    async def _dispatch(state: TurnState) -> TurnState:
        return await dispatch_tool_node(state, ctx)

    async def _retrieve(state: TurnState) -> TurnState:
        return await retrieve_node(state, ctx)

    async def _synthesize(state: TurnState) -> TurnState:
        return await synthesize_node(state, ctx)

    graph = StateGraph(TurnState)
    graph.add_node("decide", _decide)
    graph.add_node("dispatch_tool", _dispatch)
    graph.add_node("retrieve", _retrieve)
    graph.add_node("synthesize", _synthesize)
    graph.add_node("respond", respond_node)
    graph.set_entry_point("decide")
    graph.add_conditional_edges(
        "decide",
        route_after_decision,
        {"tool": "dispatch_tool", "retrieve": "retrieve", "respond": "respond"},
    )
    graph.add_edge("retrieve", "synthesize")
    graph.add_edge("dispatch_tool", END)
    graph.add_edge("synthesize", END)
    graph.add_edge("respond", END)
    return graph.compile()
