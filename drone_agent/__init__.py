"""Drone Agent 顶层包。

该包提供无人机配置器对话的核心编排实现，
包括配置加载、领域模型、Provider 适配、工具注册与校验、
文档检索、基于 LangGraph 的回合路由与对话持久化等能力。
"""

from drone_agent.flows.router import TurnRouter
from drone_agent.flows.runner import AgentContext, build_context, run_agent
from drone_agent.flows.state import TurnResult

__all__ = ["AgentContext", "TurnResult", "TurnRouter", "build_context", "run_agent"]
