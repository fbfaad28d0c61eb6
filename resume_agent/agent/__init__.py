"""
Agent 模块 - 意图路由、专家 Agent 与文档生成调用
"""

from .state import ConversationContext, OrchestratorState, SessionContext, get_empty_context

__all__ = [
    "ConversationContext",
    "OrchestratorState",
    "SessionContext",
    "get_empty_context"
]
