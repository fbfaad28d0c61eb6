"""
服务层模块
提供业务逻辑的抽象层：交付物、上下文、工具执行、编排与流式聊天
"""

from .artifact_service import ArtifactService
from .context_manager import ContextManager
from .tool_executor import ToolExecutor
from .orchestrator import AgentOrchestrator
from .chat_service import ChatService

__all__ = [
    "ArtifactService",
    "ContextManager",
    "ToolExecutor",
    "AgentOrchestrator",
    "ChatService"
]
