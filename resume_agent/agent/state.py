"""
对话上下文与编排状态定义

ConversationContext 是按对话组装、缓存的派生状态（不单独落库）；
OrchestratorState 贯穿编排工作流图的一次执行。
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, TypedDict

from resume_agent.agent.models import AgentIntent, ToolResult
from resume_agent.models.base import utc_now


class SessionContext(TypedDict):
    """调用方传入的会话标识"""
    conversation_id: int
    user_id: str


class ConversationContext(TypedDict, total=False):
    """
    对话上下文

    首次访问时从存储重建，之后缓存在内存中并就地累积变更；
    同一对话假定单写者，不与其它进程的并发写入对账。
    """

    # 按 created_at 正序的对话历史，包含合成的 system 记录
    conversation_history: List[Dict[str, Any]]

    # 对话内全部交付物（updated_at 倒序）
    artifacts: List[Dict[str, Any]]

    # 当前文档：最近更新的 resume 类型交付物
    current_resume: Optional[Dict[str, Any]]

    # 推断画像
    user_profile: Optional[Dict[str, Any]]

    # 最近的用户输入（最多 10 条）
    previous_inputs: List[Dict[str, Any]]

    # 文档版本列表，最新在前，按 id 去重
    resume_versions: List[Dict[str, Any]]

    last_activity: datetime
    last_agent_type: Optional[str]


class OrchestratorState(TypedDict, total=False):
    """编排工作流图的状态"""
    user_input: str
    session_context: SessionContext
    context: ConversationContext
    agent_type: str
    intent: AgentIntent
    tool_results: List[ToolResult]


def get_empty_context() -> ConversationContext:
    """
    返回空上下文

    所有集合为空、时间戳为当前时间。存储不可用时编排器仍可继续工作
    """
    return {
        "conversation_history": [],
        "artifacts": [],
        "current_resume": None,
        "user_profile": None,
        "previous_inputs": [],
        "resume_versions": [],
        "last_activity": utc_now(),
        "last_agent_type": None,
    }
