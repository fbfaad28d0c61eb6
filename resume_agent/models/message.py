"""
会话域模型 - 消息流水表
同一对话内 created_at 严格递增，UI 展示与上下文回放都依赖此顺序
"""

from typing import Optional, Dict, Any
from sqlmodel import Field, Column, JSON

from enum import Enum

from .base import TimestampModel

class MessageRole(str, Enum):
    """消息角色枚举"""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

class Message(TimestampModel, table=True):
    """
    消息流水表
    记录对话流，助手消息可附带当时的文档快照（用于"时间旅行"预览）
    """
    __tablename__ = "messages"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 外键：对话 ID，查询热点（加载当前对话的所有消息）
    conversation_id: int = Field(foreign_key="conversations.id", index=True, nullable=False)

    # 消息角色：user, assistant, system
    role: MessageRole = Field(nullable=False)

    # 展示给用户的文本内容
    text: str = Field(default="", nullable=False)

    # 文档快照：该轮生成的结构化文档（可选）
    resume_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    def to_dict(self) -> Dict[str, Any]:
        """转换为上下文使用的普通字典"""
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "role": self.role.value if isinstance(self.role, MessageRole) else self.role,
            "text": self.text,
            "resume_data": self.resume_data,
            "created_at": self.created_at,
        }
