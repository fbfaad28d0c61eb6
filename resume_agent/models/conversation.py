"""
会话域模型 - 对话表
对话是消息和交付物的容器
"""

from typing import Optional
from sqlmodel import Field

from .base import TimestampModel


DEFAULT_CONVERSATION_TITLE = "New Resume"


class Conversation(TimestampModel, table=True):
    """
    对话表
    左侧栏按 updated_at 倒序展示，删除时级联删除消息、交付物和画像
    """
    __tablename__ = "conversations"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 会话标题
    title: str = Field(default=DEFAULT_CONVERSATION_TITLE, nullable=False)

    # 归属用户：认证服务提供的不透明身份标识
    # 索引优化：按用户查询会话列表时的性能
    user_id: str = Field(index=True, nullable=False)
